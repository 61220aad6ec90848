from enum import StrEnum

from pydantic import BaseModel, Field

from forest.schemas.goal import Goal


class CountdownKind(StrEnum):
    SESSION = "session"
    BREAK = "break"


class UserSession(BaseModel):
    activity_type: str = ""
    start_time: int = 0
    end_time: int = 0
    active: bool = False
    owner: str = ""

    model_config = {"frozen": True}


class SessionView(BaseModel):
    session: UserSession | None = None
    break_needed: bool = False
    has_active_session: bool = False
    matched_goal: Goal | None = None
    countdown_target: int | None = None
    countdown_kind: CountdownKind | None = None

    model_config = {"frozen": True}


class SessionStart(BaseModel):
    activity_type: str = ""
    minutes: str | int = "25"


class BreakSchedule(BaseModel):
    minutes: str | int = "5"


class CountdownResponse(BaseModel):
    label: str
    target: int | None
    remaining_seconds: int | None
    display: str | None


class SessionResponse(BaseModel):
    session: UserSession | None
    break_needed: bool
    has_active_session: bool
    matched_goal: Goal | None
    countdown: CountdownResponse
    selectable_goals: list[Goal] = Field(default_factory=list)

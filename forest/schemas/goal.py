from enum import StrEnum

from pydantic import BaseModel, Field

from forest.schemas.contract import ReadResult


class GoalView(StrEnum):
    SESSION_SELECTION = "session"
    LISTING = "listing"


class Goal(BaseModel):
    activity_type: str
    trees_remaining: int = Field(ge=0)
    end_time: int = Field(default=0, ge=0)  # 0 means unset
    staked_amount: int = Field(default=0, ge=0)

    model_config = {"frozen": True}


class GoalSnapshot(BaseModel):
    """One activity-type list paired with the reads issued for that list.

    results holds three slots per activity type, in list order:
    trees remaining, end time, staked amount.
    """

    account: str
    activity_types: tuple[str, ...] = ()
    results: tuple[ReadResult, ...] = ()

    model_config = {"frozen": True}


class GoalDraft(BaseModel):
    """Goal creation input that passed every local check."""

    activity_type: str
    duration_seconds: int = Field(gt=0)
    num_trees: int = Field(gt=0)
    total_stake: int = Field(gt=0)

    model_config = {"frozen": True}


class GoalCreate(BaseModel):
    activity_type: str = ""
    duration_days: str | int = "1"
    num_trees: str | int = "1"


class GoalResponse(BaseModel):
    activity_type: str
    trees_remaining: int
    end_time: int
    staked_amount: int
    staked_ether: str
    is_claimable: bool
    is_expired: bool

from fastapi import APIRouter, Depends

from forest.dependencies import get_break_schedule, get_dashboard
from forest.schemas.session import (
    BreakSchedule,
    CountdownKind,
    CountdownResponse,
    SessionResponse,
    SessionStart,
)
from forest.schemas.transaction import TransactionResponse
from forest.services.countdown import format_remaining, remaining_until
from forest.services.dashboard_service import Dashboard

router = APIRouter(prefix="/session", tags=["session"])


def _countdown(target: int | None, kind: CountdownKind | None, now: int) -> CountdownResponse:
    label = "Break Timer" if kind is CountdownKind.BREAK else "Session Timer"
    if target is None:
        return CountdownResponse(label=label, target=None, remaining_seconds=None, display=None)
    remaining = remaining_until(target, now)
    return CountdownResponse(
        label=label,
        target=target,
        remaining_seconds=remaining,
        display=format_remaining(remaining),
    )


@router.get("", response_model=SessionResponse)
async def get_session(dashboard: Dashboard = Depends(get_dashboard)):
    now = dashboard.now()
    view = dashboard.session_view(now)
    return SessionResponse(
        session=view.session,
        break_needed=view.break_needed,
        has_active_session=view.has_active_session,
        matched_goal=view.matched_goal,
        countdown=_countdown(view.countdown_target, view.countdown_kind, now),
        selectable_goals=dashboard.session_goals(now),
    )


@router.post("", response_model=TransactionResponse, status_code=201)
async def start_session(
    data: SessionStart,
    dashboard: Dashboard = Depends(get_dashboard),
):
    lifecycle = await dashboard.start_focus_session(data.activity_type, data.minutes)
    return lifecycle.result()


@router.post("/break", response_model=TransactionResponse)
async def take_break(
    dashboard: Dashboard = Depends(get_dashboard),
    break_schedule: dict[str, int] = Depends(get_break_schedule),
):
    lifecycle = await dashboard.take_break()
    if dashboard.break_end_time is None:
        break_schedule.pop(dashboard.account.lower(), None)
    return lifecycle.result()


@router.post("/break/schedule", response_model=CountdownResponse)
async def schedule_break(
    data: BreakSchedule,
    dashboard: Dashboard = Depends(get_dashboard),
    break_schedule: dict[str, int] = Depends(get_break_schedule),
):
    break_end = dashboard.schedule_break(data.minutes)
    break_schedule[dashboard.account.lower()] = break_end
    return _countdown(break_end, CountdownKind.BREAK, dashboard.now())

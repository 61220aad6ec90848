import logging

from forest.constants import FN_GET_BREAK_NEEDED, FN_GET_CURRENT_USER_SESSION
from forest.schemas.contract import ContractCall, ReadResult
from forest.schemas.goal import Goal
from forest.schemas.session import CountdownKind, SessionView, UserSession
from forest.services.gateway import ContractGateway

logger = logging.getLogger(__name__)

# Field order of the UserSession struct as returned positionally
SESSION_FIELDS = ("activity_type", "start_time", "end_time", "active", "owner")
SESSION_ALIASES = {
    "activityType": "activity_type",
    "startTime": "start_time",
    "endTime": "end_time",
}


def parse_user_session(result: ReadResult) -> UserSession | None:
    """Build a UserSession from a getCurrentUserSession slot, or None."""
    if not result.ok or result.value is None:
        if not result.ok:
            logger.warning("Session read failed: %s", result.error)
        return None

    raw = result.value
    if isinstance(raw, (list, tuple)):
        raw = dict(zip(SESSION_FIELDS, raw))
    if not isinstance(raw, dict):
        logger.warning("Unexpected session shape: %r", raw)
        return None

    data = {SESSION_ALIASES.get(key, key): value for key, value in raw.items()}
    try:
        return UserSession(
            activity_type=str(data.get("activity_type") or ""),
            start_time=int(data.get("start_time") or 0),
            end_time=int(data.get("end_time") or 0),
            active=bool(data.get("active")),
            owner=str(data.get("owner") or ""),
        )
    except (TypeError, ValueError):
        logger.warning("Unreadable session fields: %r", raw)
        return None


def parse_break_needed(result: ReadResult) -> bool:
    if not result.ok:
        logger.warning("Break flag read failed: %s", result.error)
        return False
    return bool(result.value)


async def fetch_session_state(
    gateway: ContractGateway, account: str
) -> tuple[UserSession | None, bool]:
    """Read the current session and the break flag in one batch."""
    results = await gateway.read_many(
        [
            ContractCall(function=FN_GET_CURRENT_USER_SESSION, args=(account,)),
            ContractCall(function=FN_GET_BREAK_NEEDED, args=(account,)),
        ]
    )
    session_result = results[0] if results else ReadResult.failure("missing slot")
    break_result = results[1] if len(results) > 1 else ReadResult.failure("missing slot")
    return parse_user_session(session_result), parse_break_needed(break_result)


def resolve_session(
    session: UserSession | None,
    break_needed: bool,
    goals: list[Goal],
    break_end_time: int | None = None,
) -> SessionView:
    """Derive what the session screen shows.

    goals should come from the session-selection view. The break deadline
    is never stored remotely; break_end_time is whatever the screen
    scheduled locally.
    """
    has_active_session = session is not None and session.active

    matched_goal = None
    if has_active_session:
        matched_goal = next(
            (goal for goal in goals if goal.activity_type == session.activity_type),
            None,
        )

    if break_needed:
        target, kind = break_end_time, CountdownKind.BREAK
    elif has_active_session:
        target, kind = session.end_time, CountdownKind.SESSION
    else:
        target, kind = None, None

    return SessionView(
        session=session,
        break_needed=break_needed,
        has_active_session=has_active_session,
        matched_goal=matched_goal,
        countdown_target=target,
        countdown_kind=kind,
    )

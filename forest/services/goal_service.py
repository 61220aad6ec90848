"""Goal aggregation.

A user's goals are spread across one read for the activity-type list plus
three reads per activity type. The list and the batch built from it travel
together as a GoalSnapshot so a refresh never pairs reads with a different
list than the one they were issued for.
"""

import logging
from collections.abc import Callable

from forest.constants import (
    FN_GET_END_TIME,
    FN_GET_GOAL,
    FN_GET_STAKED_AMOUNT,
    FN_GET_USER_ACTIVITY_TYPES,
)
from forest.schemas.contract import ContractCall, ReadResult
from forest.schemas.goal import Goal, GoalSnapshot, GoalView
from forest.services.gateway import ContractGateway
from forest.utils import unix_now

logger = logging.getLogger(__name__)

READS_PER_GOAL = 3

GoalPredicate = Callable[[Goal], bool]


def goal_read_calls(account: str, activity_types: list[str] | tuple[str, ...]) -> list[ContractCall]:
    """Three reads per activity type: trees remaining, end time, staked amount."""
    calls = []
    for activity_type in activity_types:
        args = (account, activity_type)
        calls.append(ContractCall(function=FN_GET_GOAL, args=args))
        calls.append(ContractCall(function=FN_GET_END_TIME, args=args))
        calls.append(ContractCall(function=FN_GET_STAKED_AMOUNT, args=args))
    return calls


def _slot_value(results: tuple[ReadResult, ...] | list[ReadResult], index: int) -> int:
    """Integer value of one read slot; missing or failed slots read as 0."""
    if index >= len(results):
        logger.debug("Read slot %d missing, defaulting to 0", index)
        return 0
    result = results[index]
    if not result.ok:
        logger.debug("Read slot %d failed (%s), defaulting to 0", index, result.error)
        return 0
    raw = result.value
    try:
        if isinstance(raw, str) and raw.lower().startswith("0x"):
            value = int(raw, 16)
        else:
            value = int(raw)
    except (TypeError, ValueError):
        logger.debug("Read slot %d held %r, defaulting to 0", index, result.value)
        return 0
    return max(value, 0)


def goals_by_activity(snapshot: GoalSnapshot) -> dict[str, Goal]:
    """Every goal in the snapshot keyed by activity type, in list order."""
    goals: dict[str, Goal] = {}
    for position, activity_type in enumerate(snapshot.activity_types):
        if activity_type in goals:
            continue
        base = position * READS_PER_GOAL
        goals[activity_type] = Goal(
            activity_type=activity_type,
            trees_remaining=_slot_value(snapshot.results, base),
            end_time=_slot_value(snapshot.results, base + 1),
            staked_amount=_slot_value(snapshot.results, base + 2),
        )
    return goals


def is_ongoing_for_session(goal: Goal, now: int | None = None) -> bool:
    """Goals a focus session can be started against right now."""
    now = unix_now() if now is None else now
    return goal.trees_remaining > 0 and goal.end_time > now


def is_ongoing_for_listing(goal: Goal) -> bool:
    """Goals the user still owes trees on, including ones past their deadline."""
    return goal.trees_remaining > 0


def predicate_for(view: GoalView, now: int | None = None) -> GoalPredicate:
    if view is GoalView.SESSION_SELECTION:
        now = unix_now() if now is None else now
        return lambda goal: is_ongoing_for_session(goal, now)
    return is_ongoing_for_listing


def aggregate_goals(
    snapshot: GoalSnapshot,
    predicate: GoalPredicate | None = None,
) -> list[Goal]:
    goals = goals_by_activity(snapshot).values()
    if predicate is None:
        return list(goals)
    return [goal for goal in goals if predicate(goal)]


def select_goals(
    snapshot: GoalSnapshot,
    view: GoalView,
    now: int | None = None,
) -> list[Goal]:
    return aggregate_goals(snapshot, predicate_for(view, now))


def _parse_activity_types(result: ReadResult) -> tuple[str, ...]:
    if not result.ok or not isinstance(result.value, (list, tuple)):
        if not result.ok:
            logger.warning("Activity type read failed: %s", result.error)
        return ()
    return tuple(str(item) for item in result.value)


async def fetch_goal_snapshot(gateway: ContractGateway, account: str) -> GoalSnapshot:
    """Read the activity-type list, then the batch built from that same list."""
    list_result = await gateway.read(
        ContractCall(function=FN_GET_USER_ACTIVITY_TYPES, args=(account,))
    )
    activity_types = _parse_activity_types(list_result)
    if not activity_types:
        return GoalSnapshot(account=account)

    results = await gateway.read_many(goal_read_calls(account, activity_types))
    logger.debug(
        "Fetched %d goal slots for %d activity types of %s",
        len(results),
        len(activity_types),
        account,
    )
    return GoalSnapshot(
        account=account,
        activity_types=activity_types,
        results=tuple(results),
    )

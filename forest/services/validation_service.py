"""Pre-submission checks mirroring the contract's own invariants.

Every check raises ValidationError naming the offending field, so the form
can show the message next to it. Checks run in form order and stop at the
first failure.
"""

import re
from decimal import Decimal, InvalidOperation

from forest.constants import (
    MAX_ACTIVITY_TYPE_LENGTH,
    MAX_NUMBER_INPUT_LENGTH,
    MAX_SESSION_SECONDS,
    MAX_UINT256,
    MIN_GOAL_DURATION_SECONDS,
    MIN_SESSION_SECONDS,
    SECONDS_PER_DAY,
)
from forest.exceptions import ValidationError
from forest.schemas.goal import Goal, GoalDraft
from forest.utils import parse_ether, unix_now

ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")


def _parse_number(value: str | int | float | None) -> Decimal | None:
    """Read a plain decimal form value; blank input counts as zero.

    Exponent notation and overlong input are rejected before conversion,
    so every accepted value stays within a few dozen digits.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        if abs(value) > MAX_UINT256:
            return None
        text = str(value)
    elif isinstance(value, float):
        text = str(value)
    else:
        text = value.strip() or "0"
    if len(text) > MAX_NUMBER_INPUT_LENGTH or "e" in text.lower():
        return None
    try:
        number = Decimal(text)
    except InvalidOperation:
        return None
    return number if number.is_finite() else None


def _parse_whole(value: str | int | float | None) -> int | None:
    number = _parse_number(value)
    if number is None or number != number.to_integral_value():
        return None
    return int(number)


def _ensure_uint(field: str, value: int) -> int:
    if value > MAX_UINT256:
        raise ValidationError(field, "Value is too large.")
    return value


def require_account(account: str | None) -> str:
    if not account:
        raise ValidationError("account", "Please connect your wallet first.")
    return account


def is_address(value: str) -> bool:
    return bool(ADDRESS_PATTERN.match(value))


def is_contract_owner(account: str | None, owner: str | None) -> bool:
    if not account or not owner:
        return False
    return account.lower() == owner.lower()


# ── Goals ─────────────────────────────────────────────────────────────


def compute_total_stake(num_trees: str | int, cost_per_tree: int) -> int:
    """Stake owed for a goal; zero whenever the tree count is not positive."""
    trees = _parse_whole(num_trees)
    if trees is None or trees <= 0:
        return 0
    return cost_per_tree * trees


def validate_activity_type(activity_type: str) -> str:
    if not activity_type.strip():
        raise ValidationError("activity_type", "Activity type is required.")
    if len(activity_type) > MAX_ACTIVITY_TYPE_LENGTH:
        raise ValidationError(
            "activity_type",
            f"Activity type must be {MAX_ACTIVITY_TYPE_LENGTH} characters or fewer.",
        )
    return activity_type


def validate_goal(
    activity_type: str,
    duration_days: str | int,
    num_trees: str | int,
    cost_per_tree: int,
) -> GoalDraft:
    """Check a goal creation form and compute what startGoal needs."""
    validate_activity_type(activity_type)

    days = _parse_whole(duration_days)
    if days is None or days <= 0:
        raise ValidationError("duration_days", "Duration must be a positive number of days.")
    duration_seconds = _ensure_uint("duration_days", days * SECONDS_PER_DAY)
    if duration_seconds <= MIN_GOAL_DURATION_SECONDS:
        raise ValidationError("duration_days", "Goal duration must be at least 60 minutes total.")

    trees = _parse_whole(num_trees)
    if trees is None or trees <= 0:
        raise ValidationError("num_trees", "Number of trees must be at least 1.")

    if cost_per_tree <= 0:
        raise ValidationError("cost_per_tree", "Cost per tree cannot be 0.")

    return GoalDraft(
        activity_type=activity_type,
        duration_seconds=duration_seconds,
        num_trees=trees,
        total_stake=_ensure_uint("num_trees", compute_total_stake(trees, cost_per_tree)),
    )


def is_claimable(goal: Goal, now: int | None = None) -> bool:
    """All trees done and the deadline, if any, still ahead."""
    now = unix_now() if now is None else now
    return goal.trees_remaining == 0 and (goal.end_time == 0 or goal.end_time > now)


def is_expired(goal: Goal, now: int | None = None) -> bool:
    now = unix_now() if now is None else now
    return goal.end_time > 0 and goal.end_time <= now


def ensure_claimable(goal: Goal, now: int | None = None) -> None:
    if not is_claimable(goal, now):
        raise ValidationError(
            "activity_type",
            "You can only claim when all trees are completed and the goal is not expired.",
        )


# ── Sessions ──────────────────────────────────────────────────────────


def validate_session_start(
    activity_type: str,
    minutes: str | int,
    has_active_session: bool,
    break_needed: bool,
) -> int:
    """Check a focus session request; returns its duration in seconds."""
    if not activity_type:
        raise ValidationError("activity_type", "Please select an activity/goal.")
    if has_active_session:
        raise ValidationError("activity_type", "You already have an active session.")
    if break_needed:
        raise ValidationError(
            "activity_type",
            "A break is required before starting a new session. Take a break first.",
        )

    whole_minutes = _parse_whole(minutes)
    bounds = (MIN_SESSION_SECONDS // 60, MAX_SESSION_SECONDS // 60)
    if whole_minutes is None or not bounds[0] <= whole_minutes <= bounds[1]:
        raise ValidationError(
            "minutes",
            f"Session length must be between {bounds[0]} and {bounds[1]} minutes.",
        )
    return whole_minutes * 60


def validate_break_minutes(minutes: str | int) -> int:
    """Returns the break length in seconds."""
    number = _parse_number(minutes)
    if number is None or number <= 0:
        raise ValidationError("minutes", "Break length must be a positive number.")
    return _ensure_uint("minutes", int(number * 60))


# ── Owner actions ─────────────────────────────────────────────────────


def _parse_ether_field(field: str, amount: str) -> int:
    if len(amount.strip()) > MAX_NUMBER_INPUT_LENGTH:
        raise ValidationError(field, "Invalid ETH amount format.")
    try:
        wei = parse_ether(amount)
    except ValueError:
        raise ValidationError(field, "Invalid ETH amount format.") from None
    return _ensure_uint(field, wei)


def validate_cost_update(new_cost_ether: str) -> int:
    """Returns the new cost per tree in wei."""
    if not new_cost_ether.strip():
        raise ValidationError("new_cost_ether", "New cost must not be empty.")
    wei = _parse_ether_field("new_cost_ether", new_cost_ether)
    if wei <= 0:
        raise ValidationError("new_cost_ether", "New cost per tree must be greater than 0.")
    return wei


def validate_withdrawal(to_address: str, amount_ether: str) -> tuple[str, int]:
    """Returns the recipient and the amount in wei."""
    to_address = to_address.strip()
    if not to_address:
        raise ValidationError("to_address", "Recipient address is required.")
    if not is_address(to_address):
        raise ValidationError("to_address", "Recipient address is not a valid address.")
    if not amount_ether.strip():
        raise ValidationError("amount_ether", "Amount is required.")
    wei = _parse_ether_field("amount_ether", amount_ether)
    if wei <= 0:
        raise ValidationError("amount_ether", "Amount must be greater than 0.")
    return to_address, wei

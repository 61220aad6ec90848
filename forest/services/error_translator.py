"""Turn opaque contract-call failures into user-facing messages."""

from forest.constants import (
    ERR_GOAL_ALREADY_EXISTS,
    ERR_GOAL_DURATION_TOO_SHORT,
    ERR_INCORRECT_STAKE_SENT,
)
from forest.schemas.transaction import FailureReason, TranslatedError

UNKNOWN_FAILURE_MESSAGE = "Transaction failed for an unknown reason."
GENERIC_FAILURE_MESSAGE = "Transaction failed."

KNOWN_FAILURES: list[tuple[str, FailureReason, str]] = [
    (
        ERR_GOAL_ALREADY_EXISTS,
        FailureReason.DUPLICATE_GOAL,
        "You already have an active goal with this activity type.",
    ),
    (
        ERR_INCORRECT_STAKE_SENT,
        FailureReason.INCORRECT_STAKE_AMOUNT,
        "The stake amount sent does not match the required stake.",
    ),
    (
        ERR_GOAL_DURATION_TOO_SHORT,
        FailureReason.DURATION_TOO_SHORT,
        "Goal duration must be at least 60 minutes total.",
    ),
]


def _field(error, name: str) -> str | None:
    if isinstance(error, dict):
        value = error.get(name)
    else:
        value = getattr(error, name, None)
    if value is None:
        return None
    return str(value)


def translate_error(error) -> TranslatedError:
    """Classify a failure raised by, or reported from, a contract call.

    Accepts exceptions, relay error dicts (``message`` / ``shortMessage`` /
    ``details``) or bare strings. The revert identifiers are searched for in
    every message field, so surrounding text does not matter.
    """
    if error is None:
        return TranslatedError(reason=FailureReason.GENERIC, message=UNKNOWN_FAILURE_MESSAGE)

    try:
        if isinstance(error, str):
            details = short_message = None
            message = error
        else:
            details = _field(error, "details")
            short_message = _field(error, "short_message") or _field(error, "shortMessage")
            message = _field(error, "message")
            if message is None and not isinstance(error, dict):
                message = str(error) or None

        haystack = " ".join(part for part in (details, short_message, message) if part)
        for identifier, reason, friendly in KNOWN_FAILURES:
            if identifier in haystack:
                return TranslatedError(reason=reason, message=friendly)

        return TranslatedError(
            reason=FailureReason.GENERIC,
            message=short_message or message or GENERIC_FAILURE_MESSAGE,
        )
    except Exception:
        return TranslatedError(reason=FailureReason.GENERIC, message=GENERIC_FAILURE_MESSAGE)

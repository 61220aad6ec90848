from enum import StrEnum

from pydantic import BaseModel


class TransactionState(StrEnum):
    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    CONFIRMING = "confirming"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class FailureReason(StrEnum):
    DUPLICATE_GOAL = "duplicate_goal"
    INCORRECT_STAKE_AMOUNT = "incorrect_stake_amount"
    DURATION_TOO_SHORT = "duration_too_short"
    GENERIC = "generic"


class TranslatedError(BaseModel):
    reason: FailureReason
    message: str

    model_config = {"frozen": True}


class TransactionResponse(BaseModel):
    state: TransactionState
    tx_hash: str | None = None
    block_number: int | None = None

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class ContractCall(BaseModel):
    function: str = Field(min_length=1)
    args: tuple[Any, ...] = ()

    model_config = {"frozen": True}


class ReadResult(BaseModel):
    """Outcome of one slot in a batched read."""

    ok: bool
    value: Any = None
    error: str | None = None

    model_config = {"frozen": True}

    @classmethod
    def success(cls, value: Any) -> "ReadResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: str) -> "ReadResult":
        return cls(ok=False, error=error)


class TransactionRequest(BaseModel):
    call: ContractCall
    value: int = Field(default=0, ge=0)

    model_config = {"frozen": True}


class ReceiptStatus(StrEnum):
    SUCCESS = "success"
    REVERTED = "reverted"


class TransactionReceipt(BaseModel):
    tx_hash: str
    status: ReceiptStatus
    block_number: int | None = None
    revert_reason: str | None = None

    model_config = {"frozen": True}

from forest.schemas.contract import (
    ContractCall,
    ReadResult,
    ReceiptStatus,
    TransactionReceipt,
    TransactionRequest,
)
from forest.schemas.goal import Goal, GoalDraft, GoalSnapshot, GoalView
from forest.schemas.session import CountdownKind, SessionView, UserSession
from forest.schemas.transaction import (
    FailureReason,
    TransactionState,
    TranslatedError,
)

__all__ = [
    "ContractCall",
    "CountdownKind",
    "FailureReason",
    "Goal",
    "GoalDraft",
    "GoalSnapshot",
    "GoalView",
    "ReadResult",
    "ReceiptStatus",
    "SessionView",
    "TransactionReceipt",
    "TransactionRequest",
    "TransactionState",
    "TranslatedError",
    "UserSession",
]

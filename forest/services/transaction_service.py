"""Lifecycle of a single contract write, from form check to confirmation.

One instance drives exactly one write. A lifecycle that reached succeeded
or failed stays there; retrying means building a new one.
"""

import inspect
import logging
from collections.abc import Callable

from forest.exceptions import (
    ConfirmationFailure,
    GatewayError,
    InvalidTransition,
    SubmissionError,
    ValidationError,
)
from forest.schemas.contract import ReceiptStatus, TransactionReceipt, TransactionRequest
from forest.schemas.transaction import (
    TransactionResponse,
    TransactionState,
    TranslatedError,
)
from forest.services.error_translator import translate_error
from forest.services.gateway import ContractGateway

logger = logging.getLogger(__name__)

SucceededCallback = Callable[[TransactionReceipt], object]

TRANSITIONS: dict[TransactionState, set[TransactionState]] = {
    TransactionState.IDLE: {TransactionState.VALIDATING},
    TransactionState.VALIDATING: {
        TransactionState.IDLE,
        TransactionState.SUBMITTING,
        TransactionState.FAILED,
    },
    TransactionState.SUBMITTING: {TransactionState.CONFIRMING, TransactionState.FAILED},
    TransactionState.CONFIRMING: {TransactionState.SUCCEEDED, TransactionState.FAILED},
    TransactionState.SUCCEEDED: set(),
    TransactionState.FAILED: set(),
}


class TransactionLifecycle:
    def __init__(self, gateway: ContractGateway, sender: str, label: str = "transaction"):
        self.gateway = gateway
        self.sender = sender
        self.label = label
        self.state = TransactionState.IDLE
        self.tx_hash: str | None = None
        self.receipt: TransactionReceipt | None = None
        self.validation_error: ValidationError | None = None
        self.failure: SubmissionError | ConfirmationFailure | None = None
        self._succeeded_callbacks: list[SucceededCallback] = []

    @property
    def is_submitting(self) -> bool:
        return self.state in (TransactionState.SUBMITTING, TransactionState.CONFIRMING)

    @property
    def is_terminal(self) -> bool:
        return self.state in (TransactionState.SUCCEEDED, TransactionState.FAILED)

    @property
    def error(self) -> TranslatedError | None:
        return self.failure.reason if self.failure else None

    def on_succeeded(self, callback: SucceededCallback) -> Callable[[], None]:
        """Subscribe to the succeeded event; returns an unsubscribe function."""
        self._succeeded_callbacks.append(callback)

        def unsubscribe() -> None:
            if callback in self._succeeded_callbacks:
                self._succeeded_callbacks.remove(callback)

        return unsubscribe

    def raise_for_failure(self) -> None:
        if self.failure is not None:
            raise self.failure

    def result(self) -> TransactionResponse:
        """Response body for a finished lifecycle; raises its failure if any."""
        self.raise_for_failure()
        return TransactionResponse(
            state=self.state,
            tx_hash=self.tx_hash,
            block_number=self.receipt.block_number if self.receipt else None,
        )

    def _transition(self, new_state: TransactionState) -> None:
        if new_state not in TRANSITIONS[self.state]:
            raise InvalidTransition(
                f"{self.label}: cannot go from {self.state} to {new_state}"
            )
        logger.debug("%s: %s -> %s", self.label, self.state, new_state)
        self.state = new_state

    def _fail(self, failure: SubmissionError | ConfirmationFailure) -> TransactionState:
        self.failure = failure
        self._transition(TransactionState.FAILED)
        logger.warning("%s failed: %s", self.label, failure.reason.message)
        return self.state

    async def execute(self, build_request: Callable[[], TransactionRequest]) -> TransactionState:
        """Validate, submit and wait for confirmation.

        build_request runs synchronously before anything is sent; a
        ValidationError it raises puts the lifecycle back to idle and is
        re-raised for the form. Any other error from build_request, and every
        remote failure, ends in the failed state with the translated reason
        in ``error`` instead of raising.
        """
        self._transition(TransactionState.VALIDATING)
        self.validation_error = None
        try:
            request = build_request()
        except ValidationError as exc:
            self.validation_error = exc
            self._transition(TransactionState.IDLE)
            raise
        except Exception as exc:
            logger.exception("%s: unexpected error building the request", self.label)
            return self._fail(SubmissionError(translate_error(exc), cause=exc))

        self._transition(TransactionState.SUBMITTING)
        try:
            self.tx_hash = await self.gateway.send_transaction(self.sender, request)
        except GatewayError as exc:
            return self._fail(SubmissionError(translate_error(exc), cause=exc))
        except Exception as exc:
            logger.exception("%s: unexpected submission error", self.label)
            return self._fail(SubmissionError(translate_error(exc), cause=exc))

        self._transition(TransactionState.CONFIRMING)
        try:
            receipt = await self.gateway.wait_for_receipt(self.tx_hash)
        except ConfirmationFailure as exc:
            return self._fail(exc)
        except Exception as exc:
            if not isinstance(exc, GatewayError):
                logger.exception("%s: unexpected confirmation error", self.label)
            return self._fail(ConfirmationFailure(translate_error(exc), tx_hash=self.tx_hash))

        self.receipt = receipt
        if receipt.status is ReceiptStatus.REVERTED:
            return self._fail(
                ConfirmationFailure(
                    translate_error(receipt.revert_reason or "Transaction reverted."),
                    tx_hash=self.tx_hash,
                )
            )

        self._transition(TransactionState.SUCCEEDED)
        logger.info("%s confirmed in block %s (%s)", self.label, receipt.block_number, self.tx_hash)
        await self._emit_succeeded(receipt)
        return self.state

    async def _emit_succeeded(self, receipt: TransactionReceipt) -> None:
        for callback in list(self._succeeded_callbacks):
            try:
                result = callback(receipt)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception("%s: succeeded subscriber failed", self.label)

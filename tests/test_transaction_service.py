import pytest

from forest.exceptions import (
    ConfirmationFailure,
    GatewayError,
    InvalidTransition,
    SubmissionError,
    ValidationError,
)
from forest.schemas.contract import ContractCall, TransactionRequest
from forest.schemas.transaction import FailureReason, TransactionState, TranslatedError
from forest.services.transaction_service import TransactionLifecycle
from tests.conftest import ETHER, USER, FakeGateway


def _start_goal(activity_type: str = "Study", seconds: int = 86400, trees: int = 1, value: int = ETHER):
    return lambda: TransactionRequest(
        call=ContractCall(function="startGoal", args=(activity_type, seconds, trees)),
        value=value,
    )


def _invalid():
    raise ValidationError("num_trees", "Number of trees must be at least 1.")


class SlowConfirmationGateway(FakeGateway):
    def __init__(self):
        super().__init__()
        self.states_seen = []
        self.lifecycle = None

    async def wait_for_receipt(self, tx_hash):
        self.states_seen.append((self.lifecycle.state, self.lifecycle.is_submitting))
        return await super().wait_for_receipt(tx_hash)


# ── Success path ──────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_successful_write(gateway: FakeGateway):
    lifecycle = TransactionLifecycle(gateway, USER, "startGoal")

    state = await lifecycle.execute(_start_goal())

    assert state is TransactionState.SUCCEEDED
    assert lifecycle.tx_hash.startswith("0x")
    assert lifecycle.receipt.block_number == 7
    assert lifecycle.error is None
    assert lifecycle.is_terminal is True
    assert gateway.sent[0][0] == USER


@pytest.mark.asyncio
async def test_succeeded_event_fires_once_with_receipt(gateway: FakeGateway):
    lifecycle = TransactionLifecycle(gateway, USER)
    receipts = []
    lifecycle.on_succeeded(receipts.append)

    await lifecycle.execute(_start_goal())

    assert len(receipts) == 1
    assert receipts[0].tx_hash == lifecycle.tx_hash


@pytest.mark.asyncio
async def test_async_subscriber_is_awaited(gateway: FakeGateway):
    lifecycle = TransactionLifecycle(gateway, USER)
    refetched = []

    async def refetch(receipt):
        refetched.append(receipt.block_number)

    lifecycle.on_succeeded(refetch)
    await lifecycle.execute(_start_goal())

    assert refetched == [7]


@pytest.mark.asyncio
async def test_unsubscribe(gateway: FakeGateway):
    lifecycle = TransactionLifecycle(gateway, USER)
    receipts = []
    unsubscribe = lifecycle.on_succeeded(receipts.append)
    unsubscribe()

    await lifecycle.execute(_start_goal())

    assert receipts == []


@pytest.mark.asyncio
async def test_failing_subscriber_does_not_fail_the_write(gateway: FakeGateway):
    lifecycle = TransactionLifecycle(gateway, USER)

    def broken(receipt):
        raise RuntimeError("refetch failed")

    lifecycle.on_succeeded(broken)
    state = await lifecycle.execute(_start_goal())

    assert state is TransactionState.SUCCEEDED


@pytest.mark.asyncio
async def test_is_submitting_while_waiting_for_confirmation():
    gateway = SlowConfirmationGateway()
    lifecycle = TransactionLifecycle(gateway, USER)
    gateway.lifecycle = lifecycle

    assert lifecycle.is_submitting is False
    await lifecycle.execute(_start_goal())

    assert gateway.states_seen == [(TransactionState.CONFIRMING, True)]
    assert lifecycle.is_submitting is False


@pytest.mark.asyncio
async def test_result_reports_state_and_block(gateway: FakeGateway):
    lifecycle = TransactionLifecycle(gateway, USER)
    await lifecycle.execute(_start_goal())

    response = lifecycle.result()

    assert response.state is TransactionState.SUCCEEDED
    assert response.tx_hash == lifecycle.tx_hash
    assert response.block_number == 7


# ── Validation ────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_validation_failure_returns_to_idle_without_sending(gateway: FakeGateway):
    lifecycle = TransactionLifecycle(gateway, USER)

    with pytest.raises(ValidationError) as exc_info:
        await lifecycle.execute(_invalid)

    assert exc_info.value.field == "num_trees"
    assert lifecycle.state is TransactionState.IDLE
    assert lifecycle.validation_error is exc_info.value
    assert gateway.sent == []


@pytest.mark.asyncio
async def test_resubmit_after_validation_failure(gateway: FakeGateway):
    lifecycle = TransactionLifecycle(gateway, USER)
    with pytest.raises(ValidationError):
        await lifecycle.execute(_invalid)

    state = await lifecycle.execute(_start_goal())

    assert state is TransactionState.SUCCEEDED
    assert lifecycle.validation_error is None


@pytest.mark.asyncio
async def test_unexpected_build_error_fails_without_sending(gateway: FakeGateway):
    broken = RuntimeError("cost per tree unavailable")

    def build():
        raise broken

    lifecycle = TransactionLifecycle(gateway, USER)
    state = await lifecycle.execute(build)

    assert state is TransactionState.FAILED
    assert lifecycle.is_submitting is False
    assert isinstance(lifecycle.failure, SubmissionError)
    assert lifecycle.failure.cause is broken
    assert lifecycle.error.message == "cost per tree unavailable"
    assert lifecycle.validation_error is None
    assert gateway.sent == []


# ── Remote failures ───────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_duplicate_goal_is_translated(gateway: FakeGateway):
    gateway.add_goal(USER, "Study", trees=2)
    lifecycle = TransactionLifecycle(gateway, USER)
    events = []
    lifecycle.on_succeeded(events.append)

    state = await lifecycle.execute(_start_goal("Study"))

    assert state is TransactionState.FAILED
    assert isinstance(lifecycle.failure, SubmissionError)
    assert lifecycle.error.reason is FailureReason.DUPLICATE_GOAL
    assert lifecycle.error.message == "You already have an active goal with this activity type."
    assert events == []


@pytest.mark.asyncio
async def test_incorrect_stake_is_translated(gateway: FakeGateway):
    lifecycle = TransactionLifecycle(gateway, USER)

    await lifecycle.execute(_start_goal(trees=3, value=ETHER))

    assert lifecycle.error.reason is FailureReason.INCORRECT_STAKE_AMOUNT


@pytest.mark.asyncio
async def test_unknown_submission_error_uses_short_message(gateway: FakeGateway):
    gateway.submit_error = GatewayError(
        "User rejected the request. Details: denied",
        short_message="User rejected the request.",
    )
    lifecycle = TransactionLifecycle(gateway, USER)

    await lifecycle.execute(_start_goal())

    assert lifecycle.error.reason is FailureReason.GENERIC
    assert lifecycle.error.message == "User rejected the request."


@pytest.mark.asyncio
async def test_unexpected_submission_exception_fails_generically(gateway: FakeGateway):
    gateway.submit_error = RuntimeError("socket closed")
    lifecycle = TransactionLifecycle(gateway, USER)

    state = await lifecycle.execute(_start_goal())

    assert state is TransactionState.FAILED
    assert lifecycle.error.message == "socket closed"
    assert lifecycle.failure.cause is gateway.submit_error


@pytest.mark.asyncio
async def test_reverted_receipt_fails_confirmation(gateway: FakeGateway):
    gateway.revert_reason = "execution reverted: GoalDurationShouldBeMoreThan60Minutes()"
    lifecycle = TransactionLifecycle(gateway, USER)

    state = await lifecycle.execute(_start_goal())

    assert state is TransactionState.FAILED
    assert isinstance(lifecycle.failure, ConfirmationFailure)
    assert lifecycle.failure.tx_hash == lifecycle.tx_hash
    assert lifecycle.error.reason is FailureReason.DURATION_TOO_SHORT


@pytest.mark.asyncio
async def test_confirmation_timeout_keeps_its_reason(gateway: FakeGateway):
    class TimeoutGateway(FakeGateway):
        async def wait_for_receipt(self, tx_hash):
            raise ConfirmationFailure(
                TranslatedError(reason=FailureReason.GENERIC, message="Transaction was not confirmed in time."),
                tx_hash=tx_hash,
            )

    lifecycle = TransactionLifecycle(TimeoutGateway(), USER)

    await lifecycle.execute(_start_goal())

    assert lifecycle.state is TransactionState.FAILED
    assert lifecycle.error.message == "Transaction was not confirmed in time."


@pytest.mark.asyncio
async def test_result_raises_stored_failure(gateway: FakeGateway):
    gateway.submit_error = GatewayError("boom", details="execution reverted: IncorrectStakeSent()")
    lifecycle = TransactionLifecycle(gateway, USER)
    await lifecycle.execute(_start_goal())

    with pytest.raises(SubmissionError) as exc_info:
        lifecycle.result()

    assert str(exc_info.value) == "The stake amount sent does not match the required stake."


# ── Terminal states ───────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_succeeded_lifecycle_cannot_be_reused(gateway: FakeGateway):
    lifecycle = TransactionLifecycle(gateway, USER)
    await lifecycle.execute(_start_goal())

    with pytest.raises(InvalidTransition):
        await lifecycle.execute(_start_goal("Writing"))

    assert len(gateway.sent) == 1


@pytest.mark.asyncio
async def test_failed_lifecycle_cannot_be_reused(gateway: FakeGateway):
    gateway.submit_error = GatewayError("nope")
    lifecycle = TransactionLifecycle(gateway, USER)
    await lifecycle.execute(_start_goal())

    with pytest.raises(InvalidTransition):
        await lifecycle.execute(_start_goal())

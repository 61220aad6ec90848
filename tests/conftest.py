import itertools
from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient

from forest.exceptions import GatewayError
from forest.main import app
from forest.schemas.contract import (
    ContractCall,
    ReadResult,
    ReceiptStatus,
    TransactionReceipt,
    TransactionRequest,
)
from forest.services.dashboard_service import Dashboard
from forest.services.gateway import ContractGateway
from forest.utils import unix_now

ETHER = 10**18

USER = "0x1111111111111111111111111111111111111111"
OWNER = "0x9999999999999999999999999999999999999999"
CONTRACT = "0x2222222222222222222222222222222222222222"


def _revert(identifier: str) -> GatewayError:
    return GatewayError(
        f"The contract function reverted with the following reason: {identifier}()",
        short_message="Execution reverted.",
        details=f"execution reverted: {identifier}()",
    )


class FakeGateway(ContractGateway):
    """In-memory ForestOnchain contract for testing."""

    def __init__(self, now: int | None = None, cost_per_tree: int = ETHER, owner: str = OWNER):
        self.contract_address = CONTRACT
        self.now = unix_now() if now is None else now
        self.cost_per_tree = cost_per_tree
        self.owner = owner
        self.balance = 0
        self.balance_lookups: list[str] = []
        self.activity_types: dict[str, list[str]] = {}
        self.goals: dict[tuple[str, str], dict] = {}
        self.sessions: dict[str, dict] = {}
        self.break_needed: dict[str, bool] = {}

        self.read_batches: list[list[ContractCall]] = []
        self.sent: list[tuple[str, TransactionRequest]] = []
        self.failing_reads: set[str] = set()
        self.submit_error: GatewayError | None = None
        self.revert_reason: str | None = None
        self._hashes = itertools.count(1)

    # ── Test helpers ──────────────────────────────────────────────────

    def add_goal(
        self,
        user: str,
        activity_type: str,
        trees: int,
        end_time: int = 0,
        staked: int = 0,
    ) -> None:
        key = user.lower()
        types = self.activity_types.setdefault(key, [])
        if activity_type not in types:
            types.append(activity_type)
        self.goals[(key, activity_type)] = {
            "trees": trees,
            "end_time": end_time,
            "staked": staked,
        }

    def set_session(self, user: str, activity_type: str, end_time: int, active: bool = True) -> None:
        self.sessions[user.lower()] = {
            "activityType": activity_type,
            "startTime": end_time - 1500,
            "endTime": end_time,
            "active": active,
            "owner": user,
        }

    # ── Reads ─────────────────────────────────────────────────────────

    def _read(self, call: ContractCall):
        fn = call.function
        if fn == "getUserActivityTypes":
            return list(self.activity_types.get(call.args[0].lower(), []))
        if fn in ("getGoal", "getEndTime", "getStakedAmount"):
            goal = self.goals.get((call.args[0].lower(), call.args[1]))
            if goal is None:
                return 0
            field = {"getGoal": "trees", "getEndTime": "end_time", "getStakedAmount": "staked"}[fn]
            return goal[field]
        if fn == "getCurrentUserSession":
            return self.sessions.get(
                call.args[0].lower(),
                {
                    "activityType": "",
                    "startTime": 0,
                    "endTime": 0,
                    "active": False,
                    "owner": "0x0000000000000000000000000000000000000000",
                },
            )
        if fn == "getBreakNeeded":
            return self.break_needed.get(call.args[0].lower(), False)
        if fn == "cost_per_tree":
            return self.cost_per_tree
        if fn == "CONTRACT_OWNER":
            return self.owner
        raise KeyError(fn)

    async def read_many(self, calls: list[ContractCall]) -> list[ReadResult]:
        self.read_batches.append(list(calls))
        results = []
        for call in calls:
            if call.function in self.failing_reads:
                results.append(ReadResult.failure(f"{call.function} reverted"))
            else:
                results.append(ReadResult.success(self._read(call)))
        return results

    # ── Writes ────────────────────────────────────────────────────────

    def _apply(self, sender: str, request: TransactionRequest) -> None:
        fn, args, key = request.call.function, request.call.args, sender.lower()
        if fn == "startGoal":
            activity_type, duration_seconds, num_trees = args
            existing = self.goals.get((key, activity_type))
            if existing and existing["trees"] > 0:
                raise _revert("GoalAlreadyExists")
            if duration_seconds <= 3600:
                raise _revert("GoalDurationShouldBeMoreThan60Minutes")
            if request.value != num_trees * self.cost_per_tree:
                raise _revert("IncorrectStakeSent")
            self.add_goal(sender, activity_type, num_trees, self.now + duration_seconds, request.value)
            self.balance += request.value
        elif fn == "claimStake":
            goal = self.goals[(key, args[0])]
            self.balance -= goal["staked"]
            goal["staked"] = 0
        elif fn == "startFocusSession":
            activity_type, duration_seconds = args
            self.set_session(sender, activity_type, self.now + duration_seconds)
        elif fn == "takeBreak":
            self.break_needed[key] = False
        elif fn == "changeCostPerTree":
            if key != self.owner.lower():
                raise _revert("NotOwner")
            self.cost_per_tree = args[0]
        elif fn == "withdraw":
            if key != self.owner.lower():
                raise _revert("NotOwner")
            self.balance -= args[1]

    async def send_transaction(self, sender: str, request: TransactionRequest) -> str:
        self.sent.append((sender, request))
        if self.submit_error is not None:
            raise self.submit_error
        if self.revert_reason is None:
            self._apply(sender, request)
        return f"0x{next(self._hashes):064x}"

    async def wait_for_receipt(self, tx_hash: str) -> TransactionReceipt:
        if self.revert_reason is not None:
            return TransactionReceipt(
                tx_hash=tx_hash,
                status=ReceiptStatus.REVERTED,
                block_number=7,
                revert_reason=self.revert_reason,
            )
        return TransactionReceipt(tx_hash=tx_hash, status=ReceiptStatus.SUCCESS, block_number=7)

    async def get_balance(self, address: str) -> int:
        self.balance_lookups.append(address)
        return self.balance


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
async def dashboard(gateway: FakeGateway) -> AsyncGenerator[Dashboard, None]:
    board = Dashboard(gateway, USER, clock=lambda: gateway.now)
    await board.refresh_all()
    yield board
    await board.close()


@pytest.fixture
async def client(gateway: FakeGateway) -> AsyncGenerator[AsyncClient, None]:
    app.state.gateway = gateway
    app.state.break_ends = {}

    transport = ASGITransport(app=app)
    async with AsyncClient(
        transport=transport,
        base_url="http://test",
        headers={"X-Account": USER},
    ) as ac:
        yield ac

"""Per-account view over the contract plus the actions a user can take.

The Dashboard owns the published snapshots for one account. Each data
source has a RefreshSlot; starting a refresh supersedes any older one that
has not resolved yet, and whatever resolves after close() is dropped.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TypeVar

from forest.constants import (
    FN_CHANGE_COST_PER_TREE,
    FN_CLAIM_STAKE,
    FN_CONTRACT_OWNER,
    FN_COST_PER_TREE,
    FN_START_FOCUS_SESSION,
    FN_START_GOAL,
    FN_TAKE_BREAK,
    FN_WITHDRAW,
)
from forest.exceptions import ValidationError
from forest.schemas.contract import ContractCall, ReadResult, TransactionRequest
from forest.schemas.goal import Goal, GoalSnapshot, GoalView
from forest.schemas.session import SessionView, UserSession
from forest.services import goal_service, session_service, validation_service
from forest.services.countdown import CountdownTimer
from forest.services.gateway import ContractGateway
from forest.services.transaction_service import TransactionLifecycle
from forest.utils import unix_now

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RefreshSlot:
    """Last-write-wins guard for one data source."""

    def __init__(self, name: str):
        self.name = name
        self.closed = False
        self._generation = 0

    async def run(self, fetch: Callable[[], Awaitable[T]]) -> tuple[bool, T | None]:
        """Run fetch; report (False, None) if a newer run or close() won."""
        if self.closed:
            return False, None
        self._generation += 1
        generation = self._generation
        value = await fetch()
        if self.closed or generation != self._generation:
            logger.debug("Dropping superseded %s refresh #%d", self.name, generation)
            return False, None
        return True, value

    def close(self) -> None:
        self.closed = True


def _int_or_zero(result: ReadResult) -> int:
    if not result.ok:
        return 0
    try:
        return int(result.value)
    except (TypeError, ValueError):
        return 0


class Dashboard:
    def __init__(
        self,
        gateway: ContractGateway,
        account: str,
        timer: CountdownTimer | None = None,
        clock: Callable[[], int] = unix_now,
    ):
        self.gateway = gateway
        self.account = account
        self.timer = timer
        self._clock = clock

        self.goal_snapshot = GoalSnapshot(account=account)
        self.session: UserSession | None = None
        self.break_needed = False
        self.break_end_time: int | None = None
        self.cost_per_tree = 0
        self.contract_owner: str | None = None

        self._slots = {
            "goals": RefreshSlot("goals"),
            "session": RefreshSlot("session"),
            "config": RefreshSlot("config"),
        }

    async def __aenter__(self) -> "Dashboard":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Leave the view: stop ticking and abandon in-flight reads."""
        for slot in self._slots.values():
            slot.close()
        if self.timer is not None:
            await self.timer.close()

    # ── Refresh ───────────────────────────────────────────────────────

    async def refresh_goals(self) -> bool:
        applied, snapshot = await self._slots["goals"].run(
            lambda: goal_service.fetch_goal_snapshot(self.gateway, self.account)
        )
        if applied:
            self.goal_snapshot = snapshot
            self._sync_timer()
        return applied

    async def refresh_session(self) -> bool:
        applied, state = await self._slots["session"].run(
            lambda: session_service.fetch_session_state(self.gateway, self.account)
        )
        if applied:
            self.session, self.break_needed = state
            self._expire_break()
            self._sync_timer()
        return applied

    async def refresh_config(self) -> bool:
        applied, results = await self._slots["config"].run(
            lambda: self.gateway.read_many(
                [
                    ContractCall(function=FN_COST_PER_TREE),
                    ContractCall(function=FN_CONTRACT_OWNER),
                ]
            )
        )
        if applied:
            self.cost_per_tree = _int_or_zero(results[0]) if results else 0
            owner = results[1] if len(results) > 1 else None
            self.contract_owner = str(owner.value) if owner is not None and owner.ok else None
        return applied

    async def refresh_activity(self) -> None:
        """Re-read the two sources every goal or session write touches."""
        await asyncio.gather(self.refresh_goals(), self.refresh_session())

    async def refresh_all(self) -> None:
        await asyncio.gather(
            self.refresh_goals(), self.refresh_session(), self.refresh_config()
        )

    # ── Derived views ─────────────────────────────────────────────────

    def now(self) -> int:
        return self._clock()

    def all_goals(self) -> list[Goal]:
        return goal_service.aggregate_goals(self.goal_snapshot)

    def listing_goals(self) -> list[Goal]:
        return goal_service.select_goals(self.goal_snapshot, GoalView.LISTING)

    def session_goals(self, now: int | None = None) -> list[Goal]:
        now = self.now() if now is None else now
        return goal_service.select_goals(self.goal_snapshot, GoalView.SESSION_SELECTION, now)

    def goal(self, activity_type: str) -> Goal | None:
        return goal_service.goals_by_activity(self.goal_snapshot).get(activity_type)

    def session_view(self, now: int | None = None) -> SessionView:
        return session_service.resolve_session(
            self.session,
            self.break_needed,
            self.session_goals(now),
            self.break_end_time,
        )

    @property
    def is_owner(self) -> bool:
        return validation_service.is_contract_owner(self.account, self.contract_owner)

    def schedule_break(self, minutes: str | int) -> int:
        """Start the locally tracked break; the contract keeps no break deadline."""
        seconds = validation_service.validate_break_minutes(minutes)
        self.break_end_time = self.now() + seconds
        self._sync_timer()
        return self.break_end_time

    def clear_break(self) -> None:
        self.break_end_time = None
        self._sync_timer()

    def _expire_break(self) -> None:
        """Forget a break deadline that has passed once no break is owed."""
        if (
            not self.break_needed
            and self.break_end_time is not None
            and self.break_end_time <= self.now()
        ):
            self.break_end_time = None

    async def _after_break(self) -> None:
        self.clear_break()
        await self.refresh_activity()

    def _sync_timer(self) -> None:
        if self.timer is not None and not self._slots["session"].closed:
            self.timer.set_target(self.session_view().countdown_target)

    # ── Actions ───────────────────────────────────────────────────────

    def _lifecycle(self, label: str, refresh: Callable[[], Awaitable[object]]) -> TransactionLifecycle:
        lifecycle = TransactionLifecycle(self.gateway, self.account, label=label)
        lifecycle.on_succeeded(lambda receipt: refresh())
        return lifecycle

    async def create_goal(
        self, activity_type: str, duration_days: str | int, num_trees: str | int
    ) -> TransactionLifecycle:
        lifecycle = self._lifecycle(FN_START_GOAL, self.refresh_activity)

        def build() -> TransactionRequest:
            validation_service.require_account(self.account)
            draft = validation_service.validate_goal(
                activity_type, duration_days, num_trees, self.cost_per_tree
            )
            return TransactionRequest(
                call=ContractCall(
                    function=FN_START_GOAL,
                    args=(draft.activity_type, draft.duration_seconds, draft.num_trees),
                ),
                value=draft.total_stake,
            )

        await lifecycle.execute(build)
        return lifecycle

    async def claim_stake(self, activity_type: str) -> TransactionLifecycle:
        lifecycle = self._lifecycle(FN_CLAIM_STAKE, self.refresh_activity)

        def build() -> TransactionRequest:
            validation_service.require_account(self.account)
            goal = self.goal(activity_type)
            if goal is None:
                raise ValidationError("activity_type", "No goal found for this activity type.")
            validation_service.ensure_claimable(goal, self.now())
            return TransactionRequest(
                call=ContractCall(function=FN_CLAIM_STAKE, args=(activity_type,))
            )

        await lifecycle.execute(build)
        return lifecycle

    async def start_focus_session(
        self, activity_type: str, minutes: str | int
    ) -> TransactionLifecycle:
        lifecycle = self._lifecycle(FN_START_FOCUS_SESSION, self.refresh_activity)

        def build() -> TransactionRequest:
            validation_service.require_account(self.account)
            now = self.now()
            view = self.session_view(now)
            duration_seconds = validation_service.validate_session_start(
                activity_type, minutes, view.has_active_session, view.break_needed
            )
            selectable = {goal.activity_type for goal in self.session_goals(now)}
            if activity_type not in selectable:
                raise ValidationError("activity_type", "Please select an activity/goal.")
            return TransactionRequest(
                call=ContractCall(
                    function=FN_START_FOCUS_SESSION, args=(activity_type, duration_seconds)
                )
            )

        await lifecycle.execute(build)
        return lifecycle

    async def take_break(self) -> TransactionLifecycle:
        lifecycle = self._lifecycle(FN_TAKE_BREAK, self._after_break)

        def build() -> TransactionRequest:
            validation_service.require_account(self.account)
            if not self.break_needed:
                raise ValidationError("break", "No break is required right now.")
            return TransactionRequest(call=ContractCall(function=FN_TAKE_BREAK))

        await lifecycle.execute(build)
        return lifecycle

    def _require_owner(self) -> None:
        validation_service.require_account(self.account)
        if not self.is_owner:
            raise ValidationError(
                "account", "You are not the contract owner. Admin actions are restricted."
            )

    async def change_cost_per_tree(self, new_cost_ether: str) -> TransactionLifecycle:
        lifecycle = self._lifecycle(FN_CHANGE_COST_PER_TREE, self.refresh_config)

        def build() -> TransactionRequest:
            self._require_owner()
            new_cost = validation_service.validate_cost_update(new_cost_ether)
            return TransactionRequest(
                call=ContractCall(function=FN_CHANGE_COST_PER_TREE, args=(new_cost,))
            )

        await lifecycle.execute(build)
        return lifecycle

    async def withdraw(self, to_address: str, amount_ether: str) -> TransactionLifecycle:
        lifecycle = self._lifecycle(FN_WITHDRAW, self.refresh_config)

        def build() -> TransactionRequest:
            self._require_owner()
            recipient, amount = validation_service.validate_withdrawal(to_address, amount_ether)
            return TransactionRequest(
                call=ContractCall(function=FN_WITHDRAW, args=(recipient, amount))
            )

        await lifecycle.execute(build)
        return lifecycle

from fastapi import APIRouter, Depends, Query

from forest.dependencies import get_dashboard
from forest.schemas.goal import GoalCreate, GoalResponse, GoalView
from forest.schemas.transaction import TransactionResponse
from forest.services import validation_service
from forest.services.dashboard_service import Dashboard
from forest.utils import format_ether

router = APIRouter(prefix="/goals", tags=["goals"])


@router.get("", response_model=list[GoalResponse])
async def list_goals(
    view: GoalView = Query(default=GoalView.LISTING),
    dashboard: Dashboard = Depends(get_dashboard),
):
    now = dashboard.now()
    if view is GoalView.SESSION_SELECTION:
        goals = dashboard.session_goals(now)
    else:
        goals = dashboard.listing_goals()
    return [
        GoalResponse(
            activity_type=goal.activity_type,
            trees_remaining=goal.trees_remaining,
            end_time=goal.end_time,
            staked_amount=goal.staked_amount,
            staked_ether=format_ether(goal.staked_amount),
            is_claimable=validation_service.is_claimable(goal, now),
            is_expired=validation_service.is_expired(goal, now),
        )
        for goal in goals
    ]


@router.post("", response_model=TransactionResponse, status_code=201)
async def create_goal(
    data: GoalCreate,
    dashboard: Dashboard = Depends(get_dashboard),
):
    lifecycle = await dashboard.create_goal(
        data.activity_type, data.duration_days, data.num_trees
    )
    return lifecycle.result()


@router.post("/{activity_type}/claim", response_model=TransactionResponse)
async def claim_stake(
    activity_type: str,
    dashboard: Dashboard = Depends(get_dashboard),
):
    lifecycle = await dashboard.claim_stake(activity_type)
    return lifecycle.result()

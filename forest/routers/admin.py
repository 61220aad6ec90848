import logging

from fastapi import APIRouter, Depends

from forest.dependencies import get_dashboard
from forest.exceptions import GatewayError
from forest.schemas.admin import AdminResponse, CostPerTreeUpdate, WithdrawRequest
from forest.schemas.transaction import TransactionResponse
from forest.services.dashboard_service import Dashboard
from forest.utils import format_ether

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("", response_model=AdminResponse)
async def get_admin(dashboard: Dashboard = Depends(get_dashboard)):
    balance = None
    if dashboard.is_owner:
        try:
            balance = await dashboard.gateway.get_balance(dashboard.gateway.contract_address)
        except GatewayError as exc:
            logger.warning("Contract balance lookup failed: %s", exc)
    return AdminResponse(
        account=dashboard.account,
        contract_owner=dashboard.contract_owner,
        is_owner=dashboard.is_owner,
        cost_per_tree=dashboard.cost_per_tree,
        cost_per_tree_ether=format_ether(dashboard.cost_per_tree),
        contract_balance=balance,
    )


@router.post("/cost-per-tree", response_model=TransactionResponse)
async def change_cost_per_tree(
    data: CostPerTreeUpdate,
    dashboard: Dashboard = Depends(get_dashboard),
):
    lifecycle = await dashboard.change_cost_per_tree(data.new_cost_ether)
    return lifecycle.result()


@router.post("/withdraw", response_model=TransactionResponse)
async def withdraw(
    data: WithdrawRequest,
    dashboard: Dashboard = Depends(get_dashboard),
):
    lifecycle = await dashboard.withdraw(data.to_address, data.amount_ether)
    return lifecycle.result()

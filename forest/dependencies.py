from collections.abc import AsyncGenerator

from fastapi import Depends, Header, HTTPException, Request, status

from forest.services.dashboard_service import Dashboard
from forest.services.gateway import ContractGateway
from forest.services.validation_service import is_address


def get_gateway(request: Request) -> ContractGateway:
    return request.app.state.gateway


def get_break_schedule(request: Request) -> dict[str, int]:
    """Locally tracked break deadlines, keyed by lower-cased account."""
    return request.app.state.break_ends


async def get_current_account(
    x_account: str | None = Header(default=None, alias="X-Account"),
) -> str:
    if not x_account:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Please connect your wallet first.",
        )
    if not is_address(x_account):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="X-Account is not a valid address",
        )
    return x_account


async def get_dashboard(
    account: str = Depends(get_current_account),
    gateway: ContractGateway = Depends(get_gateway),
    break_schedule: dict[str, int] = Depends(get_break_schedule),
) -> AsyncGenerator[Dashboard, None]:
    dashboard = Dashboard(gateway, account)
    dashboard.break_end_time = break_schedule.get(account.lower())
    await dashboard.refresh_all()
    if dashboard.break_end_time is None:
        break_schedule.pop(account.lower(), None)
    try:
        yield dashboard
    finally:
        await dashboard.close()

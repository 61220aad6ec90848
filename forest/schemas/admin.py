from pydantic import BaseModel


class CostPerTreeUpdate(BaseModel):
    new_cost_ether: str = ""


class WithdrawRequest(BaseModel):
    to_address: str = ""
    amount_ether: str = ""


class AdminResponse(BaseModel):
    account: str
    contract_owner: str | None
    is_owner: bool
    cost_per_tree: int
    cost_per_tree_ether: str
    contract_balance: int | None = None

"""User ledger operations: getUser and claimDaily."""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends

from cattv.api.dependencies import get_current_user, get_ledger
from cattv.api.schemas import ClaimView, GetUserData, RpcRequest, RpcResponse, UserView
from cattv.core.config import LedgerMode
from cattv.core.timezone import start_of_local_day, utcnow
from cattv.services.ledger import BalanceLedger

logger = structlog.get_logger()
router = APIRouter(prefix="/api", tags=["users"])


@router.post("/getUser", response_model=RpcResponse[UserView])
async def get_user(
    body: Optional[RpcRequest[GetUserData]] = None,
    user_id: str = Depends(get_current_user),
    ledger: BalanceLedger = Depends(get_ledger),
):
    """Return the caller's ledger record, creating it on first access.

    In on-chain ledger mode the wallet's token balance is included.
    """
    wallet = body.data.wallet_address if body else None
    user = await ledger.get_or_create_user(user_id, wallet_address=wallet)

    now = utcnow()
    token_balance = None
    if ledger.rules.ledger_mode == LedgerMode.ONCHAIN:
        token_balance = await ledger.token_balance(user)

    view = UserView.build(
        user,
        status=ledger.claim_status(user, now),
        day_start=start_of_local_day(now, ledger.rules.day_boundary_tz),
        token_balance=token_balance,
    )
    return RpcResponse(result=view)


@router.post(
    "/claimDaily", response_model=RpcResponse[ClaimView], response_model_exclude_none=True
)
async def claim_daily(
    user_id: str = Depends(get_current_user),
    ledger: BalanceLedger = Depends(get_ledger),
):
    """Grant the daily food allowance once per cooldown window."""
    result = await ledger.claim_daily(user_id)
    return RpcResponse(
        result=ClaimView(claimed=result.claimed, balance=result.balance, tx_hash=result.tx_hash)
    )

"""Purchase operations: tier catalogue and Stripe checkout."""

import structlog
from fastapi import APIRouter, Depends

from cattv.api.dependencies import get_current_user, get_purchases
from cattv.api.schemas import (
    CheckoutData,
    CheckoutView,
    RpcRequest,
    RpcResponse,
    TierItem,
    TiersView,
)
from cattv.services.purchases import CARE_FUND_DISCLAIMER, PurchaseService

logger = structlog.get_logger()
router = APIRouter(prefix="/api", tags=["purchases"])


@router.post("/getPurchaseTiers", response_model=RpcResponse[TiersView])
async def get_purchase_tiers(purchases: PurchaseService = Depends(get_purchases)):
    tiers = [TierItem.build(view) for view in purchases.get_tiers()]
    return RpcResponse(result=TiersView(tiers=tiers, disclaimer=CARE_FUND_DISCLAIMER))


@router.post("/createCheckoutSession", response_model=RpcResponse[CheckoutView])
async def create_checkout_session(
    body: RpcRequest[CheckoutData],
    user_id: str = Depends(get_current_user),
    purchases: PurchaseService = Depends(get_purchases),
):
    """Open a Stripe Checkout Session for the chosen tier."""
    data = body.data
    checkout = await purchases.create_checkout(
        user_id,
        data.tier_id,
        success_url=data.success_url,
        cancel_url=data.cancel_url,
    )
    return RpcResponse(
        result=CheckoutView(session_id=checkout.purchase.session_id, url=checkout.url)
    )

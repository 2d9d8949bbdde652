"""Stripe webhook endpoint for payment confirmation.

The raw body is handed to the purchase service unparsed; signature
verification must see the exact bytes Stripe signed.
"""

from typing import Annotated

import structlog
from fastapi import APIRouter, Depends, Header, Request

from cattv.api.dependencies import get_purchases
from cattv.services.purchases import PurchaseService

logger = structlog.get_logger()
router = APIRouter()


@router.post("/stripe")
async def receive_stripe_webhook(
    request: Request,
    stripe_signature: Annotated[str | None, Header()] = None,
    purchases: PurchaseService = Depends(get_purchases),
):
    """Receive Stripe events and credit completed checkouts.

    HTTP Status Codes:
        200: Event applied, duplicate acknowledged, or event type ignored
        400: Missing or invalid Stripe-Signature (not retried by Stripe)
        412: Stripe not configured
        500: Completed event with invalid metadata (Stripe retries)
    """
    raw_body = await request.body()
    result = await purchases.handle_payment_confirmation(raw_body, stripe_signature)
    logger.debug(
        "webhook.stripe.handled",
        event_type=result.event_type,
        credited=result.credited,
        duplicate=result.duplicate,
    )
    return {"received": True}

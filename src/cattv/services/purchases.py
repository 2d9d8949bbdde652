"""Purchase flow: tier catalogue, Stripe checkout and payment confirmation.

Payment confirmation is idempotent per checkout session: the Purchase row is
locked before the user is credited, and a session that is already completed
is acknowledged without crediting again. Stripe redelivers webhooks, so this
guard is what keeps a purchase from being credited twice.
"""

import json
from dataclasses import dataclass

import structlog

from cattv.core.config import GameRules, PurchaseTier
from cattv.core.timezone import utcnow
from cattv.models.purchase import Purchase, PurchaseStatus
from cattv.services.exceptions import (
    Internal,
    InvalidArgument,
    InvalidSignature,
    PaymentsUnavailable,
    ServiceError,
)
from cattv.services.payments.stripe_client import StripeClient
from cattv.services.payments.stripe_signature import (
    SignatureVerificationError,
    verify_stripe_signature,
)

logger = structlog.get_logger()

CARE_FUND_DISCLAIMER = (
    "Your purchase supports the Care Fund, which funds real cat shelter donations "
    "and keeps Cat TV free for everyone."
)
CHECKOUT_SUBMIT_MESSAGE = "💛 Your purchase supports the Care Fund and real cat shelters!"

CHECKOUT_COMPLETED = "checkout.session.completed"


@dataclass(frozen=True)
class TierView:
    tier: PurchaseTier
    cats_can_feed: int

    @property
    def label(self) -> str:
        return (
            f"${self.tier.price_usd} → {self.tier.cattv} Food → Feed {self.cats_can_feed} cats"
        )


@dataclass(frozen=True)
class CheckoutResult:
    purchase: Purchase
    url: str


@dataclass(frozen=True)
class ConfirmationResult:
    event_type: str
    credited: int = 0
    duplicate: bool = False


class PurchaseService:
    """Sell food packs through Stripe Checkout and credit them on confirmation."""

    def __init__(
        self,
        uow_factory,
        rules: GameRules,
        stripe_client: StripeClient | None,
        webhook_secret: str = "",
        webhook_tolerance: int = 300,
        checkout_base_url: str = "https://cat-tv.web.app",
    ):
        self.uow_factory = uow_factory
        self.rules = rules
        self.stripe_client = stripe_client
        self.webhook_secret = webhook_secret
        self.webhook_tolerance = webhook_tolerance
        self.checkout_base_url = checkout_base_url

    def get_tiers(self) -> list[TierView]:
        return [
            TierView(tier=tier, cats_can_feed=tier.cattv // self.rules.feed_cost)
            for tier in self.rules.purchase_tiers
        ]

    async def create_checkout(
        self,
        user_id: str,
        tier_id: str | None,
        success_url: str | None = None,
        cancel_url: str | None = None,
    ) -> CheckoutResult:
        """Open a Stripe Checkout Session and record the pending purchase.

        Raises:
            InvalidArgument: Unknown tier
            PaymentsUnavailable: Stripe not configured
            Internal: Stripe request failed
        """
        tier = self.rules.get_tier(tier_id) if tier_id else None
        if tier is None:
            raise InvalidArgument("Invalid tier")
        if self.stripe_client is None:
            raise PaymentsUnavailable("Stripe not configured")

        cats_can_feed = tier.cattv // self.rules.feed_cost
        try:
            session = await self.stripe_client.create_checkout_session(
                unit_amount_cents=tier.price_cents,
                product_name="Cat TV Food Pack",
                product_description=f"{tier.cattv} cat food - Feed up to {cats_can_feed} cats!",
                success_url=f"{success_url or self.checkout_base_url}?purchase=success",
                cancel_url=f"{cancel_url or self.checkout_base_url}?purchase=cancelled",
                metadata={"userId": user_id, "tierId": tier.id, "cattv": str(tier.cattv)},
                submit_message=CHECKOUT_SUBMIT_MESSAGE,
            )
        except ServiceError as e:
            logger.error("checkout.create_failed", user_id=user_id, tier_id=tier.id, error=str(e))
            raise Internal("Failed to create checkout")

        async with await self.uow_factory() as uow:
            purchase = await uow.purchases.add_if_absent(
                Purchase(
                    session_id=session.id,
                    user_id=user_id,
                    tier_id=tier.id,
                    cattv=tier.cattv,
                    price_usd=tier.price_usd,
                )
            )

        logger.info("checkout.created", user_id=user_id, tier_id=tier.id, session_id=session.id)
        return CheckoutResult(purchase=purchase, url=session.url)

    async def handle_payment_confirmation(
        self, raw_body: bytes, signature_header: str | None
    ) -> ConfirmationResult:
        """Verify and apply a Stripe webhook delivery.

        Args:
            raw_body: Exact request body bytes
            signature_header: Stripe-Signature header value

        Returns:
            ConfirmationResult describing what was applied

        Raises:
            PaymentsUnavailable: Webhook secret not configured
            InvalidSignature: Signature check failed or body is not JSON
            Internal: Completed event with missing or invalid metadata
        """
        if not self.webhook_secret:
            raise PaymentsUnavailable("Stripe not configured")

        try:
            verify_stripe_signature(
                raw_body, signature_header, self.webhook_secret, tolerance=self.webhook_tolerance
            )
        except SignatureVerificationError as e:
            logger.warning("webhook.stripe.invalid_signature", error=str(e))
            raise InvalidSignature(f"Webhook Error: {e}")

        try:
            event = json.loads(raw_body)
        except json.JSONDecodeError as e:
            raise InvalidSignature(f"Webhook Error: invalid JSON payload: {e}")

        event_type = event.get("type", "unknown")
        if event_type != CHECKOUT_COMPLETED:
            logger.info("webhook.stripe.ignored", event_type=event_type, event_id=event.get("id"))
            return ConfirmationResult(event_type=event_type)

        session = (event.get("data") or {}).get("object") or {}
        return await self._complete_purchase(session)

    async def _complete_purchase(self, session: dict) -> ConfirmationResult:
        session_id = session.get("id")
        metadata = session.get("metadata") or {}
        user_id = metadata.get("userId")
        tier_id = metadata.get("tierId", "")
        try:
            amount = int(metadata.get("cattv") or 0)
        except (TypeError, ValueError):
            amount = 0

        if not session_id or not user_id or amount <= 0:
            logger.error("webhook.stripe.invalid_metadata", session_id=session_id)
            raise Internal("Invalid session metadata")

        now = utcnow()
        async with await self.uow_factory() as uow:
            purchase = await uow.purchases.get_for_update(session_id)
            if purchase is not None and purchase.status == PurchaseStatus.COMPLETED:
                logger.info("webhook.stripe.duplicate", session_id=session_id, user_id=user_id)
                return ConfirmationResult(event_type=CHECKOUT_COMPLETED, duplicate=True)

            if purchase is None:
                # Session created outside this service; record it so redelivery is guarded
                tier = self.rules.get_tier(tier_id)
                amount_total = session.get("amount_total") or 0
                purchase = await uow.purchases.add(
                    Purchase(
                        session_id=session_id,
                        user_id=user_id,
                        tier_id=tier_id or "unknown",
                        cattv=amount,
                        price_usd=tier.price_usd if tier else max(1, amount_total // 100),
                    )
                )

            user = await uow.users.get_or_create_for_update(user_id)
            user.balance += amount
            user.total_purchased += amount
            purchase.mark_completed(now, payment_intent_id=session.get("payment_intent"))
            await uow.session.flush()
            new_balance = user.balance

        logger.info(
            "webhook.stripe.credited",
            session_id=session_id,
            user_id=user_id,
            credited=amount,
            balance=new_balance,
        )
        return ConfirmationResult(event_type=CHECKOUT_COMPLETED, credited=amount)

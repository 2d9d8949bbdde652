"""Purchase flow tests: tiers, checkout and idempotent payment confirmation."""

import asyncio
import hashlib
import hmac
import json
import time
from urllib.parse import parse_qs

import httpx
import pytest
from sqlalchemy import select

from cattv.models.purchase import Purchase, PurchaseStatus
from cattv.models.user import User
from cattv.services.exceptions import (
    Internal,
    InvalidArgument,
    InvalidSignature,
    PaymentsUnavailable,
)
from cattv.services.payments.stripe_client import StripeClient
from cattv.services.purchases import PurchaseService

WEBHOOK_SECRET = "whsec_test_secret"


def signed(event: dict, secret: str = WEBHOOK_SECRET) -> tuple[bytes, str]:
    body = json.dumps(event).encode("utf-8")
    timestamp = int(time.time())
    signature = hmac.new(
        secret.encode("utf-8"), f"{timestamp}.".encode("utf-8") + body, hashlib.sha256
    ).hexdigest()
    return body, f"t={timestamp},v1={signature}"


def completed_event(session_id: str = "cs_test_1", user_id: str = "buyer", cattv: str = "500"):
    return {
        "id": "evt_1",
        "type": "checkout.session.completed",
        "data": {
            "object": {
                "id": session_id,
                "payment_intent": "pi_123",
                "amount_total": 500,
                "metadata": {"userId": user_id, "tierId": "tier2", "cattv": cattv},
            }
        },
    }


class StripeStub:
    """Records Checkout Session requests and answers like the Stripe API."""

    def __init__(self, status_code: int = 200):
        self.status_code = status_code
        self.requests: list[dict] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        form = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        self.requests.append({"path": request.url.path, "form": form, "headers": request.headers})
        if self.status_code != 200:
            return httpx.Response(self.status_code, json={"error": {"message": "nope"}})
        return httpx.Response(
            200, json={"id": "cs_test_new", "url": "https://checkout.stripe.com/c/pay/cs_test_new"}
        )


@pytest.fixture
def stripe_stub():
    return StripeStub()


@pytest.fixture
def purchases(uow_factory, rules, stripe_stub):
    client = StripeClient("sk_test_123", transport=httpx.MockTransport(stripe_stub))
    return PurchaseService(uow_factory, rules, client, webhook_secret=WEBHOOK_SECRET)


class TestTiers:
    def test_tier_table(self, purchases):
        tiers = purchases.get_tiers()

        assert [(t.tier.id, t.tier.price_usd, t.tier.cattv) for t in tiers] == [
            ("tier1", 1, 100),
            ("tier2", 5, 500),
            ("tier3", 10, 1000),
        ]
        assert [t.cats_can_feed for t in tiers] == [10, 50, 100]
        assert tiers[0].label == "$1 → 100 Food → Feed 10 cats"


class TestCreateCheckout:
    @pytest.mark.asyncio
    async def test_creates_session_and_pending_purchase(self, purchases, stripe_stub, load):
        result = await purchases.create_checkout(
            "buyer", "tier2", success_url="https://app.example/done"
        )

        assert result.purchase.session_id == "cs_test_new"
        assert result.url == "https://checkout.stripe.com/c/pay/cs_test_new"

        request = stripe_stub.requests[0]
        assert request["path"] == "/v1/checkout/sessions"
        assert request["headers"]["Authorization"] == "Bearer sk_test_123"
        form = request["form"]
        assert form["mode"] == "payment"
        assert form["line_items[0][price_data][unit_amount]"] == "500"
        assert form["metadata[userId]"] == "buyer"
        assert form["metadata[tierId]"] == "tier2"
        assert form["metadata[cattv]"] == "500"
        assert form["success_url"] == "https://app.example/done?purchase=success"
        assert form["cancel_url"] == "https://cat-tv.web.app?purchase=cancelled"

        stored = await load(Purchase, "cs_test_new")
        assert stored.status == PurchaseStatus.PENDING
        assert (stored.user_id, stored.cattv, stored.price_usd) == ("buyer", 500, 5)

    @pytest.mark.asyncio
    async def test_unknown_tier(self, purchases, stripe_stub):
        with pytest.raises(InvalidArgument, match="Invalid tier"):
            await purchases.create_checkout("buyer", "tier9")

        assert stripe_stub.requests == []

    @pytest.mark.asyncio
    async def test_stripe_not_configured(self, uow_factory, rules):
        service = PurchaseService(uow_factory, rules, stripe_client=None)

        with pytest.raises(PaymentsUnavailable, match="Stripe not configured"):
            await service.create_checkout("buyer", "tier1")

    @pytest.mark.asyncio
    async def test_provider_failure_is_internal(self, uow_factory, rules, session_factory):
        client = StripeClient("sk_test_123", transport=httpx.MockTransport(StripeStub(402)))
        service = PurchaseService(uow_factory, rules, client)

        with pytest.raises(Internal, match="Failed to create checkout"):
            await service.create_checkout("buyer", "tier1")

        async with session_factory() as s:
            assert (await s.execute(select(Purchase))).scalars().all() == []

    @pytest.mark.asyncio
    async def test_webhook_recorded_session_first(self, purchases, make_user, load):
        await make_user("buyer")
        body, header = signed(completed_event(session_id="cs_test_new", cattv="100"))
        await purchases.handle_payment_confirmation(body, header)

        result = await purchases.create_checkout("buyer", "tier1")

        assert result.url == "https://checkout.stripe.com/c/pay/cs_test_new"
        assert result.purchase.status == PurchaseStatus.COMPLETED
        stored = await load(Purchase, "cs_test_new")
        assert stored.status == PurchaseStatus.COMPLETED
        assert (await load(User, "buyer")).balance == 100


class TestPaymentConfirmation:
    @pytest.mark.asyncio
    async def test_credits_buyer_and_completes_purchase(self, purchases, make_user, load):
        await make_user("buyer", balance=20)
        await purchases.create_checkout("buyer", "tier2")
        body, header = signed(completed_event(session_id="cs_test_new"))

        result = await purchases.handle_payment_confirmation(body, header)

        assert result.credited == 500
        assert result.duplicate is False
        user = await load(User, "buyer")
        assert user.balance == 520
        assert user.total_purchased == 500
        purchase = await load(Purchase, "cs_test_new")
        assert purchase.status == PurchaseStatus.COMPLETED
        assert purchase.payment_intent_id == "pi_123"
        assert purchase.completed_at is not None

    @pytest.mark.asyncio
    async def test_redelivery_does_not_double_credit(self, purchases, make_user, load):
        await make_user("buyer")
        body, header = signed(completed_event())

        first = await purchases.handle_payment_confirmation(body, header)
        second = await purchases.handle_payment_confirmation(body, header)

        assert first.credited == 500
        assert second.duplicate is True
        assert second.credited == 0
        assert (await load(User, "buyer")).balance == 500

    @pytest.mark.asyncio
    async def test_concurrent_redelivery_credits_once(self, purchases, make_user, load):
        await make_user("buyer")
        await purchases.create_checkout("buyer", "tier2")
        body, header = signed(completed_event(session_id="cs_test_new"))

        results = await asyncio.gather(
            *(purchases.handle_payment_confirmation(body, header) for _ in range(3))
        )

        assert sum(r.credited for r in results) == 500
        assert (await load(User, "buyer")).balance == 500

    @pytest.mark.asyncio
    async def test_unknown_buyer_created_on_credit(self, purchases, load):
        body, header = signed(completed_event(user_id="first-timer"))

        await purchases.handle_payment_confirmation(body, header)

        user = await load(User, "first-timer")
        assert user.balance == 500
        assert (await load(Purchase, "cs_test_1")).status == PurchaseStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_invalid_signature(self, purchases, make_user, load):
        await make_user("buyer")
        body, header = signed(completed_event(), secret="whsec_forged")

        with pytest.raises(InvalidSignature) as exc_info:
            await purchases.handle_payment_confirmation(body, header)

        assert exc_info.value.http_status == 400
        assert (await load(User, "buyer")).balance == 0

    @pytest.mark.asyncio
    async def test_missing_signature_header(self, purchases):
        body, _ = signed(completed_event())

        with pytest.raises(InvalidSignature):
            await purchases.handle_payment_confirmation(body, None)

    @pytest.mark.parametrize("cattv", ["", "0", "lots"])
    @pytest.mark.asyncio
    async def test_invalid_metadata_is_internal(self, purchases, cattv):
        body, header = signed(completed_event(cattv=cattv))

        with pytest.raises(Internal, match="Invalid session metadata"):
            await purchases.handle_payment_confirmation(body, header)

    @pytest.mark.asyncio
    async def test_other_event_types_ignored(self, purchases, uow_factory):
        body, header = signed({"id": "evt_2", "type": "payment_intent.created", "data": {}})

        result = await purchases.handle_payment_confirmation(body, header)

        assert result.event_type == "payment_intent.created"
        assert result.credited == 0

    @pytest.mark.asyncio
    async def test_webhook_secret_required(self, uow_factory, rules):
        service = PurchaseService(uow_factory, rules, stripe_client=None, webhook_secret="")
        body, header = signed(completed_event())

        with pytest.raises(PaymentsUnavailable):
            await service.handle_payment_confirmation(body, header)

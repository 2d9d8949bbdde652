"""Stripe REST client for Checkout Sessions."""

from dataclasses import dataclass

import httpx
import structlog

from cattv.services.exceptions import PaymentNetworkError, PaymentProviderError

logger = structlog.get_logger()


@dataclass(frozen=True)
class CheckoutSession:
    id: str
    url: str


class StripeClient:
    """Minimal Stripe API client (form-encoded requests, bearer secret key)."""

    def __init__(
        self,
        secret_key: str,
        base_url: str = "https://api.stripe.com/v1",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize Stripe client.

        Args:
            secret_key: Stripe secret API key (sk_live_... / sk_test_...)
            base_url: API root
            timeout: Request timeout in seconds
            transport: Optional httpx transport (mock transport in tests)
        """
        self.secret_key = secret_key
        self.base_url = base_url
        self.timeout = timeout
        self.transport = transport
        self.headers = {"Authorization": f"Bearer {secret_key}"}

    async def create_checkout_session(
        self,
        *,
        unit_amount_cents: int,
        product_name: str,
        product_description: str,
        success_url: str,
        cancel_url: str,
        metadata: dict[str, str],
        submit_message: str | None = None,
    ) -> CheckoutSession:
        """Create a one-item Checkout Session in payment mode.

        Returns:
            CheckoutSession with the session id and hosted checkout URL

        Raises:
            PaymentNetworkError: Timeout, rate limit or 5xx from Stripe
            PaymentProviderError: Stripe rejected the request (4xx)
        """
        form: dict[str, str | int] = {
            "mode": "payment",
            "payment_method_types[0]": "card",
            "line_items[0][quantity]": 1,
            "line_items[0][price_data][currency]": "usd",
            "line_items[0][price_data][unit_amount]": unit_amount_cents,
            "line_items[0][price_data][product_data][name]": product_name,
            "line_items[0][price_data][product_data][description]": product_description,
            "success_url": success_url,
            "cancel_url": cancel_url,
        }
        for key, value in metadata.items():
            form[f"metadata[{key}]"] = value
        if submit_message:
            form["custom_text[submit][message]"] = submit_message

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    f"{self.base_url}/checkout/sessions", headers=self.headers, data=form
                )
        except httpx.TimeoutException as e:
            raise PaymentNetworkError(f"Request timeout after {self.timeout}s: {str(e)}")
        except httpx.HTTPError as e:
            raise PaymentNetworkError(f"Network error: {str(e)}")

        if response.status_code == 429 or response.status_code >= 500:
            raise PaymentNetworkError(
                f"Stripe unavailable ({response.status_code}): {response.text}"
            )
        if response.status_code >= 400:
            raise PaymentProviderError(
                f"Stripe rejected checkout ({response.status_code}): {response.text}"
            )

        body = response.json()
        logger.debug("stripe.checkout_session_created", session_id=body["id"])
        return CheckoutSession(id=body["id"], url=body["url"])

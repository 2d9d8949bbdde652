"""HMAC signature validation for Stripe webhooks.

Stripe signs each delivery with a ``Stripe-Signature`` header of the form
``t=<unix timestamp>,v1=<hex signature>[,v1=...]`` where each signature is
HMAC-SHA256 over ``"<timestamp>.<raw body>"`` keyed with the endpoint secret.

Security Note:
    verify_stripe_signature MUST be called on the raw request bytes before the
    payload is parsed. Any failure is reported as HTTP 400 so Stripe does not
    keep retrying a forged delivery.
"""

import hashlib
import hmac
import time


class SignatureVerificationError(Exception):
    """Stripe-Signature header missing, malformed, stale or not matching."""

    pass


def parse_signature_header(header: str) -> tuple[int, list[str]]:
    """Split a Stripe-Signature header into its timestamp and v1 signatures.

    Raises:
        SignatureVerificationError: If no timestamp or no v1 signature is present
    """
    timestamp: int | None = None
    signatures: list[str] = []
    for item in header.split(","):
        key, sep, value = item.strip().partition("=")
        if not sep:
            continue
        if key == "t":
            try:
                timestamp = int(value)
            except ValueError:
                raise SignatureVerificationError("Invalid timestamp in signature header")
        elif key == "v1":
            signatures.append(value.lower())

    if timestamp is None:
        raise SignatureVerificationError("No timestamp in signature header")
    if not signatures:
        raise SignatureVerificationError("No v1 signature in signature header")
    return timestamp, signatures


def compute_signature(raw_body: bytes, timestamp: int, secret: str) -> str:
    signed_payload = f"{timestamp}.".encode("utf-8") + raw_body
    return hmac.new(
        key=secret.encode("utf-8"), msg=signed_payload, digestmod=hashlib.sha256
    ).hexdigest()


def verify_stripe_signature(
    raw_body: bytes,
    header: str | None,
    secret: str,
    tolerance: int = 300,
    now: float | None = None,
) -> None:
    """Validate a Stripe webhook delivery.

    Args:
        raw_body: Raw request body bytes (NOT parsed JSON)
        header: Value of the Stripe-Signature header
        secret: Webhook endpoint signing secret (whsec_...)
        tolerance: Maximum allowed age of the timestamp in seconds
        now: Override for the current unix time

    Raises:
        SignatureVerificationError: If the header is missing or malformed, the
            timestamp is outside the tolerance, or no signature matches
    """
    if not header:
        raise SignatureVerificationError("Missing Stripe-Signature header")

    timestamp, signatures = parse_signature_header(header)
    expected = compute_signature(raw_body, timestamp, secret)

    # Constant-time comparison against every v1 signature (secret rotation)
    if not any(hmac.compare_digest(expected, sig) for sig in signatures):
        raise SignatureVerificationError("No signatures found matching the expected signature")

    current = time.time() if now is None else now
    if tolerance > 0 and abs(current - timestamp) > tolerance:
        raise SignatureVerificationError("Timestamp outside the tolerance zone")

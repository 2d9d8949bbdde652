"""Unit tests for Stripe webhook signature validation.

Tests the HMAC-SHA256 signature scheme to ensure only authentic, fresh
deliveries from Stripe are processed.
"""

import hashlib
import hmac

import pytest

from cattv.services.payments.stripe_signature import (
    SignatureVerificationError,
    parse_signature_header,
    verify_stripe_signature,
)

TIMESTAMP = 1_741_953_600


class TestStripeSignatureValidation:
    """Test suite for Stripe-Signature header validation."""

    @pytest.fixture
    def secret(self) -> str:
        return "whsec_test_secret"

    @pytest.fixture
    def sample_payload(self) -> bytes:
        return b'{"id":"evt_001","type":"checkout.session.completed"}'

    @pytest.fixture
    def valid_signature(self, sample_payload: bytes, secret: str) -> str:
        return hmac.new(
            key=secret.encode("utf-8"),
            msg=f"{TIMESTAMP}.".encode("utf-8") + sample_payload,
            digestmod=hashlib.sha256,
        ).hexdigest()

    def test_valid_signature_accepted(self, sample_payload, valid_signature, secret):
        header = f"t={TIMESTAMP},v1={valid_signature}"

        verify_stripe_signature(sample_payload, header, secret, now=TIMESTAMP + 10)

    def test_rotated_secret_any_v1_matches(self, sample_payload, valid_signature, secret):
        header = f"t={TIMESTAMP},v1={'0' * 64},v1={valid_signature},v0=legacy"

        verify_stripe_signature(sample_payload, header, secret, now=TIMESTAMP)

    def test_uppercase_signature_accepted(self, sample_payload, valid_signature, secret):
        header = f"t={TIMESTAMP},v1={valid_signature.upper()}"

        verify_stripe_signature(sample_payload, header, secret, now=TIMESTAMP)

    def test_tampered_payload_rejected(self, sample_payload, valid_signature, secret):
        header = f"t={TIMESTAMP},v1={valid_signature}"

        with pytest.raises(SignatureVerificationError, match="No signatures found"):
            verify_stripe_signature(sample_payload + b" ", header, secret, now=TIMESTAMP)

    def test_wrong_secret_rejected(self, sample_payload, valid_signature):
        header = f"t={TIMESTAMP},v1={valid_signature}"

        with pytest.raises(SignatureVerificationError):
            verify_stripe_signature(sample_payload, header, "whsec_other", now=TIMESTAMP)

    def test_replayed_timestamp_rejected(self, sample_payload, valid_signature, secret):
        header = f"t={TIMESTAMP},v1={valid_signature}"

        with pytest.raises(SignatureVerificationError, match="tolerance"):
            verify_stripe_signature(
                sample_payload, header, secret, tolerance=300, now=TIMESTAMP + 301
            )

    def test_signature_for_other_timestamp_rejected(self, sample_payload, valid_signature, secret):
        header = f"t={TIMESTAMP + 1},v1={valid_signature}"

        with pytest.raises(SignatureVerificationError):
            verify_stripe_signature(sample_payload, header, secret, now=TIMESTAMP)

    @pytest.mark.parametrize("header", [None, "", "garbage", "v1=abc", "t=notanumber,v1=abc"])
    def test_malformed_header_rejected(self, sample_payload, secret, header):
        with pytest.raises(SignatureVerificationError):
            verify_stripe_signature(sample_payload, header, secret, now=TIMESTAMP)


def test_parse_signature_header():
    timestamp, signatures = parse_signature_header("t=12, v1=AB ,v1=cd,v0=ef")

    assert timestamp == 12
    assert signatures == ["ab", "cd"]

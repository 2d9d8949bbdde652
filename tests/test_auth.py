"""Bearer token verification tests."""

import time

import jwt
import pytest

from cattv.core.config import Settings
from cattv.services.auth import TokenVerifier
from cattv.services.exceptions import Unauthenticated

SECRET = "test-secret-key-with-at-least-32-bytes!!"


def mint(claims: dict, secret: str = SECRET) -> str:
    return jwt.encode(claims, secret, algorithm="HS256")


@pytest.fixture
def verifier():
    return TokenVerifier(SECRET)


def test_valid_token_returns_subject(verifier):
    token = mint({"sub": "did:privy:abc123", "exp": int(time.time()) + 3600})

    assert verifier.verify(token) == "did:privy:abc123"


def test_expired_token_rejected(verifier):
    token = mint({"sub": "user-1", "exp": int(time.time()) - 60})

    with pytest.raises(Unauthenticated, match="expired"):
        verifier.verify(token)


def test_wrong_key_rejected(verifier):
    token = mint(
        {"sub": "user-1", "exp": int(time.time()) + 3600},
        secret="another-secret-key-with-32-bytes-plus!!",
    )

    with pytest.raises(Unauthenticated, match="Must be logged in"):
        verifier.verify(token)


@pytest.mark.parametrize("claims", [{"exp": 9_999_999_999}, {"sub": "user-1"}])
def test_required_claims(verifier, claims):
    with pytest.raises(Unauthenticated):
        verifier.verify(mint(claims))


def test_garbage_token_rejected(verifier):
    with pytest.raises(Unauthenticated):
        verifier.verify("not.a.jwt")


def test_unconfigured_verifier_rejects_everything():
    token = mint({"sub": "user-1", "exp": int(time.time()) + 3600})

    with pytest.raises(Unauthenticated, match="not configured"):
        TokenVerifier("").verify(token)


def test_audience_and_issuer_enforced():
    verifier = TokenVerifier(SECRET, issuer="privy.io", audience="cattv-app")
    exp = int(time.time()) + 3600

    good = mint({"sub": "user-1", "exp": exp, "iss": "privy.io", "aud": "cattv-app"})
    assert verifier.verify(good) == "user-1"

    with pytest.raises(Unauthenticated):
        verifier.verify(mint({"sub": "user-1", "exp": exp, "iss": "privy.io", "aud": "other"}))
    with pytest.raises(Unauthenticated):
        verifier.verify(mint({"sub": "user-1", "exp": exp, "iss": "evil", "aud": "cattv-app"}))


def test_from_settings_prefers_public_key():
    settings = Settings(
        DATABASE_URL="sqlite+aiosqlite://",
        AUTH_JWT_SECRET="shared",
        AUTH_JWT_PUBLIC_KEY="-----BEGIN PUBLIC KEY-----",
        AUTH_JWT_ALGORITHM="ES256",
    )

    verifier = TokenVerifier.from_settings(settings)

    assert verifier.key == "-----BEGIN PUBLIC KEY-----"
    assert verifier.algorithm == "ES256"
    assert verifier.issuer is None

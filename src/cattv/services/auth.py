"""Identity provider adapter.

Verifies bearer JWTs issued by the identity provider and resolves them to a
stable user identifier (the ``sub`` claim). Supports a shared secret (HS*)
or a provider verification key (ES256/RS256, e.g. Privy or Firebase).
"""

import jwt
import structlog

from cattv.core.config import Settings
from cattv.services.exceptions import Unauthenticated

logger = structlog.get_logger()


class TokenVerifier:
    """Verify bearer credentials against the configured identity provider."""

    def __init__(
        self,
        key: str,
        algorithm: str = "HS256",
        issuer: str | None = None,
        audience: str | None = None,
    ):
        self.key = key
        self.algorithm = algorithm
        self.issuer = issuer or None
        self.audience = audience or None

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenVerifier":
        return cls(
            key=settings.auth_jwt_public_key or settings.auth_jwt_secret,
            algorithm=settings.auth_jwt_algorithm,
            issuer=settings.auth_jwt_issuer,
            audience=settings.auth_jwt_audience,
        )

    def verify(self, token: str) -> str:
        """Validate a bearer token and return its subject.

        Args:
            token: Raw JWT (without the "Bearer " prefix)

        Returns:
            User identifier from the ``sub`` claim

        Raises:
            Unauthenticated: If the verifier is unconfigured, or the token is
                expired, malformed, wrongly signed or missing a subject
        """
        if not self.key:
            logger.error("auth.verifier_not_configured")
            raise Unauthenticated("Authentication is not configured")

        try:
            payload = jwt.decode(
                token,
                self.key,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                audience=self.audience,
                options={"require": ["sub", "exp"], "verify_aud": self.audience is not None},
            )
        except jwt.ExpiredSignatureError:
            raise Unauthenticated("Token has expired")
        except jwt.InvalidTokenError as e:
            logger.warning("auth.invalid_token", error=str(e))
            raise Unauthenticated("Must be logged in")

        subject = payload.get("sub")
        if not isinstance(subject, str) or not subject:
            raise Unauthenticated("Must be logged in")
        return subject

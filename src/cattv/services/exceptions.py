"""Error hierarchies for CatTV services.

Two families live here:
- CattvError: user-facing errors carrying a stable status tag; rendered verbatim
  by the RPC layer as ``{"error": {"message", "status"}}``.
- ServiceError: integration-client errors (blockchain, storage, payments),
  split into TransientError (retryable) and PermanentError (non-retryable).
  Services translate these into CattvError at their boundary.
"""

from typing import Any


class CattvError(Exception):
    """Base exception for all user-facing errors."""

    status = "internal"
    http_status = 500

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class Unauthenticated(CattvError):
    """Missing or invalid bearer credential."""

    status = "unauthenticated"
    http_status = 401


class InvalidArgument(CattvError):
    """Malformed input, oversize upload, bad name."""

    status = "invalid-argument"
    http_status = 400


class NotFound(CattvError):
    """Referenced user or cat does not exist."""

    status = "not-found"
    http_status = 404


class PermissionDenied(CattvError):
    """Authenticated caller may not modify the target record."""

    status = "permission-denied"
    http_status = 403


class FailedPrecondition(CattvError):
    """Operation rejected by the current state of the system."""

    status = "failed-precondition"
    http_status = 412


class CooldownActive(FailedPrecondition):
    """Daily claim attempted inside the cooldown window."""

    pass


class InsufficientFunds(FailedPrecondition):
    """Balance is below the feed cost."""

    pass


class ChainMirrorUnavailable(FailedPrecondition):
    """On-chain integration is not configured."""

    pass


class PaymentsUnavailable(FailedPrecondition):
    """Payment provider is not configured."""

    pass


class ResourceExhausted(CattvError):
    """A quota has been used up."""

    status = "resource-exhausted"
    http_status = 429


class DailyLimitExceeded(ResourceExhausted):
    """Daily feed cap reached."""

    pass


class Internal(CattvError):
    """Unexpected store or provider failure."""

    status = "internal"
    http_status = 500


class InvalidSignature(CattvError):
    """Webhook authenticity check failed (not retried by the provider)."""

    status = "invalid-signature"
    http_status = 400


class ServiceError(Exception):
    """Base exception for all integration-client errors."""

    pass


class TransientError(ServiceError):
    """Transient error that may succeed on retry.

    Examples:
    - Network timeouts
    - Rate limit exceeded (429)
    - Service unavailable (503)
    - Transaction submission failures
    """

    pass


class PermanentError(ServiceError):
    """Permanent error that will not succeed on retry.

    Examples:
    - Authentication failures (401, 403)
    - Invalid request parameters (400)
    - Transaction reverts
    """

    pass


# Media storage errors
class StorageNetworkError(TransientError):
    """Network timeout or storage service unavailable."""

    pass


class StorageAuthError(PermanentError):
    """Storage authentication failure (401, 403)."""

    pass


class StorageValidationError(PermanentError):
    """Storage rejected the upload (400)."""

    pass


# Payment provider errors
class PaymentProviderError(PermanentError):
    """Payment provider rejected the request."""

    pass


class PaymentNetworkError(TransientError):
    """Payment provider unreachable or unavailable."""

    pass


# Blockchain errors
class TransactionSubmissionError(TransientError):
    """Transaction submission failed."""

    pass


class TransactionTimeoutError(TransientError):
    """Transaction confirmation timeout."""

    pass


class TransactionRevertError(PermanentError):
    """Transaction reverted on-chain."""

    pass

"""FastAPI dependencies for request authentication and service access.

Services are built once in the application lifespan and stored on
``app.state``; these dependencies hand them to the route functions.
"""

from typing import Annotated

from fastapi import Header, Request

from cattv.services.auth import TokenVerifier
from cattv.services.blockchain.chain_mirror import ChainMirror
from cattv.services.catalog import CatalogService
from cattv.services.exceptions import Unauthenticated
from cattv.services.feeding import FeedingService
from cattv.services.ledger import BalanceLedger
from cattv.services.media import MediaService
from cattv.services.purchases import PurchaseService


def get_current_user(
    request: Request,
    authorization: Annotated[str | None, Header()] = None,
) -> str:
    """Resolve the bearer token in the Authorization header to a user id.

    Raises:
        Unauthenticated: Header missing, not a bearer token, or token rejected
    """
    if not authorization:
        raise Unauthenticated("Must be logged in")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise Unauthenticated("Must be logged in")

    verifier: TokenVerifier = request.app.state.token_verifier
    return verifier.verify(token.strip())


def get_ledger(request: Request) -> BalanceLedger:
    return request.app.state.ledger


def get_feeding(request: Request) -> FeedingService:
    return request.app.state.feeding


def get_catalog(request: Request) -> CatalogService:
    return request.app.state.catalog


def get_media(request: Request) -> MediaService:
    return request.app.state.media


def get_purchases(request: Request) -> PurchaseService:
    return request.app.state.purchases


def get_chain_mirror(request: Request) -> ChainMirror | None:
    """Get the chain mirror from app state (None when not configured)."""
    return request.app.state.chain_mirror

"""FastAPI application factory."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, Response, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cattv.api.routes import cats, contract, purchases, users, webhooks
from cattv.core import timezone  # noqa: F401
from cattv.core.config import Settings, configure_logging
from cattv.core.database import setup_db_session
from cattv.core.timezone import to_epoch_ms, utcnow
from cattv.services.auth import TokenVerifier
from cattv.services.blockchain.chain_mirror import ChainMirror
from cattv.services.catalog import CatalogService
from cattv.services.exceptions import CattvError
from cattv.services.feeding import FeedingService
from cattv.services.ledger import BalanceLedger
from cattv.services.media import MediaService
from cattv.services.payments.stripe_client import StripeClient
from cattv.services.purchases import PurchaseService
from cattv.services.storage.pinata_client import PinataClient
from cattv.uow import create_uow_factory

logger = structlog.get_logger()


def init_app_state(
    app: FastAPI,
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    chain_mirror: ChainMirror | None = None,
) -> None:
    """Build the shared services once and store them in ``app.state``.

    Args:
        app: Application whose state is populated
        settings: Loaded settings
        session_factory: Database session factory
        chain_mirror: Pre-built mirror; when None it is built from settings
    """
    uow_factory = create_uow_factory(session_factory)
    rules = settings.game_rules()
    mirror = chain_mirror if chain_mirror is not None else ChainMirror.from_settings(settings)

    storage = None
    if settings.pinata_jwt:
        storage = PinataClient(settings.pinata_jwt, gateway_domain=settings.pinata_gateway)

    stripe_client = None
    if settings.stripe_secret_key:
        stripe_client = StripeClient(settings.stripe_secret_key)

    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.token_verifier = TokenVerifier.from_settings(settings)
    app.state.chain_mirror = mirror
    app.state.ledger = BalanceLedger(uow_factory, rules, chain_mirror=mirror)
    app.state.feeding = FeedingService(uow_factory, rules, chain_mirror=mirror)
    app.state.catalog = CatalogService(uow_factory)
    app.state.media = MediaService(storage)
    app.state.purchases = PurchaseService(
        uow_factory,
        rules,
        stripe_client,
        webhook_secret=settings.stripe_webhook_secret,
        webhook_tolerance=settings.stripe_webhook_tolerance_seconds,
        checkout_base_url=settings.checkout_base_url,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan context manager.

    - Startup: configure logging, create the session factory, build services
    - Shutdown: wait briefly for in-flight chain mirror tasks
    """
    settings = Settings()  # type: ignore[call-arg]
    configure_logging(settings)

    session_factory = setup_db_session(settings.database_url, settings.db_pool_size)
    init_app_state(app, settings, session_factory)

    logger.info(
        "application.startup",
        db_url=settings.database_url.split("@")[-1],
        ledger_mode=settings.ledger_mode.value,
        chain_mirror=app.state.chain_mirror is not None,
    )

    yield

    logger.info("application.shutdown")
    if app.state.chain_mirror is not None:
        await app.state.chain_mirror.drain()


def _error_response(http_status: int, error_status: str, message: str, details=None):
    error = {"message": message, "status": error_status}
    if details:
        error["details"] = details
    return JSONResponse(status_code=http_status, content={"error": error})


def register_exception_handlers(app: FastAPI) -> None:
    """Render every failure as the RPC error envelope."""

    @app.exception_handler(CattvError)
    async def handle_cattv_error(request: Request, exc: CattvError):
        return _error_response(exc.http_status, exc.status, exc.message, exc.details)

    @app.exception_handler(RequestValidationError)
    async def handle_validation_error(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        message = "Invalid request"
        if errors:
            location = ".".join(str(part) for part in errors[0].get("loc", ()) if part != "body")
            message = f"{location}: {errors[0].get('msg')}" if location else errors[0].get("msg")
        logger.info("request.invalid", path=request.url.path, error=message)
        return _error_response(status.HTTP_400_BAD_REQUEST, "invalid-argument", message)

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "request.unhandled_error",
            path=request.url.path,
            error=str(exc),
            error_type=type(exc).__name__,
            exc_info=exc,
        )
        return _error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "internal", "Internal error")


def create_app() -> FastAPI:
    """Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    settings = Settings()  # type: ignore[call-arg]

    app = FastAPI(
        title="CatTV Backend API",
        description="Daily food claims, cat feeding, purchases and chain mirroring",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    app.include_router(users.router)
    app.include_router(cats.router)
    app.include_router(purchases.router)
    app.include_router(contract.router)
    app.include_router(webhooks.router, prefix="/webhooks", tags=["webhooks"])

    @app.get("/health")
    async def health_check(response: Response):
        """Health check endpoint with database connectivity test.

        Returns:
            200: {"status": "ok", "timestamp": <epoch ms>}
            503: {"status": "unhealthy", "timestamp": ..., "error": {...}}
        """
        timestamp = to_epoch_ms(utcnow())
        try:
            async with app.state.session_factory() as session:
                result = await session.execute(text("SELECT 1"))
                result.scalar()

            logger.debug("health_check.success")
            return {"status": "ok", "timestamp": timestamp}

        except Exception as e:
            logger.error(
                "health_check.failed",
                error=str(e),
                error_type=type(e).__name__,
            )
            response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
            return {
                "status": "unhealthy",
                "timestamp": timestamp,
                "error": {
                    "type": type(e).__name__,
                    "message": str(e),
                },
            }

    return app


# Create app instance for uvicorn
app = create_app()

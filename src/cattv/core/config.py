"""Application configuration using Pydantic BaseSettings."""

import logging
from datetime import timedelta
from enum import Enum

import structlog
from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerMode(str, Enum):
    """Source of truth for spendable balances and daily claims."""

    OFFCHAIN = "offchain"
    ONCHAIN = "onchain"


class PurchaseTier(BaseModel):
    """One fixed price-to-credit mapping offered at checkout."""

    model_config = ConfigDict(frozen=True)

    id: str
    price_usd: int
    cattv: int

    @property
    def price_cents(self) -> int:
        return self.price_usd * 100


DEFAULT_PURCHASE_TIERS: tuple[PurchaseTier, ...] = (
    PurchaseTier(id="tier1", price_usd=1, cattv=100),
    PurchaseTier(id="tier2", price_usd=5, cattv=500),
    PurchaseTier(id="tier3", price_usd=10, cattv=1000),
)


class GameRules(BaseModel):
    """Immutable game constants, built once at startup and passed to services."""

    model_config = ConfigDict(frozen=True)

    ledger_mode: LedgerMode = LedgerMode.OFFCHAIN
    daily_amount: int = Field(default=100, gt=0)
    feed_cost: int = Field(default=10, gt=0)
    max_daily_feeds: int = Field(default=50, gt=0)
    claim_cooldown: timedelta = timedelta(hours=24)
    day_boundary_tz: str = "UTC"
    purchase_tiers: tuple[PurchaseTier, ...] = DEFAULT_PURCHASE_TIERS

    def get_tier(self, tier_id: str) -> PurchaseTier | None:
        return next((t for t in self.purchase_tiers if t.id == tier_id), None)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Application Database Configuration
    database_url: str = Field(alias="DATABASE_URL")
    db_pool_size: int = Field(default=20, alias="DB_POOL_SIZE")

    # Application Environment
    app_env: str = Field(default="development", alias="APP_ENV")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # CORS Configuration
    cors_origins: str = Field(default="http://localhost:5173", alias="CORS_ORIGINS")

    # Server Configuration
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")

    # Identity provider (bearer JWT verification)
    auth_jwt_secret: str = Field(default="", alias="AUTH_JWT_SECRET")
    auth_jwt_public_key: str = Field(default="", alias="AUTH_JWT_PUBLIC_KEY")
    auth_jwt_algorithm: str = Field(default="HS256", alias="AUTH_JWT_ALGORITHM")
    auth_jwt_issuer: str = Field(default="", alias="AUTH_JWT_ISSUER")
    auth_jwt_audience: str = Field(default="", alias="AUTH_JWT_AUDIENCE")

    # Game rules
    ledger_mode: LedgerMode = Field(default=LedgerMode.OFFCHAIN, alias="LEDGER_MODE")
    daily_amount: int = Field(default=100, alias="DAILY_AMOUNT")
    feed_cost: int = Field(default=10, alias="FEED_COST")
    max_daily_feeds: int = Field(default=50, alias="MAX_DAILY_FEEDS")
    claim_cooldown_hours: int = Field(default=24, alias="CLAIM_COOLDOWN_HOURS")
    day_boundary_tz: str = Field(default="UTC", alias="DAY_BOUNDARY_TZ")

    # Chain mirror (Base mainnet by default)
    rpc_url: str = Field(default="https://mainnet.base.org", alias="RPC_URL")
    token_address: str = Field(
        default="0xbb0b50cc8efdf947b1808dabcc8bbd58121d5b07", alias="TOKEN_ADDRESS"
    )
    catfeeder_address: str = Field(default="", alias="CATFEEDER_ADDRESS")
    token_decimals: int = Field(default=18, alias="TOKEN_DECIMALS")
    server_wallet_private_key: str = Field(default="", alias="SERVER_WALLET_PRIVATE_KEY")
    transaction_timeout_seconds: int = Field(default=120, alias="TRANSACTION_TIMEOUT_SECONDS")

    # Stripe payments
    stripe_secret_key: str = Field(default="", alias="STRIPE_SECRET_KEY")
    stripe_webhook_secret: str = Field(default="", alias="STRIPE_WEBHOOK_SECRET")
    stripe_webhook_tolerance_seconds: int = Field(
        default=300, alias="STRIPE_WEBHOOK_TOLERANCE_SECONDS"
    )
    checkout_base_url: str = Field(default="https://cat-tv.web.app", alias="CHECKOUT_BASE_URL")

    # Media storage (Pinata)
    pinata_jwt: str = Field(default="", alias="PINATA_JWT")
    pinata_gateway: str = Field(default="gateway.pinata.cloud", alias="PINATA_GATEWAY")

    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def chain_mirror_configured(self) -> bool:
        return bool(self.server_wallet_private_key and self.catfeeder_address)

    def game_rules(self) -> GameRules:
        """Build the immutable rules object shared by all services."""
        return GameRules(
            ledger_mode=self.ledger_mode,
            daily_amount=self.daily_amount,
            feed_cost=self.feed_cost,
            max_daily_feeds=self.max_daily_feeds,
            claim_cooldown=timedelta(hours=self.claim_cooldown_hours),
            day_boundary_tz=self.day_boundary_tz,
        )

    @model_validator(mode="after")
    def validate_required_config(self) -> "Settings":
        """Validate required configuration on startup.

        Fails fast with clear error messages if configuration is incomplete.
        Validation only runs in production; development and test environments
        may run with integrations disabled.
        """
        if self.app_env != "production":
            return self

        missing = []

        if not (self.auth_jwt_secret or self.auth_jwt_public_key):
            missing.append(
                "AUTH_JWT_SECRET or AUTH_JWT_PUBLIC_KEY: identity provider verification key"
            )

        if not self.stripe_secret_key or not self.stripe_webhook_secret:
            missing.append(
                "STRIPE_SECRET_KEY / STRIPE_WEBHOOK_SECRET: from https://dashboard.stripe.com/apikeys"
            )

        if not self.pinata_jwt:
            missing.append("PINATA_JWT: Get your JWT token from https://pinata.cloud")

        if self.ledger_mode == LedgerMode.ONCHAIN and not self.chain_mirror_configured:
            missing.append(
                "SERVER_WALLET_PRIVATE_KEY / CATFEEDER_ADDRESS: required when LEDGER_MODE=onchain"
            )

        if missing:
            error_msg = "CRITICAL: Missing required environment variables:\n\n" + "\n".join(
                f"  - {m}" for m in missing
            )
            error_msg += "\n\nThe application cannot start without these variables."
            raise ValueError(error_msg)

        return self


def configure_logging(settings: Settings) -> None:
    """Configure structlog based on application environment.

    - Production: JSON output for log aggregation
    - Development: Console output for human readability
    """
    if settings.app_env == "production":
        renderer_processors = [
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    else:
        renderer_processors = [structlog.dev.ConsoleRenderer()]

    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            *renderer_processors,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )

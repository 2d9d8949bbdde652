"""User entity - per-user balance ledger record."""

from datetime import datetime
from typing import Optional

from eth_utils.address import to_checksum_address
from sqlalchemy import CheckConstraint
from sqlmodel import Field, SQLModel

from cattv.core.timezone import utcnow


def normalize_wallet_address(v: str) -> str:
    """Validate and normalize Ethereum wallet address to checksummed format (EIP-55).

    Raises:
        ValueError: If the address is not 0x followed by 40 hex characters
    """
    if not v.startswith("0x") or len(v) != 42:
        raise ValueError("Wallet address must be in format 0x followed by 40 hex characters")
    try:
        return to_checksum_address(v)
    except ValueError:
        raise ValueError("Wallet address must contain valid hexadecimal characters")


class User(SQLModel, table=True):
    """User holds spendable food balance, claim timestamp and daily feed counters.

    The primary key is the identity provider's subject claim, so a user row is
    created lazily on first authenticated access.
    """

    __tablename__ = "users"  # type: ignore[assignment]
    __table_args__ = (CheckConstraint("balance >= 0", name="ck_users_balance_non_negative"),)

    id: str = Field(primary_key=True, max_length=128)
    wallet_address: Optional[str] = Field(default=None, max_length=42, index=True)
    balance: int = Field(default=0, ge=0)
    last_claim_at: Optional[datetime] = Field(default=None)
    total_feeds: int = Field(default=0, ge=0)
    feeds_today: int = Field(default=0, ge=0)
    last_feed_date: Optional[datetime] = Field(default=None)
    total_purchased: int = Field(default=0, ge=0)
    created_at: datetime = Field(default_factory=utcnow)

    def effective_feeds_today(self, day_start: datetime) -> int:
        """Feeds counted against today's cap, treating a previous-day counter as zero."""
        if self.last_feed_date is None or self.last_feed_date < day_start:
            return 0
        return self.feeds_today

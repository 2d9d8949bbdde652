"""Purchase entity - checkout session with one-way completion."""

from datetime import datetime
from enum import Enum
from typing import Optional

from sqlmodel import Field, SQLModel

from cattv.core.timezone import utcnow


class PurchaseStatus(str, Enum):
    """Purchase lifecycle status."""

    PENDING = "pending"
    COMPLETED = "completed"


class InvalidPurchaseTransition(Exception):
    """Raised when attempting to complete a purchase twice."""

    pass


class Purchase(SQLModel, table=True):
    """Purchase ties a payment-provider checkout session to a user and tier."""

    __tablename__ = "purchases"  # type: ignore[assignment]

    session_id: str = Field(primary_key=True, max_length=255)
    user_id: str = Field(max_length=128, index=True)
    tier_id: str = Field(max_length=32)
    cattv: int = Field(gt=0)
    price_usd: int = Field(gt=0)
    status: PurchaseStatus = Field(default=PurchaseStatus.PENDING, index=True)
    payment_intent_id: Optional[str] = Field(default=None, max_length=255)
    created_at: datetime = Field(default_factory=utcnow)
    completed_at: Optional[datetime] = Field(default=None)

    def mark_completed(self, now: datetime, payment_intent_id: Optional[str] = None) -> None:
        """Transition from pending to completed.

        Raises:
            InvalidPurchaseTransition: If the purchase is already completed
        """
        if self.status != PurchaseStatus.PENDING:
            raise InvalidPurchaseTransition(
                f"Cannot complete purchase {self.session_id} from {self.status.value}."
            )
        self.status = PurchaseStatus.COMPLETED
        self.completed_at = now
        self.payment_intent_id = payment_intent_id

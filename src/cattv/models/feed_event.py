"""FeedEvent entity - append-only audit record of a committed feed."""

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field, SQLModel

from cattv.core.timezone import utcnow


class FeedEvent(SQLModel, table=True):
    """One successful feed: who fed which cat, how much, and when."""

    __tablename__ = "feed_events"  # type: ignore[assignment]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    user_id: str = Field(max_length=128, index=True)
    cat_id: str = Field(max_length=64, index=True)
    amount: int = Field(gt=0)
    timestamp: datetime = Field(default_factory=utcnow, index=True)

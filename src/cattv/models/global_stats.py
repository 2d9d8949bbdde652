"""GlobalStats entity - lazily created aggregate counters."""

from datetime import datetime

from sqlmodel import Field, SQLModel

from cattv.core.timezone import utcnow

GLOBAL_STATS_KEY = "global"


class GlobalStats(SQLModel, table=True):
    """Singleton row (key="global") holding the all-time feed counter."""

    __tablename__ = "global_stats"  # type: ignore[assignment]

    key: str = Field(default=GLOBAL_STATS_KEY, primary_key=True, max_length=64)
    total_feeds: int = Field(default=0, ge=0)
    updated_at: datetime = Field(default_factory=utcnow)

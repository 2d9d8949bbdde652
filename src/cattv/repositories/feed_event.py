"""FeedEvent repository for CatTV backend.

Feed events are append-only: the repository exposes no update or delete.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from cattv.models.feed_event import FeedEvent


class FeedEventRepository:
    """Repository for FeedEvent audit records."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def add(self, event: FeedEvent) -> FeedEvent:
        """Append a feed event.

        Args:
            event: FeedEvent entity to persist

        Returns:
            Persisted event with generated ID
        """
        self.session.add(event)
        await self.session.flush()
        return event

    async def list_by_user(self, user_id: str, limit: int = 100) -> list[FeedEvent]:
        """Retrieve a user's feed events (newest first)."""
        result = await self.session.execute(
            select(FeedEvent)
            .where(FeedEvent.user_id == user_id)  # type: ignore[arg-type]
            .order_by(FeedEvent.timestamp.desc())  # type: ignore[attr-defined]
            .limit(limit)
        )
        return list(result.scalars().all())

    async def count_for_cat(self, cat_id: str) -> int:
        """Count feed events recorded against one cat."""
        result = await self.session.execute(
            select(func.count()).select_from(FeedEvent).where(FeedEvent.cat_id == cat_id)  # type: ignore[arg-type]
        )
        return result.scalar_one()

    async def count(self) -> int:
        result = await self.session.execute(select(func.count()).select_from(FeedEvent))
        return result.scalar_one()

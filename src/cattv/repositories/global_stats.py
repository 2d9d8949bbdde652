"""GlobalStats repository for CatTV backend.

Provides lazy creation and locked access to the singleton stats row.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cattv.models.global_stats import GLOBAL_STATS_KEY, GlobalStats


class GlobalStatsRepository:
    """Repository for the GlobalStats singleton."""

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def get(self) -> GlobalStats | None:
        """Retrieve the stats row without locking (read-only callers).

        Returns:
            GlobalStats if it has been created, None otherwise
        """
        result = await self.session.execute(
            select(GlobalStats).where(GlobalStats.key == GLOBAL_STATS_KEY)  # type: ignore[arg-type]
        )
        return result.scalar_one_or_none()

    async def get_or_create_for_update(self) -> GlobalStats:
        """Retrieve and lock the stats row, creating it on first use.

        Creation runs inside a SAVEPOINT so a concurrent first feed that wins
        the insert race does not abort this transaction.

        Returns:
            Locked GlobalStats row
        """
        stmt = (
            select(GlobalStats)
            .where(GlobalStats.key == GLOBAL_STATS_KEY)  # type: ignore[arg-type]
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        stats = result.scalar_one_or_none()
        if stats:
            return stats

        try:
            async with self.session.begin_nested():
                stats = GlobalStats(key=GLOBAL_STATS_KEY, total_feeds=0)
                self.session.add(stats)
                await self.session.flush()
            return stats
        except IntegrityError:
            result = await self.session.execute(stmt)
            return result.scalar_one()

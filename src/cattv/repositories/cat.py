"""Cat repository for CatTV backend."""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from cattv.models.cat import Cat


class CatRepository:
    """Repository for Cat media entries."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, cat_id: str) -> Cat | None:
        result = await self.session.execute(select(Cat).where(Cat.id == cat_id))  # type: ignore[arg-type]
        return result.scalar_one_or_none()

    async def get_for_update(self, cat_id: str) -> Cat | None:
        """Retrieve cat and lock its row until the transaction ends."""
        result = await self.session.execute(
            select(Cat)
            .where(Cat.id == cat_id)  # type: ignore[arg-type]
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def add(self, cat: Cat) -> Cat:
        self.session.add(cat)
        await self.session.flush()
        return cat

    async def list_recent(self, limit: int = 50) -> list[Cat]:
        """Retrieve the most recently created cats (newest first)."""
        result = await self.session.execute(
            select(Cat).order_by(Cat.created_at.desc()).limit(limit)  # type: ignore[attr-defined]
        )
        return list(result.scalars().all())

    async def list_last_fed_times(self) -> list:
        """Retrieve ``last_fed_at`` for every cat (for happiness aggregation)."""
        result = await self.session.execute(select(Cat.last_fed_at))  # type: ignore[arg-type]
        return list(result.scalars().all())

"""Purchase repository for CatTV backend."""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cattv.models.purchase import Purchase


class PurchaseRepository:
    """Repository for Purchase records keyed by checkout session id."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, purchase: Purchase) -> Purchase:
        self.session.add(purchase)
        await self.session.flush()
        return purchase

    async def add_if_absent(self, purchase: Purchase) -> Purchase:
        """Insert the purchase unless its session is already recorded.

        The webhook may record a session before checkout creation stores it.
        The insert runs inside a SAVEPOINT; on a duplicate key the existing
        row is returned instead.
        """
        existing = await self.get_for_update(purchase.session_id)
        if existing is not None:
            return existing

        try:
            async with self.session.begin_nested():
                self.session.add(purchase)
                await self.session.flush()
            return purchase
        except IntegrityError:
            existing = await self.get_for_update(purchase.session_id)
            if existing is None:
                raise
            return existing

    async def get_for_update(self, session_id: str) -> Purchase | None:
        """Retrieve and lock a purchase so concurrent webhook deliveries serialize."""
        result = await self.session.execute(
            select(Purchase)
            .where(Purchase.session_id == session_id)  # type: ignore[arg-type]
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

"""Unit of Work: one database transaction per ledger operation.

Every operation that touches balances or counters runs inside a single
``UnitOfWork`` so its writes commit together or not at all.
"""

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from cattv.repositories.cat import CatRepository
from cattv.repositories.feed_event import FeedEventRepository
from cattv.repositories.global_stats import GlobalStatsRepository
from cattv.repositories.purchase import PurchaseRepository
from cattv.repositories.user import UserRepository

logger = structlog.get_logger()


class UnitOfWork:
    """Transaction scope exposing one repository per table.

    Example:
        async with await uow_factory() as uow:
            user = await uow.users.get_for_update(user_id)
            cat = await uow.cats.get_for_update(cat_id)
            user.balance -= 10
            cat.record_feed(now)

    Leaving the block normally commits; an exception rolls back and propagates.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

        self.users = UserRepository(session)
        self.cats = CatRepository(session)
        self.feed_events = FeedEventRepository(session)
        self.global_stats = GlobalStatsRepository(session)
        self.purchases = PurchaseRepository(session)

    async def __aenter__(self) -> "UnitOfWork":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        try:
            if exc_type is None:
                await self.session.commit()
                logger.debug("transaction.committed")
            else:
                await self.session.rollback()
                logger.info("transaction.rolled_back", exc_type=exc_type.__name__)
        finally:
            # Release the connection whichever way the block ended
            await self.session.close()
        return False


def create_uow_factory(session_factory: async_sessionmaker[AsyncSession]):
    """Bind a session factory and return an async callable producing fresh UnitOfWorks.

    Example:
        uow_factory = create_uow_factory(setup_db_session(settings.database_url))
        async with await uow_factory() as uow:
            user, created = await uow.users.get_or_create(user_id)
    """

    async def _create_uow() -> UnitOfWork:
        return UnitOfWork(session_factory())

    return _create_uow

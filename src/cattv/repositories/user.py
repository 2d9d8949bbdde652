"""User repository for CatTV backend.

Provides data access methods for User ledger records, including row locking
for read-modify-write balance updates.
"""

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from cattv.models.user import User


class UserRepository:
    """Repository for User entities.

    Methods:
    - get_by_id: Retrieve user by identity-provider subject
    - get_for_update: Retrieve user and lock the row until transaction end
    - add: Persist new user
    - get_or_create: Idempotent lazy creation (safe under concurrent first access)
    - get_or_create_for_update: Lazy creation followed by a row lock
    """

    def __init__(self, session: AsyncSession):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy async session for database operations
        """
        self.session = session

    async def get_by_id(self, user_id: str) -> User | None:
        """Retrieve user by id.

        Args:
            user_id: Identity-provider subject

        Returns:
            User if found, None otherwise
        """
        result = await self.session.execute(select(User).where(User.id == user_id))  # type: ignore[arg-type]
        return result.scalar_one_or_none()

    async def get_for_update(self, user_id: str) -> User | None:
        """Retrieve user with SELECT ... FOR UPDATE.

        Concurrent claim/feed/purchase transactions on the same user are
        serialized on this row lock. ``populate_existing`` refreshes an instance
        already present in the identity map with the locked row's values.
        """
        result = await self.session.execute(
            select(User)
            .where(User.id == user_id)  # type: ignore[arg-type]
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def add(self, user: User) -> User:
        """Persist new user to database.

        Args:
            user: User entity to persist

        Returns:
            Persisted user
        """
        self.session.add(user)
        await self.session.flush()
        return user

    async def get_or_create(self, user_id: str) -> tuple[User, bool]:
        """Return the user, creating a zero-balance record if absent.

        The insert runs inside a SAVEPOINT: when a concurrent request created
        the same user first, the unique-key violation is rolled back to the
        savepoint and the existing row is returned instead.

        Returns:
            Tuple of (user, created)
        """
        existing = await self.get_by_id(user_id)
        if existing:
            return existing, False

        try:
            async with self.session.begin_nested():
                user = User(id=user_id)
                self.session.add(user)
                await self.session.flush()
            return user, True
        except IntegrityError:
            existing = await self.get_by_id(user_id)
            if existing is None:
                raise
            return existing, False

    async def get_or_create_for_update(self, user_id: str) -> User:
        """Lock the user row, creating a default record first when absent."""
        user = await self.get_for_update(user_id)
        if user is None:
            await self.get_or_create(user_id)
            user = await self.get_for_update(user_id)
        return user  # type: ignore[return-value]

"""pytest fixtures for CatTV backend tests.

Provides:
- utc_timezone: Autouse fixture enforcing UTC timezone
- engine: Function-scoped SQLite database (file under tmp_path) with all tables
- load: Primary-key lookup in a short-lived session
- uow_factory: Function-scoped UnitOfWork factory
- rules: Default game rules
- make_user / make_cat: Row builders
- fake_mirror / make_mirror: In-memory stand-in for the on-chain client
"""

import os

# Settings are loaded when cattv.app is imported; provide a test environment first
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ["APP_ENV"] = "test"
os.environ["TZ"] = "UTC"

import asyncio  # noqa: E402
from typing import AsyncGenerator  # noqa: E402

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from sqlalchemy import event  # noqa: E402
from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

from cattv import models  # noqa: E402, F401
from cattv.core.config import GameRules  # noqa: E402
from cattv.models.cat import Cat  # noqa: E402
from cattv.models.user import User  # noqa: E402
from cattv.uow import create_uow_factory  # noqa: E402

TEST_JWT_SECRET = "test-secret-key-with-at-least-32-bytes!!"


@pytest.fixture(scope="session", autouse=True)
def utc_timezone():
    """Enforce UTC timezone for all tests."""
    os.environ["TZ"] = "UTC"
    yield


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    """Provide a fresh SQLite database with every table created.

    SQLite has no row locks, so each transaction starts with BEGIN IMMEDIATE:
    concurrent writers serialize on the database lock the same way the
    Postgres row locks serialize them in production.
    """
    db_engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'cattv.db'}",
        poolclass=NullPool,
        connect_args={"timeout": 30},
    )

    @event.listens_for(db_engine.sync_engine, "connect")
    def _disable_pysqlite_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(db_engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with db_engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield db_engine

    await db_engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, expire_on_commit=False)


@pytest.fixture
def load(session_factory):
    """Read a row by primary key in a short-lived session.

    Every SQLite transaction takes the write lock, so assertions never keep a
    session open while services run.
    """

    async def _load(model, pk):
        async with session_factory() as s:
            return await s.get(model, pk)

    return _load


@pytest.fixture
def uow_factory(session_factory):
    """Provide function-scoped UnitOfWork factory."""
    return create_uow_factory(session_factory)


@pytest.fixture
def rules() -> GameRules:
    return GameRules()


@pytest.fixture
def make_user(session_factory):
    """Insert a user row and return it."""

    async def _make_user(user_id: str = "user-1", **fields) -> User:
        async with session_factory() as s:
            user = User(id=user_id, **fields)
            s.add(user)
            await s.commit()
            return user

    return _make_user


@pytest.fixture
def make_cat(session_factory):
    """Insert a cat row and return it."""

    async def _make_cat(name: str = "Mochi", created_by: str = "owner-1", **fields) -> Cat:
        fields.setdefault("media_url", "https://gateway.pinata.cloud/ipfs/bafymochi")
        async with session_factory() as s:
            cat = Cat(name=name, created_by=created_by, **fields)
            s.add(cat)
            await s.commit()
            return cat

    return _make_cat


class FakeChainMirror:
    """Records calls instead of talking to a node."""

    def __init__(self, claim_error: Exception | None = None, token_balance: int = 0):
        self.claim_error = claim_error
        self.balance = token_balance
        self.scheduled: list[str] = []
        self.claims: list[tuple[str, int]] = []
        self.decays: list[int] = []

    def schedule_feed(self, cat_id: str) -> None:
        self.scheduled.append(cat_id)

    async def claim_from_faucet(self, recipient: str, amount: int) -> str:
        await asyncio.sleep(0)
        if self.claim_error is not None:
            raise self.claim_error
        self.claims.append((recipient, amount))
        return "0x" + "ab" * 32

    async def token_balance(self, address: str) -> int:
        return self.balance

    async def process_decay_all(self, max_cats: int) -> str:
        self.decays.append(max_cats)
        return "0x" + "cd" * 32

    async def get_contract_stats(self) -> dict[str, str]:
        return {
            "faucetBalance": "900000",
            "careFundBalance": "1250.5",
            "totalFed": "4200",
            "totalDecayed": "1250.5",
            "trackedCats": "42",
        }

    async def drain(self, timeout: float = 10.0) -> None:
        return None


@pytest.fixture
def fake_mirror() -> FakeChainMirror:
    return FakeChainMirror()


@pytest.fixture
def make_mirror():
    """Build a FakeChainMirror with custom behavior."""
    return FakeChainMirror

import logging
from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlmodel import SQLModel

from src.config import settings

# Register tables on SQLModel.metadata
from src.pools import Pool, PoolDelegation  # noqa: F401
from src.rewards import History, Reward  # noqa: F401
from src.snapshots import Snapshot  # noqa: F401
from src.staking import Delegation, User  # noqa: F401


logger = logging.getLogger(__name__)

engine = create_async_engine(
    str(settings.DATABASE_URL),
    echo=settings.DEBUG,
    pool_pre_ping=True,
)

async_session = async_sessionmaker(
    bind=engine,
    expire_on_commit=False,
    autoflush=False,
    class_=AsyncSession,
)


async def init_db() -> None:
    """Create the users, delegations, snapshots, rewards and history tables."""
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    logger.info("Database initialized")


async def dispose_db() -> None:
    """Close pooled connections, e.g. before the event loop goes away."""
    await engine.dispose()


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped database session.

    Anything left uncommitted when the request fails is rolled back.
    """
    async with async_session() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise

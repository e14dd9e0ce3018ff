import os
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest


# Required settings must exist before the application modules load
os.environ.setdefault("API_AUTH_TOKEN", "test_api_key")
os.environ.setdefault("DB_USER", "test")
os.environ.setdefault("DB_PASSWORD", "test")
os.environ.setdefault("REDIS_PASSWORD", "test")
os.environ.setdefault("STAKING_TOKEN_ISSUER", "G" + "I" * 55)

from sqlalchemy.ext.asyncio import (  # noqa: E402
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool  # noqa: E402
from sqlmodel import SQLModel  # noqa: E402

from src.config import settings  # noqa: E402
from src.constants import DelegationStatus, RewardStatus  # noqa: E402
from src.main import app  # noqa: E402
from src.rewards.models import Reward  # noqa: E402
from src.staking.models import Delegation, User  # noqa: E402


# Override database URL for testing
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

ADDRESS_A = "GDKIJJIKXLOM2NRMPNQZUUYK24ZPVFC7426A44QE63BVIKVFAAWY52JR"
ADDRESS_B = "GBRPYHIL2CI3FNQ4BXLFMNDLFJUNPU2HY3ZMFSHONUCEOASW7QC7OX2H"
ADDRESS_C = "G" + "C" * 55
TX_HASH = "3389e9f0f1a65f19736cacf544c2e825313e8447f569233bb8db39aa607c8889"


@pytest.fixture
async def test_engine():
    """Create a test database engine with a fresh schema."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def test_session(test_engine):
    """Create a test database session."""
    async_session = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autocommit=False,
        autoflush=False,
    )

    session = async_session()
    try:
        yield session
    finally:
        await session.rollback()
        await session.close()


@pytest.fixture
def test_settings():
    """Settings with the defaults the reward math is specified against."""
    return settings.model_copy(
        update={
            "REWARD_RATE": Decimal("0.05"),
            "STAKING_TOKEN_CODE": "KALE",
            "SNAPSHOT_INTERVAL_CRON": "0 0 * * *",
            "LEDGER_MAX_CONCURRENCY": 5,
            "LEDGER_TIMEOUT": 1.0,
        }
    )


@pytest.fixture
def mock_ledger():
    """Mock HorizonClient returning the same balance for everyone."""
    ledger = MagicMock()
    ledger.get_token_balance = AsyncMock(return_value=Decimal("1000"))
    ledger.get_transaction = AsyncMock()
    ledger.get_asset_balance = AsyncMock(return_value=Decimal("1000000"))
    return ledger


@pytest.fixture
def mock_cache():
    """Mock RedisClient that always grants the run lock."""
    cache = MagicMock()
    cache.acquire_lock = AsyncMock(return_value="lock-token")
    cache.release_lock = AsyncMock(return_value=True)
    cache.get = AsyncMock(return_value=None)
    cache.set = AsyncMock(return_value=True)
    cache.delete = AsyncMock(return_value=1)
    cache.get_object = AsyncMock(return_value=None)
    cache.set_object = AsyncMock(return_value=True)
    return cache


@pytest.fixture
def create_user():
    """Create a User instance."""

    async def _create_user(test_session, stellar_address=ADDRESS_A):
        user = User(stellar_address=stellar_address)
        test_session.add(user)
        await test_session.commit()
        await test_session.refresh(user)
        return user

    return _create_user


@pytest.fixture
def create_delegation():
    """Create a Delegation instance."""

    async def _create_delegation(
        test_session,
        user,
        amount="1000",
        status=DelegationStatus.ACTIVE,
        tx_hash=TX_HASH,
    ):
        delegation = Delegation(
            user_id=user.id,
            amount=amount,
            status=status,
            tx_hash=tx_hash,
        )
        test_session.add(delegation)
        await test_session.commit()
        await test_session.refresh(delegation)
        return delegation

    return _create_delegation


@pytest.fixture
def create_reward():
    """Create a Reward instance."""

    async def _create_reward(
        test_session, user, amount="0.1369863", status=RewardStatus.PENDING
    ):
        reward = Reward(user_id=user.id, amount=amount, status=status)
        test_session.add(reward)
        await test_session.commit()
        await test_session.refresh(reward)
        return reward

    return _create_reward


@pytest.fixture
def client():
    """Create a test client with overridden dependencies."""
    from fastapi.testclient import TestClient

    # Services are mocked in API tests, no session needed
    async def override_get_session():
        yield None

    async def override_get_api_key():
        return "test_api_key"

    from src.api.dependencies import get_api_key
    from src.database import get_session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_api_key] = override_get_api_key

    test_client = TestClient(app)

    yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def mock_auth_header():
    """Mock authorization header."""
    return {"Authorization": "Bearer test_api_key"}

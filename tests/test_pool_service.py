import uuid
from datetime import timedelta
from decimal import Decimal

import pytest
from sqlalchemy import select

from src.exceptions import (
    AccountNotFoundError,
    ForbiddenError,
    InsufficientBalanceError,
    NotFoundError,
    PoolUnavailableError,
)
from src.pools.models import Pool, PoolDelegation
from src.pools.schemas import PoolCreateRequest
from src.pools.service import PoolService, pool_info
from src.utils import utcnow
from tests.conftest import ADDRESS_A, ADDRESS_B, ADDRESS_C


def _request(**overrides):
    values = {
        "pool_name": "KALE Boost",
        "token_symbol": "KALE",
        "total_rewards": Decimal("10000"),
        "max_apy": Decimal("12.5"),
        "distribution_days": 30,
        "description": "Thirty days of KALE",
        "owner_address": ADDRESS_A,
    }
    values.update(overrides)
    return PoolCreateRequest(**values)


@pytest.fixture
def pool_service(test_session, mock_ledger):
    return PoolService(test_session, ledger=mock_ledger)


class TestCreatePool:
    """Tests for pool creation."""

    @pytest.mark.asyncio
    async def test_create_pool(self, pool_service, mock_ledger):
        # Act
        result = await pool_service.create_pool(_request())

        # Assert
        pool = result.pool
        assert result.success is True
        assert result.message == "Pool created successfully"
        assert pool.total_rewards == "10000"
        assert pool.max_apy == "12.5"
        assert pool.daily_distribution == "333"
        assert pool.distributed_amount == "0"
        assert pool.is_active is True
        assert pool.end_time - pool.start_time == timedelta(days=30)
        assert pool.days_remaining == 30
        assert pool.progress == 0
        mock_ledger.get_asset_balance.assert_awaited_once_with(
            ADDRESS_A, "KALE"
        )

    @pytest.mark.asyncio
    async def test_create_pool_needs_full_reward_balance(
        self, pool_service, test_session, mock_ledger
    ):
        mock_ledger.get_asset_balance.return_value = Decimal("9999.9999999")

        with pytest.raises(InsufficientBalanceError) as exc_info:
            await pool_service.create_pool(_request())

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == (
            "Insufficient KALE balance. Required: 10000"
        )
        pools = (await test_session.execute(select(Pool))).scalars().all()
        assert pools == []

    @pytest.mark.asyncio
    async def test_create_pool_unknown_owner(self, pool_service, mock_ledger):
        mock_ledger.get_asset_balance.side_effect = AccountNotFoundError(
            ADDRESS_A
        )

        with pytest.raises(AccountNotFoundError):
            await pool_service.create_pool(_request())


class TestPoolQueries:
    """Tests for listing and reading pools."""

    @pytest.mark.asyncio
    async def test_active_and_owner_lists(self, pool_service):
        # Arrange
        first = (await pool_service.create_pool(_request())).pool
        second = (
            await pool_service.create_pool(_request(pool_name="Second"))
        ).pool
        other = (
            await pool_service.create_pool(
                _request(pool_name="Other", owner_address=ADDRESS_B)
            )
        ).pool
        await pool_service.toggle_status(first.id, ADDRESS_A)

        # Act
        active = await pool_service.list_active_pools()
        owned = await pool_service.list_owner_pools(ADDRESS_A)

        # Assert
        assert active.total == 2
        assert {pool.id for pool in active.pools} == {second.id, other.id}
        assert owned.total == 2
        assert {pool.id for pool in owned.pools} == {first.id, second.id}

    @pytest.mark.asyncio
    async def test_get_pool_with_delegations(self, pool_service):
        pool = (await pool_service.create_pool(_request())).pool
        await pool_service.delegate(pool.id, ADDRESS_B, Decimal("100.5"))
        await pool_service.delegate(pool.id, ADDRESS_C, Decimal("20"))

        result = await pool_service.get_pool(pool.id)

        assert result.pool.id == pool.id
        assert result.pool.total_delegated == "120.5"
        assert result.pool.total_delegators == 2
        assert {d.user_address for d in result.pool.delegations} == {
            ADDRESS_B,
            ADDRESS_C,
        }

    @pytest.mark.asyncio
    async def test_get_unknown_pool(self, pool_service):
        with pytest.raises(NotFoundError):
            await pool_service.get_pool(uuid.uuid4())

    def test_progress_and_days_remaining(self):
        now = utcnow()
        pool = Pool(
            pool_name="Half",
            token_symbol="KALE",
            total_rewards="1000",
            max_apy="5",
            distribution_days=10,
            daily_distribution="100",
            distributed_amount="250",
            owner_address=ADDRESS_A,
            start_time=now - timedelta(days=5),
            end_time=now + timedelta(days=4, hours=1),
        )

        info = pool_info(pool, now)

        assert info.progress == 25.0
        assert info.days_remaining == 5

    def test_expired_pool_has_no_days_remaining(self):
        now = utcnow()
        pool = Pool(
            pool_name="Done",
            token_symbol="KALE",
            total_rewards="1000",
            max_apy="5",
            distribution_days=1,
            daily_distribution="1000",
            distributed_amount="1200",
            owner_address=ADDRESS_A,
            start_time=now - timedelta(days=3),
            end_time=now - timedelta(days=2),
        )

        info = pool_info(pool, now)

        assert info.progress == 100.0
        assert info.days_remaining == 0


class TestPoolDelegation:
    """Tests for delegating to pools."""

    @pytest.mark.asyncio
    async def test_repeated_delegations_accumulate(
        self, pool_service, test_session, mock_ledger
    ):
        # Arrange
        pool = (await pool_service.create_pool(_request())).pool

        # Act
        first = await pool_service.delegate(pool.id, ADDRESS_B, Decimal("10"))
        second = await pool_service.delegate(
            pool.id, ADDRESS_B, Decimal("2.5")
        )

        # Assert
        assert first.delegation.amount == "10"
        assert second.delegation.amount == "12.5"
        assert second.delegation.id == first.delegation.id
        rows = (
            (await test_session.execute(select(PoolDelegation)))
            .scalars()
            .all()
        )
        assert len(rows) == 1
        assert rows[0].updated_at is not None
        mock_ledger.get_asset_balance.assert_awaited_with(ADDRESS_B, "KALE")

    @pytest.mark.asyncio
    async def test_delegate_needs_balance(self, pool_service, mock_ledger):
        pool = (await pool_service.create_pool(_request())).pool
        mock_ledger.get_asset_balance.return_value = Decimal("5")

        with pytest.raises(InsufficientBalanceError):
            await pool_service.delegate(pool.id, ADDRESS_B, Decimal("10"))

    @pytest.mark.asyncio
    async def test_delegate_to_inactive_pool(self, pool_service):
        pool = (await pool_service.create_pool(_request())).pool
        await pool_service.toggle_status(pool.id, ADDRESS_A)

        with pytest.raises(PoolUnavailableError) as exc_info:
            await pool_service.delegate(pool.id, ADDRESS_B, Decimal("10"))

        assert exc_info.value.detail == "Pool is not active"

    @pytest.mark.asyncio
    async def test_delegate_to_expired_pool(self, pool_service, test_session):
        created = (await pool_service.create_pool(_request())).pool
        pool = await test_session.get(Pool, created.id)
        pool.end_time = utcnow() - timedelta(seconds=1)
        await test_session.commit()

        with pytest.raises(PoolUnavailableError) as exc_info:
            await pool_service.delegate(pool.id, ADDRESS_B, Decimal("10"))

        assert exc_info.value.detail == "Pool has expired"

    @pytest.mark.asyncio
    async def test_user_delegations(self, pool_service):
        first = (await pool_service.create_pool(_request())).pool
        second = (
            await pool_service.create_pool(
                _request(pool_name="Lumens", token_symbol="XLM")
            )
        ).pool
        await pool_service.delegate(first.id, ADDRESS_B, Decimal("1"))
        await pool_service.delegate(second.id, ADDRESS_B, Decimal("2"))
        await pool_service.delegate(second.id, ADDRESS_C, Decimal("3"))

        result = await pool_service.get_user_delegations(ADDRESS_B)

        assert result.total == 2
        by_pool = {d.pool_id: d for d in result.delegations}
        assert by_pool[first.id].pool.name == "KALE Boost"
        assert by_pool[second.id].amount == "2"
        assert by_pool[second.id].pool.token_symbol == "XLM"


class TestToggleStatus:
    """Tests for activating and deactivating pools."""

    @pytest.mark.asyncio
    async def test_owner_toggles_status(self, pool_service):
        pool = (await pool_service.create_pool(_request())).pool

        off = await pool_service.toggle_status(pool.id, ADDRESS_A)
        on = await pool_service.toggle_status(pool.id, ADDRESS_A)

        assert off.pool.is_active is False
        assert off.message == "Pool deactivated successfully"
        assert on.pool.is_active is True
        assert on.message == "Pool activated successfully"

    @pytest.mark.asyncio
    async def test_only_owner_toggles_status(self, pool_service):
        pool = (await pool_service.create_pool(_request())).pool

        with pytest.raises(ForbiddenError) as exc_info:
            await pool_service.toggle_status(pool.id, ADDRESS_B)

        assert exc_info.value.status_code == 403
        detail = await pool_service.get_pool(pool.id)
        assert detail.pool.is_active is True

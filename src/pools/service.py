import logging
import math
import uuid
from datetime import datetime, timedelta
from decimal import ROUND_FLOOR, Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.exceptions import (
    ForbiddenError,
    InsufficientBalanceError,
    NotFoundError,
    PoolUnavailableError,
)
from src.ledger.client import HorizonClient, horizon_client
from src.pools.models import Pool, PoolDelegation
from src.pools.repository import PoolRepository
from src.pools.schemas import (
    PoolCreateRequest,
    PoolCreateResponse,
    PoolDelegateResponse,
    PoolDelegationInfo,
    PoolDetail,
    PoolInfo,
    PoolList,
    PoolResponse,
    PoolStatus,
    PoolStatusResponse,
    PoolSummary,
    UserPoolDelegation,
    UserPoolDelegationList,
)
from src.utils import sum_amounts, utcnow


logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60


def pool_info(pool: Pool, now: Optional[datetime] = None) -> PoolInfo:
    """Pool fields plus distribution progress and days left."""
    now = now or utcnow()
    total = Decimal(pool.total_rewards)
    distributed = Decimal(pool.distributed_amount)
    progress = min(distributed / total * 100, Decimal("100")) if total else 0
    remaining = (pool.end_time - now).total_seconds() / SECONDS_PER_DAY

    return PoolInfo(
        id=pool.id,
        pool_name=pool.pool_name,
        token_symbol=pool.token_symbol,
        total_rewards=pool.total_rewards,
        max_apy=pool.max_apy,
        distribution_days=pool.distribution_days,
        daily_distribution=pool.daily_distribution,
        distributed_amount=pool.distributed_amount,
        owner_address=pool.owner_address,
        is_active=pool.is_active,
        description=pool.description,
        created_at=pool.created_at,
        start_time=pool.start_time,
        end_time=pool.end_time,
        progress=round(float(progress), 2),
        days_remaining=max(0, math.ceil(remaining)),
    )


def _delegation_info(delegation: PoolDelegation) -> PoolDelegationInfo:
    return PoolDelegationInfo(
        id=delegation.id,
        pool_id=delegation.pool_id,
        user_address=delegation.user_address,
        amount=delegation.amount,
        timestamp=delegation.timestamp,
        last_claim=delegation.last_claim,
    )


class PoolService:
    """Service for reward pools and delegations to them."""

    def __init__(
        self,
        session: AsyncSession,
        ledger: HorizonClient = horizon_client,
    ):
        """Initialize service with a database session and ledger client."""
        self.session = session
        self.repository = PoolRepository(session)
        self.ledger = ledger

    async def _require_balance(
        self, address: str, token_symbol: str, required: Decimal
    ) -> None:
        balance = await self.ledger.get_asset_balance(address, token_symbol)
        if balance < required:
            raise InsufficientBalanceError(
                f"Insufficient {token_symbol} balance. "
                f"Required: {required:f}"
            )

    async def _get_pool(self, pool_id: uuid.UUID) -> Pool:
        pool = await self.repository.get_pool(pool_id)
        if not pool:
            raise NotFoundError("Pool not found")
        return pool

    async def create_pool(
        self, request: PoolCreateRequest
    ) -> PoolCreateResponse:
        """
        Create a pool after checking the owner can fund it.

        Args:
            request: Pool parameters

        Returns:
            PoolCreateResponse: Created pool
        """
        await self._require_balance(
            request.owner_address,
            request.token_symbol,
            request.total_rewards,
        )

        daily = (request.total_rewards / request.distribution_days).quantize(
            Decimal("1"), rounding=ROUND_FLOOR
        )
        start_time = utcnow()

        pool = await self.repository.save_pool(
            Pool(
                pool_name=request.pool_name,
                token_symbol=request.token_symbol,
                total_rewards=f"{request.total_rewards:f}",
                max_apy=f"{request.max_apy:f}",
                distribution_days=request.distribution_days,
                daily_distribution=f"{daily:f}",
                description=request.description,
                owner_address=request.owner_address,
                start_time=start_time,
                end_time=start_time
                + timedelta(days=request.distribution_days),
                created_at=start_time,
            )
        )

        logger.info(
            "Pool %s created by %s", pool.pool_name, pool.owner_address
        )
        return PoolCreateResponse(pool=pool_info(pool, start_time))

    async def list_active_pools(self) -> PoolList:
        pools = await self.repository.get_active_pools()
        now = utcnow()
        return PoolList(
            pools=[pool_info(pool, now) for pool in pools], total=len(pools)
        )

    async def list_owner_pools(self, owner_address: str) -> PoolList:
        pools = await self.repository.get_pools_by_owner(owner_address)
        now = utcnow()
        return PoolList(
            pools=[pool_info(pool, now) for pool in pools], total=len(pools)
        )

    async def get_pool(self, pool_id: uuid.UUID) -> PoolResponse:
        """Get a pool with its delegations and their total."""
        pool = await self._get_pool(pool_id)
        delegations = await self.repository.get_delegations(pool_id)
        total = sum_amounts([delegation.amount for delegation in delegations])

        return PoolResponse(
            pool=PoolDetail(
                **pool_info(pool).model_dump(),
                total_delegated=f"{total:f}",
                total_delegators=len(delegations),
                delegations=[_delegation_info(d) for d in delegations],
            )
        )

    async def delegate(
        self, pool_id: uuid.UUID, user_address: str, amount: Decimal
    ) -> PoolDelegateResponse:
        """
        Delegate tokens to an active pool.

        Repeated delegations by the same user add to one running total.

        Args:
            pool_id: Target pool
            user_address: Stellar address of the delegating user
            amount: Amount of the pool's token

        Returns:
            PoolDelegateResponse: The user's delegation to the pool
        """
        pool = await self._get_pool(pool_id)
        now = utcnow()

        if not pool.is_active:
            raise PoolUnavailableError("Pool is not active")
        if now > pool.end_time:
            raise PoolUnavailableError("Pool has expired")

        await self._require_balance(user_address, pool.token_symbol, amount)

        delegation = await self.repository.get_delegation(
            pool_id, user_address
        )
        if delegation:
            delegation.amount = f"{Decimal(delegation.amount) + amount:f}"
            delegation.updated_at = now
        else:
            delegation = PoolDelegation(
                pool_id=pool_id,
                user_address=user_address,
                amount=f"{amount:f}",
                timestamp=now,
                last_claim=now,
            )
        delegation = await self.repository.save_delegation(delegation)

        logger.info(
            "Delegated %s %s to pool %s from %s",
            amount,
            pool.token_symbol,
            pool_id,
            user_address,
        )
        return PoolDelegateResponse(delegation=_delegation_info(delegation))

    async def toggle_status(
        self, pool_id: uuid.UUID, owner_address: str
    ) -> PoolStatusResponse:
        """Activate or deactivate a pool. Only its owner may do this."""
        pool = await self._get_pool(pool_id)
        if pool.owner_address != owner_address:
            raise ForbiddenError("Only the pool owner can change its status")

        pool.is_active = not pool.is_active
        pool.updated_at = utcnow()
        pool = await self.repository.save_pool(pool)

        state = "activated" if pool.is_active else "deactivated"
        logger.info("Pool %s %s by %s", pool_id, state, owner_address)

        return PoolStatusResponse(
            message=f"Pool {state} successfully",
            pool=PoolStatus(id=pool.id, is_active=pool.is_active),
        )

    async def get_user_delegations(
        self, user_address: str
    ) -> UserPoolDelegationList:
        rows = await self.repository.get_user_delegations(user_address)
        delegations = [
            UserPoolDelegation(
                id=delegation.id,
                pool_id=delegation.pool_id,
                amount=delegation.amount,
                timestamp=delegation.timestamp,
                last_claim=delegation.last_claim,
                pool=PoolSummary(
                    id=pool.id,
                    name=pool.pool_name,
                    token_symbol=pool.token_symbol,
                    max_apy=pool.max_apy,
                    is_active=pool.is_active,
                    end_time=pool.end_time,
                ),
            )
            for delegation, pool in rows
        ]
        return UserPoolDelegationList(
            delegations=delegations, total=len(delegations)
        )


async def get_pool_service(session: AsyncSession) -> PoolService:
    """Get pool service bound to a database session."""
    return PoolService(session)

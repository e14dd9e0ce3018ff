import logging
import uuid
from typing import Optional

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.pools.models import Pool, PoolDelegation


logger = logging.getLogger(__name__)


class PoolRepository:
    """Repository for pools and pool delegations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def save_pool(self, pool: Pool) -> Pool:
        """Insert or update a pool and commit."""
        self.session.add(pool)
        await self.session.commit()
        await self.session.refresh(pool)
        return pool

    async def get_pool(self, pool_id: uuid.UUID) -> Optional[Pool]:
        return await self.session.get(Pool, pool_id)

    async def get_active_pools(self) -> list[Pool]:
        """Get active pools, newest first."""
        query = (
            select(Pool)
            .where(Pool.is_active == True)  # noqa: E712
            .order_by(desc(Pool.created_at))  # type: ignore[arg-type]
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_pools_by_owner(self, owner_address: str) -> list[Pool]:
        """Get every pool of an owner, newest first."""
        query = (
            select(Pool)
            .where(
                Pool.owner_address == owner_address  # type: ignore[arg-type]
            )
            .order_by(desc(Pool.created_at))  # type: ignore[arg-type]
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_delegations(
        self, pool_id: uuid.UUID
    ) -> list[PoolDelegation]:
        query = (
            select(PoolDelegation)
            .where(
                PoolDelegation.pool_id == pool_id  # type: ignore[arg-type]
            )
            .order_by(PoolDelegation.timestamp)  # type: ignore[arg-type]
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def get_delegation(
        self, pool_id: uuid.UUID, user_address: str
    ) -> Optional[PoolDelegation]:
        """Find a user's delegation to a pool."""
        query = select(PoolDelegation).where(
            PoolDelegation.pool_id == pool_id,  # type: ignore[arg-type]
            PoolDelegation.user_address == user_address,  # type: ignore[arg-type]
        )
        result = await self.session.execute(query)
        return result.scalars().first()

    async def save_delegation(
        self, delegation: PoolDelegation
    ) -> PoolDelegation:
        """Insert or update a pool delegation and commit."""
        self.session.add(delegation)
        await self.session.commit()
        await self.session.refresh(delegation)
        return delegation

    async def get_user_delegations(
        self, user_address: str
    ) -> list[tuple[PoolDelegation, Pool]]:
        """
        Get a user's pool delegations with their pools, newest first.

        Args:
            user_address: Stellar address of the user

        Returns:
            List of (delegation, pool) pairs
        """
        query = (
            select(PoolDelegation, Pool)
            .join(Pool, PoolDelegation.pool_id == Pool.id)  # type: ignore[arg-type]
            .where(
                PoolDelegation.user_address == user_address  # type: ignore[arg-type]
            )
            .order_by(desc(PoolDelegation.timestamp))  # type: ignore[arg-type]
        )
        result = await self.session.execute(query)
        return [(row[0], row[1]) for row in result.all()]

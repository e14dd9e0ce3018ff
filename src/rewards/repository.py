import logging
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from src.constants import RewardStatus
from src.rewards.models import History, Reward


logger = logging.getLogger(__name__)


class RewardRepository:
    """Repository for rewards and the history audit trail."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_rewards(
        self, user_id: uuid.UUID, status: str
    ) -> list[Reward]:
        """Get a user's rewards in the given status."""
        query = select(Reward).where(
            Reward.user_id == user_id,  # type: ignore[arg-type]
            Reward.status == status,  # type: ignore[arg-type]
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def mark_claimed(
        self,
        reward_ids: list[uuid.UUID],
        status: str,
        claimed_at: datetime,
        tx_hash: str,
    ) -> int:
        """
        Bulk-update pending rewards by ID. Does not commit.

        Returns:
            Number of rows updated
        """
        query = (
            update(Reward)
            .where(
                Reward.id.in_(reward_ids),  # type: ignore[union-attr]
                Reward.status == RewardStatus.PENDING,  # type: ignore[arg-type]
            )
            .values(status=status, claimed_at=claimed_at, tx_hash=tx_hash)
            .returning(Reward.id)
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(query)
        return len(result.all())

    def add_history(self, entry: History) -> None:
        """Stage a history entry. Does not commit."""
        self.session.add(entry)

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()

    async def get_history(
        self,
        user_id: uuid.UUID,
        entry_type: Optional[str] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> list[History]:
        """
        Get a user's history entries newest first.

        Args:
            user_id: Owner of the entries
            entry_type: Filter by type ("reward_claim" or "delegation")
            limit: Maximum number of records to return
            offset: Number of records to skip

        Returns:
            List[History]: History entries
        """
        query = (
            select(History)
            .where(History.user_id == user_id)  # type: ignore[arg-type]
            .order_by(desc(History.created_at))  # type: ignore[arg-type]
        )

        if entry_type:
            query = query.where(
                History.type == entry_type  # type: ignore[arg-type]
            )

        query = query.limit(limit).offset(offset)

        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count_history(
        self, user_id: uuid.UUID, entry_type: Optional[str] = None
    ) -> int:
        query = (
            select(func.count())
            .select_from(History)
            .where(History.user_id == user_id)  # type: ignore[arg-type]
        )
        if entry_type:
            query = query.where(
                History.type == entry_type  # type: ignore[arg-type]
            )
        result = await self.session.execute(query)
        return int(result.scalar_one())

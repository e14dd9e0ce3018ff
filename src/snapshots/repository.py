import logging
import uuid
from datetime import date, datetime
from typing import Optional

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.constants import DelegationStatus
from src.rewards.models import Reward
from src.snapshots.models import Snapshot
from src.staking.models import Delegation, User


logger = logging.getLogger(__name__)


class SnapshotRepository:
    """Repository for snapshot runs and the rewards they accrue."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_active_delegations(self) -> list[tuple[Delegation, str]]:
        """
        Get every active delegation with its owner's Stellar address.

        Returns:
            List of (delegation, stellar_address) pairs
        """
        query = (
            select(Delegation, User.stellar_address)
            .join(User, Delegation.user_id == User.id)  # type: ignore[arg-type]
            .where(
                Delegation.status == DelegationStatus.ACTIVE  # type: ignore[arg-type]
            )
            .order_by(Delegation.created_at)  # type: ignore[arg-type]
        )
        result = await self.session.execute(query)
        return [(row[0], row[1]) for row in result.all()]

    async def get_snapshotted_user_ids(
        self, snapshot_date: date
    ) -> set[uuid.UUID]:
        """Get the users that already have a snapshot for a day."""
        query = select(Snapshot.user_id).where(
            Snapshot.snapshot_date == snapshot_date  # type: ignore[arg-type]
        )
        result = await self.session.execute(query)
        return set(result.scalars().all())

    async def add_snapshots(self, snapshots: list[Snapshot]) -> None:
        """Stage a snapshot batch in one flush."""
        self.session.add_all(snapshots)
        await self.session.flush()

    async def add_rewards(self, rewards: list[Reward]) -> None:
        """Stage a reward batch in one flush."""
        self.session.add_all(rewards)
        await self.session.flush()

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()

    async def get_snapshot_history(
        self, limit: int = 10, offset: int = 0
    ) -> list[tuple[Snapshot, str]]:
        """
        Get snapshots newest first with their owner's Stellar address.

        Args:
            limit: Maximum number of records to return
            offset: Number of records to skip

        Returns:
            List of (snapshot, stellar_address) pairs
        """
        query = (
            select(Snapshot, User.stellar_address)
            .join(User, Snapshot.user_id == User.id)  # type: ignore[arg-type]
            .order_by(desc(Snapshot.created_at))  # type: ignore[arg-type]
            .limit(limit)
            .offset(offset)
        )
        result = await self.session.execute(query)
        return [(row[0], row[1]) for row in result.all()]

    async def count_snapshots(self) -> int:
        result = await self.session.execute(
            select(func.count()).select_from(Snapshot)
        )
        return int(result.scalar_one())

    async def get_last_snapshot_time(
        self, user_id: Optional[uuid.UUID] = None
    ) -> Optional[datetime]:
        """Get the time of the most recent snapshot, optionally per user."""
        query = select(func.max(Snapshot.created_at))
        if user_id is not None:
            query = query.where(
                Snapshot.user_id == user_id  # type: ignore[arg-type]
            )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

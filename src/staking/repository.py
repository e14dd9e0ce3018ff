import logging
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.constants import DelegationStatus, HistoryType
from src.rewards.models import History
from src.staking.models import Delegation, User


logger = logging.getLogger(__name__)


class StakingRepository:
    """Repository for users and delegations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_user_by_address(self, address: str) -> Optional[User]:
        """Find a user by Stellar address."""
        query = select(User).where(
            User.stellar_address == address  # type: ignore[arg-type]
        )
        result = await self.session.execute(query)
        return result.scalars().first()

    async def get_or_create_user(self, address: str) -> tuple[User, bool]:
        """
        Fetch the user for an address, registering it when unknown.

        Returns:
            Tuple of the user and whether it was created
        """
        user = await self.get_user_by_address(address)
        if user:
            return user, False

        user = User(stellar_address=address)
        self.session.add(user)
        await self.session.commit()
        await self.session.refresh(user)

        logger.info("Registered user %s", address)
        return user, True

    async def create_delegation(
        self, user: User, amount: Decimal, tx_hash: str
    ) -> Delegation:
        """
        Record an active delegation and its history entry.

        Args:
            user: Delegating user
            amount: Delegated amount
            tx_hash: Authorizing Stellar transaction

        Returns:
            Delegation: Created delegation record
        """
        delegation = Delegation(
            user_id=user.id,
            amount=f"{amount:f}",
            tx_hash=tx_hash,
            status=DelegationStatus.ACTIVE,
        )
        self.session.add(delegation)
        self.session.add(
            History(
                user_id=user.id,
                type=HistoryType.DELEGATION,
                amount=delegation.amount,
                tx_hash=tx_hash,
            )
        )
        await self.session.commit()
        await self.session.refresh(delegation)

        logger.info(
            "Created delegation for user=%s, amount=%s",
            user.stellar_address,
            delegation.amount,
        )

        return delegation

    async def get_active_delegations(
        self, user_id: uuid.UUID
    ) -> list[Delegation]:
        """Get a user's active delegations."""
        query = select(Delegation).where(
            Delegation.user_id == user_id,  # type: ignore[arg-type]
            Delegation.status == DelegationStatus.ACTIVE,  # type: ignore[arg-type]
        )
        result = await self.session.execute(query)
        return list(result.scalars().all())

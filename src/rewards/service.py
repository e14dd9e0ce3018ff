import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.config import Settings, settings
from src.constants import HistoryType, RewardStatus
from src.exceptions import NothingToClaimError, NotFoundError
from src.rewards.models import History
from src.rewards.repository import RewardRepository
from src.rewards.schemas import (
    ClaimResult,
    HistoryEntry,
    HistoryPage,
    PendingRewards,
)
from src.snapshots.schemas import Pagination
from src.staking.models import User
from src.staking.repository import StakingRepository
from src.utils import generate_tx_reference, paginate, sum_amounts, utcnow


logger = logging.getLogger(__name__)


class RewardService:
    """Service for pending rewards, claims and user history."""

    def __init__(self, session: AsyncSession, config: Settings = settings):
        """Initialize service with a database session."""
        self.session = session
        self.repository = RewardRepository(session)
        self.staking_repository = StakingRepository(session)
        self.config = config

    async def _get_user(self, address: str) -> User:
        user = await self.staking_repository.get_user_by_address(address)
        if not user:
            raise NotFoundError(f"User not found: {address}")
        return user

    async def get_pending_rewards(self, address: str) -> PendingRewards:
        """
        Summarize a user's pending and already claimed rewards.

        Args:
            address: Stellar address of the user

        Returns:
            PendingRewards: Totals with fiat estimates
        """
        user = await self._get_user(address)

        pending = await self.repository.get_rewards(
            user.id, RewardStatus.PENDING
        )
        claimed = await self.repository.get_rewards(
            user.id, RewardStatus.CLAIMED
        )

        total_pending = sum_amounts([reward.amount for reward in pending])
        total_earned = sum_amounts([reward.amount for reward in claimed])
        price_brl = self.config.TOKEN_PRICE_BRL
        price_usd = self.config.TOKEN_PRICE_USD

        return PendingRewards(
            pending_rewards=f"{total_pending:f}",
            total_earned=f"{total_earned:f}",
            pending_rewards_count=len(pending),
            token_code=self.config.STAKING_TOKEN_CODE,
            token_price_brl=f"{price_brl:f}",
            token_price_usd=f"{price_usd:f}",
            pending_rewards_brl=_to_fiat(total_pending * price_brl),
            pending_rewards_usd=_to_fiat(total_pending * price_usd),
        )

    async def claim(self, address: str) -> ClaimResult:
        """
        Claim every pending reward of a user in one bulk update.

        The status change and the history entry are committed together.

        Args:
            address: Stellar address of the claiming user

        Returns:
            ClaimResult: Claimed amount and transaction reference
        """
        user = await self._get_user(address)

        pending = await self.repository.get_rewards(
            user.id, RewardStatus.PENDING
        )
        total = sum_amounts([reward.amount for reward in pending])

        if total <= 0:
            raise NothingToClaimError()

        tx_hash = generate_tx_reference()
        claimed_at = utcnow()

        try:
            updated = await self.repository.mark_claimed(
                [reward.id for reward in pending],
                status=RewardStatus.CLAIMED,
                claimed_at=claimed_at,
                tx_hash=tx_hash,
            )
            if updated != len(pending):
                # Another claim took some of these rows first
                raise NothingToClaimError(
                    "Pending rewards changed during the claim, retry"
                )
            self.repository.add_history(
                History(
                    user_id=user.id,
                    type=HistoryType.REWARD_CLAIM,
                    amount=f"{total:f}",
                    tx_hash=tx_hash,
                    created_at=claimed_at,
                )
            )
            await self.repository.commit()
        except Exception:
            await self.repository.rollback()
            raise

        logger.info(
            "User %s claimed %s %s from %s rewards (tx=%s)",
            address,
            total,
            self.config.STAKING_TOKEN_CODE,
            updated,
            tx_hash,
        )

        return ClaimResult(
            amount=f"{total:f}",
            token_code=self.config.STAKING_TOKEN_CODE,
            tx_hash=tx_hash,
        )

    async def get_history(
        self,
        address: str,
        entry_type: Optional[str] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> HistoryPage:
        """Get a page of a user's history entries, newest first."""
        user = await self._get_user(address)

        entries = await self.repository.get_history(
            user.id, entry_type=entry_type, limit=limit, offset=offset
        )
        total = await self.repository.count_history(user.id, entry_type)

        transactions = [
            HistoryEntry.model_validate(entry, from_attributes=True)
            for entry in entries
        ]
        envelope = paginate(transactions, total, limit, offset)

        return HistoryPage(
            transactions=transactions,
            total_pages=envelope["total_pages"],
            total_items=envelope["total_items"],
            pagination=Pagination(**envelope["pagination"]),
        )


def _to_fiat(value: Decimal) -> str:
    return f"{value.quantize(Decimal('0.01')):f}"


async def get_reward_service(session: AsyncSession) -> RewardService:
    """Get reward service bound to a database session."""
    return RewardService(session)

import logging
from decimal import Decimal

from sqlalchemy.ext.asyncio import AsyncSession

from src.config import Settings, settings
from src.constants import DelegationStatus
from src.exceptions import InvalidTransactionError, NotFoundError
from src.ledger.client import HorizonClient, horizon_client
from src.snapshots.repository import SnapshotRepository
from src.snapshots.scheduler import next_run_after
from src.staking.repository import StakingRepository
from src.staking.schemas import (
    DelegateResponse,
    DelegationInfo,
    StakingStatus,
    TokenBalance,
    UserInfo,
)
from src.utils import sum_amounts


logger = logging.getLogger(__name__)


class StakingService:
    """Service for users, balances and delegations."""

    def __init__(
        self,
        session: AsyncSession,
        ledger: HorizonClient = horizon_client,
        config: Settings = settings,
    ):
        """Initialize service with a database session and ledger client."""
        self.session = session
        self.repository = StakingRepository(session)
        self.snapshot_repository = SnapshotRepository(session)
        self.ledger = ledger
        self.config = config

    async def register_user(self, address: str) -> UserInfo:
        """Register a Stellar account, returning the existing one if known."""
        user, created = await self.repository.get_or_create_user(address)
        return UserInfo(
            id=user.id,
            stellar_address=user.stellar_address,
            created_at=user.created_at,
            created=created,
        )

    async def get_balance(self, address: str) -> TokenBalance:
        """
        Get the staking token balance of an account from Horizon.

        Args:
            address: Stellar public key

        Returns:
            TokenBalance: Balance of the configured token
        """
        balance = await self.ledger.get_token_balance(address)
        return TokenBalance(
            stellar_address=address,
            token_code=self.config.STAKING_TOKEN_CODE,
            balance=f"{balance:f}",
        )

    async def delegate(
        self, address: str, amount: Decimal, tx_hash: str
    ) -> DelegateResponse:
        """
        Register a delegation backed by a Stellar transaction.

        Args:
            address: Stellar address of the delegating user
            amount: Amount to delegate
            tx_hash: Hash of the authorizing transaction

        Returns:
            DelegateResponse: Created delegation
        """
        transaction = await self.ledger.get_transaction(tx_hash)
        if transaction is None or not transaction.successful:
            raise InvalidTransactionError(
                f"Transaction not found or failed: {tx_hash}"
            )

        user = await self.repository.get_user_by_address(address)
        if not user:
            raise NotFoundError(f"User not found: {address}")

        delegation = await self.repository.create_delegation(
            user, amount, tx_hash
        )

        return DelegateResponse(
            delegation=DelegationInfo(
                id=delegation.id,
                amount=delegation.amount,
                status=delegation.status,
                created_at=delegation.created_at,
            )
        )

    async def get_status(self, address: str) -> StakingStatus:
        """Summarize a user's active delegations and snapshot timing."""
        user = await self.repository.get_user_by_address(address)
        if not user:
            raise NotFoundError(f"User not found: {address}")

        delegations = await self.repository.get_active_delegations(user.id)
        total = sum_amounts([delegation.amount for delegation in delegations])
        last_snapshot = await self.snapshot_repository.get_last_snapshot_time(
            user.id
        )

        return StakingStatus(
            status=(
                DelegationStatus.ACTIVE
                if delegations
                else DelegationStatus.INACTIVE
            ),
            total_delegated=f"{total:f}",
            delegations_count=len(delegations),
            last_snapshot=last_snapshot,
            next_snapshot=next_run_after(self.config.SNAPSHOT_INTERVAL_CRON),
            current_apy=f"{self.config.REWARD_RATE:f}",
        )


async def get_staking_service(session: AsyncSession) -> StakingService:
    """Get staking service bound to a database session."""
    return StakingService(session)

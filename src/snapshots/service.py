import asyncio
import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional, Union

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from src.cache.redis import RedisClient, redis_client
from src.config import Settings, settings
from src.constants import DAYS_PER_YEAR, CacheKeys, RewardStatus, SkipReason
from src.exceptions import (
    AccountNotFoundError,
    SnapshotError,
    SnapshotInProgressError,
)
from src.ledger.client import HorizonClient, horizon_client
from src.rewards.models import Reward
from src.snapshots.models import Snapshot
from src.snapshots.repository import SnapshotRepository
from src.snapshots.scheduler import describe_interval, next_run_after
from src.snapshots.schemas import (
    DelegationTotal,
    LatestSnapshotInfo,
    Pagination,
    RewardCalculationResult,
    SkippedUser,
    SnapshotHistoryPage,
    SnapshotRecord,
    SnapshotRunResult,
)
from src.staking.models import Delegation
from src.utils import paginate, to_ledger_amount, utcnow


logger = logging.getLogger(__name__)


def group_delegations(
    rows: list[tuple[Delegation, str]],
) -> dict[uuid.UUID, DelegationTotal]:
    """Sum active delegations per user, keeping first-seen order."""
    totals: dict[uuid.UUID, DelegationTotal] = {}

    for delegation, stellar_address in rows:
        total = totals.get(delegation.user_id)
        if total is None:
            total = DelegationTotal(
                user_id=delegation.user_id,
                stellar_address=stellar_address,
            )
            totals[delegation.user_id] = total

        total.delegated_amount += Decimal(delegation.amount)
        total.delegations_count += 1

    return totals


class RewardCalculator:
    """Derives pending rewards from a freshly written snapshot batch."""

    def __init__(self, repository: SnapshotRepository, annual_rate: Decimal):
        self.repository = repository
        self.annual_rate = annual_rate
        self.daily_rate = annual_rate / DAYS_PER_YEAR

    def compute_reward(self, delegated_amount: Decimal) -> Decimal:
        """Daily reward for a delegated amount, at ledger precision."""
        return to_ledger_amount(delegated_amount * self.daily_rate)

    async def calculate_rewards(
        self, snapshots: list[Snapshot], snapshot_date: datetime
    ) -> RewardCalculationResult:
        """
        Create one pending reward per snapshot with a positive reward.

        Args:
            snapshots: Snapshot batch of the current run
            snapshot_date: Run timestamp shared by the batch

        Returns:
            RewardCalculationResult: Number of rewards created
        """
        logger.info(
            "Calculating rewards for %s snapshots at daily rate %s",
            len(snapshots),
            self.daily_rate,
        )

        rewards = []
        for snapshot in snapshots:
            amount = self.compute_reward(Decimal(snapshot.delegated_amount))
            if amount <= 0:
                continue

            rewards.append(
                Reward(
                    user_id=snapshot.user_id,
                    amount=f"{amount:f}",
                    snapshot_id=snapshot.id,
                    status=RewardStatus.PENDING,
                    created_at=snapshot_date,
                )
            )

        if not rewards:
            logger.info("No rewards calculated")
            return RewardCalculationResult(rewards_count=0)

        await self.repository.add_rewards(rewards)
        logger.info("%s rewards calculated", len(rewards))

        return RewardCalculationResult(rewards_count=len(rewards))


class SnapshotService:
    """Service for snapshot runs and snapshot queries."""

    def __init__(
        self,
        session: AsyncSession,
        ledger: HorizonClient = horizon_client,
        cache: RedisClient = redis_client,
        config: Settings = settings,
    ):
        """Initialize service with its collaborators."""
        self.session = session
        self.repository = SnapshotRepository(session)
        self.ledger = ledger
        self.cache = cache
        self.config = config
        self.reward_calculator = RewardCalculator(
            self.repository, config.REWARD_RATE
        )

    async def take_snapshot(self) -> SnapshotRunResult:
        """
        Snapshot every user with an active delegation and accrue rewards.

        Only one run may hold the run lock at a time. Users whose ledger
        lookup fails are skipped and reported, the rest of the run goes on.

        Returns:
            SnapshotRunResult: Counts, run timestamp and skipped users
        """
        token = await self.cache.acquire_lock(
            CacheKeys.SNAPSHOT_LOCK, self.config.SNAPSHOT_LOCK_TTL
        )
        if token is None:
            raise SnapshotInProgressError()

        try:
            result = await self._run()
        finally:
            await self.cache.release_lock(CacheKeys.SNAPSHOT_LOCK, token)

        await self.cache.delete(CacheKeys.LATEST_SNAPSHOT, retry=False)
        return result

    async def _run(self) -> SnapshotRunResult:
        snapshot_date = utcnow()
        logger.info("Starting snapshot run at %s", snapshot_date)

        rows = await self.repository.get_active_delegations()
        logger.info("Found %s active delegations", len(rows))

        totals = group_delegations(rows)
        done = await self.repository.get_snapshotted_user_ids(
            snapshot_date.date()
        )

        skipped: list[SkippedUser] = []
        pending: list[DelegationTotal] = []
        for total in totals.values():
            if total.user_id in done:
                skipped.append(
                    SkippedUser(
                        user_id=total.user_id,
                        stellar_address=total.stellar_address,
                        reason=SkipReason.ALREADY_SNAPSHOTTED,
                    )
                )
            else:
                pending.append(total)

        semaphore = asyncio.Semaphore(self.config.LEDGER_MAX_CONCURRENCY)
        balances = await asyncio.gather(
            *(self._fetch_balance(total, semaphore) for total in pending)
        )

        snapshots = []
        for total, balance in zip(pending, balances):
            if isinstance(balance, SkippedUser):
                skipped.append(balance)
                continue

            snapshots.append(
                Snapshot(
                    user_id=total.user_id,
                    delegated_amount=f"{total.delegated_amount:f}",
                    actual_balance=f"{balance:f}",
                    snapshot_date=snapshot_date.date(),
                    created_at=snapshot_date,
                )
            )

        if not snapshots:
            logger.info("No snapshots created")
            return SnapshotRunResult(
                snapshot_count=0,
                snapshot_date=snapshot_date,
                skipped=skipped,
            )

        try:
            await self.repository.add_snapshots(snapshots)
            rewards = await self.reward_calculator.calculate_rewards(
                snapshots, snapshot_date
            )
            await self.repository.commit()
        except IntegrityError as e:
            await self.repository.rollback()
            raise SnapshotError(
                f"Snapshots for {snapshot_date.date()} were already written"
            ) from e
        except Exception:
            await self.repository.rollback()
            raise

        logger.info(
            "Snapshot run finished: %s snapshots, %s rewards, %s skipped",
            len(snapshots),
            rewards.rewards_count,
            len(skipped),
        )

        return SnapshotRunResult(
            snapshot_count=len(snapshots),
            snapshot_date=snapshot_date,
            rewards_count=rewards.rewards_count,
            skipped=skipped,
        )

    async def _fetch_balance(
        self, total: DelegationTotal, semaphore: asyncio.Semaphore
    ) -> Union[Decimal, SkippedUser]:
        """Look up one user's token balance, turning failures into skips."""
        async with semaphore:
            try:
                return await asyncio.wait_for(
                    self.ledger.get_token_balance(total.stellar_address),
                    timeout=self.config.LEDGER_TIMEOUT,
                )
            except AccountNotFoundError as e:
                reason, detail = SkipReason.ACCOUNT_NOT_FOUND, e.detail
            except asyncio.TimeoutError:
                reason, detail = SkipReason.LEDGER_ERROR, "Horizon timed out"
            except Exception as e:  # pylint: disable=broad-exception-caught
                reason = SkipReason.LEDGER_ERROR
                detail = str(getattr(e, "detail", e))

        logger.warning(
            "Skipping %s in snapshot run: %s (%s)",
            total.stellar_address,
            reason,
            detail,
        )
        return SkippedUser(
            user_id=total.user_id,
            stellar_address=total.stellar_address,
            reason=reason,
            detail=detail,
        )

    async def get_snapshot_history(
        self, limit: int = 10, offset: int = 0
    ) -> SnapshotHistoryPage:
        """Get a page of snapshots, newest first."""
        rows = await self.repository.get_snapshot_history(limit, offset)
        total = await self.repository.count_snapshots()

        records = [
            SnapshotRecord(
                id=snapshot.id,
                user_id=snapshot.user_id,
                stellar_address=stellar_address,
                delegated_amount=snapshot.delegated_amount,
                actual_balance=snapshot.actual_balance,
                snapshot_date=snapshot.snapshot_date,
                created_at=snapshot.created_at,
            )
            for snapshot, stellar_address in rows
        ]
        envelope = paginate(records, total, limit, offset)

        return SnapshotHistoryPage(
            snapshots=records,
            total_pages=envelope["total_pages"],
            total_items=envelope["total_items"],
            pagination=Pagination(**envelope["pagination"]),
        )

    async def get_latest_snapshot(
        self, now: Optional[datetime] = None
    ) -> LatestSnapshotInfo:
        """Get the last run time and the next scheduled run."""
        cached = await self.cache.get_object(
            CacheKeys.LATEST_SNAPSHOT, LatestSnapshotInfo
        )
        current = now or utcnow()
        if isinstance(cached, LatestSnapshotInfo) and (
            cached.next_snapshot > current
        ):
            return cached

        info = LatestSnapshotInfo(
            last_snapshot=await self.repository.get_last_snapshot_time(),
            next_snapshot=next_run_after(
                self.config.SNAPSHOT_INTERVAL_CRON, current
            ),
            snapshot_interval=describe_interval(
                self.config.SNAPSHOT_INTERVAL_CRON
            ),
        )
        await self.cache.set_object(CacheKeys.LATEST_SNAPSHOT, info)

        return info


# Factory function to create service with session
async def get_snapshot_service(session: AsyncSession) -> SnapshotService:
    """Get snapshot service bound to a database session."""
    return SnapshotService(session)

import uuid
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class SkippedUser(BaseModel):
    """A user left out of a snapshot run."""

    user_id: uuid.UUID
    stellar_address: str
    reason: str
    detail: Optional[str] = None


class DelegationTotal(BaseModel):
    """Sum of one user's active delegations."""

    user_id: uuid.UUID
    stellar_address: str
    delegated_amount: Decimal = Decimal("0")
    delegations_count: int = 0


class RewardCalculationResult(BaseModel):
    rewards_count: int = 0


class SnapshotRunResult(BaseModel):
    """Outcome of one snapshot run."""

    snapshot_count: int
    snapshot_date: datetime
    rewards_count: int = 0
    skipped: list[SkippedUser] = Field(default_factory=list)


class SnapshotExecuteResponse(SnapshotRunResult):
    success: bool = True
    message: str = "Snapshot executed successfully"


class SnapshotRecord(BaseModel):
    """Snapshot row joined with its owner's address."""

    id: uuid.UUID
    user_id: uuid.UUID
    stellar_address: str
    delegated_amount: str
    actual_balance: str
    snapshot_date: date
    created_at: datetime


class Pagination(BaseModel):
    total: int
    limit: int
    offset: int
    has_more: bool


class SnapshotHistoryPage(BaseModel):
    snapshots: list[SnapshotRecord]
    total_pages: int
    total_items: int
    pagination: Pagination


class LatestSnapshotInfo(BaseModel):
    last_snapshot: Optional[datetime] = None
    next_snapshot: datetime
    snapshot_interval: str

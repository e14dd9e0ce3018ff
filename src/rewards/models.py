import uuid
from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from src.constants import RewardStatus
from src.utils import utcnow


class Reward(SQLModel, table=True):
    """Reward accrued from one snapshot."""

    __tablename__ = "rewards"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    amount: str  # 7-decimal string
    snapshot_id: Optional[uuid.UUID] = Field(
        default=None, foreign_key="snapshots.id", unique=True
    )
    status: str = Field(default=RewardStatus.PENDING, index=True)
    created_at: datetime = Field(default_factory=utcnow)
    claimed_at: Optional[datetime] = Field(default=None)
    tx_hash: Optional[str] = Field(default=None, index=True)


class History(SQLModel, table=True):
    """Append-only audit trail of user operations."""

    __tablename__ = "history"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    type: str = Field(index=True)  # "reward_claim" or "delegation"
    amount: str
    tx_hash: Optional[str] = Field(default=None)
    created_at: datetime = Field(default_factory=utcnow, index=True)

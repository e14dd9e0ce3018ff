import uuid
from datetime import date, datetime

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from src.utils import utcnow


class Snapshot(SQLModel, table=True):
    """Point-in-time delegated amount and on-chain balance of a user."""

    __tablename__ = "snapshots"
    __table_args__ = (
        UniqueConstraint(
            "user_id", "snapshot_date", name="uq_snapshots_user_day"
        ),
    )

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    delegated_amount: str  # decimal string
    actual_balance: str  # decimal string
    snapshot_date: date = Field(index=True)
    created_at: datetime = Field(default_factory=utcnow, index=True)

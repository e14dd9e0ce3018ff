import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from src.utils import utcnow


class Pool(SQLModel, table=True):
    """A reward pool distributing its owner's tokens over a fixed period."""

    __tablename__ = "pools"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )
    pool_name: str = Field(max_length=100)
    token_symbol: str = Field(index=True, max_length=12)
    total_rewards: str  # decimal string
    max_apy: str  # percent, decimal string
    distribution_days: int
    daily_distribution: str  # decimal string
    distributed_amount: str = "0"
    description: Optional[str] = Field(default=None, max_length=500)
    owner_address: str = Field(index=True, max_length=56)
    is_active: bool = Field(default=True, index=True)
    start_time: datetime
    end_time: datetime
    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: Optional[datetime] = Field(default=None)


class PoolDelegation(SQLModel, table=True):
    """Running total a user has delegated to one pool."""

    __tablename__ = "pool_delegations"
    __table_args__ = (
        UniqueConstraint(
            "pool_id", "user_address", name="uq_pool_delegations_pool_user"
        ),
    )

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )
    pool_id: uuid.UUID = Field(foreign_key="pools.id", index=True)
    user_address: str = Field(index=True, max_length=56)
    amount: str  # decimal string
    timestamp: datetime = Field(default_factory=utcnow, index=True)
    last_claim: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = Field(default=None)

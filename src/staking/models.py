import uuid
from datetime import datetime

from sqlmodel import Field, SQLModel

from src.constants import DelegationStatus
from src.utils import utcnow


class User(SQLModel, table=True):
    """A Stellar account known to the application."""

    __tablename__ = "users"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )
    stellar_address: str = Field(index=True, unique=True, max_length=56)
    created_at: datetime = Field(default_factory=utcnow)


class Delegation(SQLModel, table=True):
    """Tokens a user has committed to staking. Rows are never deleted."""

    __tablename__ = "delegations"

    id: uuid.UUID = Field(
        default_factory=uuid.uuid4,
        primary_key=True,
        index=True,
    )
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    amount: str  # decimal string
    tx_hash: str = Field(index=True)
    status: str = Field(default=DelegationStatus.ACTIVE, index=True)
    created_at: datetime = Field(default_factory=utcnow)

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from src.constants import STELLAR_ADDRESS_PATTERN


class RegisterUserRequest(BaseModel):
    """Request model for registering a Stellar account."""

    stellar_address: str = Field(
        ...,
        pattern=STELLAR_ADDRESS_PATTERN,
        description="Stellar public key",
    )


class UserInfo(BaseModel):
    id: uuid.UUID
    stellar_address: str
    created_at: datetime
    created: bool = False


class DelegateRequest(BaseModel):
    """Request model for registering a delegation."""

    stellar_address: str = Field(
        ...,
        pattern=STELLAR_ADDRESS_PATTERN,
        description="Stellar public key of the delegating user",
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        max_digits=20,
        decimal_places=7,
        description="Amount of tokens to delegate",
    )
    tx_hash: str = Field(
        ...,
        pattern=r"^[a-fA-F0-9]{64}$",
        description="Hash of the authorizing Stellar transaction",
    )


class DelegationInfo(BaseModel):
    id: uuid.UUID
    amount: str
    status: str
    created_at: datetime


class DelegateResponse(BaseModel):
    message: str = "Delegation registered successfully"
    delegation: DelegationInfo


class TokenBalance(BaseModel):
    stellar_address: str
    token_code: str
    balance: str


class StakingStatus(BaseModel):
    """Delegation summary for a user."""

    status: str
    total_delegated: str
    delegations_count: int
    last_snapshot: Optional[datetime] = None
    next_snapshot: datetime
    current_apy: str

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from src.constants import (
    POOL_MAX_APY,
    POOL_MAX_DISTRIBUTION_DAYS,
    POOL_MAX_TOTAL_REWARDS,
    POOL_MIN_APY,
    POOL_MIN_TOTAL_REWARDS,
    STELLAR_ADDRESS_PATTERN,
)


class PoolCreateRequest(BaseModel):
    """Request model for creating a reward pool."""

    pool_name: str = Field(..., min_length=1, max_length=100)
    token_symbol: str = Field(
        ...,
        pattern=r"^[A-Za-z0-9]{1,12}$",
        description="Asset code distributed by the pool, XLM for native",
    )
    total_rewards: Decimal = Field(
        ...,
        ge=POOL_MIN_TOTAL_REWARDS,
        le=POOL_MAX_TOTAL_REWARDS,
        decimal_places=7,
        description="Tokens distributed over the whole period",
    )
    max_apy: Decimal = Field(
        ...,
        ge=POOL_MIN_APY,
        le=POOL_MAX_APY,
        description="Maximum APY in percent",
    )
    distribution_days: int = Field(
        ..., ge=1, le=POOL_MAX_DISTRIBUTION_DAYS
    )
    description: Optional[str] = Field(None, max_length=500)
    owner_address: str = Field(
        ...,
        pattern=STELLAR_ADDRESS_PATTERN,
        description="Stellar public key funding the pool",
    )


class PoolInfo(BaseModel):
    """Pool with its distribution progress."""

    id: uuid.UUID
    pool_name: str
    token_symbol: str
    total_rewards: str
    max_apy: str
    distribution_days: int
    daily_distribution: str
    distributed_amount: str
    owner_address: str
    is_active: bool
    description: Optional[str] = None
    created_at: datetime
    start_time: datetime
    end_time: datetime
    progress: float
    days_remaining: int


class PoolDelegationInfo(BaseModel):
    id: uuid.UUID
    pool_id: uuid.UUID
    user_address: str
    amount: str
    timestamp: datetime
    last_claim: datetime


class PoolDetail(PoolInfo):
    total_delegated: str
    total_delegators: int
    delegations: list[PoolDelegationInfo]


class PoolCreateResponse(BaseModel):
    success: bool = True
    message: str = "Pool created successfully"
    pool: PoolInfo


class PoolList(BaseModel):
    success: bool = True
    pools: list[PoolInfo]
    total: int


class PoolResponse(BaseModel):
    success: bool = True
    pool: PoolDetail


class PoolDelegateRequest(BaseModel):
    """Request model for delegating tokens to a pool."""

    user_address: str = Field(
        ...,
        pattern=STELLAR_ADDRESS_PATTERN,
        description="Stellar public key of the delegating user",
    )
    amount: Decimal = Field(
        ...,
        gt=0,
        max_digits=20,
        decimal_places=7,
        description="Amount of pool tokens to delegate",
    )


class PoolDelegateResponse(BaseModel):
    success: bool = True
    message: str = "Delegation registered successfully"
    delegation: PoolDelegationInfo


class PoolStatusRequest(BaseModel):
    owner_address: str = Field(..., pattern=STELLAR_ADDRESS_PATTERN)


class PoolStatus(BaseModel):
    id: uuid.UUID
    is_active: bool


class PoolStatusResponse(BaseModel):
    success: bool = True
    message: str
    pool: PoolStatus


class PoolSummary(BaseModel):
    """Pool fields shown next to a user's delegation."""

    id: uuid.UUID
    name: str
    token_symbol: str
    max_apy: str
    is_active: bool
    end_time: datetime


class UserPoolDelegation(BaseModel):
    id: uuid.UUID
    pool_id: uuid.UUID
    amount: str
    timestamp: datetime
    last_claim: datetime
    pool: PoolSummary


class UserPoolDelegationList(BaseModel):
    success: bool = True
    delegations: list[UserPoolDelegation]
    total: int

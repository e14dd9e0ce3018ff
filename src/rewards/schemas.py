import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from src.constants import STELLAR_ADDRESS_PATTERN
from src.snapshots.schemas import Pagination


class ClaimRequest(BaseModel):
    """Request model for claiming pending rewards."""

    stellar_address: str = Field(
        ...,
        pattern=STELLAR_ADDRESS_PATTERN,
        description="Stellar public key of the claiming user",
    )


class ClaimResult(BaseModel):
    success: bool = True
    message: str = "Rewards claimed successfully"
    amount: str
    token_code: str
    tx_hash: str


class PendingRewards(BaseModel):
    """Pending and claimed reward totals for a user."""

    pending_rewards: str
    total_earned: str
    pending_rewards_count: int
    token_code: str
    token_price_brl: str
    token_price_usd: str
    pending_rewards_brl: str
    pending_rewards_usd: str


class HistoryEntry(BaseModel):
    id: uuid.UUID
    type: str
    amount: str
    tx_hash: Optional[str] = None
    created_at: datetime


class HistoryPage(BaseModel):
    transactions: list[HistoryEntry]
    total_pages: int
    total_items: int
    pagination: Pagination

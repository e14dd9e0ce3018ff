from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from src.constants import NATIVE_ASSET_CODE


class AssetBalance(BaseModel):
    """One entry of a Horizon account's `balances` list."""

    asset_type: str
    balance: Decimal
    asset_code: Optional[str] = None
    asset_issuer: Optional[str] = None

    def matches(self, code: str, issuer: Optional[str]) -> bool:
        """Check whether this balance is for the given issued asset."""
        return (
            self.asset_type != "native"
            and self.asset_code == code
            and self.asset_issuer == issuer
        )

    def has_code(self, code: str) -> bool:
        """Match an asset code from any issuer. "XLM" means native."""
        if self.asset_type == "native":
            return code == NATIVE_ASSET_CODE
        return self.asset_code == code


class LedgerTransaction(BaseModel):
    """Subset of a Horizon transaction record."""

    hash: str
    successful: bool = True
    source_account: Optional[str] = None
    ledger: Optional[int] = None
    created_at: Optional[str] = None

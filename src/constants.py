"""
Global constants for the application.
"""

from decimal import Decimal


STELLAR_ADDRESS_PATTERN = r"^G[A-Z2-7]{55}$"

# Stellar tokens carry 7 decimal places
LEDGER_PRECISION = Decimal("0.0000001")

DAYS_PER_YEAR = 365

NATIVE_ASSET_CODE = "XLM"

# Pool creation limits
POOL_MIN_TOTAL_REWARDS = Decimal("1000")
POOL_MAX_TOTAL_REWARDS = Decimal("1000000000")
POOL_MIN_APY = Decimal("0.1")
POOL_MAX_APY = Decimal("100")
POOL_MAX_DISTRIBUTION_DAYS = 365


class CacheKeys:
    """
    Cache key prefixes
    """

    SNAPSHOT_LOCK = "snapshots:run_lock"
    LATEST_SNAPSHOT = "snapshots:latest"


class DelegationStatus:
    ACTIVE = "active"
    INACTIVE = "inactive"


class RewardStatus:
    PENDING = "pending"
    CLAIMED = "claimed"


class HistoryType:
    REWARD_CLAIM = "reward_claim"
    DELEGATION = "delegation"


class SkipReason:
    """
    Reasons a user is left out of a snapshot run
    """

    ALREADY_SNAPSHOTTED = "already_snapshotted"
    ACCOUNT_NOT_FOUND = "account_not_found"
    LEDGER_ERROR = "ledger_error"


class ErrorCode:
    """
    Error codes
    """

    AUTHENTICATION_ERROR = "authentication_error"
    LEDGER_ERROR = "ledger_error"
    NOT_FOUND = "not_found"
    NOTHING_TO_CLAIM = "nothing_to_claim"
    INVALID_TRANSACTION = "invalid_transaction"
    SNAPSHOT_IN_PROGRESS = "snapshot_in_progress"
    SNAPSHOT_ERROR = "snapshot_error"
    FORBIDDEN = "forbidden"
    POOL_UNAVAILABLE = "pool_unavailable"
    INSUFFICIENT_BALANCE = "insufficient_balance"

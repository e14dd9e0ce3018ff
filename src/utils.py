import logging
import math
import time
import uuid
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional

from src.constants import LEDGER_PRECISION


logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    """Current UTC time as a naive datetime, the way columns store it."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_ledger_amount(value: Decimal) -> Decimal:
    """Round an amount to the ledger's 7 decimal places."""
    return value.quantize(LEDGER_PRECISION, rounding=ROUND_HALF_UP)


def sum_amounts(amounts: list[str]) -> Decimal:
    """Sum decimal-string amounts."""
    return sum((Decimal(amount) for amount in amounts), Decimal("0"))


def generate_tx_reference(prefix: str = "claim") -> str:
    """Generate a unique transaction reference for off-chain operations."""
    return f"{prefix}-{int(time.time() * 1000)}-{uuid.uuid4().hex[:12]}"


def paginate(
    items: list[Any], total: int, limit: int, offset: int
) -> dict[str, Any]:
    """Build the pagination envelope shared by list endpoints."""
    return {
        "total_pages": math.ceil(total / limit) if limit else 0,
        "total_items": total,
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + len(items) < total,
        },
    }


def format_error_response(
    message: str,
    details: Optional[str] = None,
) -> dict[str, Any]:
    """Format a failed-operation response body."""
    response: dict[str, Any] = {
        "success": False,
        "error": message,
    }

    if details:
        response["details"] = details

    return response

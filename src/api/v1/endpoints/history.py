import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import STELLAR_ADDRESS_PATH
from src.database import get_session
from src.exceptions import CustomException, internal_error
from src.rewards.schemas import HistoryPage
from src.rewards.service import get_reward_service


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/{address}",
    response_model=HistoryPage,
    status_code=status.HTTP_200_OK,
    summary="Get transaction history",
    description="History of a user's claims and delegations, newest first.",
)
async def get_history(
    address: str = STELLAR_ADDRESS_PATH,
    entry_type: Optional[str] = Query(
        None,
        alias="type",
        pattern="^(reward_claim|delegation)$",
        description="Filter by entry type",
    ),
    limit: int = Query(
        10, gt=0, le=100, description="Maximum records to return"
    ),
    offset: int = Query(0, ge=0, description="Number of records to skip"),
    session: AsyncSession = Depends(get_session),
) -> HistoryPage:
    """
    Get a user's history.

    Args:
        address: Stellar address of the user
        entry_type: Filter by entry type
        limit: Maximum number of records to return
        offset: Number of records to skip
        session: Database session

    Returns:
        HistoryPage: Page of history entries
    """
    try:
        service = await get_reward_service(session)
        return await service.get_history(
            address, entry_type=entry_type, limit=limit, offset=offset
        )
    except CustomException:
        raise
    except Exception as e:
        logger.exception("Failed to get history: %s", e)
        raise internal_error(e) from e

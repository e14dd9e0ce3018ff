import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import STELLAR_ADDRESS_PATH
from src.database import get_session
from src.exceptions import CustomException, internal_error
from src.rewards.schemas import ClaimRequest, ClaimResult, PendingRewards
from src.rewards.service import get_reward_service


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/pending/{address}",
    response_model=PendingRewards,
    status_code=status.HTTP_200_OK,
    summary="Get pending rewards",
    description=(
        "Total of the user's pending rewards, total already claimed and "
        "estimated fiat value."
    ),
)
async def get_pending_rewards(
    address: str = STELLAR_ADDRESS_PATH,
    session: AsyncSession = Depends(get_session),
) -> PendingRewards:
    """
    Get pending rewards of a user.

    Args:
        address: Stellar address of the user
        session: Database session

    Returns:
        PendingRewards: Reward totals
    """
    try:
        service = await get_reward_service(session)
        return await service.get_pending_rewards(address)
    except CustomException:
        raise
    except Exception as e:
        logger.exception("Failed to get pending rewards: %s", e)
        raise internal_error(e) from e


@router.post(
    "/claim",
    response_model=ClaimResult,
    status_code=status.HTTP_200_OK,
    summary="Claim pending rewards",
    description=(
        "Mark every pending reward of the user as claimed and record "
        "the claim in the user's history."
    ),
)
async def claim_rewards(
    request: ClaimRequest,
    session: AsyncSession = Depends(get_session),
) -> ClaimResult:
    """
    Claim all pending rewards of a user.

    Args:
        request: Claim request parameters
        session: Database session

    Returns:
        ClaimResult: Claimed amount and transaction reference
    """
    try:
        service = await get_reward_service(session)
        return await service.claim(request.stellar_address)
    except CustomException:
        raise
    except Exception as e:
        logger.exception("Failed to claim rewards: %s", e)
        raise internal_error(e) from e

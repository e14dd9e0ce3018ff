import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import STELLAR_ADDRESS_PATH
from src.database import get_session
from src.exceptions import CustomException, internal_error
from src.staking.schemas import (
    DelegateRequest,
    DelegateResponse,
    StakingStatus,
    TokenBalance,
)
from src.staking.service import get_staking_service


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/balance/{address}",
    response_model=TokenBalance,
    status_code=status.HTTP_200_OK,
    summary="Get token balance",
    description="Staking token balance of a Stellar account, from Horizon.",
)
async def get_balance(
    address: str = STELLAR_ADDRESS_PATH,
    session: AsyncSession = Depends(get_session),
) -> TokenBalance:
    try:
        service = await get_staking_service(session)
        return await service.get_balance(address)
    except CustomException:
        raise
    except Exception as e:
        logger.exception("Failed to get balance: %s", e)
        raise internal_error(e) from e


@router.post(
    "/delegate",
    response_model=DelegateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Register a delegation",
    description=(
        "Register a delegation of staking tokens. The referenced "
        "transaction must exist on the Stellar network."
    ),
)
async def delegate(
    request: DelegateRequest,
    session: AsyncSession = Depends(get_session),
) -> DelegateResponse:
    """
    Register a delegation.

    Args:
        request: Delegation request parameters
        session: Database session

    Returns:
        DelegateResponse: Created delegation
    """
    try:
        service = await get_staking_service(session)
        return await service.delegate(
            address=request.stellar_address,
            amount=request.amount,
            tx_hash=request.tx_hash,
        )
    except CustomException:
        raise
    except Exception as e:
        logger.exception("Failed to register delegation: %s", e)
        raise internal_error(e) from e


@router.get(
    "/status/{address}",
    response_model=StakingStatus,
    status_code=status.HTTP_200_OK,
    summary="Get staking status",
    description=(
        "Active delegations total, last snapshot of the user and the "
        "next scheduled snapshot."
    ),
)
async def get_status(
    address: str = STELLAR_ADDRESS_PATH,
    session: AsyncSession = Depends(get_session),
) -> StakingStatus:
    try:
        service = await get_staking_service(session)
        return await service.get_status(address)
    except CustomException:
        raise
    except Exception as e:
        logger.exception("Failed to get staking status: %s", e)
        raise internal_error(e) from e

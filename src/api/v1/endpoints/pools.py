import logging
import uuid

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import STELLAR_ADDRESS_PATH
from src.database import get_session
from src.exceptions import CustomException, internal_error
from src.pools.schemas import (
    PoolCreateRequest,
    PoolCreateResponse,
    PoolDelegateRequest,
    PoolDelegateResponse,
    PoolList,
    PoolResponse,
    PoolStatusRequest,
    PoolStatusResponse,
    UserPoolDelegationList,
)
from src.pools.service import get_pool_service


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/create",
    response_model=PoolCreateResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a reward pool",
    description=(
        "Create a pool distributing the owner's tokens over a number of "
        "days. The owner must hold the full reward amount."
    ),
)
async def create_pool(
    request: PoolCreateRequest,
    session: AsyncSession = Depends(get_session),
) -> PoolCreateResponse:
    """
    Create a reward pool.

    Args:
        request: Pool parameters
        session: Database session

    Returns:
        PoolCreateResponse: Created pool
    """
    try:
        service = await get_pool_service(session)
        return await service.create_pool(request)
    except CustomException:
        raise
    except Exception as e:
        logger.exception("Failed to create pool: %s", e)
        raise internal_error(e) from e


@router.get(
    "/active",
    response_model=PoolList,
    status_code=status.HTTP_200_OK,
    summary="List active pools",
)
async def list_active_pools(
    session: AsyncSession = Depends(get_session),
) -> PoolList:
    try:
        service = await get_pool_service(session)
        return await service.list_active_pools()
    except CustomException:
        raise
    except Exception as e:
        logger.exception("Failed to list active pools: %s", e)
        raise internal_error(e) from e


@router.get(
    "/owner/{address}",
    response_model=PoolList,
    status_code=status.HTTP_200_OK,
    summary="List pools of an owner",
    description="Every pool created by an address, active or not.",
)
async def list_owner_pools(
    address: str = STELLAR_ADDRESS_PATH,
    session: AsyncSession = Depends(get_session),
) -> PoolList:
    try:
        service = await get_pool_service(session)
        return await service.list_owner_pools(address)
    except CustomException:
        raise
    except Exception as e:
        logger.exception("Failed to list owner pools: %s", e)
        raise internal_error(e) from e


@router.get(
    "/user/{address}/delegations",
    response_model=UserPoolDelegationList,
    status_code=status.HTTP_200_OK,
    summary="List a user's pool delegations",
)
async def get_user_delegations(
    address: str = STELLAR_ADDRESS_PATH,
    session: AsyncSession = Depends(get_session),
) -> UserPoolDelegationList:
    try:
        service = await get_pool_service(session)
        return await service.get_user_delegations(address)
    except CustomException:
        raise
    except Exception as e:
        logger.exception("Failed to get pool delegations: %s", e)
        raise internal_error(e) from e


@router.get(
    "/{pool_id}",
    response_model=PoolResponse,
    status_code=status.HTTP_200_OK,
    summary="Get pool details",
    description="A pool with its delegations and the delegated total.",
)
async def get_pool(
    pool_id: uuid.UUID,
    session: AsyncSession = Depends(get_session),
) -> PoolResponse:
    try:
        service = await get_pool_service(session)
        return await service.get_pool(pool_id)
    except CustomException:
        raise
    except Exception as e:
        logger.exception("Failed to get pool: %s", e)
        raise internal_error(e) from e


@router.post(
    "/{pool_id}/delegate",
    response_model=PoolDelegateResponse,
    status_code=status.HTTP_200_OK,
    summary="Delegate to a pool",
    description=(
        "Delegate tokens to an active, unexpired pool. Repeated "
        "delegations add to the user's existing amount."
    ),
)
async def delegate_to_pool(
    pool_id: uuid.UUID,
    request: PoolDelegateRequest,
    session: AsyncSession = Depends(get_session),
) -> PoolDelegateResponse:
    try:
        service = await get_pool_service(session)
        return await service.delegate(
            pool_id,
            user_address=request.user_address,
            amount=request.amount,
        )
    except CustomException:
        raise
    except Exception as e:
        logger.exception("Failed to delegate to pool: %s", e)
        raise internal_error(e) from e


@router.post(
    "/{pool_id}/toggle-status",
    response_model=PoolStatusResponse,
    status_code=status.HTTP_200_OK,
    summary="Activate or deactivate a pool",
    description="Only the pool owner may change its status.",
)
async def toggle_pool_status(
    pool_id: uuid.UUID,
    request: PoolStatusRequest,
    session: AsyncSession = Depends(get_session),
) -> PoolStatusResponse:
    try:
        service = await get_pool_service(session)
        return await service.toggle_status(pool_id, request.owner_address)
    except CustomException:
        raise
    except Exception as e:
        logger.exception("Failed to toggle pool status: %s", e)
        raise internal_error(e) from e

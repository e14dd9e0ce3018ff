import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.database import get_session
from src.exceptions import CustomException, internal_error
from src.staking.schemas import RegisterUserRequest, UserInfo
from src.staking.service import get_staking_service


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "",
    response_model=UserInfo,
    status_code=status.HTTP_200_OK,
    summary="Register a user",
    description=(
        "Register a Stellar account. Registering a known account returns "
        "the existing user."
    ),
)
async def register_user(
    request: RegisterUserRequest,
    session: AsyncSession = Depends(get_session),
) -> UserInfo:
    try:
        service = await get_staking_service(session)
        return await service.register_user(request.stellar_address)
    except CustomException:
        raise
    except Exception as e:
        logger.exception("Failed to register user: %s", e)
        raise internal_error(e) from e

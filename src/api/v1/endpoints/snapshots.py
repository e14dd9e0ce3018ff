import logging

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from src.api.dependencies import get_api_key
from src.config import settings
from src.database import get_session
from src.exceptions import (
    CustomException,
    SnapshotInProgressError,
    internal_error,
)
from src.snapshots.schemas import (
    LatestSnapshotInfo,
    SnapshotExecuteResponse,
    SnapshotHistoryPage,
)
from src.snapshots.service import get_snapshot_service
from src.utils import format_error_response


logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/execute",
    response_model=SnapshotExecuteResponse,
    status_code=status.HTTP_200_OK,
    summary="Run a snapshot now",
    description=(
        "Snapshot every user with an active delegation and accrue their "
        "daily rewards. Runs synchronously and returns the run result."
    ),
)
async def execute_snapshot(
    _: str = Depends(get_api_key),
    session: AsyncSession = Depends(get_session),
):
    """
    Execute a manual snapshot run.

    Args:
        _: API key (from dependency)
        session: Database session

    Returns:
        SnapshotExecuteResponse: Result of the run
    """
    logger.info("Executing manual snapshot")
    try:
        service = await get_snapshot_service(session)
        result = await service.take_snapshot()
    except SnapshotInProgressError:
        raise
    except Exception as e:  # pylint: disable=broad-exception-caught
        logger.exception("Manual snapshot failed: %s", e)
        if isinstance(e, CustomException):
            details = e.detail
        else:
            details = str(e) if settings.DEBUG else None
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=format_error_response(
                "Failed to execute snapshot", details=details
            ),
        )

    return SnapshotExecuteResponse(**result.model_dump())


@router.get(
    "/history",
    response_model=SnapshotHistoryPage,
    status_code=status.HTTP_200_OK,
    summary="Get snapshot history",
    description="List snapshots newest first with the owner's address.",
)
async def get_snapshot_history(
    limit: int = Query(
        10, gt=0, le=100, description="Maximum records to return"
    ),
    offset: int = Query(0, ge=0, description="Number of records to skip"),
    _: str = Depends(get_api_key),
    session: AsyncSession = Depends(get_session),
) -> SnapshotHistoryPage:
    try:
        service = await get_snapshot_service(session)
        return await service.get_snapshot_history(limit=limit, offset=offset)
    except CustomException:
        raise
    except Exception as e:
        logger.exception("Failed to get snapshot history: %s", e)
        raise internal_error(e) from e


@router.get(
    "/latest",
    response_model=LatestSnapshotInfo,
    status_code=status.HTTP_200_OK,
    summary="Get latest snapshot info",
    description="Time of the last snapshot and of the next scheduled one.",
)
async def get_latest_snapshot(
    session: AsyncSession = Depends(get_session),
) -> LatestSnapshotInfo:
    try:
        service = await get_snapshot_service(session)
        return await service.get_latest_snapshot()
    except CustomException:
        raise
    except Exception as e:
        logger.exception("Failed to get latest snapshot: %s", e)
        raise internal_error(e) from e

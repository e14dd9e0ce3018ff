import asyncio
import logging
import uuid
from typing import Any

from celery import shared_task

from src.cache.redis import RedisClient
from src.database import async_session, dispose_db
from src.exceptions import SnapshotInProgressError
from src.snapshots.schemas import SnapshotRunResult
from src.snapshots.service import SnapshotService


logger = logging.getLogger(__name__)


async def execute_snapshot_run() -> SnapshotRunResult:
    """Run the snapshot pipeline with connections owned by this loop."""
    cache = RedisClient()
    try:
        async with async_session() as session:
            service = SnapshotService(session, cache=cache)
            return await service.take_snapshot()
    finally:
        await cache.disconnect()
        await dispose_db()


@shared_task(bind=True, name="run_snapshot_pipeline", max_retries=0)
def run_snapshot_pipeline(self) -> dict[str, Any]:
    """
    Scheduled snapshot and reward accrual.

    A failed run is logged and not retried; the next scheduled run
    proceeds on its own.

    Returns:
        dict: Result of the run
    """
    task_id = self.request.id or str(uuid.uuid4())
    logger.info("Starting scheduled snapshot (task_id=%s)", task_id)

    try:
        result = asyncio.run(execute_snapshot_run())
    except SnapshotInProgressError:
        logger.warning(
            "Scheduled snapshot skipped, another run is in progress "
            "(task_id=%s)",
            task_id,
        )
        return {
            "task_id": task_id,
            "status": "skipped",
            "message": "Another snapshot run is in progress",
            "success": False,
        }
    except Exception as e:  # pylint: disable=broad-exception-caught
        logger.exception(
            "Scheduled snapshot failed (task_id=%s): %s", task_id, e
        )
        return {
            "task_id": task_id,
            "status": "failed",
            "message": f"Error: {e}",
            "success": False,
        }

    logger.info(
        "Scheduled snapshot completed: %s snapshots, %s rewards "
        "(task_id=%s)",
        result.snapshot_count,
        result.rewards_count,
        task_id,
    )

    return {
        "task_id": task_id,
        "status": "completed",
        "success": True,
        **result.model_dump(mode="json"),
    }

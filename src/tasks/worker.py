import logging

from celery import Celery

from src.config import settings
from src.snapshots.scheduler import parse_cron, warn_if_subdaily


logger = logging.getLogger(__name__)

redis_url = str(settings.REDIS_URL)

logger.info(
    "Configuring Celery with Redis at %s:%s",
    settings.REDIS_HOST,
    settings.REDIS_PORT,
)

celery_app = Celery(
    "stake_house",
    broker=redis_url,
    backend=redis_url,
    include=["src.tasks.snapshot_tasks"],
)

celery_app.conf.update(
    broker_transport="redis",
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=60 * 30,  # 30 minutes
    worker_hijack_root_logger=False,
    broker_connection_retry=True,
    broker_connection_retry_on_startup=True,
    broker_connection_max_retries=10,
    broker_transport_options={
        "visibility_timeout": 3600,  # 1 hour
    },
    beat_schedule={
        "snapshot-and-accrue-rewards": {
            "task": "run_snapshot_pipeline",
            "schedule": parse_cron(settings.SNAPSHOT_INTERVAL_CRON),
        },
    },
)

warn_if_subdaily(settings.SNAPSHOT_INTERVAL_CRON)

from datetime import datetime
from unittest.mock import AsyncMock, patch

from src.exceptions import SnapshotInProgressError
from src.snapshots.schemas import SnapshotRunResult
from src.tasks.snapshot_tasks import run_snapshot_pipeline
from src.tasks.worker import celery_app


class TestSnapshotTasks:
    """Tests for the scheduled snapshot task."""

    def test_beat_schedule_uses_configured_cron(self):
        entry = celery_app.conf.beat_schedule["snapshot-and-accrue-rewards"]

        assert entry["task"] == "run_snapshot_pipeline"
        assert entry["schedule"].minute == {0}
        assert entry["schedule"].hour == {0}

    def test_completed_run(self):
        result = SnapshotRunResult(
            snapshot_count=3,
            snapshot_date=datetime(2024, 3, 10, 0, 0),
            rewards_count=3,
        )

        with patch(
            "src.tasks.snapshot_tasks.execute_snapshot_run",
            AsyncMock(return_value=result),
        ):
            outcome = run_snapshot_pipeline()

        assert outcome["status"] == "completed"
        assert outcome["success"] is True
        assert outcome["snapshot_count"] == 3
        assert outcome["snapshot_date"] == "2024-03-10T00:00:00"

    def test_run_skipped_while_locked(self):
        with patch(
            "src.tasks.snapshot_tasks.execute_snapshot_run",
            AsyncMock(side_effect=SnapshotInProgressError()),
        ):
            outcome = run_snapshot_pipeline()

        assert outcome["status"] == "skipped"
        assert outcome["success"] is False

    def test_failed_run_is_reported_not_raised(self):
        with patch(
            "src.tasks.snapshot_tasks.execute_snapshot_run",
            AsyncMock(side_effect=RuntimeError("horizon down")),
        ):
            outcome = run_snapshot_pipeline()

        assert outcome["status"] == "failed"
        assert "horizon down" in outcome["message"]

import uuid
from datetime import datetime
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from src.constants import RewardStatus
from src.snapshots.models import Snapshot
from src.snapshots.service import RewardCalculator


def _snapshot(delegated_amount: str) -> Snapshot:
    return Snapshot(
        user_id=uuid.uuid4(),
        delegated_amount=delegated_amount,
        actual_balance=delegated_amount,
        snapshot_date=datetime(2024, 3, 10).date(),
    )


class TestRewardCalculator:
    """Tests for the daily reward formula."""

    def test_daily_rate_is_annual_rate_over_365(self):
        calculator = RewardCalculator(MagicMock(), Decimal("0.05"))

        assert calculator.daily_rate == Decimal("0.05") / 365

    @pytest.mark.parametrize(
        "delegated, expected",
        [
            ("1000", Decimal("0.1369863")),
            ("800", Decimal("0.1095890")),
            ("365", Decimal("0.0500000")),
            ("0", Decimal("0")),
            ("0.0001", Decimal("0")),
        ],
    )
    def test_compute_reward(self, delegated, expected):
        calculator = RewardCalculator(MagicMock(), Decimal("0.05"))

        assert calculator.compute_reward(Decimal(delegated)) == expected

    def test_repeated_accrual_has_no_float_drift(self):
        """365 daily accruals of a 365 delegation sum to exactly 18.25."""
        calculator = RewardCalculator(MagicMock(), Decimal("0.05"))

        total = sum(
            (calculator.compute_reward(Decimal("365")) for _ in range(365)),
            Decimal("0"),
        )

        assert total == Decimal("18.25")

    @pytest.mark.asyncio
    async def test_calculate_rewards_skips_non_positive(self):
        """Only snapshots with a positive reward produce a pending row."""
        # Arrange
        repository = MagicMock()
        repository.add_rewards = AsyncMock()
        calculator = RewardCalculator(repository, Decimal("0.05"))
        snapshots = [_snapshot("1000"), _snapshot("0"), _snapshot("500")]
        snapshot_date = datetime(2024, 3, 10, 0, 0)

        # Act
        result = await calculator.calculate_rewards(snapshots, snapshot_date)

        # Assert
        assert result.rewards_count == 2
        repository.add_rewards.assert_awaited_once()
        rewards = repository.add_rewards.call_args.args[0]
        assert [reward.amount for reward in rewards] == [
            "0.1369863",
            "0.0684932",
        ]
        assert all(r.status == RewardStatus.PENDING for r in rewards)
        assert all(r.created_at == snapshot_date for r in rewards)
        assert [r.snapshot_id for r in rewards] == [
            snapshots[0].id,
            snapshots[2].id,
        ]

    @pytest.mark.asyncio
    async def test_calculate_rewards_without_survivors_writes_nothing(self):
        repository = MagicMock()
        repository.add_rewards = AsyncMock()
        calculator = RewardCalculator(repository, Decimal("0.05"))

        result = await calculator.calculate_rewards(
            [_snapshot("0")], datetime(2024, 3, 10)
        )

        assert result.rewards_count == 0
        repository.add_rewards.assert_not_called()

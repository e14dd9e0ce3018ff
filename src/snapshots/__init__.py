"""
Snapshot module: daily snapshots of delegations and reward accrual.
"""

from src.snapshots.models import Snapshot

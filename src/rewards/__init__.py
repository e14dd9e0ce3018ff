"""
Rewards module: pending rewards, claims and the history audit trail.
"""

from src.rewards.models import History, Reward

"""
Staking module: users and their delegations.
"""

from src.staking.models import Delegation, User

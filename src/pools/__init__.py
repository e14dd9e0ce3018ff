"""
Pools module: reward pools funded by their owners and the delegations
users make to them.
"""

from src.pools.models import Pool, PoolDelegation

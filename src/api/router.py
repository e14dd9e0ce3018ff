from fastapi import APIRouter

from src.api.v1.endpoints import (
    history,
    pools,
    rewards,
    snapshots,
    staking,
    users,
)


api_router = APIRouter()

# Include endpoint routers
api_router.include_router(
    snapshots.router,
    prefix="/snapshots",
    tags=["Snapshots"],
)

api_router.include_router(
    rewards.router,
    prefix="/rewards",
    tags=["Rewards"],
)

api_router.include_router(
    staking.router,
    prefix="/staking",
    tags=["Staking"],
)

api_router.include_router(
    users.router,
    prefix="/users",
    tags=["Users"],
)

api_router.include_router(
    history.router,
    prefix="/history",
    tags=["History"],
)

api_router.include_router(
    pools.router,
    prefix="/pools",
    tags=["Pools"],
)

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.router import api_router
from src.cache.redis import redis_client
from src.config import settings
from src.database import dispose_db, init_db
from src.exceptions import CustomException
from src.middleware import (
    DEFAULT_EXCLUDE_PATHS,
    setup_request_logging_middleware,
)
from src.snapshots.scheduler import warn_if_subdaily


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    await init_db()
    logger.info(
        "Snapshots scheduled with cron %r, annual reward rate %s",
        settings.SNAPSHOT_INTERVAL_CRON,
        settings.REWARD_RATE,
    )
    warn_if_subdaily(settings.SNAPSHOT_INTERVAL_CRON)
    yield
    await redis_client.disconnect()
    await dispose_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""

    app = FastAPI(
        title=settings.PROJECT_NAME,
        description=(
            "API for delegating Stellar tokens, daily reward snapshots "
            "and reward claims"
        ),
        version=settings.VERSION,
        openapi_url=(
            f"{settings.API_PREFIX}/openapi.json" if settings.DEBUG else None
        ),
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
        lifespan=lifespan,
    )

    # Set up CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    )

    setup_request_logging_middleware(
        app,
        exclude_paths=[
            *DEFAULT_EXCLUDE_PATHS,
            f"{settings.API_PREFIX}/openapi.json",
        ],
    )

    # Include API router
    app.include_router(api_router, prefix=settings.API_PREFIX)

    # Add exception handlers
    @app.exception_handler(CustomException)
    async def custom_exception_handler(
        _request: Request, exc: CustomException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail, "code": exc.code},
        )

    @app.get("/health", tags=["Health"])
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "src.main:app",
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.DEBUG,
    )

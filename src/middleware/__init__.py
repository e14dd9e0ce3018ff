"""HTTP middleware: request logging with request IDs and timings."""

from src.middleware.logging import (
    DEFAULT_EXCLUDE_PATHS,
    RequestLoggingMiddleware,
    setup_request_logging_middleware,
)


__all__ = [
    "DEFAULT_EXCLUDE_PATHS",
    "RequestLoggingMiddleware",
    "setup_request_logging_middleware",
]

import logging
import time
import uuid
from collections.abc import Callable
from typing import Any, Optional

from fastapi import FastAPI, Request, Response
from rich.console import Console
from rich.logging import RichHandler
from starlette.middleware.base import BaseHTTPMiddleware


# Set up rich console
console = Console()

# Configure logger with rich handler
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, console=console)],
)

logger = logging.getLogger("stake_house.request")

DEFAULT_EXCLUDE_PATHS = [
    "/health",
    "/docs",
    "/redoc",
    "/openapi.json",
]

METHOD_COLORS = {
    "GET": "green",
    "POST": "blue",
    "PUT": "yellow",
    "PATCH": "yellow",
    "DELETE": "red",
}


def _status_color(status_code: int) -> str:
    if status_code < 300:
        return "green"
    if status_code < 400:
        return "blue"
    if status_code < 500:
        return "yellow"
    return "red"


def _log_level(status_code: int) -> int:
    if status_code >= 500:
        return logging.ERROR
    if status_code >= 400:
        return logging.WARNING
    return logging.INFO


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs each request and its outcome in a single entry,
    tagging the response with a request ID and processing time.
    """

    def __init__(
        self,
        app: Any,
        exclude_paths: Optional[list[str]] = None,
    ):
        super().__init__(app)
        self.exclude_paths = exclude_paths or DEFAULT_EXCLUDE_PATHS

    async def dispatch(
        self, request: Request, call_next: Callable[..., Any]
    ) -> Response:
        if any(
            request.url.path.startswith(path) for path in self.exclude_paths
        ):
            return await call_next(request)

        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        start_time = time.perf_counter()

        method = request.method
        method_color = METHOD_COLORS.get(method, "white")
        client_ip = request.client.host if request.client else None
        prefix = f"[{method_color}]{method}[/] {request.url.path}"
        suffix = f"Client: {client_ip} | ID: [dim]{request_id}[/]"

        try:
            response = await call_next(request)
        except Exception as e:
            elapsed_ms = round((time.perf_counter() - start_time) * 1000, 2)
            logger.error(
                f"{prefix} | Error: [red]{e}[/] | "
                f"Time: [cyan]{elapsed_ms}ms[/] | {suffix}",
                exc_info=True,
            )
            # Re-raise to let FastAPI handle the exception
            raise

        process_time = time.perf_counter() - start_time
        elapsed_ms = round(process_time * 1000, 2)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Process-Time"] = str(process_time)

        status_code = response.status_code
        logger.log(
            _log_level(status_code),
            f"{prefix} | "
            f"Status: [{_status_color(status_code)}]{status_code}[/] | "
            f"Time: [cyan]{elapsed_ms}ms[/] | {suffix}",
        )

        return response


def setup_request_logging_middleware(
    app: FastAPI,
    exclude_paths: Optional[list[str]] = None,
) -> None:
    """Add request logging middleware to FastAPI app."""
    app.add_middleware(
        RequestLoggingMiddleware,
        exclude_paths=exclude_paths,
    )

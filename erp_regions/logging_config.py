"""Structured logging configuration with structlog.

JSON output outside development, request ID propagation through a context
variable, and timing helpers for service operations.
"""

from __future__ import annotations

import contextvars
import inspect
import logging
import sys
import time
from functools import wraps
from typing import Any, Callable, Optional, TypeVar
from uuid import uuid4

import structlog
from structlog.types import Processor

from erp_regions.config import get_settings

settings = get_settings()

REQUEST_ID_HEADER = b"x-request-id"

request_id_var: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar(
    "request_id", default=None
)


def get_request_id() -> Optional[str]:
    """Get current request ID from context."""
    return request_id_var.get()


def set_request_id(request_id: Optional[str] = None) -> str:
    """Set request ID in context, generating one if not provided."""
    if request_id is None:
        request_id = str(uuid4())
    request_id_var.set(request_id)
    return request_id


def add_request_id(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add request ID to log event."""
    request_id = get_request_id()
    if request_id:
        event_dict["request_id"] = request_id
    return event_dict


def add_app_context(
    logger: logging.Logger, method_name: str, event_dict: dict[str, Any]
) -> dict[str, Any]:
    """Add application name and environment to log event."""
    event_dict["app"] = settings.app_name
    event_dict["env"] = settings.app_env
    return event_dict


def setup_logging() -> None:
    """Configure structlog and route standard library logging through it."""
    use_json = settings.app_env != "development" or not sys.stdout.isatty()

    shared_processors: list[Processor] = [
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
        add_request_id,
        add_app_context,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    if use_json:
        shared_processors.append(structlog.processors.format_exc_info)
        renderer: Processor = structlog.processors.JSONRenderer()
    else:
        shared_processors.append(structlog.dev.set_exc_info)
        renderer = structlog.dev.ConsoleRenderer(colors=True)

    structlog.configure(
        processors=[
            *shared_processors,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            renderer,
        ],
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, settings.log_level.upper()))

    # Quiet third-party loggers
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.error").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.db_echo else logging.WARNING
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Get a structured logger by name."""
    return structlog.get_logger(name)


F = TypeVar("F", bound=Callable[..., Any])


def log_execution_time(operation: str) -> Callable[[F], F]:
    """Decorator logging ``<operation>_completed`` / ``<operation>_failed`` with duration.

    Only coroutine functions can be wrapped; anything else raises ``TypeError``.

    Args:
        operation: Name of the operation being timed

    Usage:
        @log_execution_time("region_search")
        async def search(self, query): ...
    """

    def decorator(func: F) -> F:
        logger = get_logger(func.__module__)

        def _log(event: str, start_time: float, **extra: Any) -> None:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            log = logger.error if event == "failed" else logger.info
            log(
                f"{operation}_{event}",
                operation=operation,
                duration_ms=round(elapsed_ms, 2),
                **extra,
            )

        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"log_execution_time only wraps coroutine functions, got {func.__qualname__}")

        @wraps(func)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            start_time = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                _log("failed", start_time, error=str(e))
                raise
            _log("completed", start_time)
            return result

        return async_wrapper  # type: ignore[return-value]

    return decorator


class LoggingMiddleware:
    """ASGI middleware for request logging, timing and X-Request-ID propagation."""

    def __init__(self, app):
        self.app = app
        self.logger = get_logger("http")

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        method = scope.get("method", "UNKNOWN")
        path = scope.get("path", "/")
        query_string = scope.get("query_string", b"").decode()

        headers = dict(scope.get("headers", []))
        request_id = headers.get(REQUEST_ID_HEADER, b"").decode() or None
        request_id = set_request_id(request_id)

        start_time = time.perf_counter()
        status_code = 500

        async def send_wrapper(message):
            nonlocal status_code
            if message["type"] == "http.response.start":
                status_code = message.get("status", 500)
                response_headers = list(message.get("headers", []))
                response_headers.append((REQUEST_ID_HEADER, request_id.encode()))
                message["headers"] = response_headers
            await send(message)

        try:
            await self.app(scope, receive, send_wrapper)
        finally:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            self.logger.info(
                "http_request",
                method=method,
                path=path,
                query=query_string if query_string else None,
                status=status_code,
                duration_ms=round(elapsed_ms, 2),
            )

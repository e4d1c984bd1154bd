"""
Structured logging setup using structlog.

JSON lines are emitted at INFO (deployed services), a readable console
format at any other level. Chat and store events carry their fields as
structured keys so provider failures and fallback hits can be filtered.
"""

import logging
import sys
from typing import Any, Optional

import structlog

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("httpx", "httpcore", "openai", "sqlalchemy.engine")


def setup_logging(level: str = "INFO", json_logs: Optional[bool] = None) -> None:
    """
    Configure stdlib logging and structlog.

    Args:
        level: Logging level name
        json_logs: Force JSON (True) or console (False) output; by default
            JSON is used at INFO only
    """
    level = level.upper()
    if json_logs is None:
        json_logs = level == "INFO"

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=getattr(logging, level))
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    renderer = structlog.processors.JSONRenderer() if json_logs else structlog.dev.ConsoleRenderer()

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="ISO"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            renderer,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def get_logger(name: str = None) -> Any:
    """Get a structured logger for a module."""
    return structlog.get_logger(name)


def log_request(method: str, path: str, status_code: int, duration: float, **kwargs) -> None:
    """Log one served HTTP request."""
    get_logger("http").info(
        "HTTP request",
        method=method,
        path=path,
        status_code=status_code,
        duration=duration,
        **kwargs
    )


def log_chat_event(event_type: str, provider: str = None, model: str = None, **kwargs) -> None:
    """
    Log a provider chat event with structured data.

    Args:
        event_type: started, completed or failed
        provider: Provider name (optional)
        model: Model identifier (optional)
        **kwargs: Additional context (characters, error, ...)
    """
    get_logger("chat").info(
        f"Chat {event_type}",
        event_type=event_type,
        provider=provider,
        model=model,
        **kwargs
    )


def log_store_event(operation: str, backend: str, success: bool, **kwargs) -> None:
    """
    Log a message store call and which backend served it.

    Args:
        operation: Store operation name
        backend: "graphql" or "database"
        success: Whether the call succeeded
        **kwargs: Additional context
    """
    get_logger("store").info(
        f"Store {operation}",
        operation=operation,
        backend=backend,
        success=success,
        **kwargs
    )

"""Structured logging for the dispatch API and its background work."""
import logging
import sys
from typing import Any, Optional

import structlog
from config import Settings, get_settings

# Libraries whose INFO chatter would drown out dispatch events
QUIET_LOGGERS = ("httpx", "httpcore", "uvicorn.access", "sqlalchemy.engine", "celery")


def _renderer(settings: Settings):
    if settings.is_production:
        return [structlog.processors.dict_tracebacks, structlog.processors.JSONRenderer()]
    return [structlog.dev.ConsoleRenderer(colors=True)]


def setup_logging(settings: Optional[Settings] = None) -> None:
    """
    Route structlog and stdlib logging to stdout.

    Production emits one JSON object per event so booking, transporter and
    request IDs stay queryable; every other environment gets a readable
    console layout.

    Args:
        settings: Application settings (default: cached settings)
    """
    settings = settings or get_settings()

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, settings.log_level.upper()),
    )
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
        ] + _renderer(settings),
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Module logger; pass ``__name__``."""
    return structlog.get_logger(name)


def bind_context(**context: Any) -> None:
    """
    Attach fields to every event logged while handling the current request.

    The middleware binds the request ID; the caller dependency adds the
    caller's ID and role.

    Args:
        **context: Fields to attach
    """
    structlog.contextvars.bind_contextvars(**context)


def clear_context() -> None:
    """Drop request-scoped fields once the response is sent."""
    structlog.contextvars.clear_contextvars()

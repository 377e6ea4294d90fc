from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from .context import get_request_id

SERVICE_NAME = "memehub-api"

_CONFIGURED = False


def _with_request_context(_: logging.Logger, __: str, event_dict: dict) -> dict:
    rid = get_request_id()
    if rid:
        event_dict.setdefault("request_id", rid)
    event_dict.setdefault("service", SERVICE_NAME)
    return event_dict


def _shared_processors() -> list[Any]:
    return [
        structlog.contextvars.merge_contextvars,
        _with_request_context,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]


def configure_logging(*, level: str | int = "INFO", json_output: bool = True) -> None:
    """
    Route stdlib logging and structlog through one stdout handler.

    Production and tests emit one JSON object per line; local development
    may ask for the console renderer instead. Calling this twice is a no-op.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return

    renderer: Any = (
        structlog.processors.JSONRenderer() if json_output else structlog.dev.ConsoleRenderer()
    )
    formatter = structlog.stdlib.ProcessorFormatter(
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        foreign_pre_chain=_shared_processors(),
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level.upper() if isinstance(level, str) else level)

    # uvicorn and botocore install their own handlers; send them through root.
    for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        lg = logging.getLogger(name)
        lg.handlers = []
        lg.propagate = True
    logging.getLogger("botocore").setLevel(logging.WARNING)

    structlog.configure(
        processors=[
            *_shared_processors(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
    _CONFIGURED = True


def bind_request_user(user_id: str | None) -> None:
    """Attach the authenticated user id to every log line for this request."""
    if user_id:
        structlog.contextvars.bind_contextvars(user_id=str(user_id))


def get_logger(name: str | None = None):
    return structlog.get_logger(name)

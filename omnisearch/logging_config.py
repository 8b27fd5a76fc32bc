"""Logging configuration for the application.

Every record written by the console handler carries two context fields:
``request_id`` (bound by the HTTP middleware) and ``integration``, the
``provider:service`` pair of the adapter call a record was emitted under.
Fan-out tasks copy the context at creation, so concurrent calls never see
each other's integration.
"""

import logging
import sys
import uuid
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar

from omnisearch.config import get_settings

NO_CONTEXT = "-"

LOG_FORMAT = (
    "%(asctime)s | %(levelname)-8s | %(request_id)s | %(integration)s | "
    "%(name)s:%(funcName)s:%(lineno)d | %(message)s"
)
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Libraries that log every HTTP exchange at INFO
NOISY_LOGGERS = ("httpx", "httpcore", "openai", "uvicorn.access")

request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)
integration_var: ContextVar[str | None] = ContextVar("integration", default=None)


class LogContextFilter(logging.Filter):
    """Stamp request and integration context onto log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or NO_CONTEXT
        record.integration = integration_var.get() or NO_CONTEXT
        return True


def setup_logging(level: str | None = None) -> None:
    """Send application logs to stdout with request and integration context.

    Args:
        level: Log level name; defaults to ``Settings.log_level``
    """
    level = level or get_settings().log_level

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    handler.addFilter(LogContextFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info(f"Logging configured with level: {level}")


def generate_request_id() -> str:
    return f"req_{uuid.uuid4().hex}"


def get_request_id() -> str | None:
    return request_id_var.get()


def set_request_id(request_id: str) -> None:
    request_id_var.set(request_id)


def clear_request_id() -> None:
    request_id_var.set(None)


def get_integration() -> str | None:
    """Return the ``provider:service`` bound to the current context, if any."""
    return integration_var.get()


@contextmanager
def integration_context(provider: str, service: str) -> Iterator[None]:
    """Bind ``provider:service`` to log records emitted inside the block."""
    token = integration_var.set(f"{provider}:{service}")
    try:
        yield
    finally:
        integration_var.reset(token)

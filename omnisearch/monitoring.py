"""Error reporting sink."""

import logging
from typing import Any, Protocol

from omnisearch.errors import SearchError

logger = logging.getLogger(__name__)


class MonitoringSink(Protocol):
    """Receives every error the HTTP layer turns into a response."""

    async def report_error(self, exc: BaseException, context: dict[str, Any]) -> None: ...


class LoggingMonitoringSink:
    """Reports errors to the application log.

    Client errors are logged as warnings without a stack; anything else is
    logged with the full traceback.
    """

    def __init__(self, logger_name: str = "omnisearch.monitoring"):
        self._logger = logging.getLogger(logger_name)

    async def report_error(self, exc: BaseException, context: dict[str, Any]) -> None:
        if isinstance(exc, SearchError) and exc.status_code < 500:
            self._logger.warning(f"Client error {exc.code}: {exc.message} | context={context}")
            return
        self._logger.error(
            f"Server error {type(exc).__name__}: {exc} | context={context}",
            exc_info=(type(exc), exc, exc.__traceback__),
        )

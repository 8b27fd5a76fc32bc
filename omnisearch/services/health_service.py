"""Health checks for the /health endpoint."""

import asyncio
import logging
import os
import resource
import shutil
import tempfile
import time
from datetime import UTC, datetime
from typing import Protocol

from omnisearch.models.health import HealthCheck, HealthReport
from omnisearch.search.orchestrator import SearchOrchestrator

logger = logging.getLogger(__name__)

MEMORY_WARN_RATIO = 0.80
MEMORY_FAIL_RATIO = 0.95
DISK_WARN_RATIO = 0.90
DISK_FAIL_RATIO = 0.98


class DatabaseProbe(Protocol):
    """Optional connectivity probe for the backing database."""

    async def ping(self) -> None:
        """Raise on connectivity failure."""


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


class HealthService:
    """Builds the health report.

    Each check returns pass, warn or fail. Overall status is ``unhealthy`` if
    any check fails, ``degraded`` if any warns, ``healthy`` otherwise.
    """

    def __init__(
        self,
        orchestrator: SearchOrchestrator,
        version: str,
        database_probe: DatabaseProbe | None = None,
        start_time: float | None = None,
        disk_path: str | None = None,
        probe_timeout: float = 5.0,
    ):
        self.orchestrator = orchestrator
        self.version = version
        self.database_probe = database_probe
        self.start_time = start_time if start_time is not None else time.time()
        self.disk_path = disk_path or tempfile.gettempdir()
        self.probe_timeout = probe_timeout

    async def check(self) -> HealthReport:
        checks = {
            "database": await self.check_database(),
            "integrations": self.check_integrations(),
            "memory": self.check_memory(),
            "disk": self.check_disk(),
        }
        statuses = {c.status for c in checks.values()}
        if "fail" in statuses:
            overall = "unhealthy"
        elif "warn" in statuses:
            overall = "degraded"
        else:
            overall = "healthy"

        if overall != "healthy":
            failing = [name for name, c in checks.items() if c.status != "pass"]
            logger.warning(f"⚠ Health {overall}: {', '.join(failing)}")

        return HealthReport(
            status=overall,
            timestamp=datetime.now(UTC),
            version=self.version,
            uptime=max(0.0, time.time() - self.start_time),
            checks=checks,
        )

    @staticmethod
    def http_status(report: HealthReport) -> int:
        return 503 if report.status == "unhealthy" else 200

    async def check_database(self) -> HealthCheck:
        started = time.perf_counter()
        if self.database_probe is None:
            return HealthCheck(
                status="pass",
                message="No database configured",
                response_time=_elapsed_ms(started),
                details={"configured": False},
            )
        try:
            await asyncio.wait_for(self.database_probe.ping(), timeout=self.probe_timeout)
        except Exception as e:
            logger.error(f"✗ Database health check failed: {e}")
            return HealthCheck(
                status="fail",
                message=f"Database connection failed: {e}",
                response_time=_elapsed_ms(started),
                details={"configured": True},
            )
        return HealthCheck(
            status="pass",
            message="Database connection healthy",
            response_time=_elapsed_ms(started),
            details={"configured": True},
        )

    def check_integrations(self) -> HealthCheck:
        started = time.perf_counter()
        summary = self.orchestrator.get_health_summary()
        total, unhealthy = summary["total"], summary["unhealthy"]

        if total == 0:
            status, message = "pass", "No integration calls recorded yet"
        elif unhealthy == 0:
            status, message = "pass", f"All {total} integrations healthy"
        elif unhealthy < total:
            status, message = "warn", f"{unhealthy} of {total} integrations unhealthy"
        else:
            status, message = "fail", f"All {total} integrations unhealthy"

        return HealthCheck(
            status=status,
            message=message,
            response_time=_elapsed_ms(started),
            details=summary,
        )

    def check_memory(self) -> HealthCheck:
        started = time.perf_counter()
        details: dict[str, float] = {}
        try:
            # ru_maxrss is KiB on Linux
            details["process_max_rss_mb"] = round(
                resource.getrusage(resource.RUSAGE_SELF).ru_maxrss / 1024, 1
            )
            page_size = os.sysconf("SC_PAGE_SIZE")
            total_pages = os.sysconf("SC_PHYS_PAGES")
            free_pages = os.sysconf("SC_AVPHYS_PAGES")
        except (ValueError, OSError, AttributeError) as e:
            return HealthCheck(
                status="warn",
                message=f"Memory usage unavailable: {e}",
                response_time=_elapsed_ms(started),
                details=details,
            )

        used_ratio = 1 - free_pages / total_pages if total_pages > 0 else 0.0
        details["total_mb"] = round(total_pages * page_size / 1024**2, 1)
        details["used_percent"] = round(used_ratio * 100, 1)

        if used_ratio >= MEMORY_FAIL_RATIO:
            status = "fail"
        elif used_ratio >= MEMORY_WARN_RATIO:
            status = "warn"
        else:
            status = "pass"

        return HealthCheck(
            status=status,
            message=f"Memory usage at {used_ratio:.0%}",
            response_time=_elapsed_ms(started),
            details=details,
        )

    def check_disk(self) -> HealthCheck:
        started = time.perf_counter()
        try:
            usage = shutil.disk_usage(self.disk_path)
            with tempfile.NamedTemporaryFile(dir=self.disk_path) as handle:
                handle.write(b"health")
                handle.flush()
        except OSError as e:
            logger.error(f"✗ Disk health check failed: {e}")
            return HealthCheck(
                status="fail",
                message=f"Disk not writable: {e}",
                response_time=_elapsed_ms(started),
                details={"path": self.disk_path},
            )

        used_ratio = usage.used / usage.total if usage.total else 0.0
        if used_ratio >= DISK_FAIL_RATIO:
            status = "fail"
        elif used_ratio >= DISK_WARN_RATIO:
            status = "warn"
        else:
            status = "pass"

        return HealthCheck(
            status=status,
            message=f"Disk usage at {used_ratio:.0%}",
            response_time=_elapsed_ms(started),
            details={
                "path": self.disk_path,
                "free_mb": round(usage.free / 1024**2, 1),
                "used_percent": round(used_ratio * 100, 1),
            },
        )

"""Tests for the health report."""

from collections import namedtuple
from unittest.mock import AsyncMock, MagicMock

import pytest

from omnisearch.models.outcome import AdapterOutcome
from omnisearch.search.orchestrator import SearchOrchestrator
from omnisearch.services.health_service import HealthService

DiskUsage = namedtuple("DiskUsage", "total used free")


@pytest.fixture
def orchestrator():
    return SearchOrchestrator()


@pytest.fixture
def health_service(orchestrator, tmp_path, monkeypatch):
    monkeypatch.setattr(
        "omnisearch.services.health_service.shutil.disk_usage",
        lambda path: DiskUsage(total=100, used=50, free=50),
    )
    _set_memory(monkeypatch, free_ratio=0.5)
    return HealthService(orchestrator=orchestrator, version="1.0.0", disk_path=str(tmp_path))


def _set_memory(monkeypatch, free_ratio: float):
    values = {"SC_PAGE_SIZE": 4096, "SC_PHYS_PAGES": 1000, "SC_AVPHYS_PAGES": int(1000 * free_ratio)}
    monkeypatch.setattr("omnisearch.services.health_service.os.sysconf", lambda name: values[name])


def _record(orchestrator, *outcomes):
    for outcome in outcomes:
        orchestrator._record_health(outcome)


@pytest.mark.asyncio
async def test_all_checks_pass(health_service):
    report = await health_service.check()

    assert report.status == "healthy"
    assert set(report.checks) == {"database", "integrations", "memory", "disk"}
    assert all(c.status == "pass" for c in report.checks.values())
    assert report.checks["database"].details == {"configured": False}
    assert report.version == "1.0.0"
    assert report.uptime >= 0
    assert HealthService.http_status(report) == 200


@pytest.mark.asyncio
async def test_database_probe_failure_is_unhealthy(health_service):
    probe = MagicMock()
    probe.ping = AsyncMock(side_effect=ConnectionError("connection refused"))
    health_service.database_probe = probe

    report = await health_service.check()

    assert report.checks["database"].status == "fail"
    assert report.status == "unhealthy"
    assert HealthService.http_status(report) == 503


@pytest.mark.asyncio
async def test_database_probe_success(health_service):
    probe = MagicMock()
    probe.ping = AsyncMock(return_value=None)
    health_service.database_probe = probe

    check = await health_service.check_database()

    assert check.status == "pass"
    assert check.details == {"configured": True}


def test_some_integrations_unhealthy_warns(health_service, orchestrator):
    _record(
        orchestrator,
        AdapterOutcome.success("google", "gmail", {}),
        AdapterOutcome.failure("slack", "messages", "HTTP 500"),
    )

    check = health_service.check_integrations()

    assert check.status == "warn"
    assert check.details["unhealthy"] == 1


def test_all_integrations_unhealthy_fails(health_service, orchestrator):
    _record(orchestrator, AdapterOutcome.timeout("google", "gmail", "slow"))

    assert health_service.check_integrations().status == "fail"


@pytest.mark.asyncio
async def test_integration_warning_degrades(health_service, orchestrator):
    _record(
        orchestrator,
        AdapterOutcome.success("google", "gmail", {}),
        AdapterOutcome.failure("slack", "messages", "HTTP 500"),
    )

    report = await health_service.check()

    assert report.status == "degraded"
    assert HealthService.http_status(report) == 200


@pytest.mark.parametrize("free_ratio, expected", [(0.5, "pass"), (0.15, "warn"), (0.02, "fail")])
def test_memory_thresholds(health_service, monkeypatch, free_ratio, expected):
    _set_memory(monkeypatch, free_ratio)

    assert health_service.check_memory().status == expected


def test_memory_unavailable_warns(health_service, monkeypatch):
    def unsupported(name):
        raise ValueError(f"unrecognized configuration name: {name}")

    monkeypatch.setattr("omnisearch.services.health_service.os.sysconf", unsupported)

    assert health_service.check_memory().status == "warn"


def test_disk_not_writable_fails(orchestrator, tmp_path):
    service = HealthService(orchestrator=orchestrator, version="1.0.0", disk_path=str(tmp_path / "missing"))

    check = service.check_disk()

    assert check.status == "fail"


def test_disk_nearly_full_warns(health_service, monkeypatch):
    monkeypatch.setattr(
        "omnisearch.services.health_service.shutil.disk_usage",
        lambda path: DiskUsage(total=100, used=93, free=7),
    )

    assert health_service.check_disk().status == "warn"

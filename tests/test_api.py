"""Tests for the HTTP surface."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from hypothesis import HealthCheck as HypothesisHealthCheck
from hypothesis import given, settings
from hypothesis import strategies as st

from omnisearch.integrations.factory import AdapterFactory
from omnisearch.main import app
from omnisearch.models.health import HealthCheck, HealthReport
from omnisearch.search.ranker import ResultRanker
from omnisearch.services.search_service import SearchService

from conftest import ORG_ID, USER_ID

GENERIC_ERROR = "An unexpected error occurred during smart search. Please try again."


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def search_service(test_settings, make_adapter, gmail_payload, fixed_clock):
    factory = AdapterFactory(test_settings)
    factory.register(
        "google",
        lambda provider, credential, services: make_adapter("google", {"gmail": gmail_payload}),
    )
    return SearchService(
        settings=test_settings,
        adapter_factory=factory,
        ranker=ResultRanker(llm_client=None, clock=fixed_clock),
    )


def body(query="Q3 budget", **extra):
    return {"query": query, "userId": USER_ID, "organizationId": ORG_ID, **extra}


class TestSearchEndpoint:
    def test_search_success(self, client, search_service, auth_header):
        with patch("omnisearch.main.search_service", search_service):
            response = client.post("/search", json=body(), headers=auth_header)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert len(data["data"]) == 1
        assert data["data"][0]["source"] == "Gmail"
        assert data["data"][0]["id"] == "gmail-msg-1"
        assert data["metadata"]["totalResults"] == 1
        assert data["metadata"]["executionTime"] >= 0
        assert data["metadata"]["requestId"] == response.headers["X-Request-ID"]
        assert response.headers["X-Request-ID"].startswith("req_")

    def test_missing_credentials(self, client, search_service, auth_header):
        with patch("omnisearch.main.search_service", search_service):
            response = client.post("/search", json={"query": "budget"}, headers=auth_header)

        assert response.status_code == 400
        assert response.json()["error"] == "User ID and Organization ID are required"
        assert response.json()["code"] == "MISSING_CREDENTIALS"

    def test_missing_session(self, client, search_service):
        with patch("omnisearch.main.search_service", search_service):
            response = client.post("/search", json=body())

        assert response.status_code == 401
        assert response.json()["error"] == "Authentication required"

    def test_mandatory_integration_missing(self, client, test_settings, auth_header):
        service = SearchService(settings=test_settings.model_copy(update={"provider_tokens": {}}))

        with patch("omnisearch.main.search_service", service):
            response = client.post("/search", json=body(), headers=auth_header)

        assert response.status_code == 400
        assert response.json()["error"] == "Google account connection required"
        assert response.json()["code"] == "INTEGRATION_MISSING"

    def test_unexpected_error_returns_generic_500(self, client, auth_header):
        service = MagicMock()
        service.search = AsyncMock(side_effect=RuntimeError("database exploded"))

        with patch("omnisearch.main.search_service", service):
            response = client.post("/search", json=body(), headers=auth_header)

        assert response.status_code == 500
        assert response.json()["error"] == GENERIC_ERROR
        assert response.json()["code"] == "INTERNAL_SERVER_ERROR"
        assert "database exploded" not in response.text

    def test_errors_reported_to_monitoring(self, client, search_service):
        monitoring = MagicMock()
        monitoring.report_error = AsyncMock()

        with patch("omnisearch.main.search_service", search_service), patch(
            "omnisearch.main.monitoring", monitoring
        ):
            client.post("/search", json=body())

        monitoring.report_error.assert_awaited_once()
        assert monitoring.report_error.call_args.args[0].code == "AUTHENTICATION_REQUIRED"


class TestRequestValidation:
    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"query": ""},
            {"query": "   "},
            {"query": 123},
            {"query": "x" * 501},
            {"query": "budget", "userId": "not-a-uuid"},
            {"query": "budget", "page": 0},
            {"query": "budget", "limit": 101},
        ],
    )
    def test_invalid_body_returns_400(self, client, payload):
        response = client.post("/search", json=payload)

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request data"
        assert response.json()["code"] == "VALIDATION_ERROR"
        assert isinstance(response.json()["details"], list)

    def test_malformed_json_returns_400(self, client):
        response = client.post(
            "/search",
            content=b'{"query": ',
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["code"] == "VALIDATION_ERROR"

    @given(length=st.integers(min_value=501, max_value=2000))
    @settings(
        max_examples=20,
        deadline=None,
        suppress_health_check=[HypothesisHealthCheck.function_scoped_fixture],
    )
    def test_overlong_queries_rejected(self, client, length):
        response = client.post("/search", json=body(query="a" * length))

        assert response.status_code == 400


class TestMethodNotAllowed:
    @pytest.mark.parametrize("method", ["GET", "PUT", "PATCH", "DELETE"])
    def test_non_post_on_search(self, client, method):
        response = client.request(method, "/search")

        assert response.status_code == 405
        assert response.json()["error"] == f"Method {method} Not Allowed"
        assert response.headers["Allow"] == "POST"

    def test_post_on_health(self, client):
        response = client.post("/health")

        assert response.status_code == 405
        assert response.headers["Allow"] == "GET"


class TestHealthEndpoint:
    @staticmethod
    def _health_service(status: str):
        check_status = {"healthy": "pass", "degraded": "warn", "unhealthy": "fail"}[status]
        report = HealthReport(
            status=status,
            timestamp=datetime.now(UTC),
            version="1.0.0",
            uptime=12.5,
            checks={
                name: HealthCheck(status=check_status, message=name)
                for name in ("database", "integrations", "memory", "disk")
            },
        )
        service = MagicMock()
        service.check = AsyncMock(return_value=report)
        service.http_status = MagicMock(return_value=503 if status == "unhealthy" else 200)
        return service

    @pytest.mark.parametrize("status, code", [("healthy", 200), ("degraded", 200), ("unhealthy", 503)])
    def test_health_status_codes(self, client, status, code):
        with patch("omnisearch.main.health_service", self._health_service(status)):
            response = client.get("/health")

        assert response.status_code == code
        data = response.json()
        assert data["status"] == status
        assert set(data["checks"]) == {"database", "integrations", "memory", "disk"}
        assert "responseTime" in data["checks"]["disk"]

    def test_real_health_service(self, client):
        response = client.get("/health")

        assert response.status_code in (200, 503)
        assert response.json()["checks"]["database"]["status"] == "pass"

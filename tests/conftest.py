"""Pytest configuration and shared fixtures."""

import asyncio
from datetime import UTC, datetime

import pytest

from omnisearch.config import Settings
from omnisearch.integrations.base import IntegrationAdapter, ProviderCredential, ServiceSpec
from omnisearch.models.query import ProcessedQuery

USER_ID = "3f1c2a9e-8d4b-4c1a-9b7e-2f6d5e4c3b2a"
ORG_ID = "7a6b5c4d-3e2f-4a1b-8c9d-0e1f2a3b4c5d"
SESSION_TOKEN = "session-token-1"
FIXED_NOW = datetime(2024, 6, 1, 12, 0, tzinfo=UTC)


class FakeAdapter(IntegrationAdapter):
    """In-memory adapter returning canned payloads per service.

    A response that is an exception instance is raised instead of returned.
    """

    def __init__(
        self,
        provider: str,
        responses: dict,
        delays: dict[str, float] | None = None,
        limit: int = 5,
    ):
        super().__init__(
            ProviderCredential(provider=provider, access_token=f"{provider}-token"),
            tuple(ServiceSpec(name, limit) for name in responses),
        )
        self.provider = provider
        self.responses = responses
        self.delays = delays or {}
        self.calls: list[tuple[str, str, int]] = []
        self.closed = False

    async def search(self, service: str, query: ProcessedQuery, limit: int):
        self.calls.append((service, query.processed_query, limit))
        delay = self.delays.get(service)
        if delay:
            await asyncio.sleep(delay)
        response = self.responses[service]
        if isinstance(response, BaseException):
            raise response
        return response

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def make_adapter():
    """Factory for FakeAdapter instances."""
    return FakeAdapter


@pytest.fixture
def test_settings():
    """Settings isolated from the environment and any .env file."""
    return Settings(
        _env_file=None,
        llm_api_key=None,
        session_tokens={SESSION_TOKEN: USER_ID},
        provider_tokens={USER_ID: {"google": "google-access-token"}},
        adapter_timeout_seconds=1.0,
        search_deadline_seconds=2.0,
    )


@pytest.fixture
def fixed_clock():
    return lambda: FIXED_NOW


@pytest.fixture
def gmail_payload():
    return {
        "messages": [
            {
                "id": "msg-1",
                "threadId": "thread-1",
                "subject": "Q3 budget review",
                "from": "alice@example.com",
                "to": ["bob@example.com"],
                "date": "2024-05-20T09:30:00Z",
                "snippet": "Attached is the Q3 budget for review",
                "labels": ["INBOX", "IMPORTANT"],
                "sizeEstimate": 2048,
            }
        ]
    }


@pytest.fixture
def drive_payload():
    return {
        "files": [
            {
                "id": "file-1",
                "name": "Roadmap.pdf",
                "mimeType": "application/pdf",
                "size": 20480,
                "createdTime": "2024-01-10T08:00:00Z",
                "modifiedTime": "2024-05-01T08:00:00Z",
                "webViewLink": "https://drive.google.com/file/d/file-1/view",
                "owners": [{"displayName": "Carol", "emailAddress": "carol@example.com"}],
                "shared": True,
            }
        ]
    }


@pytest.fixture
def auth_header():
    return {"Authorization": f"Bearer {SESSION_TOKEN}"}

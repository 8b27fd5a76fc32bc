"""Tests for the end-to-end search pipeline."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from omnisearch.auth import Session
from omnisearch.errors import AuthError, IntegrationMissingError, MissingCredentialsError
from omnisearch.integrations.factory import AdapterFactory
from omnisearch.integrations.tokens import SettingsTokenFetcher
from omnisearch.models.filters import SearchFilter
from omnisearch.models.search import SearchRequest
from omnisearch.search.ranker import ResultRanker
from omnisearch.services.search_service import SearchService

from conftest import ORG_ID, SESSION_TOKEN, USER_ID


@pytest.fixture
def google_adapter(make_adapter, gmail_payload, drive_payload):
    return make_adapter("google", {"gmail": gmail_payload, "drive": drive_payload})


@pytest.fixture
def adapter_factory(test_settings, google_adapter):
    factory = AdapterFactory(test_settings)
    factory.register("google", lambda provider, credential, services: google_adapter)
    return factory


@pytest.fixture
def service(test_settings, adapter_factory, fixed_clock):
    return SearchService(
        settings=test_settings,
        adapter_factory=adapter_factory,
        ranker=ResultRanker(llm_client=None, clock=fixed_clock),
    )


def request(query: str = "Q3 budget", **overrides) -> SearchRequest:
    data = {"query": query, "userId": USER_ID, "organizationId": ORG_ID, **overrides}
    return SearchRequest.model_validate(data)


@pytest.mark.asyncio
async def test_search_end_to_end(service, google_adapter):
    response = await service.search(request(), f"Bearer {SESSION_TOKEN}", "req_test")

    ids = [r.id for r in response.data]
    assert set(ids) == {"gmail-msg-1", "drive-file-1"}
    assert ids[0] == "gmail-msg-1"
    assert response.metadata.total_results == 2
    assert response.metadata.request_id == "req_test"
    assert response.metadata.execution_time >= 0
    assert response.metadata.ranking_method == "heuristic"
    assert response.metadata.adapters.success == 2
    assert response.metadata.processed_query == "Q3 budget"
    assert google_adapter.closed is True


@pytest.mark.asyncio
async def test_filters_applied(service):
    file_filter = SearchFilter(type="file_type", label="PDF", operator="equals", value="pdf")

    response = await service.search(
        request(filters=[file_filter.model_dump(by_alias=True)]),
        f"Bearer {SESSION_TOKEN}",
        "req_test",
    )

    assert [r.id for r in response.data] == ["drive-file-1"]
    assert response.metadata.total_results == 1


@pytest.mark.asyncio
async def test_pagination_uses_request_limit(service):
    response = await service.search(request(limit=1, page=2), f"Bearer {SESSION_TOKEN}", "req_test")

    assert len(response.data) == 1
    assert response.metadata.total_results == 2
    assert response.metadata.limit == 1
    assert response.metadata.page == 2


@pytest.mark.asyncio
async def test_missing_ids_rejected_before_auth(test_settings, adapter_factory):
    authenticator = MagicMock()
    authenticator.authenticate = AsyncMock()
    service = SearchService(settings=test_settings, adapter_factory=adapter_factory, authenticator=authenticator)

    with pytest.raises(MissingCredentialsError) as exc_info:
        await service.search(
            SearchRequest(query="budget", user_id=USER_ID),
            f"Bearer {SESSION_TOKEN}",
            "req_test",
        )

    assert exc_info.value.message == "User ID and Organization ID are required"
    authenticator.authenticate.assert_not_called()


@pytest.mark.asyncio
async def test_unknown_session_rejected(service, google_adapter):
    with pytest.raises(AuthError):
        await service.search(request(), "Bearer nope", "req_test")

    assert google_adapter.calls == []


@pytest.mark.asyncio
async def test_mandatory_provider_missing_skips_fan_out(test_settings, adapter_factory, google_adapter):
    token_fetcher = SettingsTokenFetcher(test_settings.model_copy(update={"provider_tokens": {}}))
    service = SearchService(
        settings=test_settings,
        adapter_factory=adapter_factory,
        token_fetcher=token_fetcher,
    )

    with pytest.raises(IntegrationMissingError):
        await service.search(request(), f"Bearer {SESSION_TOKEN}", "req_test")

    assert google_adapter.calls == []


@pytest.mark.asyncio
async def test_no_adapters_returns_empty_success(test_settings):
    authenticator = MagicMock()
    authenticator.authenticate = AsyncMock(return_value=Session(user_id=USER_ID))
    service = SearchService(
        settings=test_settings.model_copy(update={"mandatory_provider": None}),
        authenticator=authenticator,
        adapter_factory=AdapterFactory(test_settings),
    )
    service.orchestrator.mandatory_provider = None

    response = await service.search(request(), None, "req_test")

    assert response.success is True
    assert response.data == []
    assert response.metadata.total_results == 0
    assert response.metadata.execution_time >= 0


@pytest.mark.asyncio
async def test_partial_failure_still_succeeds(test_settings, make_adapter, gmail_payload, fixed_clock):
    google = make_adapter("google", {"gmail": gmail_payload, "drive": RuntimeError("HTTP 503")})
    factory = AdapterFactory(test_settings)
    factory.register("google", lambda provider, credential, services: google)
    service = SearchService(
        settings=test_settings,
        adapter_factory=factory,
        ranker=ResultRanker(llm_client=None, clock=fixed_clock),
    )

    response = await service.search(request(), f"Bearer {SESSION_TOKEN}", "req_test")

    assert len(response.data) == 1
    assert response.data[0].source == "Gmail"
    assert response.metadata.adapters.success == 1
    assert response.metadata.adapters.failure == 1


@pytest.mark.asyncio
async def test_adapter_close_failure_does_not_skip_others(test_settings, make_adapter, gmail_payload, fixed_clock):
    google = make_adapter("google", {"gmail": gmail_payload})
    google.close = AsyncMock(side_effect=RuntimeError("socket already closed"))
    slack = make_adapter("slack", {"messages": {"messages": []}})
    settings = test_settings.model_copy(
        update={"provider_tokens": {USER_ID: {"google": "g-token", "slack": "s-token"}}}
    )
    factory = AdapterFactory(settings)
    factory.register("google", lambda provider, credential, services: google)
    factory.register("slack", lambda provider, credential, services: slack)
    service = SearchService(
        settings=settings,
        adapter_factory=factory,
        ranker=ResultRanker(llm_client=None, clock=fixed_clock),
    )

    response = await service.search(request(), f"Bearer {SESSION_TOKEN}", "req_test")

    google.close.assert_awaited_once()
    assert slack.closed is True
    assert [r.id for r in response.data] == ["gmail-msg-1"]


@pytest.mark.asyncio
async def test_adapter_close_failure_does_not_mask_search_error(test_settings, make_adapter, fixed_clock):
    google = make_adapter("google", {"gmail": {"messages": []}})
    google.close = AsyncMock(side_effect=RuntimeError("socket already closed"))
    factory = AdapterFactory(test_settings)
    factory.register("google", lambda provider, credential, services: google)
    orchestrator = MagicMock()
    orchestrator.execute = AsyncMock(side_effect=ValueError("fan-out exploded"))
    service = SearchService(
        settings=test_settings,
        adapter_factory=factory,
        orchestrator=orchestrator,
        ranker=ResultRanker(llm_client=None, clock=fixed_clock),
    )

    with pytest.raises(ValueError, match="fan-out exploded"):
        await service.search(request(), f"Bearer {SESSION_TOKEN}", "req_test")

    google.close.assert_awaited_once()

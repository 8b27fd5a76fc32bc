"""Search service wiring the aggregation pipeline together."""

import logging

from omnisearch.auth import Authenticator, SettingsAuthenticator
from omnisearch.clients.llm_client import LLMClient
from omnisearch.config import Settings, get_settings
from omnisearch.errors import MissingCredentialsError
from omnisearch.integrations.base import IntegrationAdapter
from omnisearch.integrations.factory import AdapterFactory
from omnisearch.integrations.tokens import SettingsTokenFetcher, TokenFetcher
from omnisearch.models.query import QueryContext
from omnisearch.models.search import SearchRequest, SearchResponse
from omnisearch.search.cache import BoundedTTLCache
from omnisearch.search.filters import SmartFilters
from omnisearch.search.orchestrator import SearchOrchestrator
from omnisearch.search.query_processor import QueryProcessor
from omnisearch.search.ranker import ResultRanker
from omnisearch.search.response_builder import RequestMeta, ResponseBuilder
from omnisearch.search.transformer import ResultTransformer

logger = logging.getLogger(__name__)


class SearchService:
    """Service handling the multi-provider search pipeline.

    This service implements the search workflow:
    1. Check the request carries user and organization ids
    2. Authenticate the caller
    3. Fetch provider credentials and require the mandatory provider
    4. Process the query (intent, entities, cleaned text)
    5. Fan out to every connected (provider, service) pair
    6. Transform payloads into canonical results and deduplicate
    7. Rank results (AI with heuristic fallback)
    8. Apply filters and compute filter suggestions
    9. Build the paginated response

    Client errors in steps 1-3 short-circuit before any adapter is called.
    Adapter and ranking failures degrade the response but never fail it.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        llm_client: LLMClient | None = None,
        authenticator: Authenticator | None = None,
        token_fetcher: TokenFetcher | None = None,
        adapter_factory: AdapterFactory | None = None,
        query_processor: QueryProcessor | None = None,
        orchestrator: SearchOrchestrator | None = None,
        transformer: ResultTransformer | None = None,
        ranker: ResultRanker | None = None,
        smart_filters: SmartFilters | None = None,
        response_builder: ResponseBuilder | None = None,
    ):
        """Initialize search service.

        Every collaborator defaults to the settings-driven implementation.

        Args:
            settings: Application settings
            llm_client: Client for query processing and ranking (None disables AI)
            authenticator: Session authenticator
            token_fetcher: Provider credential source
            adapter_factory: Builds adapters from credentials
            query_processor: Query understanding component
            orchestrator: Fan-out component
            transformer: Payload to canonical mapper
            ranker: Result ranker
            smart_filters: Filter application and suggestions
            response_builder: Response assembly
        """
        self.settings = settings or get_settings()

        if llm_client is None and self.settings.llm_enabled:
            llm_client = LLMClient(
                api_key=self.settings.llm_api_key,
                model=self.settings.llm_model,
                base_url=self.settings.llm_base_url,
                timeout=self.settings.llm_timeout,
                max_retries=self.settings.llm_max_retries,
            )
        self.llm_client = llm_client

        self.authenticator = authenticator or SettingsAuthenticator(self.settings)
        self.token_fetcher = token_fetcher or SettingsTokenFetcher(self.settings)
        self.adapter_factory = adapter_factory or AdapterFactory(self.settings)

        self.query_processor = query_processor or QueryProcessor(
            llm_client=self.llm_client,
            cache=BoundedTTLCache(
                max_size=self.settings.query_cache_size,
                ttl=self.settings.query_cache_ttl,
            ),
            timeout=self.settings.llm_timeout,
            enabled=self.settings.enable_query_processing,
        )
        self.orchestrator = orchestrator or SearchOrchestrator(
            adapter_timeout=self.settings.adapter_timeout_seconds,
            search_deadline=self.settings.search_deadline_seconds,
            max_concurrent_calls=self.settings.max_concurrent_adapter_calls,
            mandatory_provider=self.settings.mandatory_provider,
        )
        self.transformer = transformer or ResultTransformer()
        self.ranker = ranker or ResultRanker(
            llm_client=self.llm_client,
            timeout=self.settings.ranking_timeout_seconds,
            enabled=self.settings.enable_ai_ranking,
        )
        self.smart_filters = smart_filters or SmartFilters(
            suggestion_cache=BoundedTTLCache(
                max_size=self.settings.query_cache_size,
                ttl=self.settings.query_cache_ttl,
            ),
        )
        self.response_builder = response_builder or ResponseBuilder()

        logger.info(
            f"SearchService initialized: ai={self.llm_client is not None}, "
            f"mandatory_provider={self.settings.mandatory_provider}"
        )

    async def search(
        self,
        request: SearchRequest,
        authorization: str | None,
        request_id: str,
        started_at: float | None = None,
    ) -> SearchResponse:
        """Run the full search pipeline.

        Args:
            request: Validated search request
            authorization: Raw Authorization header
            request_id: Request id for logs and the response
            started_at: Timer reading when the request was accepted

        Returns:
            SearchResponse

        Raises:
            MissingCredentialsError: If user or organization id is missing
            AuthError: If the caller has no valid session
            IntegrationMissingError: If the mandatory provider is not connected
        """
        if started_at is None:
            started_at = self.response_builder.start()

        if request.user_id is None or request.organization_id is None:
            raise MissingCredentialsError("User ID and Organization ID are required")

        logger.info(f"→ Search START: '{request.query[:100]}' (org={request.organization_id})")

        session = await self.authenticator.authenticate(authorization)
        tokens = await self.token_fetcher.fetch_all_tokens(session.user_id)
        self.orchestrator.ensure_mandatory_provider(tokens)

        adapters = self.adapter_factory.create_adapters(tokens)
        try:
            context = QueryContext(
                user_id=str(request.user_id),
                organization_id=str(request.organization_id),
                integrations=sorted(adapters),
            )
            processed = await self.query_processor.process(request.query, context)

            outcomes = await self.orchestrator.execute(processed, adapters, request_id)
        finally:
            await self._close_adapters(adapters)

        canonical = self.transformer.transform(outcomes)
        ranked, ranking_method = await self.ranker.rank_with_method(request.query, canonical)
        filtered = self.smart_filters.apply_filters(ranked, request.filters)
        suggestions = self.smart_filters.suggest_filters(request.query, ranked)

        response = self.response_builder.build(
            filtered,
            RequestMeta(
                request_id=request_id,
                started_at=started_at,
                page=request.page,
                limit=request.limit or self.settings.default_page_size,
                processed_query=processed.processed_query,
                intent=processed.intent,
                ranking_method=ranking_method,
                outcomes=outcomes,
                suggestions=suggestions,
            ),
        )

        logger.info(
            f"✓ Search COMPLETE: {response.metadata.total_results} results "
            f"in {response.metadata.execution_time:.0f}ms (ranking={ranking_method})"
        )
        return response

    @staticmethod
    async def _close_adapters(adapters: dict[str, IntegrationAdapter]) -> None:
        for provider, adapter in adapters.items():
            try:
                await adapter.close()
            except Exception as e:
                logger.error(f"Failed to close {provider} adapter: {type(e).__name__}: {e}")

    async def close(self):
        """Close underlying clients."""
        await self.adapter_factory.close()
        if self.llm_client is not None:
            await self.llm_client.close()

"""Query understanding: raw text to a structured, provider-agnostic query."""

import asyncio
import json
import logging

from pydantic import ValidationError

from omnisearch.clients.llm_client import LLMClient, LLMResponseError
from omnisearch.models.query import ProcessedQuery, QueryContext
from omnisearch.search.cache import BoundedTTLCache

logger = logging.getLogger(__name__)

SYSTEM_MESSAGE = (
    "You analyze search queries for a workplace search engine that spans email, "
    "files, calendars, chat, tasks, accounting and construction documents. "
    "Respond with a single JSON object and nothing else."
)

PROMPT_TEMPLATE = """Analyze the search query below.

Query: {query}
Connected integrations: {integrations}

Return JSON with exactly these keys:
{{
  "processedQuery": "cleaned search text suitable for provider search APIs",
  "intent": {{"type": "search|question|command|comparison|analysis", "category": "email|document|calendar|contact|task|financial|construction|general", "confidence": 0.0}},
  "entities": [{{"type": "person|organization|date|project|document|topic|metric", "value": "...", "confidence": 0.0}}],
  "confidence": 0.0
}}"""


class QueryProcessor:
    """Turns raw queries into ProcessedQuery objects.

    Supports:
    - Intent/entity extraction via an OpenAI-compatible model
    - Degraded fallback when the model fails, times out or answers badly
    - Bounded TTL cache keyed by (query, active integrations)
    """

    def __init__(
        self,
        llm_client: LLMClient | None,
        cache: BoundedTTLCache,
        timeout: float = 10.0,
        enabled: bool = True,
    ):
        """Initialize query processor.

        Args:
            llm_client: LLM client, or None to always use the fallback
            cache: Shared bounded cache for processed queries
            timeout: Deadline for the model call in seconds
            enabled: Whether to call the model at all
        """
        self.llm_client = llm_client
        self.cache = cache
        self.timeout = timeout
        self.enabled = enabled and llm_client is not None

        logger.info(
            f"Initialized QueryProcessor: enabled={self.enabled}, "
            f"timeout={timeout}s, cache_size={cache.max_size}, cache_ttl={cache.ttl}s"
        )

    @staticmethod
    def cache_key(raw_query: str, context: QueryContext | None) -> str:
        integrations = sorted(context.integrations) if context else []
        return BoundedTTLCache.make_key("query", raw_query.strip(), ",".join(integrations))

    async def process(self, raw_query: str, context: QueryContext | None = None) -> ProcessedQuery:
        """Process a raw query.

        Never raises: any failure yields the degraded result, which is not
        cached so the next identical request retries the model.

        Args:
            raw_query: Query text (length already validated upstream)
            context: Request context (user, organization, integrations)

        Returns:
            ProcessedQuery
        """
        if not self.enabled:
            return ProcessedQuery.fallback(raw_query)

        key = self.cache_key(raw_query, context)
        cached = self.cache.get(key)
        if cached is not None:
            logger.info(f"✓ Query processing (CACHED): '{cached.processed_query}'")
            return cached

        logger.info(f"→ Query processing START: '{raw_query[:100]}'")

        try:
            processed = await asyncio.wait_for(
                self._analyze(raw_query, context),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"⚠ Query processing timed out after {self.timeout}s, using fallback")
            return ProcessedQuery.fallback(raw_query)
        except (LLMResponseError, ValidationError) as e:
            logger.warning(f"⚠ Query processing returned malformed output: {e}")
            return ProcessedQuery.fallback(raw_query)
        except Exception as e:
            logger.error(f"✗ Query processing FAILED: {type(e).__name__}: {e}")
            return ProcessedQuery.fallback(raw_query)

        self.cache.set(key, processed)
        logger.info(
            f"✓ Query processing COMPLETE: '{processed.processed_query}' "
            f"intent={processed.intent.type}/{processed.intent.category} "
            f"entities={len(processed.entities)}"
        )
        return processed

    async def _analyze(self, raw_query: str, context: QueryContext | None) -> ProcessedQuery:
        integrations = ", ".join(sorted(context.integrations)) if context and context.integrations else "none"
        prompt = PROMPT_TEMPLATE.format(query=json.dumps(raw_query.strip()), integrations=integrations)

        data = await self.llm_client.generate_json(
            prompt=prompt,
            system_message=SYSTEM_MESSAGE,
            temperature=0.1,
            max_tokens=500,
        )

        processed = ProcessedQuery.model_validate(data)
        if not processed.processed_query.strip():
            processed = processed.model_copy(update={"processed_query": raw_query.strip()})
        else:
            processed = processed.model_copy(update={"processed_query": processed.processed_query.strip()})
        return processed

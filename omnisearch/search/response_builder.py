"""Assembles the final search payload."""

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from omnisearch.models.filters import FilterSuggestion
from omnisearch.models.outcome import AdapterOutcome, AdapterStatus
from omnisearch.models.query import QueryIntent
from omnisearch.models.result import RankedResult
from omnisearch.models.search import AdapterSummary, SearchMetadata, SearchResponse

logger = logging.getLogger(__name__)


@dataclass
class RequestMeta:
    """What the builder needs to know about the request besides its results."""

    request_id: str
    started_at: float
    page: int = 1
    limit: int = 50
    processed_query: str | None = None
    intent: QueryIntent | None = None
    ranking_method: str | None = None
    outcomes: list[AdapterOutcome] = field(default_factory=list)
    suggestions: list[FilterSuggestion] = field(default_factory=list)


class ResponseBuilder:
    """Builds SearchResponse objects with counts, timing and pagination."""

    def __init__(self, timer: Callable[[], float] = time.perf_counter):
        """Initialize builder.

        Args:
            timer: Monotonic clock in seconds; must match the clock that
                produced ``RequestMeta.started_at``
        """
        self.timer = timer

    def start(self) -> float:
        return self.timer()

    def build(self, results: list[RankedResult], meta: RequestMeta) -> SearchResponse:
        """Build the response for the requested page.

        Args:
            results: Ranked and filtered results
            meta: Request metadata

        Returns:
            SearchResponse where ``totalResults`` counts all results and
            ``data`` holds only the requested page
        """
        page = max(1, meta.page)
        limit = max(1, meta.limit)
        offset = (page - 1) * limit
        page_results = results[offset : offset + limit]

        execution_time = max(0.0, (self.timer() - meta.started_at) * 1000)

        response = SearchResponse(
            success=True,
            data=page_results,
            metadata=SearchMetadata(
                total_results=len(results),
                execution_time=round(execution_time, 2),
                request_id=meta.request_id,
                page=page,
                limit=limit,
                processed_query=meta.processed_query,
                intent=meta.intent,
                ranking_method=meta.ranking_method,
                adapters=self.summarize(meta.outcomes),
                filter_suggestions=meta.suggestions,
            ),
        )

        logger.info(
            f"Response built: {len(page_results)}/{len(results)} results "
            f"(page {page}, limit {limit}) in {execution_time:.0f}ms"
        )
        return response

    @staticmethod
    def summarize(outcomes: list[AdapterOutcome]) -> AdapterSummary:
        summary = AdapterSummary()
        for outcome in outcomes:
            if outcome.status is AdapterStatus.SUCCESS:
                summary.success += 1
            elif outcome.status is AdapterStatus.FAILURE:
                summary.failure += 1
            else:
                summary.timeout += 1
        return summary

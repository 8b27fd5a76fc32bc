"""Search pipeline components."""

from omnisearch.search.cache import BoundedTTLCache
from omnisearch.search.filters import SmartFilters
from omnisearch.search.orchestrator import SearchOrchestrator
from omnisearch.search.query_processor import QueryProcessor
from omnisearch.search.ranker import ResultRanker
from omnisearch.search.response_builder import RequestMeta, ResponseBuilder
from omnisearch.search.transformer import ResultTransformer

__all__ = [
    "BoundedTTLCache",
    "QueryProcessor",
    "RequestMeta",
    "ResponseBuilder",
    "ResultRanker",
    "ResultTransformer",
    "SearchOrchestrator",
    "SmartFilters",
]

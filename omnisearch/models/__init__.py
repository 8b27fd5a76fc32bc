"""Pydantic models for the search aggregation service."""

from omnisearch.models.error import ErrorResponse
from omnisearch.models.filters import (
    FilterOption,
    FilterPreset,
    FilterSuggestion,
    FilterTypeInfo,
    SearchFilter,
)
from omnisearch.models.health import HealthCheck, HealthReport
from omnisearch.models.outcome import (
    AdapterCall,
    AdapterOutcome,
    AdapterState,
    AdapterStatus,
    IllegalStateTransition,
)
from omnisearch.models.query import ProcessedQuery, QueryContext, QueryEntity, QueryIntent
from omnisearch.models.result import CanonicalResult, RankedResult
from omnisearch.models.search import (
    AdapterSummary,
    SearchMetadata,
    SearchRequest,
    SearchResponse,
)

__all__ = [
    # Result models
    "CanonicalResult",
    "RankedResult",
    # Filter models
    "SearchFilter",
    "FilterPreset",
    "FilterSuggestion",
    "FilterOption",
    "FilterTypeInfo",
    # Adapter outcomes
    "AdapterCall",
    "AdapterOutcome",
    "AdapterState",
    "AdapterStatus",
    "IllegalStateTransition",
    # Query models
    "ProcessedQuery",
    "QueryContext",
    "QueryEntity",
    "QueryIntent",
    # Request/response models
    "SearchRequest",
    "SearchResponse",
    "SearchMetadata",
    "AdapterSummary",
    # Health and error models
    "HealthCheck",
    "HealthReport",
    "ErrorResponse",
]

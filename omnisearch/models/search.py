"""Search request/response models for the HTTP surface."""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from omnisearch.config import get_settings
from omnisearch.models.filters import FilterSuggestion, SearchFilter
from omnisearch.models.query import QueryIntent
from omnisearch.models.result import RankedResult


class SearchRequest(BaseModel):
    """Inbound search request."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    query: str = Field(description="Natural-language query (trimmed, 1..max_query_length chars)")
    user_id: UUID | None = None
    organization_id: UUID | None = None
    filters: list[SearchFilter] = Field(default_factory=list)
    page: int = Field(default=1, ge=1, description="1-based page number")
    limit: int | None = Field(default=None, ge=1, le=100, description="Page size")

    @field_validator("query")
    @classmethod
    def validate_query(cls, v: str) -> str:
        """Trim and enforce length bounds."""
        v = v.strip()
        if not v:
            raise ValueError("Query cannot be empty")
        max_length = get_settings().max_query_length
        if len(v) > max_length:
            raise ValueError(f"Query too long (max {max_length} characters)")
        return v


class AdapterSummary(BaseModel):
    """Count of adapter calls per settled status."""

    success: int = 0
    failure: int = 0
    timeout: int = 0


class SearchMetadata(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_results: int = Field(ge=0, description="Results after filtering, before pagination")
    execution_time: float = Field(ge=0.0, description="End-to-end time in milliseconds")
    request_id: str
    page: int = 1
    limit: int = 50
    processed_query: str | None = None
    intent: QueryIntent | None = None
    ranking_method: str | None = None
    adapters: AdapterSummary = Field(default_factory=AdapterSummary)
    filter_suggestions: list[FilterSuggestion] = Field(default_factory=list)


class SearchResponse(BaseModel):
    """Successful search response."""

    success: bool = True
    data: list[RankedResult]
    metadata: SearchMetadata

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)

"""Canonical result models shared by every stage after the transformer."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CanonicalResult(BaseModel):
    """Normalized, provider-agnostic search hit.

    Immutable once created. ``id`` is ``<providerPrefix>-<nativeId>`` so
    native ids from different providers never collide.
    """

    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    id: str = Field(min_length=1)
    title: str
    content: str
    source: str = Field(description="Human-readable source label, e.g. 'Gmail'")
    integration_type: str = Field(description="Machine type, e.g. 'google_gmail'")
    metadata: dict[str, Any] = Field(default_factory=dict)
    url: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    author: str | None = None
    tags: tuple[str, ...] = ()
    size: int | None = Field(default=None, ge=0, description="Size in bytes")
    content_type: str | None = None
    visibility: str | None = None

    @property
    def provider(self) -> str:
        """Provider part of the integration type ('google_gmail' -> 'google')."""
        return self.integration_type.split("_", 1)[0]

    @property
    def effective_date(self) -> datetime | None:
        return self.created_at or self.updated_at


class RankedResult(CanonicalResult):
    """Canonical result with a relevance score attached by the ranker."""

    relevance_score: float = Field(ge=0.0, le=1.0, description="Relevance score between 0 and 1")
    ranking_reason: str = ""

    @classmethod
    def from_canonical(
        cls,
        result: CanonicalResult,
        relevance_score: float,
        ranking_reason: str = "",
    ) -> "RankedResult":
        return cls(
            **result.model_dump(),
            relevance_score=relevance_score,
            ranking_reason=ranking_reason,
        )

"""Query understanding models."""

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class QueryIntent(BaseModel):
    """What the user is trying to do."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    type: str = "search"
    category: str = "general"
    confidence: float = 0.5

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v):
        return min(1.0, max(0.0, float(v)))


class QueryEntity(BaseModel):
    """An entity mentioned in the query (person, date, project, ...)."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    type: str
    value: str
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)


class QueryContext(BaseModel):
    """Request context passed to the query processor."""

    user_id: str | None = None
    organization_id: str | None = None
    integrations: list[str] = Field(default_factory=list)


class ProcessedQuery(BaseModel):
    """Structured, provider-agnostic query handed to every adapter."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    processed_query: str
    intent: QueryIntent = Field(default_factory=QueryIntent)
    entities: list[QueryEntity] = Field(default_factory=list)
    confidence: float = 0.5
    degraded: bool = Field(default=False, exclude=True)

    @field_validator("confidence", mode="before")
    @classmethod
    def clamp_confidence(cls, v):
        return min(1.0, max(0.0, float(v)))

    @classmethod
    def fallback(cls, raw_query: str) -> "ProcessedQuery":
        """Degraded result used when the language model is unavailable."""
        return cls(
            processed_query=raw_query.strip(),
            intent=QueryIntent(type="search", category="general", confidence=0.5),
            entities=[],
            confidence=0.5,
            degraded=True,
        )

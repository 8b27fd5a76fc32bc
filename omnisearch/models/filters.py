"""Filter, preset and suggestion models."""

import uuid
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def _filter_id() -> str:
    return f"filter_{uuid.uuid4().hex[:12]}"


class SearchFilter(BaseModel):
    """One facet over canonical results.

    ``type`` and ``operator`` are open strings: unknown values are accepted
    and treated as no-ops when applied.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(default_factory=_filter_id)
    type: str = Field(description="date_range, file_type, author, integration, tags, size, visibility, content_type")
    label: str = ""
    operator: str = Field(default="equals", description="equals, contains, in, not_in, between, greater_than, less_than")
    value: Any = None
    active: bool = True


class FilterPreset(BaseModel):
    """Named, reusable bundle of filters."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    name: str
    description: str = ""
    category: str = "Custom"
    filters: list[SearchFilter] = Field(default_factory=list)


class FilterSuggestion(BaseModel):
    """Advisory filter proposed from the result distribution."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: str
    label: str
    operator: str
    value: Any
    confidence: float = Field(ge=0.0, le=1.0)
    reason: str

    def to_filter(self) -> SearchFilter:
        return SearchFilter(type=self.type, label=self.label, operator=self.operator, value=self.value)


class FilterOption(BaseModel):
    value: str
    label: str


class FilterTypeInfo(BaseModel):
    """Catalog entry describing one supported filter type."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    type: str
    label: str
    description: str
    operators: list[str]
    input_type: str
    options: list[FilterOption] = Field(default_factory=list)

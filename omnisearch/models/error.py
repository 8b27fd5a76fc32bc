"""Error response models."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ErrorResponse(BaseModel):
    """Error response."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    error: str
    code: str | None = None
    details: Any = None
    timestamp: datetime
    request_id: str | None = None

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

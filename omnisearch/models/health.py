"""Health report models."""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

CheckStatus = Literal["pass", "warn", "fail"]
OverallStatus = Literal["healthy", "degraded", "unhealthy"]


class HealthCheck(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    status: CheckStatus
    message: str
    response_time: float = Field(default=0.0, ge=0.0, description="Check duration in milliseconds")
    details: dict[str, Any] = Field(default_factory=dict)


class HealthReport(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    status: OverallStatus
    timestamp: datetime
    version: str
    uptime: float = Field(ge=0.0, description="Process uptime in seconds")
    checks: dict[str, HealthCheck]

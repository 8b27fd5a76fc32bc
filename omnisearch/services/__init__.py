"""Business logic services."""

from omnisearch.services.health_service import DatabaseProbe, HealthService
from omnisearch.services.search_service import SearchService

__all__ = ["DatabaseProbe", "HealthService", "SearchService"]

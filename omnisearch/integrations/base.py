"""Uniform contract every provider adapter must honor."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

from omnisearch.models.query import ProcessedQuery

PROVIDER_LABELS: dict[str, str] = {
    "google": "Google",
    "slack": "Slack",
    "asana": "Asana",
    "quickbooks": "QuickBooks",
    "microsoft": "Microsoft",
    "procore": "Procore",
}


def provider_label(provider: str) -> str:
    return PROVIDER_LABELS.get(provider, provider.title())


@dataclass(frozen=True)
class ProviderCredential:
    """Access to one integration. Owned by the token service; read-only here."""

    provider: str
    access_token: str
    refresh_token: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def __repr__(self) -> str:
        return f"ProviderCredential(provider={self.provider!r}, access_token='***')"


@dataclass(frozen=True)
class ServiceSpec:
    """One searchable service exposed by a provider adapter."""

    name: str
    limit: int = 5


class IntegrationAdapter(ABC):
    """Provider adapter: given a processed query, returns native results or fails.

    Implementations return the provider-native payload for a service, e.g.
    ``{"messages": [...]}`` for ``google.gmail``. Any exception raised is
    treated as a failed call for that service only. Retries, if any, are the
    adapter's own business.
    """

    provider: str = ""

    def __init__(self, credential: ProviderCredential, services: tuple[ServiceSpec, ...]):
        self.credential = credential
        self.services = services

    @property
    def label(self) -> str:
        return provider_label(self.provider)

    @abstractmethod
    async def search(self, service: str, query: ProcessedQuery, limit: int) -> Any:
        """Search one service.

        Args:
            service: Service name, one of ``self.services``
            query: Processed query
            limit: Maximum number of native results to request

        Returns:
            Provider-native payload
        """

    async def close(self) -> None:
        """Release any held resources."""

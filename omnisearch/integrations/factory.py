"""Builds provider adapters from a user's credentials."""

import logging
from collections.abc import Callable

import httpx

from omnisearch.config import Settings
from omnisearch.integrations.base import IntegrationAdapter, ProviderCredential, ServiceSpec
from omnisearch.integrations.gateway import GatewayAdapter

logger = logging.getLogger(__name__)

# Searchable services per provider and how many native results each asks for.
PROVIDER_SERVICES: dict[str, tuple[ServiceSpec, ...]] = {
    "google": (
        ServiceSpec("gmail", 5),
        ServiceSpec("drive", 5),
        ServiceSpec("calendar", 5),
        ServiceSpec("docs", 3),
        ServiceSpec("sheets", 3),
        ServiceSpec("people", 5),
    ),
    "slack": (ServiceSpec("messages", 5),),
    "asana": (ServiceSpec("tasks", 5),),
    "quickbooks": (
        ServiceSpec("customers", 3),
        ServiceSpec("invoices", 3),
        ServiceSpec("items", 3),
        ServiceSpec("payments", 3),
    ),
    "microsoft": (
        ServiceSpec("outlook", 5),
        ServiceSpec("onedrive", 5),
        ServiceSpec("calendar", 5),
        ServiceSpec("word", 5),
        ServiceSpec("excel", 5),
    ),
    "procore": (
        ServiceSpec("documents", 5),
        ServiceSpec("rfis", 5),
    ),
}

AdapterBuilder = Callable[[str, ProviderCredential, tuple[ServiceSpec, ...]], IntegrationAdapter]


class AdapterFactory:
    """Creates one adapter per connected provider.

    By default every provider is served through the integration gateway when
    ``integration_gateway_url`` is configured. Custom builders can be
    registered per provider to plug in direct API clients.
    """

    def __init__(
        self,
        settings: Settings,
        builders: dict[str, AdapterBuilder] | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.settings = settings
        self._builders: dict[str, AdapterBuilder] = dict(builders or {})
        self._http_client = http_client
        self._owns_client = False

    def register(self, provider: str, builder: AdapterBuilder) -> None:
        """Register a custom adapter builder for a provider."""
        if provider not in PROVIDER_SERVICES:
            raise ValueError(f"Unknown provider '{provider}'")
        self._builders[provider] = builder

    def _get_http_client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=self.settings.adapter_timeout_seconds,
                limits=httpx.Limits(
                    max_connections=self.settings.max_concurrent_adapter_calls,
                    max_keepalive_connections=10,
                ),
            )
            self._owns_client = True
        return self._http_client

    def _gateway_builder(self) -> AdapterBuilder | None:
        base_url = self.settings.integration_gateway_url
        if not base_url:
            return None

        def build(provider: str, credential: ProviderCredential, services: tuple[ServiceSpec, ...]):
            return GatewayAdapter(provider, credential, services, self._get_http_client(), base_url)

        return build

    def create_adapters(
        self,
        tokens: dict[str, ProviderCredential | None],
    ) -> dict[str, IntegrationAdapter]:
        """Create adapters for every provider with a credential.

        Args:
            tokens: Provider id -> credential (None when not connected)

        Returns:
            Provider id -> adapter, only for providers that can be served
        """
        gateway = self._gateway_builder()
        adapters: dict[str, IntegrationAdapter] = {}

        for provider, credential in tokens.items():
            if credential is None:
                continue
            services = PROVIDER_SERVICES.get(provider)
            if services is None:
                logger.warning(f"Ignoring credential for unknown provider '{provider}'")
                continue

            builder = self._builders.get(provider) or gateway
            if builder is None:
                logger.warning(f"No adapter available for provider '{provider}' (no gateway configured)")
                continue
            adapters[provider] = builder(provider, credential, services)

        logger.debug(f"Created adapters: {sorted(adapters)}")
        return adapters

    async def close(self) -> None:
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
            self._owns_client = False

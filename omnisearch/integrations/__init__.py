"""Provider adapter contract, factory and token fetching."""

from omnisearch.integrations.base import (
    PROVIDER_LABELS,
    IntegrationAdapter,
    ProviderCredential,
    ServiceSpec,
    provider_label,
)
from omnisearch.integrations.factory import PROVIDER_SERVICES, AdapterFactory
from omnisearch.integrations.gateway import GatewayAdapter
from omnisearch.integrations.tokens import SettingsTokenFetcher, TokenFetcher

__all__ = [
    "PROVIDER_LABELS",
    "PROVIDER_SERVICES",
    "AdapterFactory",
    "GatewayAdapter",
    "IntegrationAdapter",
    "ProviderCredential",
    "ServiceSpec",
    "SettingsTokenFetcher",
    "TokenFetcher",
    "provider_label",
]

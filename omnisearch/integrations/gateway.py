"""Adapter that reaches providers through an HTTP integration gateway.

Deployments that front third-party APIs with a gateway service get a working
adapter for every provider without per-provider client code here: each
service search is ``POST {gateway_url}/{provider}/{service}/search`` carrying
the user's bearer credential.
"""

import logging
from typing import Any

import httpx

from omnisearch.errors import AdapterError
from omnisearch.integrations.base import IntegrationAdapter, ProviderCredential, ServiceSpec
from omnisearch.models.query import ProcessedQuery

logger = logging.getLogger(__name__)


class GatewayAdapter(IntegrationAdapter):
    """Provider adapter backed by the integration gateway."""

    def __init__(
        self,
        provider: str,
        credential: ProviderCredential,
        services: tuple[ServiceSpec, ...],
        client: httpx.AsyncClient,
        base_url: str,
    ):
        """Initialize gateway adapter.

        Args:
            provider: Provider id (google, slack, ...)
            credential: User credential for the provider
            services: Services to search
            client: Shared HTTP client (connection pooling across requests)
            base_url: Gateway base URL without trailing slash
        """
        super().__init__(credential, services)
        self.provider = provider
        self._client = client
        self._base_url = base_url.rstrip("/")

    def _build_url(self, service: str) -> str:
        return f"{self._base_url}/{self.provider}/{service}/search"

    async def search(self, service: str, query: ProcessedQuery, limit: int) -> Any:
        url = self._build_url(service)
        body = {
            "query": query.processed_query,
            "limit": limit,
            "intent": query.intent.model_dump(),
            "entities": [entity.model_dump() for entity in query.entities],
            "metadata": self.credential.metadata,
        }
        headers = {"Authorization": f"Bearer {self.credential.access_token}"}

        try:
            response = await self._client.post(url, json=body, headers=headers)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise AdapterError(
                self.provider,
                service,
                f"gateway returned HTTP {e.response.status_code}",
            ) from e
        except httpx.RequestError as e:
            raise AdapterError(self.provider, service, f"gateway request failed: {e}") from e
        except ValueError as e:
            raise AdapterError(self.provider, service, "gateway returned invalid JSON") from e

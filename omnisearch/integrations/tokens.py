"""Token fetching: which providers a user has connected."""

import logging
from abc import ABC, abstractmethod

from omnisearch.config import Settings
from omnisearch.integrations.base import ProviderCredential
from omnisearch.integrations.factory import PROVIDER_SERVICES

logger = logging.getLogger(__name__)


class TokenFetcher(ABC):
    """Source of provider credentials for a user."""

    @abstractmethod
    async def fetch_all_tokens(self, user_id: str) -> dict[str, ProviderCredential | None]:
        """Return one entry per known provider; None when not connected."""


class SettingsTokenFetcher(TokenFetcher):
    """Token fetcher backed by the ``provider_tokens`` setting.

    Useful for single-tenant deployments and local development. Production
    deployments inject a fetcher that talks to the real token store.
    """

    def __init__(self, settings: Settings):
        self._tokens = {
            user_id: {provider.lower(): token for provider, token in tokens.items()}
            for user_id, tokens in settings.provider_tokens.items()
        }

    async def fetch_all_tokens(self, user_id: str) -> dict[str, ProviderCredential | None]:
        user_tokens = self._tokens.get(user_id, {})
        credentials: dict[str, ProviderCredential | None] = {}
        for provider in PROVIDER_SERVICES:
            token = user_tokens.get(provider)
            credentials[provider] = (
                ProviderCredential(provider=provider, access_token=token) if token else None
            )

        connected = [p for p, c in credentials.items() if c is not None]
        logger.debug(f"Fetched tokens for user {user_id}: connected={connected}")
        return credentials

"""Session authentication for the search endpoint."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass

from omnisearch.config import Settings
from omnisearch.errors import AuthError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    """Authenticated caller."""

    user_id: str


class Authenticator(ABC):
    """Resolves the caller's session from the Authorization header."""

    @abstractmethod
    async def authenticate(self, authorization: str | None) -> Session:
        """Return the session for a request.

        Raises:
            AuthError: If there is no valid session
        """


def parse_bearer(authorization: str | None) -> str | None:
    """Extract the token from an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


class SettingsAuthenticator(Authenticator):
    """Validates bearer tokens against the ``session_tokens`` setting."""

    def __init__(self, settings: Settings):
        self._sessions = dict(settings.session_tokens)

    async def authenticate(self, authorization: str | None) -> Session:
        token = parse_bearer(authorization)
        if token is None:
            raise AuthError(details={"reason": "missing bearer token"})

        user_id = self._sessions.get(token)
        if user_id is None:
            logger.warning("Rejected unknown session token")
            raise AuthError(details={"reason": "unknown session token"})

        return Session(user_id=user_id)

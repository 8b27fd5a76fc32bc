"""Error taxonomy for the search pipeline.

Client errors (validation, credentials, authentication, missing mandatory
integration) short-circuit a request before any adapter is called.
Adapter and ranking errors are recovered inside their component and never
reach the HTTP layer. Anything else surfaces as an internal error.
"""

from typing import Any


class SearchError(Exception):
    """Base class for errors raised by the search pipeline."""

    code: str = "INTERNAL_SERVER_ERROR"
    status_code: int = 500

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.message = message
        self.details = details

    def user_message(self) -> str:
        """Message safe to show to the caller."""
        return self.message


class RequestValidationFailed(SearchError):
    """Malformed or missing request fields."""

    code = "VALIDATION_ERROR"
    status_code = 400


class MissingCredentialsError(SearchError):
    """User or organization id missing from the request."""

    code = "MISSING_CREDENTIALS"
    status_code = 400


class AuthError(SearchError):
    """No valid session for the caller."""

    code = "AUTHENTICATION_REQUIRED"
    status_code = 401

    def __init__(self, message: str = "Authentication required", details: Any = None):
        super().__init__(message, details)


class IntegrationMissingError(SearchError):
    """The mandatory integration is not connected for this user."""

    code = "INTEGRATION_MISSING"
    status_code = 400

    def __init__(self, provider_label: str, details: Any = None):
        super().__init__(f"{provider_label} account connection required", details)
        self.provider_label = provider_label


class AdapterError(SearchError):
    """One provider call failed. Recovered by the orchestrator."""

    code = "ADAPTER_ERROR"
    status_code = 502

    def __init__(self, provider: str, service: str, message: str, details: Any = None):
        super().__init__(f"{provider}.{service}: {message}", details)
        self.provider = provider
        self.service = service


class RankingServiceError(SearchError):
    """The ranking call failed or returned unusable output. Recovered by the ranker."""

    code = "RANKING_ERROR"
    status_code = 502


class InternalError(SearchError):
    """Unexpected failure; the caller only sees a generic message."""

    code = "INTERNAL_SERVER_ERROR"
    status_code = 500

    GENERIC_MESSAGE = "An unexpected error occurred during smart search. Please try again."

    def user_message(self) -> str:
        return self.GENERIC_MESSAGE

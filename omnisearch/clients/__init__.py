"""External API clients."""

from omnisearch.clients.llm_client import LLMClient, LLMResponseError

__all__ = ["LLMClient", "LLMResponseError"]

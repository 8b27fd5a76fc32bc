"""Client for OpenAI-compatible chat completion endpoints."""

import asyncio
import json
import logging
import re
from typing import Any

from openai import AsyncOpenAI, APIError, APITimeoutError, RateLimitError

logger = logging.getLogger(__name__)

_JSON_OBJECT_RE = re.compile(r"\{.*\}", re.DOTALL)


class LLMResponseError(ValueError):
    """The model answered, but not with a usable JSON object."""


class LLMClient:
    """Client for an OpenAI-compatible API with retry logic and error handling.

    Used for query understanding and result ranking. Works against
    api.openai.com or any compatible endpoint (Cerebras, vLLM, ...) via
    ``base_url``.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o-mini",
        base_url: str | None = None,
        timeout: float = 10.0,
        max_retries: int = 2,
    ):
        """Initialize LLM client.

        Args:
            api_key: API key for the endpoint
            model: Model name for chat completions (default: gpt-4o-mini)
            base_url: Optional OpenAI-compatible base URL
            timeout: Request timeout in seconds (default: 10.0)
            max_retries: Maximum number of attempts (default: 2)
        """
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,  # We handle retries manually
        )
        self.model = model
        self.timeout = timeout
        self.max_retries = max_retries

    async def _retry_with_backoff(
        self,
        func,
        *args,
        **kwargs,
    ) -> Any:
        """Execute function with exponential backoff retry logic.

        Retries up to max_retries times with exponentially increasing delays:
        1s, 2s, 4s, etc.

        Args:
            func: Async function to execute
            *args: Positional arguments for func
            **kwargs: Keyword arguments for func

        Returns:
            Result from successful function execution

        Raises:
            Exception: The last exception if all retries fail
        """
        last_exception = None

        for attempt in range(self.max_retries):
            try:
                return await func(*args, **kwargs)
            except (APIError, RateLimitError, APITimeoutError) as e:
                last_exception = e

                if attempt < self.max_retries - 1:
                    delay = 2 ** attempt
                    logger.warning(
                        f"LLM call failed (attempt {attempt + 1}/{self.max_retries}): "
                        f"{type(e).__name__}: {str(e)}. Retrying in {delay}s..."
                    )
                    await asyncio.sleep(delay)
                else:
                    logger.error(
                        f"LLM call failed after {self.max_retries} attempts: "
                        f"{type(e).__name__}: {str(e)}"
                    )

        raise last_exception

    async def generate(
        self,
        prompt: str,
        temperature: float = 0.1,
        max_tokens: int = 1000,
        system_message: str | None = None,
    ) -> str:
        """Generate a completion.

        Args:
            prompt: User prompt
            temperature: Sampling temperature (0.0 to 2.0)
            max_tokens: Maximum tokens in response
            system_message: Optional system message to set context

        Returns:
            Generated text response

        Raises:
            APITimeoutError: If request times out after retries
            APIError: If API call fails after retries
        """
        messages = []

        if system_message:
            messages.append({"role": "system", "content": system_message})

        messages.append({"role": "user", "content": prompt})

        async def _generate():
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=temperature,
                max_tokens=max_tokens,
            )
            return response.choices[0].message.content or ""

        return await self._retry_with_backoff(_generate)

    async def generate_json(
        self,
        prompt: str,
        system_message: str | None = None,
        temperature: float = 0.1,
        max_tokens: int = 1000,
    ) -> dict[str, Any]:
        """Generate a completion and parse the first JSON object in it.

        Models frequently wrap JSON in prose or code fences, so the outermost
        ``{...}`` span is extracted before parsing.

        Returns:
            Parsed JSON object

        Raises:
            LLMResponseError: If no JSON object can be parsed from the answer
            APIError: If API call fails after retries
        """
        text = await self.generate(
            prompt=prompt,
            temperature=temperature,
            max_tokens=max_tokens,
            system_message=system_message,
        )
        return parse_json_object(text)

    async def close(self):
        """Close the client connection."""
        await self.client.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


def parse_json_object(text: str) -> dict[str, Any]:
    """Parse the outermost JSON object embedded in ``text``.

    Raises:
        LLMResponseError: If there is no parseable object
    """
    match = _JSON_OBJECT_RE.search(text or "")
    if not match:
        raise LLMResponseError("No JSON object in model response")
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise LLMResponseError(f"Malformed JSON in model response: {e}") from e
    if not isinstance(data, dict):
        raise LLMResponseError("Model response JSON is not an object")
    return data

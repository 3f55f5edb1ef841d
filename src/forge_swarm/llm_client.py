"""
Text generator clients for the forge-swarm coordination engine.

The orchestration core only depends on the ``TextGenerator`` protocol: an
async ``generate()`` that returns text or raises. Any exception raised by a
generator is treated uniformly as "this call failed" by the executors.

Provides a real Anthropic-backed client, a retrying wrapper and a mock client
for tests.
"""

import asyncio
import logging
import os
from typing import Any, Protocol, runtime_checkable

import anthropic
from anthropic import AsyncAnthropic

logger = logging.getLogger("forge-swarm")


# ---------------------------------------------------------------------------
# Custom Exceptions
# ---------------------------------------------------------------------------


class LLMClientError(Exception):
    """Base exception for LLM client errors."""
    pass


class LLMConfigurationError(LLMClientError):
    """Raised when LLM client is misconfigured."""
    pass


class LLMAPIError(LLMClientError):
    """Raised when the LLM API returns an error."""
    pass


class LLMRateLimitError(LLMClientError):
    """Raised when rate limit is exceeded."""
    pass


# ---------------------------------------------------------------------------
# Protocol
# ---------------------------------------------------------------------------


@runtime_checkable
class TextGenerator(Protocol):
    """Opaque text generation capability consumed by the orchestrators."""

    async def generate(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        ...


# ---------------------------------------------------------------------------
# Mock LLM Client (for testing)
# ---------------------------------------------------------------------------


class MockLLMClient:
    """Mock generator returning canned responses.

    Resolution order for each call:
    1. If any ``fail_on`` substring occurs in the prompt, raise ``LLMAPIError``.
    2. If any ``response_map`` key occurs in the prompt, return its value
       (first matching key in insertion order).
    3. Otherwise return the next entry of ``responses``, cycling, or
       ``default_response`` when the list is empty.

    Args:
        responses: Responses returned in order.
        default_response: Response when ``responses`` is empty.
        response_map: Prompt substring -> response.
        fail_on: Prompt substrings that make the call fail.

    Example:
        >>> mock = MockLLMClient(responses=["First response", "Second response"])
        >>> await mock.generate("prompt")
        'First response'
    """

    def __init__(
        self,
        responses: list[str] | None = None,
        default_response: str = "Mock LLM response.",
        response_map: dict[str, str] | None = None,
        fail_on: list[str] | None = None,
    ) -> None:
        self.responses = responses or []
        self.default_response = default_response
        self.response_map = response_map or {}
        self.fail_on = fail_on or []
        self.call_count = 0
        self.calls: list[dict[str, Any]] = []
        self._cursor = 0

    async def generate(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        self.calls.append({
            "prompt": prompt,
            "system_prompt": system_prompt,
            "temperature": temperature,
            "max_tokens": max_tokens,
        })
        self.call_count += 1

        for marker in self.fail_on:
            if marker in prompt:
                raise LLMAPIError(f"Mock failure triggered by '{marker}'")

        for marker, response in self.response_map.items():
            if marker in prompt:
                return response

        if not self.responses:
            return self.default_response

        response = self.responses[self._cursor % len(self.responses)]
        self._cursor += 1
        return response

    def reset(self) -> None:
        """Reset call history."""
        self.call_count = 0
        self._cursor = 0
        self.calls.clear()


# ---------------------------------------------------------------------------
# Anthropic LLM Client
# ---------------------------------------------------------------------------


class AnthropicLLMClient:
    """Anthropic API client implementing the TextGenerator protocol.

    Args:
        api_key: Anthropic API key. If None, reads from ANTHROPIC_API_KEY env var.
        model: Model identifier.
        temperature: Default temperature when a call does not override it.
        default_max_tokens: Default max tokens when a call does not override it.
        timeout: Request timeout in seconds, enforced by the SDK.

    Raises:
        LLMConfigurationError: If API key is missing.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "claude-sonnet-4-5-20250929",
        temperature: float = 0.7,
        default_max_tokens: int = 1024,
        timeout: float = 60.0,
    ) -> None:
        self.api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not self.api_key:
            raise LLMConfigurationError(
                "Anthropic API key is required. Provide it via the 'api_key' parameter "
                "or set the ANTHROPIC_API_KEY environment variable."
            )

        self.model = model
        self.temperature = temperature
        self.default_max_tokens = default_max_tokens
        self.timeout = timeout

        self.client = AsyncAnthropic(api_key=self.api_key, timeout=timeout)

        logger.info(
            f"Initialized AnthropicLLMClient with model={model}, "
            f"temperature={temperature}, default_max_tokens={default_max_tokens}"
        )

    async def generate(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        """Generate text from a prompt using the Anthropic API.

        Raises:
            LLMAPIError: If the API returns an error.
            LLMRateLimitError: If rate limit is exceeded.
        """
        create_kwargs: dict[str, Any] = {
            "model": self.model,
            "max_tokens": max_tokens or self.default_max_tokens,
            "temperature": self.temperature if temperature is None else temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system_prompt:
            create_kwargs["system"] = system_prompt

        try:
            message = await self.client.messages.create(**create_kwargs)
        except anthropic.RateLimitError as e:
            logger.error(f"Rate limit exceeded: {e}")
            raise LLMRateLimitError(f"Rate limit exceeded: {e}") from e
        except anthropic.APIError as e:
            logger.error(f"Anthropic API error: {e}")
            raise LLMAPIError(f"API error: {e}") from e

        response_text = "".join(
            block.text for block in message.content if hasattr(block, "text")
        )

        logger.debug(
            f"Generated {len(response_text)} chars with model {self.model} "
            f"(tokens: {message.usage.input_tokens} in, {message.usage.output_tokens} out)"
        )
        return response_text


# ---------------------------------------------------------------------------
# Retrying wrapper
# ---------------------------------------------------------------------------


class RetryingLLMClient:
    """Wraps a generator and retries failed calls with exponential backoff.

    Delays are ``base_delay * 2**attempt`` capped at ``max_delay``. The last
    error is re-raised once ``max_attempts`` calls have failed.
    """

    def __init__(
        self,
        inner: TextGenerator,
        max_attempts: int = 3,
        base_delay: float = 1.0,
        max_delay: float = 10.0,
    ) -> None:
        if max_attempts < 1:
            raise LLMConfigurationError("max_attempts must be a positive integer")
        if base_delay < 0 or max_delay < base_delay:
            raise LLMConfigurationError("delays must satisfy 0 <= base_delay <= max_delay")

        self.inner = inner
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.max_delay = max_delay

    async def generate(
        self,
        prompt: str,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> str:
        for attempt in range(self.max_attempts):
            try:
                return await self.inner.generate(
                    prompt,
                    system_prompt=system_prompt,
                    temperature=temperature,
                    max_tokens=max_tokens,
                )
            except Exception as e:
                if attempt == self.max_attempts - 1:
                    raise
                delay = min(self.base_delay * (2 ** attempt), self.max_delay)
                logger.warning(
                    f"Generator call attempt {attempt + 1}/{self.max_attempts} failed: {e}; "
                    f"retrying in {delay:.1f}s"
                )
                await asyncio.sleep(delay)

        raise LLMClientError("Retry loop exited without a result")


__all__ = [
    "LLMClientError",
    "LLMConfigurationError",
    "LLMAPIError",
    "LLMRateLimitError",
    "TextGenerator",
    "MockLLMClient",
    "AnthropicLLMClient",
    "RetryingLLMClient",
]

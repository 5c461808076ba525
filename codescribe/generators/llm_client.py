"""Claude API client with rate limiting and retries.

Wraps the Anthropic SDK behind the prompt-in/text-out contract used by
the documentation and workflow generators, with client-side rate
limiting, exponential backoff for transient errors and cumulative
token accounting.
"""

import logging
import os
import time
from dataclasses import dataclass
from typing import Any, Optional

import anthropic

from codescribe.utils.config import APIConfig

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = (
    "You are a technical documentation expert. Generate precise, structured "
    "documentation based on code analysis."
)


@dataclass
class TokenUsage:
    """Token usage statistics.

    Attributes:
        input_tokens: Number of tokens in the prompt.
        output_tokens: Number of tokens in the response.
    """

    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total_tokens(self) -> int:
        """Total tokens consumed."""
        return self.input_tokens + self.output_tokens


@dataclass
class GenerationResult:
    """Result of one generation call."""

    content: str
    usage: TokenUsage
    model: str
    stop_reason: Optional[str] = None


class LLMClient:
    """Client for the Anthropic Claude API.

    The Anthropic client is created lazily, so constructing an LLMClient
    without ``ANTHROPIC_API_KEY`` only fails once a request is made.

    Args:
        config: API configuration. Uses defaults if not provided.
    """

    def __init__(self, config: Optional[APIConfig] = None) -> None:
        self.config = config or APIConfig()
        self._api_key = os.getenv("ANTHROPIC_API_KEY", "")
        self._client: Optional[anthropic.Anthropic] = None
        self._last_request_time: float = 0.0
        self._request_interval: float = 60.0 / max(self.config.rate_limit_rpm, 1)
        self._total_usage = TokenUsage()

    @property
    def client(self) -> anthropic.Anthropic:
        """The Anthropic client.

        Raises:
            ValueError: If ANTHROPIC_API_KEY is not set.
        """
        if self._client is None:
            if not self._api_key:
                raise ValueError(
                    "ANTHROPIC_API_KEY environment variable is not set. "
                    "Set it before generating documentation."
                )
            self._client = anthropic.Anthropic(api_key=self._api_key)
        return self._client

    @property
    def total_usage(self) -> TokenUsage:
        """Cumulative token usage across all calls."""
        return self._total_usage

    def complete(self, prompt: str) -> str:
        """Send a prompt with the default system prompt and return the text.

        Raises:
            ValueError: If the API key is not set.
            anthropic.APIError: If the call fails after all retries.
        """
        return self.generate(prompt, system=DEFAULT_SYSTEM_PROMPT).content

    def generate(
        self,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> GenerationResult:
        """Generate text for a prompt.

        Args:
            prompt: The user message.
            system: Optional system prompt.
            max_tokens: Maximum tokens to generate. Uses config default.
            temperature: Sampling temperature. Uses config default.

        Returns:
            The generated content and its usage.

        Raises:
            ValueError: If the API key is not set.
            anthropic.APIError: If the call fails after all retries.
        """
        self._apply_rate_limit()

        request: dict[str, Any] = {
            "model": self.config.model,
            "max_tokens": max_tokens or self.config.max_tokens,
            "temperature": self.config.temperature if temperature is None else temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            request["system"] = system

        response = self._call_with_retry(**request)

        content = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
        usage = TokenUsage(
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )
        self._total_usage.input_tokens += usage.input_tokens
        self._total_usage.output_tokens += usage.output_tokens

        logger.info(
            "Generated %d tokens (input: %d, output: %d)",
            usage.total_tokens,
            usage.input_tokens,
            usage.output_tokens,
        )
        return GenerationResult(
            content=content,
            usage=usage,
            model=response.model,
            stop_reason=response.stop_reason,
        )

    def _apply_rate_limit(self) -> None:
        elapsed = time.monotonic() - self._last_request_time
        if elapsed < self._request_interval:
            wait = self._request_interval - elapsed
            logger.debug("Rate limiting: sleeping %.2f seconds", wait)
            time.sleep(wait)
        self._last_request_time = time.monotonic()

    def _call_with_retry(self, **request: Any) -> anthropic.types.Message:
        """Call the Messages API, retrying rate limits and 5xx responses.

        Raises:
            anthropic.APIError: If retries are exhausted or the error is
                not retryable.
        """
        attempts = max(1, self.config.retry_max_attempts)
        for attempt in range(1, attempts + 1):
            try:
                return self.client.messages.create(**request)
            except anthropic.RateLimitError:
                if attempt == attempts:
                    raise
                reason = "Rate limited"
            except anthropic.APIStatusError as e:
                if e.status_code < 500 or attempt == attempts:
                    raise
                reason = f"Server error {e.status_code}"

            delay = self.config.retry_base_delay * (2 ** (attempt - 1))
            logger.warning(
                "%s (attempt %d/%d), retrying in %.1f seconds", reason, attempt, attempts, delay
            )
            time.sleep(delay)

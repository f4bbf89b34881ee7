"""
Anthropic Claude API client wrapper.

This module provides a thin wrapper around the Anthropic SDK that:
1. Implements our StructuredModelClient protocol
2. Gets structured output by forcing a single tool call
3. Provides consistent error handling
4. Enables easy mocking for tests

The wrapper is intentionally thin. It knows about Claude's message format
but nothing about workouts or coaching.
"""

import logging
import os
from dataclasses import dataclass
from typing import Any, Optional

import anthropic
from anthropic import APIError, APITimeoutError, RateLimitError

from velovibe.core.coaching.coach import StructuredModelClient


logger = logging.getLogger(__name__)


class AnthropicClientError(Exception):
    """Raised when API calls fail."""
    pass


class RateLimitExceeded(AnthropicClientError):
    """Raised when we hit rate limits."""
    pass


@dataclass
class AnthropicConfig:
    """
    Configuration for the Anthropic client.

    Validated at construction time so a bad config fails at startup rather
    than on the first coaching request.
    """
    api_key: str
    model: str = "claude-sonnet-4-20250514"
    max_tokens: int = 512
    temperature: float = 0.7
    timeout_seconds: float = 20.0

    def __post_init__(self) -> None:
        if not self.api_key:
            raise ValueError("API key is required")
        if self.max_tokens < 1:
            raise ValueError("max_tokens must be positive")
        if not 0 <= self.temperature <= 1:
            raise ValueError("temperature must be between 0 and 1")
        if self.timeout_seconds <= 0:
            raise ValueError("timeout_seconds must be positive")


class AnthropicCoachingClient(StructuredModelClient):
    """
    Implementation of StructuredModelClient using Claude.

    The schema is offered as the only tool and the model is required to
    call it, so the tool input is the structured reply. SDK retries are
    turned off: a failed call goes straight to the local fallback.
    """

    def __init__(self, config: AnthropicConfig) -> None:
        self._config = config
        self._client = anthropic.AsyncAnthropic(
            api_key=config.api_key,
            timeout=config.timeout_seconds,
            max_retries=0,
        )

    async def generate_structured(
        self,
        system_prompt: str,
        user_prompt: str,
        schema_name: str,
        schema: dict[str, Any],
    ) -> dict[str, Any]:
        """Ask Claude for a reply shaped like `schema` and return it as a dict."""
        try:
            response = await self._client.messages.create(
                model=self._config.model,
                max_tokens=self._config.max_tokens,
                temperature=self._config.temperature,
                system=system_prompt,
                messages=[
                    {"role": "user", "content": user_prompt}
                ],
                tools=[
                    {
                        "name": schema_name,
                        "description": "Record the coaching message, next target and vibe check.",
                        "input_schema": schema,
                    }
                ],
                tool_choice={"type": "tool", "name": schema_name},
            )

        except RateLimitError as e:
            logger.warning("Rate limit hit", extra={"error": str(e)})
            raise RateLimitExceeded("API rate limit exceeded. Please try again later.") from e
        except APITimeoutError as e:
            logger.warning("Coaching request timed out", extra={"timeout_seconds": self._config.timeout_seconds})
            raise AnthropicClientError("API request timed out") from e
        except APIError as e:
            logger.error("API error", extra={"error": str(e), "status": getattr(e, "status_code", None)})
            raise AnthropicClientError(f"API error: {e.message}") from e

        return self._extract_tool_input(response, schema_name)

    async def close(self) -> None:
        """Close the underlying HTTP connections."""
        await self._client.close()

    def _extract_tool_input(self, response, schema_name: str) -> dict[str, Any]:
        """Pull the forced tool call's input out of the response blocks."""
        for block in response.content or []:
            if getattr(block, "type", None) == "tool_use" and getattr(block, "name", None) == schema_name:
                if isinstance(block.input, dict):
                    return block.input
                break

        logger.warning(
            "No structured reply in response",
            extra={"stop_reason": getattr(response, "stop_reason", None)}
        )
        raise AnthropicClientError("Response did not contain the requested tool call")


# ---------------------------------------------------------------------------
# Factory Function
# ---------------------------------------------------------------------------

def create_anthropic_client(
    api_key: Optional[str] = None,
    model: str = "claude-sonnet-4-20250514",
) -> AnthropicCoachingClient:
    """
    Factory function to create a configured client.

    Reads the API key from the parameter or the ANTHROPIC_API_KEY
    environment variable.
    """
    key = api_key or os.environ.get("ANTHROPIC_API_KEY")
    if not key:
        raise ValueError(
            "API key must be provided or set in ANTHROPIC_API_KEY environment variable"
        )

    config = AnthropicConfig(api_key=key, model=model)
    return AnthropicCoachingClient(config)

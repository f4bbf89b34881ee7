"""
Anthropic Claude API client wrapper.

Implements the StructuredModelClient protocol from core.coaching.coach.
"""

from .client import (
    AnthropicClientError,
    AnthropicCoachingClient,
    AnthropicConfig,
    RateLimitExceeded,
    create_anthropic_client,
)

__all__ = [
    "AnthropicClientError",
    "AnthropicCoachingClient",
    "AnthropicConfig",
    "RateLimitExceeded",
    "create_anthropic_client",
]

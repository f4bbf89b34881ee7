"""
Coaching logic and prompt management.

This module turns a workout history into a coaching suggestion. It's
framework-agnostic and doesn't know about HTTP or which model answers.

There are two providers behind one interface:
- ModelCoach asks a language model for a structured reply
- LocalCoach computes a deterministic suggestion without any network call

FallbackCoach composes them: the model first, the local coach when the model
fails. Callers always get a usable CoachResponse.

The prompts are here, not in config, because they're core business logic.
"""

import json
import logging
import math
from typing import Any, Protocol, Sequence

from ..tracking.models import Workout
from ..tracking.stats import chronological
from .models import CoachReply, CoachResponse, VibeCheck


logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Protocols (interfaces)
# ---------------------------------------------------------------------------

class StructuredModelClient(Protocol):
    """
    Interface for LLM clients that can return structured output.

    The coach only needs "send a prompt, get back a JSON object shaped like
    this schema". Whether that's Claude tool use or a test double doesn't
    matter here.
    """

    async def generate_structured(
        self,
        system_prompt: str,
        user_prompt: str,
        schema_name: str,
        schema: dict[str, Any],
    ) -> dict[str, Any]:
        """Return the model's reply as a JSON object."""
        ...


class CoachingProvider(Protocol):
    """Anything that can turn a workout history into a coaching response."""

    async def request_coaching(self, history: Sequence[Workout]) -> CoachResponse:
        ...


class CoachingResponseError(Exception):
    """Raised when the model's reply doesn't match the requested schema."""
    pass


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------

SYSTEM_PROMPT = """You are an elite, high-energy HIIT spin instructor. Your goal is to encourage progressive overload (improving performance over time) based purely on CALORIE OUTPUT, assuming every session has the same duration.

## Your Approach
- Compare the most recent session against the trend, not just against the previous session.
- Set a realistic but challenging calorie target for the next workout.
- Keep it short (at most two sentences) and hype-man style.
- Be honest about a decline, but always end on something the athlete can act on."""


COACHING_USER_PROMPT_TEMPLATE = """Here is the athlete's recent history, oldest first:
{history}

Analyze the trend. Are they improving? Stalling?
1. Comment specifically on their last performance compared to the trend.
2. Set the calorie target for the NEXT workout.
3. Pick the vibe check: fire if improving, chill if stable, warning if declining.

Respond by calling the {schema_name} tool."""


COACHING_SCHEMA_NAME = "record_coaching"

FIRST_SESSION_RESPONSE = CoachResponse(
    message="Welcome to VeloVibe! Let's crush that first ride. Aim for a solid baseline today.",
    target_calories=300,
    vibe_check=VibeCheck.CHILL,
)

FALLBACK_MESSAGE = "Keep pushing! Beat your last score to maintain the gains."

# Next target when the model is unavailable: 2% over the most recent session.
FALLBACK_PROGRESSION = 1.02

DEFAULT_HISTORY_SIZE = 5


# ---------------------------------------------------------------------------
# Providers
# ---------------------------------------------------------------------------

class LocalCoach:
    """
    Deterministic coaching without a model.

    Used as the fallback when the model call fails, and usable on its own
    in tests or offline setups.
    """

    async def request_coaching(self, history: Sequence[Workout]) -> CoachResponse:
        if not history:
            return FIRST_SESSION_RESPONSE

        latest = chronological(history)[-1]
        return CoachResponse(
            message=FALLBACK_MESSAGE,
            target_calories=math.ceil(latest.calories * FALLBACK_PROGRESSION),
            vibe_check=VibeCheck.CHILL,
        )


class ModelCoach:
    """
    Coaching from a language model.

    Only the last few sessions are sent, and only their date and calories:
    duration is left out so the model reasons about the calorie trend alone.
    """

    def __init__(
        self,
        client: StructuredModelClient,
        history_size: int = DEFAULT_HISTORY_SIZE,
    ) -> None:
        if history_size < 1:
            raise ValueError("history_size must be positive")
        self._client = client
        self._history_size = history_size

    def build_history_payload(self, history: Sequence[Workout]) -> list[dict[str, Any]]:
        """The subset of history that is sent to the model."""
        recent = chronological(history)[-self._history_size:]
        return [{"date": w.date, "calories": w.calories} for w in recent]

    def build_user_prompt(self, history: Sequence[Workout]) -> str:
        return COACHING_USER_PROMPT_TEMPLATE.format(
            history=json.dumps(self.build_history_payload(history), indent=2),
            schema_name=COACHING_SCHEMA_NAME,
        )

    async def request_coaching(self, history: Sequence[Workout]) -> CoachResponse:
        if not history:
            return FIRST_SESSION_RESPONSE

        raw = await self._client.generate_structured(
            system_prompt=SYSTEM_PROMPT,
            user_prompt=self.build_user_prompt(history),
            schema_name=COACHING_SCHEMA_NAME,
            schema=CoachReply.model_json_schema(),
        )

        return self._parse_reply(raw)

    def _parse_reply(self, raw: Any) -> CoachResponse:
        """
        Validate the model's reply. A reply missing or mangling any field
        is rejected as a whole; we never keep half of it.
        """
        if not isinstance(raw, dict):
            raise CoachingResponseError(f"Expected a JSON object, got {type(raw).__name__}")

        try:
            return CoachReply.model_validate(raw).to_response()
        except ValueError as e:
            # pydantic's ValidationError is a ValueError subclass
            raise CoachingResponseError(f"Invalid coaching reply: {e}") from e


class FallbackCoach:
    """
    Try the primary provider; on any failure, answer from the fallback.

    One attempt only: no retries. This is the only place coaching errors
    are absorbed.
    """

    def __init__(
        self,
        primary: CoachingProvider,
        fallback: CoachingProvider | None = None,
    ) -> None:
        self._primary = primary
        self._fallback = fallback or LocalCoach()

    async def request_coaching(self, history: Sequence[Workout]) -> CoachResponse:
        try:
            return await self._primary.request_coaching(history)
        except Exception as e:
            logger.warning(
                "Coaching request failed; using local fallback",
                extra={"error": str(e), "error_type": type(e).__name__, "history_size": len(history)}
            )
            return await self._fallback.request_coaching(history)

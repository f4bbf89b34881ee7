"""
Domain models for coaching suggestions.

`CoachReply` is the wire contract with the coaching model: the same class
produces the JSON schema we request and validates what comes back.
`CoachResponse` is what the rest of the app works with.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class VibeCheck(Enum):
    """
    How the recent trend feels.

    The names are what the app shows; `trend` is what they mean.
    """
    FIRE = "fire"        # improving
    CHILL = "chill"      # stable
    WARNING = "warning"  # declining

    @property
    def trend(self) -> str:
        return {
            VibeCheck.FIRE: "improving",
            VibeCheck.CHILL: "stable",
            VibeCheck.WARNING: "declining",
        }[self]


@dataclass(frozen=True)
class CoachResponse:
    """An encouragement message plus a calorie target for the next session."""
    message: str
    target_calories: Union[int, float]
    vibe_check: VibeCheck

    def __post_init__(self) -> None:
        if not self.message.strip():
            raise ValueError("Coaching message cannot be empty")
        if self.target_calories < 0:
            raise ValueError("Target calories cannot be negative")


class CoachReply(BaseModel):
    """
    Structured reply requested from the coaching model.

    Strict mode so that "300" (a string) or a missing field is rejected
    rather than coerced; a rejected reply falls back to the local coach.
    Strict floats still accept integers.
    """
    model_config = ConfigDict(strict=True, extra="ignore", allow_inf_nan=False)

    message: str = Field(
        min_length=1,
        description="Hype message and analysis, at most two sentences.",
    )
    targetCalories: float = Field(
        ge=0,
        description="The numeric calorie goal for the next session.",
    )
    vibeCheck: Literal["fire", "chill", "warning"] = Field(
        description="The mood of the progress. fire = improving, chill = stable, warning = declining.",
    )

    def to_response(self) -> CoachResponse:
        return CoachResponse(
            message=self.message.strip(),
            target_calories=self.targetCalories,
            vibe_check=VibeCheck(self.vibeCheck),
        )

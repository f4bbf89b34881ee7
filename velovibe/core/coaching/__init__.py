"""
AI coaching for workout histories.

Contains the coaching providers (model-backed, local, and the fallback that
composes them), the reply contract, and the request tracker.
"""

from .models import CoachReply, CoachResponse, VibeCheck
from .coach import (
    CoachingProvider,
    CoachingResponseError,
    FallbackCoach,
    LocalCoach,
    ModelCoach,
    StructuredModelClient,
)
from .tracker import CoachInsightTracker, InsightTicket

__all__ = [
    "CoachReply",
    "CoachResponse",
    "VibeCheck",
    "CoachingProvider",
    "CoachingResponseError",
    "FallbackCoach",
    "LocalCoach",
    "ModelCoach",
    "StructuredModelClient",
    "CoachInsightTracker",
    "InsightTicket",
]

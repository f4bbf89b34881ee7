"""
FastAPI dependency injection.

Dependencies provide the store, the coach, the insight tracker and the
configuration to route handlers. Using dependency injection means:
- Routes don't instantiate their own dependencies (easier to test)
- Dependencies can be overridden in tests via app.dependency_overrides
- Configuration is centralized

The store and the tracker are process-wide: the store owns the canonical
collections, so there must be exactly one. Handlers are `async def`, which
keeps every store mutation on the event loop thread.
"""

import logging
from typing import Annotated, Optional

from fastapi import Depends

from ..config.settings import Settings, get_settings
from ..core.coaching.coach import CoachingProvider, FallbackCoach, LocalCoach, ModelCoach
from ..core.coaching.tracker import CoachInsightTracker
from ..core.tracking.store import WorkoutStore
from ..infrastructure.anthropic.client import AnthropicCoachingClient, AnthropicConfig
from ..infrastructure.storage.client import create_storage

logger = logging.getLogger(__name__)

_store: Optional[WorkoutStore] = None
_tracker: Optional[CoachInsightTracker] = None
_coach: Optional[CoachingProvider] = None
_anthropic_client: Optional[AnthropicCoachingClient] = None


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_workout_store(
    settings: Annotated[Settings, Depends(get_settings)],
) -> WorkoutStore:
    """
    Provide the process-wide WorkoutStore.

    Created on first use: building it loads and migrates persisted data.
    """
    global _store

    if _store is None:
        storage = create_storage(
            data_dir=settings.data_dir,
            mock_mode=settings.storage_mock_mode,
        )
        _store = WorkoutStore(storage)
        logger.info(
            "Created workout store",
            extra={"mock_mode": settings.storage_mock_mode, "data_dir": settings.data_dir}
        )

    return _store


def get_insight_tracker() -> CoachInsightTracker:
    """Provide the process-wide coaching request tracker."""
    global _tracker

    if _tracker is None:
        _tracker = CoachInsightTracker()

    return _tracker


async def get_coach(
    settings: Annotated[Settings, Depends(get_settings)],
) -> Optional[CoachingProvider]:
    """
    Provide the process-wide coaching provider, or None when coaching is
    disabled.

    No Anthropic key means no coaching at all, not local-only coaching:
    the app simply doesn't show insights. The provider and its Anthropic
    client are built once and shared by every request.
    """
    global _coach, _anthropic_client

    if not settings.coaching_enabled:
        logger.debug("Coaching disabled: no Anthropic key configured")
        return None

    if _coach is not None:
        return _coach

    config = AnthropicConfig(
        api_key=settings.anthropic_api_key,
        model=settings.anthropic_model,
        max_tokens=settings.anthropic_max_tokens,
        temperature=settings.anthropic_temperature,
        timeout_seconds=settings.anthropic_timeout_seconds,
    )

    _anthropic_client = AnthropicCoachingClient(config)
    model_coach = ModelCoach(
        client=_anthropic_client,
        history_size=settings.coach_history_size,
    )
    _coach = FallbackCoach(primary=model_coach, fallback=LocalCoach())

    logger.info("Created coaching provider", extra={"model": settings.anthropic_model})

    return _coach


async def close_coach() -> None:
    """Release the shared Anthropic client's connections. Called on shutdown."""
    global _coach, _anthropic_client

    if _anthropic_client is not None:
        await _anthropic_client.close()
    _coach = None
    _anthropic_client = None


def reset_state() -> None:
    """Forget the process-wide store, tracker and coach. Used by tests."""
    global _store, _tracker, _coach, _anthropic_client
    _store = None
    _tracker = None
    _coach = None
    _anthropic_client = None


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
WorkoutStoreDep = Annotated[WorkoutStore, Depends(get_workout_store)]
InsightTrackerDep = Annotated[CoachInsightTracker, Depends(get_insight_tracker)]
CoachDep = Annotated[Optional[CoachingProvider], Depends(get_coach)]
SettingsDep = Annotated[Settings, Depends(get_settings)]

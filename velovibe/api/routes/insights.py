"""
Insight endpoints: stats, trend series and AI coaching.

Stats and trend are recomputed from the store on every request; they're
cheap and never cached. Coaching is expensive, so the tracker keeps the last
applied response and only asks again when the active exercise or its number
of workouts changed.
"""

import logging
from typing import Optional, Union

from fastapi import APIRouter, Query
from pydantic import BaseModel, Field

from ...core.coaching.models import CoachResponse
from ...core.tracking.stats import build_trend_series, compute_stats, filter_by_exercise
from ..dependencies import CoachDep, InsightTrackerDep, SettingsDep, WorkoutStoreDep
from .workouts import WorkoutItem, resolve_exercise_id

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class StatsItem(BaseModel):
    """Headline numbers for one exercise."""
    current: WorkoutItem = Field(description="The most recent session")
    previous: Optional[WorkoutItem] = Field(None, description="The session before it")
    delta: Union[int, float] = Field(description="Calories vs. the previous session")
    delta_percent: Optional[float] = Field(
        description="Percentage change vs. the previous session; null when the previous session was 0 kcal"
    )
    best: Union[int, float] = Field(description="All-time best calories")
    is_personal_best: bool
    weekly_count: int = Field(description="Sessions in the last 7 days")
    total_workouts: int
    average_intensity: float = Field(description="Mean calories per minute")
    current_streak: int = Field(description="Consecutive days with a session")


class StatsResponse(BaseModel):
    exercise_id: str
    stats: Optional[StatsItem] = Field(description="Null when the exercise has no workouts")


class TrendPointItem(BaseModel):
    unique_key: str
    workout_id: str
    date: str
    display_date: str = Field(description="UTC day label, e.g. 'Oct 3'")
    calories: Union[int, float]


class TrendResponse(BaseModel):
    exercise_id: str
    window_size: int
    points: list[TrendPointItem] = Field(description="Oldest to newest")


class CoachItem(BaseModel):
    message: str
    target_calories: Union[int, float]
    vibe_check: str = Field(description="fire, chill or warning")
    trend: str = Field(description="improving, stable or declining")

    @classmethod
    def from_domain(cls, response: CoachResponse) -> "CoachItem":
        return cls(
            message=response.message,
            target_calories=response.target_calories,
            vibe_check=response.vibe_check.value,
            trend=response.vibe_check.trend,
        )


class CoachInsightResponse(BaseModel):
    enabled: bool = Field(description="False when no coaching credential is configured")
    exercise_id: str
    insight: Optional[CoachItem] = None
    cached: bool = Field(False, description="True when no new request was needed")
    applied: bool = Field(
        False,
        description="False when the active exercise changed while the request was running",
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "/stats",
    response_model=StatsResponse,
    summary="Summary statistics for an exercise",
)
async def get_stats(
    store: WorkoutStoreDep,
    exercise_id: Optional[str] = Query(default=None, description="Defaults to the active exercise"),
) -> StatsResponse:
    exercise_id = resolve_exercise_id(store, exercise_id)
    stats = compute_stats(filter_by_exercise(store.workouts, exercise_id))

    if stats is None:
        return StatsResponse(exercise_id=exercise_id, stats=None)

    return StatsResponse(
        exercise_id=exercise_id,
        stats=StatsItem(
            current=WorkoutItem.from_domain(stats.current),
            previous=WorkoutItem.from_domain(stats.previous) if stats.previous else None,
            delta=stats.delta,
            delta_percent=stats.delta_percent,
            best=stats.best,
            is_personal_best=stats.is_personal_best,
            weekly_count=stats.weekly_count,
            total_workouts=stats.total_workouts,
            average_intensity=stats.average_intensity,
            current_streak=stats.current_streak,
        ),
    )


@router.get(
    "/trend",
    response_model=TrendResponse,
    summary="Progression trend for an exercise",
)
async def get_trend(
    store: WorkoutStoreDep,
    settings: SettingsDep,
    exercise_id: Optional[str] = Query(default=None, description="Defaults to the active exercise"),
    window: Optional[int] = Query(default=None, ge=1, le=365, description="Number of sessions"),
) -> TrendResponse:
    exercise_id = resolve_exercise_id(store, exercise_id)
    window_size = window or settings.trend_window_size

    points = build_trend_series(filter_by_exercise(store.workouts, exercise_id), window_size)

    return TrendResponse(
        exercise_id=exercise_id,
        window_size=window_size,
        points=[
            TrendPointItem(
                unique_key=p.unique_key,
                workout_id=p.workout_id,
                date=p.date,
                display_date=p.display_date,
                calories=p.calories,
            )
            for p in points
        ],
    )


@router.post(
    "/coach",
    response_model=CoachInsightResponse,
    summary="Coaching insight for an exercise",
)
async def get_coaching(
    store: WorkoutStoreDep,
    tracker: InsightTrackerDep,
    coach: CoachDep,
    exercise_id: Optional[str] = Query(default=None, description="Defaults to the active exercise"),
) -> CoachInsightResponse:
    """
    Coaching for one exercise, the active one unless another is named.

    Returns the previous insight when nothing relevant changed. The store
    stays usable while the model is thinking; if the user switches exercise
    meanwhile, the answer is returned with applied=false and not kept.
    """
    exercise_id = resolve_exercise_id(store, exercise_id)

    if coach is None:
        return CoachInsightResponse(enabled=False, exercise_id=exercise_id)

    history = filter_by_exercise(store.workouts, exercise_id)
    tracker.set_active_exercise(exercise_id)

    cached = tracker.cached(exercise_id, len(history))
    if cached is not None:
        return CoachInsightResponse(
            enabled=True,
            exercise_id=exercise_id,
            insight=CoachItem.from_domain(cached),
            cached=True,
            applied=True,
        )

    ticket = tracker.start(exercise_id, len(history))
    response = await coach.request_coaching(history)
    applied = tracker.finish(ticket, response)

    logger.info(
        "Coaching insight computed",
        extra={"exercise_id": exercise_id, "vibe_check": response.vibe_check.value, "applied": applied}
    )

    return CoachInsightResponse(
        enabled=True,
        exercise_id=exercise_id,
        insight=CoachItem.from_domain(response),
        applied=applied,
    )

"""
Workout logging endpoints.

A workout records the calories burned in one session of an exercise.
Clients can send either a full timestamp or just a calendar day:
- new workouts logged by day get the current time of day, so two sessions
  logged on the same day still sort in the order they were entered
- edited workouts moved to another day keep their original time of day
"""

import logging
from datetime import date as Date, datetime, time, timezone
from typing import Optional, Union

from fastapi import APIRouter, HTTPException, Query, Response, status
from pydantic import BaseModel, Field, field_validator, model_validator

from ...core.tracking.models import Workout, format_timestamp
from ...core.tracking.stats import filter_by_exercise
from ...core.tracking.store import WorkoutStore
from ..dependencies import WorkoutStoreDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class _WorkoutWhen(BaseModel):
    date: Optional[datetime] = Field(
        default=None,
        description="Full timestamp of the session (ISO format). Naive values are UTC.",
    )
    day: Optional[Date] = Field(
        default=None,
        description="Calendar day of the session (YYYY-MM-DD), as an alternative to date",
    )

    @field_validator("date")
    @classmethod
    def _date_in_utc_range(cls, value: Optional[datetime]) -> Optional[datetime]:
        if value is not None:
            # Raises ValueError for moments with no UTC equivalent.
            format_timestamp(value)
        return value

    @model_validator(mode="after")
    def _one_of_date_or_day(self):
        if self.date is not None and self.day is not None:
            raise ValueError("Provide either date or day, not both")
        return self


class CreateWorkoutRequest(_WorkoutWhen):
    """Request to log a workout. Without date or day, it's logged now."""
    calories: float = Field(description="Calories burned", ge=0)
    exercise_id: Optional[str] = Field(
        default=None,
        description="Exercise the session belongs to. Defaults to the active exercise.",
    )


class UpdateWorkoutRequest(_WorkoutWhen):
    """Request to edit a workout. Omitted fields keep their current value."""
    calories: Optional[float] = Field(default=None, description="Calories burned", ge=0)
    exercise_id: Optional[str] = Field(default=None, description="Move the workout to another exercise")


class WorkoutItem(BaseModel):
    """Single workout."""
    id: str
    exercise_id: str
    date: str = Field(description="Session timestamp (ISO format)")
    calories: Union[int, float]
    duration_minutes: Union[int, float] = Field(description="Exercise duration when the workout was logged")
    intensity: float = Field(description="Calories per minute")
    notes: Optional[str] = None

    @classmethod
    def from_domain(cls, workout: Workout) -> "WorkoutItem":
        return cls(
            id=workout.id,
            exercise_id=workout.exercise_id,
            date=workout.date,
            calories=workout.calories,
            duration_minutes=workout.duration_minutes,
            intensity=workout.intensity,
            notes=workout.notes,
        )


class WorkoutListResponse(BaseModel):
    """Workouts for one exercise, in stored order (most recently logged first)."""
    exercise_id: str
    workouts: list[WorkoutItem]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def resolve_exercise_id(store: WorkoutStore, exercise_id: Optional[str]) -> str:
    """The requested exercise, or the active one. 404 if it doesn't exist."""
    if exercise_id is None:
        return store.selected_exercise_id

    if store.get_exercise(exercise_id) is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Exercise not found: {exercise_id}",
        )
    return exercise_id


def _at_time_of_day(day: Date, moment: datetime) -> datetime:
    """Combine a calendar day with the time of day of `moment` (UTC)."""
    moment = moment.astimezone(timezone.utc)
    return datetime.combine(
        day,
        time(moment.hour, moment.minute, moment.second, moment.microsecond),
        tzinfo=timezone.utc,
    )


def _workout_not_found(workout_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Workout not found: {workout_id}",
    )


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=WorkoutListResponse,
    summary="List workouts for an exercise",
)
async def list_workouts(
    store: WorkoutStoreDep,
    exercise_id: Optional[str] = Query(default=None, description="Defaults to the active exercise"),
) -> WorkoutListResponse:
    exercise_id = resolve_exercise_id(store, exercise_id)

    return WorkoutListResponse(
        exercise_id=exercise_id,
        workouts=[WorkoutItem.from_domain(w) for w in filter_by_exercise(store.workouts, exercise_id)],
    )


@router.post(
    "",
    response_model=WorkoutItem,
    status_code=status.HTTP_201_CREATED,
    summary="Log a workout",
)
async def create_workout(request: CreateWorkoutRequest, store: WorkoutStoreDep) -> WorkoutItem:
    exercise_id = resolve_exercise_id(store, request.exercise_id)

    now = datetime.now(timezone.utc)
    if request.date is not None:
        when = request.date
    elif request.day is not None:
        when = _at_time_of_day(request.day, now)
    else:
        when = now

    workout = store.add_workout(
        date=format_timestamp(when),
        calories=request.calories,
        exercise_id=exercise_id,
    )

    logger.info(
        "Workout logged",
        extra={"workout_id": workout.id, "exercise_id": exercise_id, "calories": workout.calories}
    )

    return WorkoutItem.from_domain(workout)


@router.put(
    "/{workout_id}",
    response_model=WorkoutItem,
    summary="Edit a workout",
)
async def update_workout(
    workout_id: str,
    request: UpdateWorkoutRequest,
    store: WorkoutStoreDep,
) -> WorkoutItem:
    existing = store.get_workout(workout_id)
    if existing is None:
        raise _workout_not_found(workout_id)

    exercise_id = existing.exercise_id
    if request.exercise_id is not None:
        exercise_id = resolve_exercise_id(store, request.exercise_id)

    if request.date is not None:
        new_date = format_timestamp(request.date)
    elif request.day is not None:
        original = existing.timestamp or datetime.now(timezone.utc)
        new_date = format_timestamp(_at_time_of_day(request.day, original))
    else:
        new_date = existing.date

    calories = request.calories if request.calories is not None else existing.calories

    updated = store.update_workout(
        workout_id,
        date=new_date,
        calories=calories,
        exercise_id=exercise_id,
    )
    if updated is None:
        raise _workout_not_found(workout_id)

    return WorkoutItem.from_domain(updated)


@router.delete(
    "/{workout_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a workout",
)
async def delete_workout(workout_id: str, store: WorkoutStoreDep) -> Response:
    if not store.delete_workout(workout_id):
        raise _workout_not_found(workout_id)

    return Response(status_code=status.HTTP_204_NO_CONTENT)

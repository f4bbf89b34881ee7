"""
Exercise management endpoints.

Exercises are the templates workouts are logged against: a name plus a
fixed session length. One exercise is the default (selected on startup)
and one is active (what the insights and workout list show by default).

Deleting an exercise also deletes its workouts. The last exercise can't be
deleted; that request is answered with 409 so the client can warn the user.
"""

import logging

from fastapi import APIRouter, HTTPException, status
from pydantic import BaseModel, Field

from ...core.tracking.models import Exercise
from ..dependencies import InsightTrackerDep, WorkoutStoreDep

logger = logging.getLogger(__name__)

router = APIRouter()


# ---------------------------------------------------------------------------
# Request/Response Models
# ---------------------------------------------------------------------------

class CreateExerciseRequest(BaseModel):
    """Request to create an exercise."""
    base_name: str = Field(
        description="Exercise label, e.g. 'HIIT Bike'",
        min_length=1,
        max_length=100,
    )
    duration: int = Field(
        description="Fixed session length in minutes",
        ge=1,
        le=24 * 60,
    )
    select: bool = Field(
        default=True,
        description="Make the new exercise the active one",
    )


class RenameExerciseRequest(BaseModel):
    """Request to rename an exercise. Duration can't be changed."""
    base_name: str = Field(
        description="New exercise label",
        min_length=1,
        max_length=100,
    )


class ExerciseItem(BaseModel):
    """Single exercise."""
    id: str = Field(description="Exercise identifier")
    name: str = Field(description="Display name, e.g. 'HIIT Bike (20m)'")
    base_name: str = Field(description="Editable label")
    duration: int = Field(description="Session length in minutes")
    is_default: bool = Field(description="Whether this exercise is selected on startup")

    @classmethod
    def from_domain(cls, exercise: Exercise) -> "ExerciseItem":
        return cls(
            id=exercise.id,
            name=exercise.name,
            base_name=exercise.base_name,
            duration=exercise.duration,
            is_default=exercise.is_default,
        )


class ExerciseListResponse(BaseModel):
    """All exercises, default first."""
    selected_exercise_id: str = Field(description="The active exercise")
    exercises: list[ExerciseItem]


class ExerciseDeletionResponse(BaseModel):
    """Result of deleting an exercise."""
    deleted_exercise_id: str
    removed_workouts: int = Field(description="Workouts deleted along with the exercise")
    selected_exercise_id: str = Field(description="The active exercise after the delete")


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

def _not_found(exercise_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Exercise not found: {exercise_id}",
    )


@router.get(
    "",
    response_model=ExerciseListResponse,
    summary="List exercises",
)
async def list_exercises(store: WorkoutStoreDep) -> ExerciseListResponse:
    return ExerciseListResponse(
        selected_exercise_id=store.selected_exercise_id,
        exercises=[ExerciseItem.from_domain(e) for e in store.exercises_default_first()],
    )


@router.post(
    "",
    response_model=ExerciseItem,
    status_code=status.HTTP_201_CREATED,
    summary="Create an exercise",
)
async def create_exercise(
    request: CreateExerciseRequest,
    store: WorkoutStoreDep,
    tracker: InsightTrackerDep,
) -> ExerciseItem:
    """New exercises are never the default; use the default endpoint to promote one."""
    try:
        exercise = store.add_exercise(request.base_name, request.duration)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    if request.select:
        store.select_exercise(exercise.id)
        tracker.set_active_exercise(exercise.id)

    return ExerciseItem.from_domain(exercise)


@router.get(
    "/selected",
    response_model=ExerciseItem,
    summary="Get the active exercise",
)
async def get_selected_exercise(store: WorkoutStoreDep) -> ExerciseItem:
    return ExerciseItem.from_domain(store.selected_exercise)


@router.patch(
    "/{exercise_id}",
    response_model=ExerciseItem,
    summary="Rename an exercise",
)
async def rename_exercise(
    exercise_id: str,
    request: RenameExerciseRequest,
    store: WorkoutStoreDep,
) -> ExerciseItem:
    try:
        exercise = store.edit_exercise(exercise_id, request.base_name)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    if exercise is None:
        raise _not_found(exercise_id)

    return ExerciseItem.from_domain(exercise)


@router.delete(
    "/{exercise_id}",
    response_model=ExerciseDeletionResponse,
    summary="Delete an exercise and its workouts",
)
async def delete_exercise(
    exercise_id: str,
    store: WorkoutStoreDep,
    tracker: InsightTrackerDep,
) -> ExerciseDeletionResponse:
    result = store.delete_exercise(exercise_id)

    if result.reason == "not_found":
        raise _not_found(exercise_id)
    if result.reason == "last_exercise":
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="You must have at least one exercise.",
        )

    tracker.set_active_exercise(result.selected_exercise_id)

    return ExerciseDeletionResponse(
        deleted_exercise_id=exercise_id,
        removed_workouts=result.removed_workouts,
        selected_exercise_id=result.selected_exercise_id,
    )


@router.post(
    "/{exercise_id}/default",
    response_model=ExerciseItem,
    summary="Make an exercise the default",
)
async def set_default_exercise(exercise_id: str, store: WorkoutStoreDep) -> ExerciseItem:
    if not store.set_default_exercise(exercise_id):
        raise _not_found(exercise_id)

    return ExerciseItem.from_domain(store.get_exercise(exercise_id))


@router.post(
    "/{exercise_id}/select",
    response_model=ExerciseItem,
    summary="Make an exercise the active one",
)
async def select_exercise(
    exercise_id: str,
    store: WorkoutStoreDep,
    tracker: InsightTrackerDep,
) -> ExerciseItem:
    if not store.select_exercise(exercise_id):
        raise _not_found(exercise_id)

    tracker.set_active_exercise(exercise_id)
    return ExerciseItem.from_domain(store.selected_exercise)

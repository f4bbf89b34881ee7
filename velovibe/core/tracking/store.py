"""
The workout store: the one place where exercises and workouts change.

Every mutation follows the same shape:
1. Validate and build the new collection (nothing touched yet)
2. Write it to storage synchronously
3. Swap it in

If the write fails, the in-memory collections are unchanged. Requests that
would break an invariant (deleting the last exercise, editing an unknown id)
are rejected as no-ops and reported through the return value; it is up to
the caller to tell the user.
"""

import logging
from dataclasses import dataclass, replace
from typing import Callable, Optional
from uuid import uuid4

from .migration import (
    EXERCISES_KEY,
    WORKOUTS_KEY,
    KeyValueStorage,
    load_state,
    serialize_exercises,
    serialize_workouts,
)
from .models import Exercise, Number, Workout, compute_intensity


logger = logging.getLogger(__name__)


# Duration used when a workout is logged against an unknown exercise.
FALLBACK_DURATION_MINUTES = 1


@dataclass(frozen=True)
class ExerciseDeletion:
    """
    Outcome of a delete_exercise call.

    `reason` is set when the delete was rejected: "not_found" or
    "last_exercise". `selected_exercise_id` is the active exercise after
    the call, which changes when the deleted exercise was the active one.
    """
    deleted: bool
    selected_exercise_id: str
    removed_workouts: int = 0
    reason: Optional[str] = None


def _new_id() -> str:
    return str(uuid4())


class WorkoutStore:
    """
    Owns the canonical exercise and workout collections.

    Construction loads (and migrates) persisted data through `storage`.
    Read accessors return copies so callers can't mutate the store behind
    its back.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        id_factory: Callable[[], str] = _new_id,
    ) -> None:
        self._storage = storage
        self._new_id = id_factory

        state = load_state(storage)
        self._exercises: list[Exercise] = state.exercises
        self._workouts: list[Workout] = state.workouts
        self._selected_exercise_id = state.selected_exercise_id

        logger.info(
            "Workout store loaded",
            extra={
                "exercises": len(self._exercises),
                "workouts": len(self._workouts),
                "selected_exercise_id": self._selected_exercise_id,
            }
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @property
    def exercises(self) -> list[Exercise]:
        return [replace(e) for e in self._exercises]

    @property
    def workouts(self) -> list[Workout]:
        return [replace(w) for w in self._workouts]

    @property
    def selected_exercise_id(self) -> str:
        return self._selected_exercise_id

    @property
    def selected_exercise(self) -> Exercise:
        exercise = self.get_exercise(self._selected_exercise_id)
        if exercise is None:
            raise RuntimeError(f"Selected exercise {self._selected_exercise_id} no longer exists")
        return exercise

    def get_exercise(self, exercise_id: str) -> Optional[Exercise]:
        for exercise in self._exercises:
            if exercise.id == exercise_id:
                return replace(exercise)
        return None

    def get_workout(self, workout_id: str) -> Optional[Workout]:
        for workout in self._workouts:
            if workout.id == workout_id:
                return replace(workout)
        return None

    def exercises_default_first(self) -> list[Exercise]:
        """Exercises as the picker lists them: the default first, then in order."""
        return sorted(self.exercises, key=lambda e: not e.is_default)

    def select_exercise(self, exercise_id: str) -> bool:
        """Make an exercise the active one. Selection is not persisted."""
        if self.get_exercise(exercise_id) is None:
            return False
        self._selected_exercise_id = exercise_id
        return True

    # ------------------------------------------------------------------
    # Workouts
    # ------------------------------------------------------------------

    def add_workout(self, date: str, calories: Number, exercise_id: str) -> Workout:
        """
        Log a new session.

        Duration is copied from the exercise now. An unknown exercise id is a
        caller bug; we log it and use a one-minute duration rather than fail.
        """
        exercise = self.get_exercise(exercise_id)
        if exercise is None:
            logger.warning("Workout logged against unknown exercise", extra={"exercise_id": exercise_id})
            duration = FALLBACK_DURATION_MINUTES
        else:
            duration = exercise.duration

        workout = Workout(
            id=self._new_id(),
            exercise_id=exercise_id,
            date=date,
            calories=calories,
            duration_minutes=duration,
            intensity=compute_intensity(calories, duration),
        )

        self._commit_workouts([workout] + self._workouts)
        logger.debug("Workout added", extra={"workout_id": workout.id, "exercise_id": exercise_id})
        return replace(workout)

    def update_workout(
        self,
        workout_id: str,
        date: str,
        calories: Number,
        exercise_id: str,
    ) -> Optional[Workout]:
        """
        Replace a workout's date, calories and exercise.

        Returns None (and changes nothing) when the workout or the target
        exercise is unknown. Duration and intensity keep their historical
        values.
        """
        index = self._workout_index(workout_id)
        if index is None:
            logger.debug("Update ignored for unknown workout", extra={"workout_id": workout_id})
            return None
        if self._exercise_index(exercise_id) is None:
            logger.warning(
                "Update ignored: unknown exercise",
                extra={"workout_id": workout_id, "exercise_id": exercise_id}
            )
            return None

        updated = replace(
            self._workouts[index],
            date=date,
            calories=calories,
            exercise_id=exercise_id,
        )
        workouts = list(self._workouts)
        workouts[index] = updated

        self._commit_workouts(workouts)
        return replace(updated)

    def delete_workout(self, workout_id: str) -> bool:
        if self._workout_index(workout_id) is None:
            return False

        self._commit_workouts([w for w in self._workouts if w.id != workout_id])
        logger.debug("Workout deleted", extra={"workout_id": workout_id})
        return True

    # ------------------------------------------------------------------
    # Exercises
    # ------------------------------------------------------------------

    def add_exercise(self, base_name: str, duration: int) -> Exercise:
        """
        Create a new, non-default exercise.

        Raises ValueError for a blank name or a duration that isn't a
        positive whole number of minutes.
        """
        exercise = Exercise(
            id=self._new_id(),
            base_name=base_name.strip(),
            duration=duration,
            is_default=False,
        )

        self._commit_exercises(self._exercises + [exercise])
        logger.info("Exercise added", extra={"exercise_id": exercise.id, "exercise_name": exercise.name})
        return replace(exercise)

    def edit_exercise(self, exercise_id: str, new_base_name: str) -> Optional[Exercise]:
        """Rename an exercise. The duration never changes after creation."""
        index = self._exercise_index(exercise_id)
        if index is None:
            return None

        renamed = replace(self._exercises[index], base_name=new_base_name.strip())
        exercises = list(self._exercises)
        exercises[index] = renamed

        self._commit_exercises(exercises)
        return replace(renamed)

    def delete_exercise(self, exercise_id: str) -> ExerciseDeletion:
        """
        Delete an exercise and every workout logged against it.

        The last exercise can't be deleted. If the deleted exercise was the
        default, the first remaining exercise becomes default first.
        """
        index = self._exercise_index(exercise_id)
        if index is None:
            return ExerciseDeletion(
                deleted=False,
                selected_exercise_id=self._selected_exercise_id,
                reason="not_found",
            )

        if len(self._exercises) <= 1:
            logger.info("Refused to delete the last exercise", extra={"exercise_id": exercise_id})
            return ExerciseDeletion(
                deleted=False,
                selected_exercise_id=self._selected_exercise_id,
                reason="last_exercise",
            )

        removed = self._exercises[index]
        remaining = [e for e in self._exercises if e.id != exercise_id]
        if removed.is_default:
            remaining = [replace(e, is_default=(i == 0)) for i, e in enumerate(remaining)]

        workouts = [w for w in self._workouts if w.exercise_id != exercise_id]
        removed_workouts = len(self._workouts) - len(workouts)

        selected = self._selected_exercise_id
        if selected == exercise_id:
            selected = remaining[0].id

        # Both collections are written before either is swapped in. If the
        # workouts write fails, the stored exercises are put back so storage
        # never holds half a cascade.
        self._storage.write(EXERCISES_KEY, serialize_exercises(remaining))
        try:
            self._storage.write(WORKOUTS_KEY, serialize_workouts(workouts))
        except Exception:
            logger.error(
                "Cascade write failed; restoring stored exercises",
                extra={"exercise_id": exercise_id}
            )
            self._storage.write(EXERCISES_KEY, serialize_exercises(self._exercises))
            raise
        self._exercises = remaining
        self._workouts = workouts
        self._selected_exercise_id = selected

        logger.info(
            "Exercise deleted",
            extra={
                "exercise_id": exercise_id,
                "removed_workouts": removed_workouts,
                "selected_exercise_id": selected,
            }
        )

        return ExerciseDeletion(
            deleted=True,
            selected_exercise_id=selected,
            removed_workouts=removed_workouts,
        )

    def set_default_exercise(self, exercise_id: str) -> bool:
        """Flag one exercise as default and clear the flag on all others."""
        if self._exercise_index(exercise_id) is None:
            return False

        self._commit_exercises([
            replace(e, is_default=(e.id == exercise_id)) for e in self._exercises
        ])
        return True

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _exercise_index(self, exercise_id: str) -> Optional[int]:
        for i, exercise in enumerate(self._exercises):
            if exercise.id == exercise_id:
                return i
        return None

    def _workout_index(self, workout_id: str) -> Optional[int]:
        for i, workout in enumerate(self._workouts):
            if workout.id == workout_id:
                return i
        return None

    def _commit_exercises(self, exercises: list[Exercise]) -> None:
        self._storage.write(EXERCISES_KEY, serialize_exercises(exercises))
        self._exercises = exercises

    def _commit_workouts(self, workouts: list[Workout]) -> None:
        self._storage.write(WORKOUTS_KEY, serialize_workouts(workouts))
        self._workouts = workouts

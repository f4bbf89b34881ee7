"""
Loading and migrating persisted tracker data.

Persisted data may come from any earlier version of the app: missing keys on
first run, truncated or hand-edited JSON, workouts logged before exercises
existed. `load_state` turns whatever is stored into collections that satisfy
the model invariants, and writes back only when migration changed something.

Nothing in here raises on bad data. Problems are logged and the affected
collection degrades to empty (workouts) or to the built-in default (exercises).
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Optional, Protocol

from .models import (
    Exercise,
    Workout,
    compute_intensity,
    strip_display_suffix,
)


logger = logging.getLogger(__name__)


EXERCISES_KEY = "velovibe_exercises"
WORKOUTS_KEY = "velovibe_workouts"

DEFAULT_EXERCISE_ID = "default-ex-1"
DEFAULT_EXERCISE_NAME = "HIIT Bike"
DEFAULT_EXERCISE_DURATION = 20


class KeyValueStorage(Protocol):
    """
    Durable key-value storage for the two persisted collections.

    Using a protocol means the store doesn't know whether data lives in
    files, a database, or memory. `read` returns None for a missing key.
    `write` must be durable before it returns.
    """

    def read(self, key: str) -> Optional[str]:
        ...

    def write(self, key: str, value: str) -> None:
        ...


@dataclass
class TrackerState:
    """Result of loading persisted data."""
    exercises: list[Exercise]
    workouts: list[Workout]
    selected_exercise_id: str


def default_exercise() -> Exercise:
    """The exercise synthesized on first run."""
    return Exercise(
        id=DEFAULT_EXERCISE_ID,
        base_name=DEFAULT_EXERCISE_NAME,
        duration=DEFAULT_EXERCISE_DURATION,
        is_default=True,
    )


def serialize_exercises(exercises: list[Exercise]) -> str:
    return _dumps([exercise.to_record() for exercise in exercises])


def serialize_workouts(workouts: list[Workout]) -> str:
    return _dumps([workout.to_record() for workout in workouts])


def _dumps(records: list[dict[str, Any]]) -> str:
    # Compact, key order fixed by to_record(); identical input gives identical bytes.
    return json.dumps(records, separators=(",", ":"), ensure_ascii=False)


def _parse_list(raw: Optional[str], key: str) -> Optional[list[Any]]:
    """Decode a stored JSON array. Returns None when absent or unusable."""
    if raw is None:
        return None

    try:
        payload = json.loads(raw)
    except json.JSONDecodeError as e:
        logger.warning(
            "Could not parse persisted data",
            extra={"key": key, "error": str(e)}
        )
        return None

    if not isinstance(payload, list):
        logger.warning(
            "Persisted data is not a list",
            extra={"key": key, "type": type(payload).__name__}
        )
        return None

    return payload


def _whole_number(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def exercise_from_record(record: Any) -> Optional[Exercise]:
    """Build an Exercise from a stored record, or None if it can't be salvaged."""
    if not isinstance(record, dict):
        return None

    exercise_id = record.get("id")
    duration = _whole_number(record.get("duration"))
    if not isinstance(exercise_id, str) or not exercise_id or duration is None:
        return None

    base_name = record.get("baseName")
    if not isinstance(base_name, str) or not base_name.strip():
        name = record.get("name")
        base_name = strip_display_suffix(name) if isinstance(name, str) else ""

    try:
        return Exercise(
            id=exercise_id,
            base_name=base_name,
            duration=duration,
            is_default=record.get("isDefault") is True,
        )
    except ValueError:
        return None


def workout_from_record(record: Any, fallback: Exercise) -> Optional[Workout]:
    """
    Build a Workout from a stored record.

    Workouts from before exercises existed carry no exerciseId; they are
    assigned to `fallback`. Missing duration and intensity are backfilled
    from that exercise.
    """
    if not isinstance(record, dict):
        return None

    workout_id = record.get("id")
    date = record.get("date")
    calories = _number(record.get("calories"))
    if not isinstance(workout_id, str) or not workout_id or not isinstance(date, str):
        return None
    if calories is None or calories < 0:
        return None

    exercise_id = record.get("exerciseId")
    if not isinstance(exercise_id, str) or not exercise_id:
        exercise_id = fallback.id

    duration = _number(record.get("durationMinutes"))
    if duration is None or duration <= 0:
        duration = fallback.duration

    intensity = _number(record.get("intensity"))
    if intensity is None:
        intensity = compute_intensity(calories, duration)

    notes = record.get("notes")

    return Workout(
        id=workout_id,
        exercise_id=exercise_id,
        date=date,
        calories=calories,
        duration_minutes=duration,
        intensity=intensity,
        notes=notes if isinstance(notes, str) else None,
    )


def _load_exercises(storage: KeyValueStorage) -> list[Exercise]:
    raw = storage.read(EXERCISES_KEY)
    records = _parse_list(raw, EXERCISES_KEY) or []

    exercises = []
    for record in records:
        exercise = exercise_from_record(record)
        if exercise is None:
            logger.warning("Dropping malformed exercise record", extra={"record": repr(record)[:200]})
            continue
        exercises.append(exercise)

    if not exercises:
        exercises = [default_exercise()]
        logger.info("No usable exercises stored; created default exercise")

    serialized = serialize_exercises(exercises)
    if serialized != raw:
        storage.write(EXERCISES_KEY, serialized)

    return exercises


def _load_workouts(storage: KeyValueStorage, exercises: list[Exercise], fallback: Exercise) -> list[Workout]:
    raw = storage.read(WORKOUTS_KEY)
    records = _parse_list(raw, WORKOUTS_KEY)
    if records is None:
        # Absent or unreadable: start empty and leave storage alone until the
        # first mutation overwrites it.
        return []

    known_ids = {exercise.id for exercise in exercises}
    workouts = []
    for record in records:
        workout = workout_from_record(record, fallback)
        if workout is None:
            logger.warning("Dropping malformed workout record", extra={"record": repr(record)[:200]})
            continue
        if workout.exercise_id not in known_ids:
            logger.warning(
                "Workout references unknown exercise; reassigning",
                extra={"workout_id": workout.id, "exercise_id": workout.exercise_id}
            )
            workout.exercise_id = fallback.id
        workouts.append(workout)

    serialized = serialize_workouts(workouts)
    if serialized != raw:
        storage.write(WORKOUTS_KEY, serialized)
        logger.info("Migrated stored workouts", extra={"count": len(workouts)})

    return workouts


def load_state(storage: KeyValueStorage) -> TrackerState:
    """
    Load exercises and workouts, migrating them to the current shape.

    The selected exercise is the one flagged default, or the first one if
    none is flagged. A missing flag is not repaired here; it gets fixed the
    next time the user sets a default.
    """
    exercises = _load_exercises(storage)

    selected = next((e for e in exercises if e.is_default), exercises[0])
    if not selected.is_default:
        logger.warning("No default exercise flagged; selecting first", extra={"exercise_id": selected.id})

    workouts = _load_workouts(storage, exercises, selected)

    return TrackerState(
        exercises=exercises,
        workouts=workouts,
        selected_exercise_id=selected.id,
    )

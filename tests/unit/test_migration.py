"""
Unit tests for loading and migrating persisted data.

Uses MockKeyValueStorage so tests can seed arbitrary stored text and count
how many writes a load performed.
"""

import json

import pytest

from velovibe.core.tracking.migration import (
    DEFAULT_EXERCISE_ID,
    EXERCISES_KEY,
    WORKOUTS_KEY,
    default_exercise,
    load_state,
    serialize_exercises,
    workout_from_record,
)
from velovibe.core.tracking.models import Exercise
from velovibe.infrastructure.storage import MockKeyValueStorage


def _stored(storage: MockKeyValueStorage, key: str):
    return json.loads(storage.read(key))


@pytest.fixture
def bike_and_row() -> str:
    return json.dumps([
        {"id": "bike", "name": "Bike (20m)", "baseName": "Bike", "duration": 20, "isDefault": True},
        {"id": "row", "name": "Row (15m)", "baseName": "Row", "duration": 15, "isDefault": False},
    ])


class TestFirstRun:
    """Nothing stored yet."""

    def test_creates_and_persists_default_exercise(self):
        storage = MockKeyValueStorage()

        state = load_state(storage)

        assert len(state.exercises) == 1
        exercise = state.exercises[0]
        assert exercise.id == DEFAULT_EXERCISE_ID
        assert exercise.name == "HIIT Bike (20m)"
        assert exercise.is_default is True
        assert state.selected_exercise_id == DEFAULT_EXERCISE_ID
        assert _stored(storage, EXERCISES_KEY)[0]["baseName"] == "HIIT Bike"

    def test_missing_workouts_are_not_written(self):
        storage = MockKeyValueStorage()

        state = load_state(storage)

        assert state.workouts == []
        assert storage.read(WORKOUTS_KEY) is None
        assert storage.write_count == 1

    def test_second_load_writes_nothing(self):
        storage = MockKeyValueStorage()
        load_state(storage)
        writes = storage.write_count

        load_state(storage)

        assert storage.write_count == writes


class TestCorruptData:
    """Hand-edited or truncated payloads."""

    def test_unparsable_exercises_fall_back_to_default(self):
        storage = MockKeyValueStorage({EXERCISES_KEY: "{not json"})

        state = load_state(storage)

        assert [e.id for e in state.exercises] == [DEFAULT_EXERCISE_ID]
        assert _stored(storage, EXERCISES_KEY)[0]["id"] == DEFAULT_EXERCISE_ID

    def test_unparsable_workouts_load_empty_and_are_left_alone(self, bike_and_row):
        storage = MockKeyValueStorage({EXERCISES_KEY: bike_and_row, WORKOUTS_KEY: "[{oops"})

        state = load_state(storage)

        assert state.workouts == []
        assert storage.read(WORKOUTS_KEY) == "[{oops"

    def test_non_list_payload_is_treated_as_missing(self):
        storage = MockKeyValueStorage({EXERCISES_KEY: json.dumps({"id": "x"})})

        state = load_state(storage)

        assert [e.id for e in state.exercises] == [DEFAULT_EXERCISE_ID]

    def test_malformed_records_are_dropped(self, bike_and_row):
        storage = MockKeyValueStorage({
            EXERCISES_KEY: bike_and_row,
            WORKOUTS_KEY: json.dumps([
                {"id": "w1", "exerciseId": "bike", "date": "2024-01-01T10:00:00.000Z", "calories": 300},
                {"id": "w2", "exerciseId": "bike", "date": "2024-01-02T10:00:00.000Z", "calories": "lots"},
                "garbage",
                {"exerciseId": "bike", "date": "2024-01-03T10:00:00.000Z", "calories": 280},
            ]),
        })

        state = load_state(storage)

        assert [w.id for w in state.workouts] == ["w1"]
        assert [r["id"] for r in _stored(storage, WORKOUTS_KEY)] == ["w1"]


class TestLegacyMigration:
    """Records written by earlier versions of the app."""

    def test_orphan_workouts_join_the_default_exercise(self, bike_and_row):
        storage = MockKeyValueStorage({
            EXERCISES_KEY: bike_and_row,
            WORKOUTS_KEY: json.dumps([
                {"id": "w1", "date": "2023-10-03T18:00:00.000Z", "calories": 300},
            ]),
        })

        state = load_state(storage)

        workout = state.workouts[0]
        assert workout.exercise_id == "bike"
        assert workout.duration_minutes == 20
        assert workout.intensity == 15
        assert _stored(storage, WORKOUTS_KEY)[0]["exerciseId"] == "bike"

    def test_workouts_for_deleted_exercises_are_reassigned(self, bike_and_row):
        storage = MockKeyValueStorage({
            EXERCISES_KEY: bike_and_row,
            WORKOUTS_KEY: json.dumps([
                {"id": "w1", "exerciseId": "gone", "date": "2024-01-01T10:00:00.000Z",
                 "calories": 200, "durationMinutes": 10, "intensity": 20},
            ]),
        })

        state = load_state(storage)

        assert state.workouts[0].exercise_id == "bike"
        assert state.workouts[0].duration_minutes == 10

    def test_exercise_without_base_name_uses_display_name(self):
        storage = MockKeyValueStorage({
            EXERCISES_KEY: json.dumps([
                {"id": "e1", "name": "Rowing (15 min)", "duration": 15, "isDefault": True},
            ]),
        })

        state = load_state(storage)

        assert state.exercises[0].base_name == "Rowing"
        assert state.exercises[0].name == "Rowing (15m)"

    def test_no_default_flag_selects_first_without_repair(self):
        raw = serialize_exercises([
            Exercise(id="a", base_name="A", duration=10),
            Exercise(id="b", base_name="B", duration=10),
        ])
        storage = MockKeyValueStorage({EXERCISES_KEY: raw})

        state = load_state(storage)

        assert state.selected_exercise_id == "a"
        assert not any(e.is_default for e in state.exercises)
        assert storage.write_count == 0

    def test_migrated_data_is_stable_on_reload(self, bike_and_row):
        storage = MockKeyValueStorage({
            EXERCISES_KEY: bike_and_row,
            WORKOUTS_KEY: json.dumps([
                {"id": "w1", "date": "2023-10-03T18:00:00.000Z", "calories": 300},
                {"id": "w2", "exerciseId": "row", "date": "2023-10-04T18:00:00.000Z", "calories": 150},
            ]),
        })
        load_state(storage)
        exercises_text = storage.read(EXERCISES_KEY)
        workouts_text = storage.read(WORKOUTS_KEY)
        writes = storage.write_count

        load_state(storage)

        assert storage.write_count == writes
        assert storage.read(EXERCISES_KEY) == exercises_text
        assert storage.read(WORKOUTS_KEY) == workouts_text


class TestWorkoutFromRecord:

    def test_keeps_stored_duration_and_intensity(self):
        workout = workout_from_record(
            {"id": "w1", "exerciseId": "bike", "date": "2024-01-01", "calories": 300,
             "durationMinutes": 30, "intensity": 10, "notes": "felt good"},
            default_exercise(),
        )

        assert workout.duration_minutes == 30
        assert workout.intensity == 10
        assert workout.notes == "felt good"

    def test_rejects_negative_calories(self):
        assert workout_from_record(
            {"id": "w1", "date": "2024-01-01", "calories": -5},
            default_exercise(),
        ) is None

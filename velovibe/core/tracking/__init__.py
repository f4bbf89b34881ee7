"""
Exercise and workout tracking.

Contains the domain models, persisted-data migration, the store that owns
all mutations, and the derived statistics.
"""

from .models import Exercise, Workout, format_timestamp, parse_timestamp
from .migration import KeyValueStorage, TrackerState, load_state
from .store import ExerciseDeletion, WorkoutStore
from .stats import (
    TrendPoint,
    WorkoutStats,
    build_trend_series,
    compute_stats,
    filter_by_exercise,
)

__all__ = [
    "Exercise",
    "Workout",
    "format_timestamp",
    "parse_timestamp",
    "KeyValueStorage",
    "TrackerState",
    "load_state",
    "ExerciseDeletion",
    "WorkoutStore",
    "TrendPoint",
    "WorkoutStats",
    "build_trend_series",
    "compute_stats",
    "filter_by_exercise",
]

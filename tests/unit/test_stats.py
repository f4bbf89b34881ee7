"""
Unit tests for the derived statistics and the trend series.

All functions under test are pure; the clock is passed in explicitly.
"""

from datetime import datetime, timezone

import pytest

from velovibe.core.tracking.models import Workout
from velovibe.core.tracking.stats import (
    build_trend_series,
    chronological,
    compute_stats,
    current_streak,
    filter_by_exercise,
)


NOW = datetime(2024, 1, 10, 12, 0, tzinfo=timezone.utc)


def make_workout(workout_id, date, calories, exercise_id="e1", duration=20):
    return Workout(
        id=workout_id,
        exercise_id=exercise_id,
        date=date,
        calories=calories,
        duration_minutes=duration,
        intensity=calories / duration,
    )


@pytest.fixture
def bike_history() -> list[Workout]:
    """Two bike sessions a week apart, newest last."""
    return [
        make_workout("w1", "2024-01-01T10:00:00Z", 300),
        make_workout("w2", "2024-01-08T10:00:00Z", 350),
    ]


# ---------------------------------------------------------------------------
# compute_stats
# ---------------------------------------------------------------------------

class TestComputeStats:

    def test_latest_session_against_previous(self, bike_history):
        stats = compute_stats(bike_history, now=NOW)

        assert stats.current.calories == 350
        assert stats.previous.calories == 300
        assert stats.delta == 50
        assert stats.delta_percent == 16.7
        assert stats.best == 350
        assert stats.is_personal_best is True

    def test_order_of_input_does_not_matter(self, bike_history):
        stats = compute_stats(list(reversed(bike_history)), now=NOW)

        assert stats.current.id == "w2"
        assert stats.delta == 50

    def test_empty_history(self):
        assert compute_stats([], now=NOW) is None

    def test_single_workout_has_no_delta(self):
        stats = compute_stats([make_workout("w1", "2024-01-08T10:00:00Z", 300)], now=NOW)

        assert stats.previous is None
        assert stats.delta == 0
        assert stats.delta_percent == 0.0
        assert stats.best == 300

    def test_previous_zero_calories_has_no_percentage(self):
        stats = compute_stats([
            make_workout("w1", "2024-01-01T10:00:00Z", 0),
            make_workout("w2", "2024-01-08T10:00:00Z", 200),
        ], now=NOW)

        assert stats.delta == 200
        assert stats.delta_percent is None

    def test_decline_is_negative(self):
        stats = compute_stats([
            make_workout("w1", "2024-01-01T10:00:00Z", 400),
            make_workout("w2", "2024-01-08T10:00:00Z", 300),
        ], now=NOW)

        assert stats.delta == -100
        assert stats.delta_percent == -25.0
        assert stats.best == 400
        assert stats.is_personal_best is False

    def test_weekly_count_excludes_the_boundary(self):
        stats = compute_stats([
            make_workout("w1", "2024-01-03T12:00:00Z", 300),  # exactly 7 days before NOW
            make_workout("w2", "2024-01-03T12:00:01Z", 300),
            make_workout("w3", "2024-01-09T12:00:00Z", 300),
        ], now=NOW)

        assert stats.weekly_count == 2

    def test_totals_and_average_intensity(self, bike_history):
        stats = compute_stats(bike_history, now=NOW)

        assert stats.total_workouts == 2
        assert stats.average_intensity == 16.2  # (15 + 17.5) / 2, rounded

    def test_unparsable_dates_sort_oldest(self):
        stats = compute_stats([
            make_workout("w1", "2024-01-08T10:00:00Z", 350),
            make_workout("w2", "not a date", 500),
        ], now=NOW)

        assert stats.current.id == "w1"
        assert stats.previous.id == "w2"
        assert stats.best == 500
        assert stats.weekly_count == 1

    def test_dates_outside_utc_range_sort_oldest(self):
        stats = compute_stats([
            make_workout("w1", "9999-12-31T23:00:00-05:00", 500),
            make_workout("w2", "2024-01-08T10:00:00Z", 350),
        ], now=NOW)

        assert stats.current.id == "w2"
        assert stats.previous.id == "w1"
        assert stats.weekly_count == 1
        assert stats.current_streak == 0


class TestCurrentStreak:

    def test_consecutive_days_ending_today(self):
        workouts = [
            make_workout("w1", "2024-01-08T10:00:00Z", 300),
            make_workout("w2", "2024-01-09T10:00:00Z", 300),
            make_workout("w3", "2024-01-10T08:00:00Z", 300),
            make_workout("w4", "2024-01-10T09:00:00Z", 300),
        ]

        assert current_streak(workouts, NOW) == 3

    def test_streak_ending_yesterday_is_alive(self):
        workouts = [
            make_workout("w1", "2024-01-08T10:00:00Z", 300),
            make_workout("w2", "2024-01-09T10:00:00Z", 300),
        ]

        assert current_streak(workouts, NOW) == 2

    def test_gap_breaks_the_streak(self, bike_history):
        assert current_streak(bike_history, NOW) == 0

    def test_no_dated_workouts(self):
        assert current_streak([make_workout("w1", "??", 300)], NOW) == 0


# ---------------------------------------------------------------------------
# Trend series
# ---------------------------------------------------------------------------

class TestTrendSeries:

    def test_oldest_to_newest_with_labels(self):
        points = build_trend_series([
            make_workout("b", "2023-10-05T18:00:00Z", 320),
            make_workout("a", "2023-10-03T18:00:00Z", 300),
        ])

        assert [p.workout_id for p in points] == ["a", "b"]
        assert [p.display_date for p in points] == ["Oct 3", "Oct 5"]
        assert [p.unique_key for p in points] == ["a_0", "b_1"]

    def test_label_uses_utc_day(self):
        points = build_trend_series([make_workout("a", "2023-10-03T23:30:00-05:00", 300)])

        assert points[0].display_date == "Oct 4"

    def test_only_last_window_points(self):
        workouts = [
            make_workout(f"w{day}", f"2024-01-{day:02d}T10:00:00Z", 300 + day)
            for day in range(1, 26)
        ]

        points = build_trend_series(workouts, window_size=20)

        assert len(points) == 20
        assert points[0].workout_id == "w6"
        assert points[-1].workout_id == "w25"

    def test_same_day_sessions_get_distinct_keys(self):
        points = build_trend_series([
            make_workout("w1", "2024-01-08T10:00:00Z", 300),
            make_workout("w1", "2024-01-08T10:00:00Z", 310),
        ])

        assert len({p.unique_key for p in points}) == 2

    def test_skips_unparsable_dates(self):
        points = build_trend_series([
            make_workout("w1", "garbage", 300),
            make_workout("w2", "2024-01-08T10:00:00Z", 310),
        ])

        assert [p.workout_id for p in points] == ["w2"]

    def test_skips_dates_outside_utc_range(self):
        points = build_trend_series([
            make_workout("bad", "0001-01-01T00:00:00+01:00", 100),
            make_workout("ok", "2024-01-08T10:00:00Z", 300),
        ])

        assert [p.workout_id for p in points] == ["ok"]

    def test_rejects_empty_window(self, bike_history):
        with pytest.raises(ValueError):
            build_trend_series(bike_history, window_size=0)


class TestHelpers:

    def test_filter_by_exercise_keeps_order(self):
        workouts = [
            make_workout("w1", "2024-01-02T10:00:00Z", 300, exercise_id="bike"),
            make_workout("w2", "2024-01-01T10:00:00Z", 150, exercise_id="row"),
            make_workout("w3", "2024-01-01T10:00:00Z", 280, exercise_id="bike"),
        ]

        assert [w.id for w in filter_by_exercise(workouts, "bike")] == ["w1", "w3"]

    def test_chronological_is_stable_for_ties(self):
        workouts = [
            make_workout("first", "2024-01-01T10:00:00Z", 300),
            make_workout("second", "2024-01-01T10:00:00Z", 310),
        ]

        assert [w.id for w in chronological(workouts)] == ["first", "second"]

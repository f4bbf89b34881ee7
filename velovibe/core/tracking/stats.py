"""
Derived views over the workout history.

Everything here is a pure function of its inputs: no storage, no clock
unless one is passed in. Callers recompute these whenever the store or the
active exercise changes; nothing is cached.
"""

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional, Sequence

from .models import Number, Workout


DEFAULT_TREND_WINDOW = 20
WEEKLY_WINDOW = timedelta(days=7)

# Sort key for workouts whose date can't be parsed: older than everything.
_UNPARSABLE = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class WorkoutStats:
    """
    Summary of one exercise's history.

    `delta_percent` is None when the previous session burned 0 calories,
    since a percentage change from zero has no meaning.
    """
    current: Workout
    previous: Optional[Workout]
    delta: Number
    delta_percent: Optional[float]
    best: Number
    weekly_count: int
    total_workouts: int
    average_intensity: float
    current_streak: int

    @property
    def is_personal_best(self) -> bool:
        return self.current.calories >= self.best


@dataclass(frozen=True)
class TrendPoint:
    """One point on the progression chart."""
    unique_key: str
    workout_id: str
    date: str
    display_date: str
    calories: Number


def filter_by_exercise(workouts: Iterable[Workout], exercise_id: str) -> list[Workout]:
    """Workouts for one exercise, in their original order."""
    return [w for w in workouts if w.exercise_id == exercise_id]


def _sort_key(workout: Workout) -> datetime:
    return workout.timestamp or _UNPARSABLE


def chronological(workouts: Iterable[Workout]) -> list[Workout]:
    """Oldest first, ties in input order. Unparsable dates sort first."""
    return sorted(workouts, key=_sort_key)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def compute_stats(
    workouts: Sequence[Workout],
    now: Optional[datetime] = None,
) -> Optional[WorkoutStats]:
    """
    Headline numbers for a filtered history.

    The latest session is compared against the one before it (by date, not
    by insertion order). Returns None when there is nothing to summarize.
    """
    if not workouts:
        return None

    now = now or _utc_now()

    # sorted() stays stable with reverse=True: same-timestamp workouts keep
    # their input order.
    ordered = sorted(workouts, key=_sort_key, reverse=True)
    current = ordered[0]
    previous = ordered[1] if len(ordered) > 1 else None

    if previous is None:
        delta: Number = 0
        delta_percent: Optional[float] = 0.0
    else:
        delta = current.calories - previous.calories
        if previous.calories == 0:
            delta_percent = None
        else:
            delta_percent = round(delta / previous.calories * 100, 1)

    week_start = now - WEEKLY_WINDOW
    weekly_count = sum(
        1 for w in workouts
        if w.timestamp is not None and w.timestamp > week_start
    )

    return WorkoutStats(
        current=current,
        previous=previous,
        delta=delta,
        delta_percent=delta_percent,
        best=max(w.calories for w in workouts),
        weekly_count=weekly_count,
        total_workouts=len(workouts),
        average_intensity=round(sum(w.intensity for w in workouts) / len(workouts), 1),
        current_streak=current_streak(workouts, now),
    )


def current_streak(workouts: Iterable[Workout], now: Optional[datetime] = None) -> int:
    """
    Consecutive UTC days with at least one workout, ending at the latest one.

    A streak is only alive if the latest workout day is today or yesterday.
    """
    now = now or _utc_now()
    today = now.astimezone(timezone.utc).date()
    days = {
        w.timestamp.date() for w in workouts
        if w.timestamp is not None and w.timestamp.date() <= today
    }
    if not days:
        return 0

    latest = max(days)
    if (today - latest).days > 1:
        return 0

    streak = 0
    day: date = latest
    while day in days:
        streak += 1
        day -= timedelta(days=1)
    return streak


def _display_date(moment: datetime) -> str:
    # Fixed English month names in UTC, e.g. "Oct 3".
    return f"{moment:%b} {moment.day}"


def build_trend_series(
    workouts: Sequence[Workout],
    window_size: int = DEFAULT_TREND_WINDOW,
) -> list[TrendPoint]:
    """
    The last `window_size` sessions, oldest to newest, ready for charting.

    Workouts with unparsable dates are left out. Labels use the UTC calendar
    day so a late-evening session isn't shown on the next day.
    """
    if window_size < 1:
        raise ValueError("window_size must be at least 1")

    dated = [(w, w.timestamp) for w in workouts if w.timestamp is not None]
    dated.sort(key=lambda pair: pair[1])
    recent = dated[-window_size:]

    return [
        TrendPoint(
            unique_key=f"{workout.id}_{i}",
            workout_id=workout.id,
            date=workout.date,
            display_date=_display_date(moment),
            calories=workout.calories,
        )
        for i, (workout, moment) in enumerate(recent)
    ]

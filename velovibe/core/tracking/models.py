"""
Domain models for workout tracking.

These models represent the core business concepts. They have no dependencies
on external frameworks, storage, or APIs. The persisted shape (camelCase JSON
records) is produced and consumed here so that the rest of the code only
deals with Python objects.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Union

Number = Union[int, float]

# Suffix appended to an exercise's display name, e.g. "HIIT Bike (20m)".
# Older records used "(20 min)".
_NAME_SUFFIX = re.compile(r"\s*\(\d+\s*(?:m|min)\)\s*$")


def display_name(base_name: str, duration: int) -> str:
    """Build the display name shown for an exercise."""
    return f"{base_name} ({duration}m)"


def strip_display_suffix(name: str) -> str:
    """Recover the editable part of a display name."""
    return _NAME_SUFFIX.sub("", name).strip()


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an ISO-8601 timestamp into an aware UTC datetime.

    Date-only strings and naive timestamps are read as UTC. Returns None
    for anything that isn't a valid timestamp instead of raising, because
    persisted dates come from older clients we don't control.
    """
    if not isinstance(value, str) or not value.strip():
        return None

    text = value.strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(text)
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        # Offsets at the ends of the calendar have no UTC equivalent.
        return parsed.astimezone(timezone.utc)
    except (ValueError, OverflowError):
        return None


def format_timestamp(moment: datetime) -> str:
    """
    Format a datetime as the ISO string stored on workouts (UTC, ms, 'Z').

    Raises ValueError when the moment can't be expressed in UTC.
    """
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    try:
        moment = moment.astimezone(timezone.utc)
    except OverflowError as e:
        raise ValueError(f"Timestamp out of range: {moment.isoformat()}") from e
    return moment.replace(tzinfo=None).isoformat(timespec="milliseconds") + "Z"


@dataclass
class Exercise:
    """
    A named activity template that workouts are logged against.

    The duration is fixed per exercise, not per session. `name` is derived
    from `base_name` and `duration` and is never stored independently.
    """
    id: str
    base_name: str
    duration: int
    is_default: bool = False

    def __post_init__(self) -> None:
        if isinstance(self.duration, bool) or not isinstance(self.duration, int):
            raise ValueError("Exercise duration must be a whole number of minutes")
        if self.duration < 1:
            raise ValueError("Exercise duration must be positive")
        if not self.base_name.strip():
            raise ValueError("Exercise name cannot be empty")

    @property
    def name(self) -> str:
        return display_name(self.base_name, self.duration)

    def to_record(self) -> dict[str, Any]:
        """Persisted representation. `name` is written for older readers."""
        return {
            "id": self.id,
            "name": self.name,
            "baseName": self.base_name,
            "duration": self.duration,
            "isDefault": self.is_default,
        }


@dataclass
class Workout:
    """
    One logged session.

    `date` is kept as the stored ISO string so records round-trip exactly;
    use `timestamp` for the parsed value. `duration_minutes` is copied from
    the exercise when the workout is created and is not updated afterwards,
    so past intensities stay accurate if the exercise changes.
    """
    id: str
    exercise_id: str
    date: str
    calories: Number
    duration_minutes: Number
    intensity: Number
    notes: Optional[str] = None

    def __post_init__(self) -> None:
        if self.calories < 0:
            raise ValueError("Calories cannot be negative")

    @property
    def timestamp(self) -> Optional[datetime]:
        return parse_timestamp(self.date)

    def to_record(self) -> dict[str, Any]:
        record: dict[str, Any] = {
            "id": self.id,
            "exerciseId": self.exercise_id,
            "date": self.date,
            "calories": self.calories,
            "durationMinutes": self.duration_minutes,
            "intensity": self.intensity,
        }
        if self.notes is not None:
            record["notes"] = self.notes
        return record


def compute_intensity(calories: Number, duration_minutes: Number) -> float:
    """Calories burned per minute."""
    return calories / duration_minutes

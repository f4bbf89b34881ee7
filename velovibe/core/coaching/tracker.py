"""
When to ask for coaching, and whether an answer is still wanted.

A coaching request is slow compared to everything else, and the store keeps
changing while it runs. The tracker decides:
- whether a new request is needed (only when the active exercise or the
  number of its workouts changed; renaming another exercise doesn't count)
- whether a finished request still applies (not if the user switched
  exercise or a newer request was started meanwhile)

There is no real cancellation: stale answers are simply dropped on arrival.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from .models import CoachResponse


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InsightTicket:
    """Handed out when a request starts; handed back when it finishes."""
    exercise_id: str
    workout_count: int
    generation: int


class CoachInsightTracker:
    """Holds the latest applied coaching response for the active exercise."""

    def __init__(self) -> None:
        self._generation = 0
        self._active_exercise_id: Optional[str] = None
        self._latest: Optional[CoachResponse] = None
        self._latest_key: Optional[tuple[str, int]] = None

    @property
    def latest(self) -> Optional[CoachResponse]:
        return self._latest

    def set_active_exercise(self, exercise_id: str) -> None:
        """Switching exercise invalidates the shown insight and any in-flight request."""
        if exercise_id != self._active_exercise_id:
            self._active_exercise_id = exercise_id
            self._latest = None
            self._latest_key = None
            self._generation += 1

    def cached(self, exercise_id: str, workout_count: int) -> Optional[CoachResponse]:
        """The applied response for this exercise and history size, if any."""
        if self._latest_key == (exercise_id, workout_count):
            return self._latest
        return None

    def needs_refresh(self, exercise_id: str, workout_count: int) -> bool:
        return self._latest_key != (exercise_id, workout_count)

    def start(self, exercise_id: str, workout_count: int) -> InsightTicket:
        """Begin a request. Any request started earlier becomes stale."""
        self.set_active_exercise(exercise_id)
        self._generation += 1
        return InsightTicket(
            exercise_id=exercise_id,
            workout_count=workout_count,
            generation=self._generation,
        )

    def finish(self, ticket: InsightTicket, response: CoachResponse) -> bool:
        """
        Apply a finished request's response if it is still relevant.

        Returns False (and keeps the previous insight) when the active
        exercise changed or a newer request was started.
        """
        if ticket.exercise_id != self._active_exercise_id or ticket.generation != self._generation:
            logger.info(
                "Discarding stale coaching response",
                extra={"exercise_id": ticket.exercise_id, "active_exercise_id": self._active_exercise_id}
            )
            return False

        self._latest = response
        self._latest_key = (ticket.exercise_id, ticket.workout_count)
        return True

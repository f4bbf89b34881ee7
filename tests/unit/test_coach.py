"""
Unit tests for the coaching providers and the insight tracker.

The model client is replaced with a small fake that records calls and
returns (or raises) whatever the test tells it to. No network access.
"""

import asyncio
import json

import pytest

from velovibe.core.coaching.coach import (
    COACHING_SCHEMA_NAME,
    FALLBACK_MESSAGE,
    FIRST_SESSION_RESPONSE,
    FallbackCoach,
    LocalCoach,
    ModelCoach,
    CoachingResponseError,
)
from velovibe.core.coaching.models import CoachResponse, VibeCheck
from velovibe.core.coaching.tracker import CoachInsightTracker
from velovibe.core.tracking.models import Workout
from velovibe.infrastructure.anthropic import RateLimitExceeded


class FakeModelClient:
    """Stands in for the Anthropic client."""

    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def generate_structured(self, system_prompt, user_prompt, schema_name, schema):
        self.calls.append({
            "system_prompt": system_prompt,
            "user_prompt": user_prompt,
            "schema_name": schema_name,
            "schema": schema,
        })
        if self.error is not None:
            raise self.error
        return self.reply


def make_history(*calories, exercise_id="e1"):
    """One session per day in January, in the given order."""
    return [
        Workout(
            id=f"w{day}",
            exercise_id=exercise_id,
            date=f"2024-01-{day:02d}T10:00:00.000Z",
            calories=value,
            duration_minutes=20,
            intensity=value / 20,
        )
        for day, value in enumerate(calories, start=1)
    ]


GOOD_REPLY = {"message": "You're on fire!", "targetCalories": 372, "vibeCheck": "fire"}


# ---------------------------------------------------------------------------
# ModelCoach
# ---------------------------------------------------------------------------

class TestModelCoach:

    def test_empty_history_makes_no_call(self):
        client = FakeModelClient(reply=GOOD_REPLY)

        response = asyncio.run(ModelCoach(client).request_coaching([]))

        assert client.calls == []
        assert response.target_calories == 300
        assert response.vibe_check is VibeCheck.CHILL
        assert response == FIRST_SESSION_RESPONSE

    def test_valid_reply_is_returned(self):
        client = FakeModelClient(reply=GOOD_REPLY)

        response = asyncio.run(ModelCoach(client).request_coaching(make_history(300, 350)))

        assert response.message == "You're on fire!"
        assert response.target_calories == 372
        assert response.vibe_check is VibeCheck.FIRE
        assert len(client.calls) == 1
        assert client.calls[0]["schema_name"] == COACHING_SCHEMA_NAME
        assert "vibeCheck" in client.calls[0]["schema"]["properties"]

    def test_payload_is_last_five_sessions_with_date_and_calories_only(self):
        coach = ModelCoach(FakeModelClient())

        payload = coach.build_history_payload(make_history(300, 310, 320, 330, 340, 350, 360))

        assert [entry["calories"] for entry in payload] == [320, 330, 340, 350, 360]
        assert all(set(entry) == {"date", "calories"} for entry in payload)

    def test_payload_is_chronological_regardless_of_input_order(self):
        coach = ModelCoach(FakeModelClient(), history_size=3)

        payload = coach.build_history_payload(list(reversed(make_history(300, 310, 320, 330))))

        assert [entry["calories"] for entry in payload] == [310, 320, 330]

    def test_prompt_embeds_the_payload(self):
        coach = ModelCoach(FakeModelClient())
        history = make_history(300, 350)

        prompt = coach.build_user_prompt(history)

        assert json.dumps(coach.build_history_payload(history), indent=2) in prompt
        assert "durationMinutes" not in prompt

    @pytest.mark.parametrize("reply", [
        "not even a dict",
        {"message": "Go", "targetCalories": 360},
        {"message": "Go", "targetCalories": "lots", "vibeCheck": "fire"},
        {"message": "Go", "targetCalories": 360, "vibeCheck": "party"},
    ])
    def test_malformed_reply_raises(self, reply):
        coach = ModelCoach(FakeModelClient(reply=reply))

        with pytest.raises(CoachingResponseError):
            asyncio.run(coach.request_coaching(make_history(300)))

    def test_rejects_non_positive_history_size(self):
        with pytest.raises(ValueError):
            ModelCoach(FakeModelClient(), history_size=0)


# ---------------------------------------------------------------------------
# LocalCoach and FallbackCoach
# ---------------------------------------------------------------------------

class TestLocalCoach:

    def test_target_is_two_percent_over_latest_session(self):
        response = asyncio.run(LocalCoach().request_coaching(make_history(300, 350)))

        assert response.target_calories == 357
        assert response.message == FALLBACK_MESSAGE
        assert response.vibe_check is VibeCheck.CHILL

    def test_latest_is_by_date_not_position(self):
        history = list(reversed(make_history(300, 401)))

        response = asyncio.run(LocalCoach().request_coaching(history))

        assert response.target_calories == 410  # ceil(401 * 1.02) = ceil(409.02)

    def test_empty_history_gets_greeting(self):
        assert asyncio.run(LocalCoach().request_coaching([])) == FIRST_SESSION_RESPONSE


class TestFallbackCoach:

    def test_malformed_reply_falls_back(self):
        client = FakeModelClient(reply={"message": "Go", "vibeCheck": "fire"})
        coach = FallbackCoach(ModelCoach(client))

        response = asyncio.run(coach.request_coaching(make_history(300, 350)))

        assert response.target_calories == 357
        assert response.message == FALLBACK_MESSAGE
        assert len(client.calls) == 1

    def test_transport_error_falls_back_without_retry(self):
        client = FakeModelClient(error=RateLimitExceeded("slow down"))
        coach = FallbackCoach(ModelCoach(client))

        response = asyncio.run(coach.request_coaching(make_history(250)))

        assert response.target_calories == 255
        assert len(client.calls) == 1

    def test_success_passes_through(self):
        coach = FallbackCoach(ModelCoach(FakeModelClient(reply=GOOD_REPLY)))

        response = asyncio.run(coach.request_coaching(make_history(300)))

        assert response.vibe_check is VibeCheck.FIRE


# ---------------------------------------------------------------------------
# CoachInsightTracker
# ---------------------------------------------------------------------------

RESPONSE = CoachResponse(message="Nice", target_calories=310, vibe_check=VibeCheck.FIRE)
OTHER_RESPONSE = CoachResponse(message="Hmm", target_calories=290, vibe_check=VibeCheck.WARNING)


class TestCoachInsightTracker:

    def test_finished_request_is_applied_and_cached(self):
        tracker = CoachInsightTracker()
        tracker.set_active_exercise("bike")

        ticket = tracker.start("bike", 3)

        assert tracker.finish(ticket, RESPONSE) is True
        assert tracker.latest == RESPONSE
        assert tracker.cached("bike", 3) == RESPONSE
        assert tracker.needs_refresh("bike", 3) is False

    def test_new_workout_needs_refresh(self):
        tracker = CoachInsightTracker()
        tracker.finish(tracker.start("bike", 3), RESPONSE)

        assert tracker.needs_refresh("bike", 4) is True
        assert tracker.cached("bike", 4) is None

    def test_switching_exercise_drops_in_flight_response(self):
        tracker = CoachInsightTracker()
        ticket = tracker.start("bike", 3)

        tracker.set_active_exercise("row")

        assert tracker.finish(ticket, RESPONSE) is False
        assert tracker.latest is None

    def test_switching_clears_shown_insight(self):
        tracker = CoachInsightTracker()
        tracker.finish(tracker.start("bike", 3), RESPONSE)

        tracker.set_active_exercise("row")

        assert tracker.latest is None
        assert tracker.cached("bike", 3) is None

    def test_switching_away_and_back_still_drops_old_request(self):
        tracker = CoachInsightTracker()
        ticket = tracker.start("bike", 3)

        tracker.set_active_exercise("row")
        tracker.set_active_exercise("bike")

        assert tracker.finish(ticket, RESPONSE) is False

    def test_newer_request_wins(self):
        tracker = CoachInsightTracker()
        first = tracker.start("bike", 3)
        second = tracker.start("bike", 4)

        assert tracker.finish(first, RESPONSE) is False
        assert tracker.finish(second, OTHER_RESPONSE) is True
        assert tracker.latest == OTHER_RESPONSE

    def test_setting_same_exercise_keeps_insight(self):
        tracker = CoachInsightTracker()
        tracker.finish(tracker.start("bike", 3), RESPONSE)

        tracker.set_active_exercise("bike")

        assert tracker.latest == RESPONSE

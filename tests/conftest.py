import time
from types import SimpleNamespace

import pytest
import requests

from community_map.models.user import CoordinateResult, UserRecord


class FakeResponse:
    def __init__(self, status_code=200, json_data=None, headers=None):
        self.status_code = status_code
        self._json_data = json_data
        self.headers = headers or {}

    def json(self):
        if isinstance(self._json_data, Exception):
            raise self._json_data
        return self._json_data

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.HTTPError(f"HTTP {self.status_code}")


class FakePrimary:
    """Stands in for NominatimGeocoder, answering from a dict keyed by raw location."""

    def __init__(self, answers=None, fail_on=None):
        self.answers = answers or {}
        self.fail_on = fail_on
        self.calls = []

    def geocode(self, location):
        self.calls.append(location)
        if self.fail_on is not None and location == self.fail_on:
            raise RuntimeError(f"simulated crash on {location}")
        return self.answers.get(location)


class FakeFallback:
    """Stands in for AIGeocoder, answering from a dict keyed by user id."""

    def __init__(self, answers=None):
        self.answers = answers or {}
        self.batches = []

    def geocode_batch(self, users):
        self.batches.append([user.id for user in users])
        return {user.id: self.answers[user.id] for user in users if user.id in self.answers}


class FakeChatClient:
    """Minimal OpenAI client exposing chat.completions.create."""

    def __init__(self, *outcomes):
        self.outcomes = list(outcomes)
        self.requests = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))

    def _create(self, **kwargs):
        self.requests.append(kwargs)
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        if outcome is None:
            return SimpleNamespace(choices=[])
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=outcome))])


def make_user(user_id, location, **fields):
    return UserRecord(id=user_id, name=f"user-{user_id}", location_field=location, **fields)


def coords(lat, long, confidence=80.0):
    return CoordinateResult(lat=lat, long=long, confidence=confidence)


@pytest.fixture
def sleeps(monkeypatch):
    """Replace time.sleep everywhere and record the requested durations."""
    recorded = []
    monkeypatch.setattr(time, "sleep", lambda seconds: recorded.append(seconds))
    return recorded

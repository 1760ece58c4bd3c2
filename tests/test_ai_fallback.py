import json

import httpx
import openai
import pytest

from community_map.errors import MaxRetriesExceededError
from community_map.geocoding.ai_fallback import AIGeocoder

from conftest import FakeChatClient, make_user

OPENAI_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def rate_limit_error(retry_after=None):
    headers = {"retry-after": retry_after} if retry_after is not None else {}
    response = httpx.Response(429, headers=headers, request=OPENAI_REQUEST)
    return openai.RateLimitError("Rate limit reached", response=response, body=None)


def test_batch_request_lists_every_user():
    client = FakeChatClient(json.dumps({"results": []}))
    users = [make_user("U1", "Lisbon"), make_user("U2", "the moon")]

    AIGeocoder(client, model="test-model").geocode_batch(users)

    assert len(client.requests) == 1
    request = client.requests[0]
    assert request["model"] == "test-model"
    assert request["response_format"] == {"type": "json_object"}
    assert json.loads(request["messages"][1]["content"]) == [
        {"id": "U1", "location": "Lisbon"},
        {"id": "U2", "location": "the moon"},
    ]


def test_results_keyed_by_requested_id():
    content = json.dumps({"results": [
        {"id": "U1", "lat": 38.72, "long": -9.14, "confidence": 99},
        {"id": "U9", "lat": 1, "long": 1, "confidence": 50},
    ]})
    users = [make_user("U1", "Lisbon"), make_user("U2", "the moon")]

    results = AIGeocoder(FakeChatClient(content)).geocode_batch(users)

    assert set(results) == {"U1"}
    assert results["U1"].lat == pytest.approx(38.72)
    # confidence from the model is kept as reported
    assert results["U1"].confidence == 99


def test_invalid_entries_are_dropped():
    content = json.dumps({"results": [
        {"id": "U1", "lat": "somewhere", "long": -9.14, "confidence": 70},
        {"id": "U2", "lat": 40.0, "long": -3.7, "confidence": 60},
        "garbage",
    ]})
    users = [make_user("U1", "Lisbon"), make_user("U2", "Madrid")]

    results = AIGeocoder(FakeChatClient(content)).geocode_batch(users)

    assert set(results) == {"U2"}


def test_empty_batch_makes_no_request():
    client = FakeChatClient()

    assert AIGeocoder(client).geocode_batch([]) == {}
    assert client.requests == []


@pytest.mark.parametrize("outcome", [
    openai.APIConnectionError(request=OPENAI_REQUEST),
    "this is not json",
    json.dumps(["not", "an", "object"]),
    json.dumps({"answers": []}),
    None,
])
def test_failures_yield_no_results(outcome):
    users = [make_user("U1", "Lisbon")]

    assert AIGeocoder(FakeChatClient(outcome)).geocode_batch(users) == {}


def test_rate_limit_is_retried(sleeps):
    content = json.dumps({"results": [{"id": "U1", "lat": 38.72, "long": -9.14, "confidence": 90}]})
    client = FakeChatClient(rate_limit_error(retry_after="2"), content)

    results = AIGeocoder(client).geocode_batch([make_user("U1", "Lisbon")])

    assert set(results) == {"U1"}
    assert len(client.requests) == 2
    assert sleeps == [2.0]


def test_persistent_rate_limit_is_fatal(sleeps):
    client = FakeChatClient(*[rate_limit_error() for _ in range(2)])

    with pytest.raises(MaxRetriesExceededError):
        AIGeocoder(client, max_retries=2).geocode_batch([make_user("U1", "Lisbon")])

import threading

import pytest
import requests

from places import geoapify_client as gc
from settings import PlacesConfigError, Settings


class DummyResponse:
    def __init__(self, json_data=None, status_code=200, bad_json=False):
        self._json = json_data
        self.status_code = status_code
        self._bad_json = bad_json

    @property
    def ok(self):
        return 200 <= self.status_code < 300

    def json(self):
        if self._bad_json:
            raise ValueError("Expecting value")
        return self._json


class FakeSession:
    def __init__(self, responses=None, exc=None):
        self.responses = list(responses or [])
        self.exc = exc
        self.calls = []

    def _next(self, method, url, kwargs):
        self.calls.append((method, url, kwargs))
        if self.exc is not None:
            raise self.exc
        return self.responses.pop(0)

    def get(self, url, params=None, timeout=None):
        return self._next("GET", url, {"params": params, "timeout": timeout})

    def post(self, url, data=None, headers=None, timeout=None):
        return self._next("POST", url, {"data": data, "timeout": timeout})


@pytest.fixture
def config(monkeypatch):
    monkeypatch.setenv("GEOAPIFY_API_KEY", "test-key")
    monkeypatch.delenv("GEOAPIFY_RESOLVE_TIMEOUT_MS", raising=False)
    monkeypatch.delenv("PLACES_SEARCH_RADIUS_M", raising=False)
    return Settings()


def test_search_nearby_builds_biased_filtered_request(config):
    session = FakeSession([DummyResponse({"features": [{"properties": {"name": "A"}}]})])
    client = gc.GeoapifyClient(session=session, config=config)

    features = client.search_nearby(-33.92, 18.42)

    assert features == [{"properties": {"name": "A"}}]
    _, url, kwargs = session.calls[0]
    assert url == gc.GEOAPIFY_PLACES_BASE
    params = kwargs["params"]
    assert params["apiKey"] == "test-key"
    assert params["filter"] == "circle:18.42,-33.92,300"
    assert params["bias"] == "proximity:18.42,-33.92"
    assert "catering" in params["categories"].split(",")
    assert "religion.place_of_worship" in params["categories"].split(",")
    assert params["limit"] == "20"
    assert kwargs["timeout"] == 3.5


def test_search_nearby_radius_is_clamped(config):
    session = FakeSession([DummyResponse({"features": []}), DummyResponse({"features": []})])
    client = gc.GeoapifyClient(session=session, config=config)
    client.search_nearby(1.0, 2.0, radius_m=5000)
    client.search_nearby(1.0, 2.0, radius_m=2.5)
    assert session.calls[0][2]["params"]["filter"] == "circle:2.0,1.0,2000"
    assert session.calls[1][2]["params"]["filter"] == "circle:2.0,1.0,10"


def test_nearby_timeout_comes_from_environment(monkeypatch):
    monkeypatch.setenv("GEOAPIFY_API_KEY", "test-key")
    monkeypatch.setenv("GEOAPIFY_RESOLVE_TIMEOUT_MS", "1200")
    session = FakeSession([DummyResponse({"features": []})])
    gc.GeoapifyClient(session=session, config=Settings()).search_nearby(0.0, 0.0)
    assert session.calls[0][2]["timeout"] == 1.2


@pytest.mark.parametrize(
    "response",
    [
        DummyResponse({"error": "denied"}, status_code=401),
        DummyResponse(status_code=500),
        DummyResponse(bad_json=True),
        DummyResponse({"features": "nope"}),
        DummyResponse(["not", "a", "dict"]),
    ],
)
def test_search_nearby_degrades_to_empty(config, response):
    client = gc.GeoapifyClient(session=FakeSession([response]), config=config)
    assert client.search_nearby(0.0, 0.0) == []


def test_network_errors_degrade_to_empty(config):
    client = gc.GeoapifyClient(session=FakeSession(exc=requests.Timeout("slow")), config=config)
    assert client.search_nearby(0.0, 0.0) == []
    assert client.reverse_geocode(0.0, 0.0) is None
    assert client.place_details("51a1b2c3d4e5f60718293a4b5c6d7e8f9") is None
    assert client.search_by_text("museum", 0.0, 0.0) == []


def test_missing_api_key_raises_before_network(monkeypatch):
    monkeypatch.delenv("GEOAPIFY_API_KEY", raising=False)
    session = FakeSession([DummyResponse({"features": []})])
    client = gc.GeoapifyClient(session=session, config=Settings())
    with pytest.raises(PlacesConfigError):
        client.search_nearby(0.0, 0.0)
    assert session.calls == []


def test_cancelled_call_is_not_issued(config):
    session = FakeSession([DummyResponse({"features": [{}]})])
    cancel = threading.Event()
    cancel.set()
    client = gc.GeoapifyClient(session=session, config=config)
    assert client.search_nearby(0.0, 0.0, cancel_event=cancel) == []
    assert session.calls == []


def test_reverse_geocode_returns_first_result(config):
    session = FakeSession([DummyResponse({"results": [{"name": "First"}, {"name": "Second"}]})])
    client = gc.GeoapifyClient(session=session, config=config)
    assert client.reverse_geocode(48.8584, 2.2945) == {"name": "First"}
    params = session.calls[0][2]["params"]
    assert params["lat"] == "48.8584"
    assert params["lon"] == "2.2945"
    assert params["format"] == "json"


def test_reverse_geocode_empty_results(config):
    client = gc.GeoapifyClient(session=FakeSession([DummyResponse({"results": []})]), config=config)
    assert client.reverse_geocode(0.0, 0.0) is None


def test_place_details_prefers_details_feature(config):
    payload = {
        "features": [
            {"properties": {"feature_type": "building", "name": "Shell"}},
            {"properties": {"feature_type": "details", "name": "Museum"}},
        ]
    }
    session = FakeSession([DummyResponse(payload)])
    client = gc.GeoapifyClient(session=session, config=config)
    details = client.place_details("51a1b2c3d4e5f60718293a4b5c6d7e8f9")
    assert details["properties"]["name"] == "Museum"
    kwargs = session.calls[0][2]
    assert kwargs["params"]["id"] == "51a1b2c3d4e5f60718293a4b5c6d7e8f9"
    assert kwargs["params"]["features"] == "details"
    assert kwargs["timeout"] == 4.0


def test_place_details_falls_back_to_first_feature(config):
    payload = {"features": [{"properties": {"name": "Only"}}]}
    client = gc.GeoapifyClient(session=FakeSession([DummyResponse(payload)]), config=config)
    assert client.place_details("51a1b2c3d4e5f60718293a4b5c6d7e8f9")["properties"]["name"] == "Only"


def test_search_by_text_params(config):
    session = FakeSession([DummyResponse({"results": [{"name": "A"}, "junk"]})])
    client = gc.GeoapifyClient(session=session, config=config)
    assert client.search_by_text("zeitz mocaa", -33.9, 18.4) == [{"name": "A"}]
    kwargs = session.calls[0][2]
    assert kwargs["params"]["text"] == "zeitz mocaa"
    assert kwargs["params"]["bias"] == "proximity:18.4,-33.9"
    assert kwargs["params"]["limit"] == "10"
    assert kwargs["timeout"] == 4.0


def test_overpass_tries_next_mirror(config):
    elements = [{"tags": {"name": "Cafe Roux", "website": "caferoux.example"}, "lat": 1.0, "lon": 2.0}]
    session = FakeSession([DummyResponse(status_code=504), DummyResponse({"elements": elements})])
    client = gc.GeoapifyClient(session=session, config=config)
    assert client.overpass_website_elements(1.0, 2.0, 1500) == elements
    assert [c[1] for c in session.calls] == list(gc.OVERPASS_BASES[:2])
    assert "around:1500,1.0,2.0" in session.calls[0][2]["data"]["data"]


def test_overpass_mirrors_share_one_deadline(config, monkeypatch):
    ticks = [100.0, 100.0, 107.0, 112.0]
    monkeypatch.setattr(gc.time, "monotonic", lambda: ticks.pop(0) if len(ticks) > 1 else ticks[0])
    session = FakeSession([DummyResponse(status_code=504), DummyResponse(status_code=504)])
    client = gc.GeoapifyClient(session=session, config=config)

    assert client.overpass_website_elements(1.0, 2.0, 1500) == []
    # the third mirror is never asked once the shared budget is spent
    assert [c[2]["timeout"] for c in session.calls] == [10.0, 3.0]

"""
Tests for the HTTP API.

Drives the FastAPI app through TestClient; the weather provider is
replaced with one backed by httpx.MockTransport where needed.
"""

import pytest
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import httpx
from fastapi.testclient import TestClient

from lightcast import main
from lightcast.config import settings
from lightcast.tools import OpenWeatherProvider


PREFIX = settings.API_V1_PREFIX
SEATTLE = {"latitude": 47.6062, "longitude": -122.3321}


@pytest.fixture(scope="module")
def client():
    with TestClient(main.app) as test_client:
        yield test_client


class TestTwilightEndpoint:
    """POST /twilight"""

    def test_seattle(self, client):
        """Events come back in the requested zone."""
        response = client.post(f"{PREFIX}/twilight", json={
            **SEATTLE, "date": "2024-06-21", "timezone": "America/Los_Angeles",
        })
        assert response.status_code == 200, response.text
        data = response.json()
        assert data["sunrise"].startswith("2024-06-21T05:1")
        assert data["sunrise"].endswith("-07:00")
        assert data["location"]["timezone"] == "America/Los_Angeles"
        assert data["golden_hour_evening"]["duration_minutes"] > 30
        assert 15.8 < data["day_length_hours"] < 16.1
        assert data["nadir"].startswith("2024-06-22T01:1")
        assert data["reduced_precision"] == []

    def test_polar_day(self, client):
        """Absent events are null."""
        response = client.post(f"{PREFIX}/twilight", json={
            "latitude": 78.0, "longitude": 15.0, "date": "2024-06-21",
        })
        data = response.json()
        assert response.status_code == 200
        assert data["sunrise"] is None
        assert data["sunset"] is None
        assert data["is_polar_day"] is True
        assert data["location"]["timezone"] == "UTC"

    @pytest.mark.parametrize("payload,status", [
        ({"date": "2024-13-45"}, 400),
        ({"date": "2024-06-21", "timezone": "Nowhere/Special"}, 400),
        ({"date": "21/06/2024"}, 422),
        ({"date": "2024-06-21", "latitude": 91.0}, 422),
    ])
    def test_bad_requests(self, client, payload, status):
        """Invalid input is rejected before computation."""
        response = client.post(f"{PREFIX}/twilight", json={**SEATTLE, **payload})
        assert response.status_code == status, response.text


class TestMoonEndpoint:
    """POST /moon"""

    def test_phase_by_date(self, client):
        """A date alone gives phase and illumination."""
        response = client.post(f"{PREFIX}/moon", json={"date": "2024-01-25"})
        assert response.status_code == 200
        data = response.json()
        assert data["phase_name"] == "Full Moon"
        assert data["illumination_pct"] > 95
        assert data["moonrise"] is None
        assert data["position"] is None

    def test_with_location(self, client):
        """A location adds rise, set and position."""
        response = client.post(f"{PREFIX}/moon", json={
            "date": "2024-01-25", **SEATTLE, "timezone": "America/Los_Angeles",
        })
        assert response.status_code == 200
        data = response.json()
        assert data["moonrise"] is not None
        assert data["position"]["body"] == "moon"
        assert data["next_apogee"].startswith("2024-01-2")
        assert data["next_perigee"].startswith("2024-02-1")

    def test_by_instant(self, client):
        """An exact instant is accepted."""
        response = client.post(f"{PREFIX}/moon", json={"instant": "2000-01-06T18:14:00Z"})
        assert response.status_code == 200
        assert response.json()["phase_name"] == "New Moon"

    def test_requires_when(self, client):
        """Either a date or an instant is required."""
        assert client.post(f"{PREFIX}/moon", json={}).status_code == 400

    def test_partial_location(self, client):
        """Latitude without longitude is rejected."""
        response = client.post(f"{PREFIX}/moon", json={"date": "2024-01-25", "latitude": 47.6})
        assert response.status_code == 400


class TestShadowEndpoint:
    """POST /shadow"""

    def test_single_shadow(self, client):
        """A shadow at an instant."""
        response = client.post(f"{PREFIX}/shadow", json={
            **SEATTLE, "instant": "2024-06-21T13:00:00-07:00", "height_m": 2.0,
        })
        assert response.status_code == 200
        data = response.json()
        assert 0.5 < data["shadow"]["length_m"] < 1.5
        assert data["shadow"]["terrain"] == "flat"
        assert data["progression"] is None

    def test_progression(self, client):
        """With an end time the progression is included."""
        response = client.post(f"{PREFIX}/shadow", json={
            **SEATTLE,
            "instant": "2024-06-21T18:00:00-07:00",
            "end": "2024-06-21T22:00:00-07:00",
            "height_m": 2.0,
            "terrain": "beach",
        })
        assert response.status_code == 200
        progression = response.json()["progression"]
        assert len(progression) == 5
        assert progression[-1]["length_m"] is None, "Sun has set by 22:00"

    def test_progression_too_long(self, client):
        """A year of minute steps is refused before any work is done."""
        response = client.post(f"{PREFIX}/shadow", json={
            **SEATTLE,
            "instant": "2024-06-21T00:00:00Z",
            "end": "2025-06-21T00:00:00Z",
            "step_minutes": 1,
            "height_m": 2.0,
        })
        assert response.status_code == 400
        assert "exceeds" in response.json()["detail"]

    def test_naive_instant(self, client):
        """Instants without an offset are rejected."""
        response = client.post(f"{PREFIX}/shadow", json={
            **SEATTLE, "instant": "2024-06-21T13:00:00", "height_m": 2.0,
        })
        assert response.status_code == 400

    def test_bad_height_and_terrain(self, client):
        """Schema validation catches heights and terrains."""
        base = {**SEATTLE, "instant": "2024-06-21T13:00:00-07:00"}
        assert client.post(f"{PREFIX}/shadow", json={**base, "height_m": 0}).status_code == 422
        assert client.post(f"{PREFIX}/shadow", json={**base, "height_m": 1, "terrain": "lava"}).status_code == 422


class TestSunPathEndpoint:
    """POST /sun-path"""

    def test_hourly_path(self, client):
        """Hourly sampling gives 24 points."""
        response = client.post(f"{PREFIX}/sun-path", json={
            **SEATTLE, "date": "2024-06-21", "step_minutes": 60, "timezone": "America/Los_Angeles",
        })
        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 24
        assert data["step_minutes"] == 60
        assert data["points"][0]["instant"].startswith("2024-06-21T00:00:00")
        assert data["points"][1]["condition"] == "down", "Sun near -19° at solar midnight"
        assert data["points"][13]["condition"] == "up"

    def test_default_step(self, client):
        """The server default step applies when omitted."""
        response = client.post(f"{PREFIX}/sun-path", json={**SEATTLE, "date": "2024-06-21"})
        assert response.json()["count"] == 96


class TestPredictDayEndpoint:
    """POST /predict-day"""

    def test_without_weather(self, client):
        """Clear sky is assumed without weather."""
        response = client.post(f"{PREFIX}/predict-day", json={
            **SEATTLE, "date": "2024-06-21", "timezone": "America/Los_Angeles",
        })
        assert response.status_code == 200, response.text
        data = response.json()
        assert data["weather_source"] == "none"
        assert len(data["hourly"]) == 24
        assert data["best_window"]["rank"] == 1
        assert data["best_window"]["light_quality"] == "golden_hour"
        assert data["hourly"][13]["settings"]["formatted"].startswith("f/8")

    def test_with_request_weather(self, client):
        """Weather from the request is used and reported."""
        response = client.post(f"{PREFIX}/predict-day", json={
            **SEATTLE,
            "date": "2024-06-21",
            "timezone": "America/Los_Angeles",
            "weather": [{
                "time": "2024-06-21T12:00:00-07:00",
                "cloud_cover_pct": 95,
                "humidity_pct": 60,
                "wind_speed_ms": 2,
                "visibility_km": 10,
                "precipitation_mm": 0,
            }],
        })
        assert response.status_code == 200
        data = response.json()
        assert data["weather_source"] == "request"
        assert data["hourly"][12]["light"]["quality"] == "overcast"

    def test_fetch_weather(self, client, monkeypatch):
        """fetch_weather pulls a forecast through the provider."""
        def handler(request):
            return httpx.Response(200, json={"list": [{
                "dt": 1718996400,
                "clouds": {"all": 90},
                "main": {"humidity": 70},
                "wind": {"speed": 3.0},
                "visibility": 10000,
                "pop": 0,
            }]})

        provider = OpenWeatherProvider(api_key="k", transport=httpx.MockTransport(handler))
        monkeypatch.setattr(main, "get_weather_provider", lambda: provider)

        response = client.post(f"{PREFIX}/predict-day", json={
            **SEATTLE, "date": "2024-06-21", "timezone": "America/Los_Angeles", "fetch_weather": True,
        })
        assert response.status_code == 200, response.text
        data = response.json()
        assert data["weather_source"] == "openweathermap"
        # 1718996400 is 12:00 PDT
        assert data["hourly"][12]["light"]["quality"] == "overcast"

    def test_fetch_weather_unconfigured(self, client, monkeypatch):
        """Fetching without a server key is a client error."""
        provider = OpenWeatherProvider()
        provider.api_key = None
        monkeypatch.setattr(main, "get_weather_provider", lambda: provider)

        response = client.post(f"{PREFIX}/predict-day", json={
            **SEATTLE, "date": "2024-06-21", "fetch_weather": True,
        })
        assert response.status_code == 400

    def test_provider_failure(self, client, monkeypatch):
        """Upstream failures map to 502."""
        provider = OpenWeatherProvider(api_key="k", transport=httpx.MockTransport(lambda r: httpx.Response(500)))
        monkeypatch.setattr(main, "get_weather_provider", lambda: provider)

        response = client.post(f"{PREFIX}/predict-day", json={
            **SEATTLE, "date": "2024-06-21", "fetch_weather": True,
        })
        assert response.status_code == 502

    def test_offset_out_of_range(self, client):
        """Calibration offsets beyond five stops are rejected."""
        response = client.post(f"{PREFIX}/predict-day", json={
            **SEATTLE, "date": "2024-06-21", "ev_offset": 7,
        })
        assert response.status_code == 422


class TestSystemEndpoints:
    """Health and root."""

    def test_health(self, client):
        """Health reports component status."""
        response = client.get(f"{PREFIX}/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["components"]["engine"] == "available"
        assert data["version"] == settings.APP_VERSION

    def test_root(self, client):
        """Root lists the endpoints."""
        data = client.get("/").json()
        assert data["name"] == settings.APP_NAME
        assert data["endpoints"]["predict_day"] == f"{PREFIX}/predict-day"

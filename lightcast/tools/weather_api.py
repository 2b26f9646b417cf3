"""
OpenWeatherMap forecast adapter.

Fetches the 5-day / 3-hour forecast and maps each item onto a
WeatherSnapshot for the engine. The engine never calls this itself: it is
a convenience for callers (the HTTP API among them) that do not already
have forecast data.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx

from ..config import settings
from ..models import GeoCoordinate, WeatherSnapshot

logger = logging.getLogger(__name__)


class WeatherProviderError(RuntimeError):
    """The forecast service failed or returned something unusable."""


def parse_forecast_item(item: Dict[str, Any], issued_at: Optional[datetime] = None) -> WeatherSnapshot:
    """
    Map one OpenWeatherMap forecast item to a WeatherSnapshot.

    Fields the service leaves out stay None rather than being defaulted,
    so the engine can account for them in its confidence.
    """
    if "dt" not in item:
        raise WeatherProviderError("Forecast item has no timestamp")

    main_data = item.get("main", {})
    wind_data = item.get("wind", {})
    weather_data = (item.get("weather") or [{}])[0]

    visibility = item.get("visibility")
    precipitation = None
    if "rain" in item or "snow" in item:
        precipitation = item.get("rain", {}).get("3h", 0.0) + item.get("snow", {}).get("3h", 0.0)
    elif "pop" in item:
        # Probability given, no volume: nothing is forecast to fall
        precipitation = 0.0

    return WeatherSnapshot(
        time=datetime.fromtimestamp(item["dt"], tz=timezone.utc),
        cloud_cover_pct=item.get("clouds", {}).get("all"),
        humidity_pct=main_data.get("humidity"),
        wind_speed_ms=wind_data.get("speed"),
        visibility_km=visibility / 1000.0 if visibility is not None else None,
        precipitation_mm=precipitation,
        description=weather_data.get("description"),
        issued_at=issued_at,
    )


class OpenWeatherProvider:
    """Client for the OpenWeatherMap forecast endpoint."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key or settings.OPENWEATHER_API_KEY
        self.base_url = base_url or settings.OPENWEATHER_BASE_URL
        self.timeout = timeout or settings.WEATHER_TIMEOUT_SECONDS
        self._transport = transport

    def is_configured(self) -> bool:
        """Check if API key is configured"""
        return bool(self.api_key)

    async def _make_request(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        """Make API request with error handling"""
        if not self.api_key:
            raise ValueError("OpenWeatherMap API key not configured. Set OPENWEATHER_API_KEY env var.")

        params = dict(params, appid=self.api_key, units="metric")

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                response = await client.get(f"{self.base_url}/{endpoint}", params=params)
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as e:
                if e.response.status_code == 401:
                    raise ValueError("Invalid OpenWeatherMap API key")
                raise WeatherProviderError(f"Weather API error: {e.response.status_code}")
            except httpx.TimeoutException:
                raise WeatherProviderError("Weather API request timed out")
            except httpx.HTTPError as e:
                raise WeatherProviderError(f"Weather API request failed: {e}")
            except ValueError as e:
                raise WeatherProviderError(f"Weather API returned invalid JSON: {e}")

    async def fetch_snapshots(self, coordinate: GeoCoordinate) -> List[WeatherSnapshot]:
        """
        Forecast snapshots for the next five days, sorted by time.

        The retrieval time stands in for the issue time, which the free
        forecast endpoint does not report.
        """
        payload = await self._make_request(
            "forecast", {"lat": coordinate.latitude, "lon": coordinate.longitude}
        )
        issued_at = datetime.now(timezone.utc)
        items = payload.get("list")
        if not isinstance(items, list):
            raise WeatherProviderError("Forecast response has no 'list' of items")

        snapshots = []
        for item in items:
            try:
                snapshots.append(parse_forecast_item(item, issued_at))
            except (ValueError, WeatherProviderError) as e:
                logger.warning(f"Skipping malformed forecast item: {e}")
        logger.info(f"Fetched {len(snapshots)} forecast snapshots for ({coordinate.latitude}, {coordinate.longitude})")
        return sorted(snapshots, key=lambda s: s.time)


# Singleton instance
_weather_provider: Optional[OpenWeatherProvider] = None


def get_weather_provider() -> OpenWeatherProvider:
    """
    Get or create the OpenWeatherProvider singleton.

    Returns:
        OpenWeatherProvider: Singleton instance
    """
    global _weather_provider
    if _weather_provider is None:
        _weather_provider = OpenWeatherProvider()
    return _weather_provider

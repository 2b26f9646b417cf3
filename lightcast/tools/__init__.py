"""
Lightcast Tools Package.

Caller-side adapters for the engine's external inputs:
- Time zone resolution (pytz)
- Weather forecasts (OpenWeatherMap over httpx)
"""

from .timezone_resolver import PytzZoneResolver, resolve_zone
from .weather_api import (
    OpenWeatherProvider,
    WeatherProviderError,
    get_weather_provider,
    parse_forecast_item,
)

__all__ = [
    "PytzZoneResolver",
    "resolve_zone",
    "OpenWeatherProvider",
    "WeatherProviderError",
    "get_weather_provider",
    "parse_forecast_item",
]

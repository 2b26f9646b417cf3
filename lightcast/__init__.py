"""
Lightcast: Astronomical and Light-Prediction Engine.

Sun and moon ephemeris, twilight and golden/blue hour events, moon phase,
shadow geometry and hourly exposure predictions for photography planning.
"""

from .core import LightEngine, get_light_engine
from .models import GeoCoordinate, LocalZone, TerrainType, WeatherSnapshot

__version__ = "1.0.0"

__all__ = [
    "LightEngine",
    "get_light_engine",
    "GeoCoordinate",
    "LocalZone",
    "TerrainType",
    "WeatherSnapshot",
]

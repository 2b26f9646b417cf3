"""
Request schemas for the Lightcast API.

All models use Pydantic v2 with strict validation. Coordinates are
range-checked here as well as in the engine so that malformed input is
rejected before any computation starts.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from ..models import ExposureIntent, TerrainType


class LocationRequest(BaseModel):
    """
    Common location fields.

    Attributes:
        latitude: GPS latitude (-90 to 90)
        longitude: GPS longitude (-180 to 180)
        timezone: Optional IANA zone name; results are expressed in it
    """
    latitude: float = Field(
        ...,
        ge=-90.0,
        le=90.0,
        description="GPS latitude in decimal degrees",
        examples=[47.6062, 78.0]
    )
    longitude: float = Field(
        ...,
        ge=-180.0,
        le=180.0,
        description="GPS longitude in decimal degrees",
        examples=[-122.3321, 15.0]
    )
    timezone: Optional[str] = Field(
        default=None,
        max_length=64,
        description="IANA time zone name; UTC when omitted",
        examples=["America/Los_Angeles", "Europe/Oslo"]
    )


class TwilightRequest(LocationRequest):
    """
    Request model for twilight, golden hour and blue hour events.

    Attributes:
        date: Target date (YYYY-MM-DD)
    """
    date: str = Field(
        ...,
        pattern=r"^\d{4}-\d{2}-\d{2}$",
        description="Target date in YYYY-MM-DD format",
        examples=["2024-06-21"]
    )

    class Config:
        json_schema_extra = {
            "example": {
                "latitude": 47.6062,
                "longitude": -122.3321,
                "date": "2024-06-21",
                "timezone": "America/Los_Angeles"
            }
        }


class MoonPhaseRequest(BaseModel):
    """
    Request model for moon phase.

    Either ``date`` or ``instant`` is required. A location is optional and
    adds moonrise, moonset and the moon's position.
    """
    date: Optional[str] = Field(
        default=None,
        pattern=r"^\d{4}-\d{2}-\d{2}$",
        description="Target date in YYYY-MM-DD format (evaluated at local noon)"
    )
    instant: Optional[datetime] = Field(
        default=None,
        description="Exact instant, ISO 8601 with offset"
    )
    latitude: Optional[float] = Field(default=None, ge=-90.0, le=90.0)
    longitude: Optional[float] = Field(default=None, ge=-180.0, le=180.0)
    timezone: Optional[str] = Field(default=None, max_length=64)

    class Config:
        json_schema_extra = {
            "example": {
                "date": "2024-01-25",
                "latitude": 47.6062,
                "longitude": -122.3321,
                "timezone": "America/Los_Angeles"
            }
        }


class ShadowRequest(LocationRequest):
    """
    Request model for shadow projection.

    With ``end`` set, the response also carries the shadow progression
    from ``instant`` to ``end`` every ``step_minutes``.
    """
    instant: datetime = Field(..., description="Instant, ISO 8601 with offset")
    height_m: float = Field(..., gt=0.0, le=10000.0, description="Object height in metres")
    terrain: TerrainType = Field(default=TerrainType.FLAT, description="Ground the shadow falls on")
    end: Optional[datetime] = Field(default=None, description="End of the progression")
    step_minutes: float = Field(default=60.0, gt=0.0, le=1440.0, description="Progression step")

    class Config:
        json_schema_extra = {
            "example": {
                "latitude": 47.6062,
                "longitude": -122.3321,
                "instant": "2024-06-21T17:00:00-07:00",
                "height_m": 2.0,
                "terrain": "flat"
            }
        }


class SunPathRequest(LocationRequest):
    """Request model for sun path sampling."""
    date: str = Field(
        ...,
        pattern=r"^\d{4}-\d{2}-\d{2}$",
        description="Target date in YYYY-MM-DD format"
    )
    step_minutes: Optional[float] = Field(
        default=None,
        gt=0.0,
        le=240.0,
        description="Sampling step; server default when omitted"
    )


class WeatherSnapshotInput(BaseModel):
    """One forecast snapshot supplied by the caller."""
    time: datetime
    cloud_cover_pct: Optional[float] = Field(default=None, ge=0.0, le=100.0)
    humidity_pct: Optional[float] = Field(default=None, ge=0.0, le=100.0)
    wind_speed_ms: Optional[float] = Field(default=None, ge=0.0)
    visibility_km: Optional[float] = Field(default=None, ge=0.0)
    precipitation_mm: Optional[float] = Field(default=None, ge=0.0)
    description: Optional[str] = Field(default=None, max_length=200)
    issued_at: Optional[datetime] = None


class PredictDayRequest(LocationRequest):
    """
    Request model for a full-day light prediction.

    Attributes:
        date: Target date (YYYY-MM-DD)
        weather: Forecast snapshots for the day
        fetch_weather: Fetch a forecast from OpenWeatherMap when no
            snapshots are supplied and the server has an API key
        intent: Exposure triangle preference
        ev_offset: Personal calibration offset in stops
    """
    date: str = Field(
        ...,
        pattern=r"^\d{4}-\d{2}-\d{2}$",
        description="Target date in YYYY-MM-DD format"
    )
    weather: List[WeatherSnapshotInput] = Field(default_factory=list)
    fetch_weather: bool = Field(default=False)
    intent: ExposureIntent = Field(default=ExposureIntent.BALANCED)
    ev_offset: float = Field(default=0.0, ge=-5.0, le=5.0)

    class Config:
        json_schema_extra = {
            "example": {
                "latitude": 47.6062,
                "longitude": -122.3321,
                "date": "2024-06-21",
                "timezone": "America/Los_Angeles",
                "weather": [
                    {
                        "time": "2024-06-21T20:00:00-07:00",
                        "cloud_cover_pct": 20,
                        "humidity_pct": 60,
                        "wind_speed_ms": 3.5,
                        "visibility_km": 10,
                        "precipitation_mm": 0
                    }
                ],
                "intent": "balanced"
            }
        }

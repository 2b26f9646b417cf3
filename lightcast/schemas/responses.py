"""
Response schemas for the Lightcast API.

Instants are ISO 8601 strings in the requested time zone (UTC when none
was given). Optional fields are null when the event does not occur.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class LocationInfo(BaseModel):
    """Location information for a calculation."""
    latitude: float
    longitude: float
    timezone: str = "UTC"


class TimeWindowResponse(BaseModel):
    """
    Response model for a time window (golden hour, blue hour, etc.).

    Attributes:
        start: Start time (ISO format)
        end: End time (ISO format)
        duration_minutes: Window duration in minutes
    """
    start: str = Field(..., description="Start time in ISO format")
    end: str = Field(..., description="End time in ISO format")
    duration_minutes: float = Field(..., description="Duration in minutes")


class CelestialPositionResponse(BaseModel):
    """Position of the sun or moon."""
    body: str
    azimuth_deg: float = Field(..., description="Compass bearing (0=N, 90=E)")
    elevation_deg: float = Field(..., description="Geometric elevation above horizon")
    distance: float = Field(..., description="AU for the sun, km for the moon")


class TwilightResponse(BaseModel):
    """
    Response model for twilight events.

    Every event is null when the sun never reaches the corresponding
    elevation on that day.
    """
    location: LocationInfo
    date: str
    solar_noon: str
    solar_noon_elevation_deg: float
    nadir: Optional[str] = Field(None, description="Solar midnight following solar noon")
    sunrise: Optional[str] = None
    sunset: Optional[str] = None
    civil_dawn: Optional[str] = None
    civil_dusk: Optional[str] = None
    nautical_dawn: Optional[str] = None
    nautical_dusk: Optional[str] = None
    astronomical_dawn: Optional[str] = None
    astronomical_dusk: Optional[str] = None
    golden_hour_morning: Optional[TimeWindowResponse] = None
    golden_hour_evening: Optional[TimeWindowResponse] = None
    blue_hour_morning: Optional[TimeWindowResponse] = None
    blue_hour_evening: Optional[TimeWindowResponse] = None
    day_length_hours: Optional[float] = None
    is_polar_day: bool = False
    is_polar_night: bool = False
    reduced_precision: List[str] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "location": {"latitude": 47.6062, "longitude": -122.3321, "timezone": "America/Los_Angeles"},
                "date": "2024-06-21",
                "solar_noon": "2024-06-21T13:11:40-07:00",
                "solar_noon_elevation_deg": 65.83,
                "sunrise": "2024-06-21T05:11:32-07:00",
                "sunset": "2024-06-21T21:10:58-07:00",
                "day_length_hours": 15.99
            }
        }


class MoonPhaseResponse(BaseModel):
    """Response model for moon phase."""
    phase: float = Field(..., description="Fraction of the synodic month, 0 = new, 0.5 = full")
    illumination_pct: float
    phase_name: str
    age_days: float
    magnitude: Optional[float] = None
    moonrise: Optional[str] = None
    moonset: Optional[str] = None
    position: Optional[CelestialPositionResponse] = None
    next_perigee: Optional[str] = Field(None, description="Next closest approach of the moon")
    next_apogee: Optional[str] = Field(None, description="Next farthest approach of the moon")


class ShadowResultResponse(BaseModel):
    """One shadow projection."""
    instant: Optional[str] = None
    length_m: Optional[float] = Field(None, description="Null when the sun is at or below the horizon")
    direction_deg: float
    sun_elevation_deg: float
    object_height_m: float
    terrain: str


class ShadowResponse(BaseModel):
    """Response model for shadow projection."""
    location: LocationInfo
    shadow: ShadowResultResponse
    progression: Optional[List[ShadowResultResponse]] = None


class SunPathPointResponse(BaseModel):
    """One sun path sample."""
    instant: str
    azimuth_deg: float
    elevation_deg: float
    above_horizon: bool
    condition: str = Field(..., description="up, civil_twilight, nautical_twilight, astronomical_twilight or down")


class SunPathResponse(BaseModel):
    """Response model for sun path sampling."""
    location: LocationInfo
    date: str
    step_minutes: float
    count: int
    points: List[SunPathPointResponse]


class LightResponse(BaseModel):
    """Light characteristics for an hour."""
    quality: str
    color_temperature_k: float
    softness: float
    shadow_harshness: str
    directionality: float
    suitable_for: List[str] = Field(default_factory=list)


class ExposureSettingsResponse(BaseModel):
    """Suggested exposure triangle."""
    aperture: str
    shutter_speed: str
    iso: str
    ev100: float
    formatted: str


class HourlyPredictionResponse(BaseModel):
    """Prediction for one hour."""
    instant: str
    predicted_ev: float
    confidence_margin: float
    confidence_level: float
    confidence_reason: str
    quality_score: float
    is_optimal: bool
    sun_elevation_deg: float
    sun_azimuth_deg: float
    settings: ExposureSettingsResponse
    light: LightResponse
    recommendations: List[str] = Field(default_factory=list)


class OptimalWindowResponse(BaseModel):
    """A ranked shooting window."""
    start: str
    end: str
    rank: int
    quality_score: float
    light_quality: str
    description: str
    suitable_for: List[str] = Field(default_factory=list)
    peak_ev: float


class DayPredictionResponse(BaseModel):
    """Response model for a full-day prediction."""
    location: LocationInfo
    date: str
    weather_source: str = Field(..., description="request, openweathermap or none")
    hourly: List[HourlyPredictionResponse]
    windows: List[OptimalWindowResponse]
    best_window: Optional[OptimalWindowResponse] = None


class HealthResponse(BaseModel):
    """
    Response model for health check endpoint.

    Attributes:
        status: Service health status
        version: API version
        components: Status of individual components
    """
    status: str = Field(default="healthy")
    version: str
    components: Dict[str, str] = Field(default_factory=dict)

    class Config:
        json_schema_extra = {
            "example": {
                "status": "healthy",
                "version": "1.0.0",
                "components": {
                    "engine": "available",
                    "weather": "not_configured"
                }
            }
        }


class ErrorResponse(BaseModel):
    """
    Response model for error responses.

    Attributes:
        error: Error type
        message: Human-readable error message
        details: Additional error details
    """
    error: str
    message: str
    details: Optional[Dict[str, Any]] = None

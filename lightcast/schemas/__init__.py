"""
Pydantic Schemas Package for the Lightcast API.

This package contains all request and response models for the API.
"""

from .requests import (
    LocationRequest,
    TwilightRequest,
    MoonPhaseRequest,
    ShadowRequest,
    SunPathRequest,
    WeatherSnapshotInput,
    PredictDayRequest,
)
from .responses import (
    LocationInfo,
    TimeWindowResponse,
    CelestialPositionResponse,
    TwilightResponse,
    MoonPhaseResponse,
    ShadowResultResponse,
    ShadowResponse,
    SunPathPointResponse,
    SunPathResponse,
    LightResponse,
    ExposureSettingsResponse,
    HourlyPredictionResponse,
    OptimalWindowResponse,
    DayPredictionResponse,
    HealthResponse,
    ErrorResponse,
)

__all__ = [
    # Requests
    "LocationRequest",
    "TwilightRequest",
    "MoonPhaseRequest",
    "ShadowRequest",
    "SunPathRequest",
    "WeatherSnapshotInput",
    "PredictDayRequest",
    # Responses
    "LocationInfo",
    "TimeWindowResponse",
    "CelestialPositionResponse",
    "TwilightResponse",
    "MoonPhaseResponse",
    "ShadowResultResponse",
    "ShadowResponse",
    "SunPathPointResponse",
    "SunPathResponse",
    "LightResponse",
    "ExposureSettingsResponse",
    "HourlyPredictionResponse",
    "OptimalWindowResponse",
    "DayPredictionResponse",
    "HealthResponse",
    "ErrorResponse",
]

"""
Configuration settings for the Lightcast engine.

This module defines all configuration parameters using Pydantic Settings,
enabling environment variable overrides for production deployment.
"""

from pydantic_settings import BaseSettings
from typing import Optional
from functools import lru_cache


class Settings(BaseSettings):
    """
    Application settings with environment variable support.

    Attributes:
        APP_NAME: Application identifier
        APP_VERSION: Semantic version
        DEBUG: Enable debug mode

        # Crossing search
        SCAN_STEP_MINUTES: Coarse elevation scan resolution
        BISECTION_TOLERANCE_SECONDS: Target precision of refined crossings
        BISECTION_MAX_ITERATIONS: Iteration cap before falling back to the
            bracket midpoint

        # Prediction
        MAX_WORKERS: Thread pool size for per-hour / per-sample fan-out
        DEFAULT_SAMPLE_STEP_MINUTES: Sun path step when the caller omits one
        OVERCAST_STOPS: Exposure loss (stops) under full cloud cover
        WINDOW_QUALITY_THRESHOLD: Minimum hourly score to join a window

        # Weather adapter
        OPENWEATHER_API_KEY: OpenWeatherMap key for the forecast adapter
        OPENWEATHER_BASE_URL: OpenWeatherMap API root
        WEATHER_TIMEOUT_SECONDS: HTTP timeout for forecast requests

        # API Configuration
        API_V1_PREFIX: API version prefix
        MAX_PROGRESSION_POINTS: Largest shadow progression one request may ask for
        HOST: Server host
        PORT: Server port
    """

    # Application
    APP_NAME: str = "Lightcast Engine"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = False

    # Crossing search
    SCAN_STEP_MINUTES: int = 5
    BISECTION_TOLERANCE_SECONDS: float = 10.0
    BISECTION_MAX_ITERATIONS: int = 40

    # Prediction
    MAX_WORKERS: int = 8
    DEFAULT_SAMPLE_STEP_MINUTES: int = 15
    OVERCAST_STOPS: float = 3.0
    WINDOW_QUALITY_THRESHOLD: float = 0.6

    # Weather adapter (caller side only, the engine never fetches)
    OPENWEATHER_API_KEY: Optional[str] = None
    OPENWEATHER_BASE_URL: str = "https://api.openweathermap.org/data/2.5"
    WEATHER_TIMEOUT_SECONDS: float = 10.0

    # API Configuration
    API_V1_PREFIX: str = "/api/v1"
    MAX_PROGRESSION_POINTS: int = 1440
    HOST: str = "0.0.0.0"
    PORT: int = 8010

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings factory.

    Returns:
        Settings: Application configuration singleton
    """
    return Settings()


# Global settings instance
settings = get_settings()

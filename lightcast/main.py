"""
Lightcast: FastAPI Application Entry Point.

This module exposes the light-prediction engine over HTTP.

Endpoints:
    - POST /api/v1/twilight: Twilight, golden hour and blue hour events
    - POST /api/v1/moon: Moon phase, illumination and rise/set
    - POST /api/v1/shadow: Shadow geometry and progression
    - POST /api/v1/sun-path: Sun path samples over a day
    - POST /api/v1/predict-day: Hourly exposure predictions and windows
    - GET /api/v1/health: Service health check
"""

import logging
from contextlib import asynccontextmanager
from datetime import date, datetime
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import settings
from .core import get_light_engine
from .models import (
    CelestialPosition,
    DayPrediction,
    ExposurePrediction,
    GeoCoordinate,
    LocalZone,
    OptimalWindow,
    ShadowResult,
    TimeWindow,
    WeatherSnapshot,
)
from .schemas import (
    TwilightRequest,
    MoonPhaseRequest,
    ShadowRequest,
    SunPathRequest,
    PredictDayRequest,
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
from .tools import WeatherProviderError, get_weather_provider, resolve_zone

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager for startup/shutdown events.

    Startup:
        - Initialize the light engine
        - Report weather adapter configuration
    """
    logger.info("Starting Lightcast engine...")

    get_light_engine()
    if not get_weather_provider().is_configured():
        logger.warning("OPENWEATHER_API_KEY not set; predict-day needs weather in the request")

    logger.info(f"Lightcast ready on port {settings.PORT}")

    yield

    logger.info("Shutting down Lightcast engine...")


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="""
    ## Lightcast

    Astronomical and light-prediction engine for photographers:

    - **Ephemeris**: Topocentric sun and moon positions
    - **Twilight**: Civil, nautical and astronomical twilight, golden and blue hour
    - **Moon**: Phase, illumination, brightness, rise and set
    - **Shadows**: Length and direction for any object height and terrain
    - **Exposure**: Hourly EV predictions with confidence and ranked shooting windows
    """,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# =============================================================================
# HELPERS
# =============================================================================

def _parse_date(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise HTTPException(
            status_code=400,
            detail=f"Invalid date format: {value}. Use YYYY-MM-DD."
        )


def _zone(name: Optional[str], day: date) -> Optional[LocalZone]:
    if not name:
        return None
    try:
        return resolve_zone(name, day)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _location(latitude: float, longitude: float, zone: Optional[LocalZone]) -> LocationInfo:
    return LocationInfo(
        latitude=latitude,
        longitude=longitude,
        timezone=zone.name if zone and zone.name else "UTC",
    )


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _window(window: Optional[TimeWindow]) -> Optional[TimeWindowResponse]:
    if window is None:
        return None
    return TimeWindowResponse(**window.to_dict())


def _position(position: Optional[CelestialPosition]) -> Optional[CelestialPositionResponse]:
    if position is None:
        return None
    return CelestialPositionResponse(**position.to_dict())


def _shadow(result: ShadowResult) -> ShadowResultResponse:
    return ShadowResultResponse(
        instant=_iso(result.instant),
        length_m=round(result.length_m, 3) if result.length_m is not None else None,
        direction_deg=round(result.direction_deg, 2),
        sun_elevation_deg=round(result.sun_elevation_deg, 3),
        object_height_m=result.object_height_m,
        terrain=result.terrain.value,
    )


def _hour(prediction: ExposurePrediction) -> HourlyPredictionResponse:
    light = prediction.light
    triangle = prediction.settings
    return HourlyPredictionResponse(
        instant=prediction.instant.isoformat(),
        predicted_ev=round(prediction.predicted_ev, 2),
        confidence_margin=round(prediction.confidence_margin, 2),
        confidence_level=round(prediction.confidence_level, 3),
        confidence_reason=prediction.confidence_reason,
        quality_score=round(prediction.quality_score, 3),
        is_optimal=prediction.is_optimal,
        sun_elevation_deg=round(prediction.sun_position.elevation, 2),
        sun_azimuth_deg=round(prediction.sun_position.azimuth, 2),
        settings=ExposureSettingsResponse(
            aperture=triangle.aperture,
            shutter_speed=triangle.shutter_speed,
            iso=triangle.iso,
            ev100=round(triangle.ev100, 2),
            formatted=triangle.formatted,
        ),
        light=LightResponse(
            quality=light.quality.value,
            color_temperature_k=light.color_temperature_k,
            softness=light.softness,
            shadow_harshness=light.shadow_harshness.label,
            directionality=light.directionality,
            suitable_for=list(light.suitable_for),
        ),
        recommendations=list(prediction.recommendations),
    )


def _optimal_window(window: Optional[OptimalWindow]) -> Optional[OptimalWindowResponse]:
    if window is None:
        return None
    return OptimalWindowResponse(
        start=window.start.isoformat(),
        end=window.end.isoformat(),
        rank=window.rank,
        quality_score=round(window.quality_score, 3),
        light_quality=window.light_quality.value,
        description=window.description,
        suitable_for=list(window.suitable_for),
        peak_ev=round(window.peak_ev, 2),
    )


# =============================================================================
# TWILIGHT ENDPOINT
# =============================================================================

@app.post(
    f"{settings.API_V1_PREFIX}/twilight",
    response_model=TwilightResponse,
    tags=["Sun"],
    summary="Twilight, golden hour and blue hour",
    description="""
    Compute solar noon, sunrise and sunset, the three twilight bands and
    the golden and blue hour windows for a local day.

    **Physical Definitions:**
    - **Golden Hour**: Sun elevation between -4° and +6°
    - **Blue Hour**: Sun elevation between -6° and -4°

    Events the sun never reaches (polar day or night) are returned as null.
    """
)
async def compute_twilight(request: TwilightRequest):
    """
    Twilight calculation endpoint.

    Args:
        request: TwilightRequest with coordinates and date

    Returns:
        TwilightResponse with every event for the day
    """
    try:
        target_date = _parse_date(request.date)
        zone = _zone(request.timezone, target_date)
        coordinate = GeoCoordinate(request.latitude, request.longitude)

        result = await run_in_threadpool(get_light_engine().compute_twilight, coordinate, target_date, zone)

        return TwilightResponse(
            location=_location(request.latitude, request.longitude, zone),
            date=result.date.isoformat(),
            solar_noon=result.solar_noon.isoformat(),
            solar_noon_elevation_deg=round(result.solar_noon_elevation, 2),
            nadir=_iso(result.nadir),
            sunrise=_iso(result.sunrise),
            sunset=_iso(result.sunset),
            civil_dawn=_iso(result.civil_dawn),
            civil_dusk=_iso(result.civil_dusk),
            nautical_dawn=_iso(result.nautical_dawn),
            nautical_dusk=_iso(result.nautical_dusk),
            astronomical_dawn=_iso(result.astronomical_dawn),
            astronomical_dusk=_iso(result.astronomical_dusk),
            golden_hour_morning=_window(result.golden_hour_morning),
            golden_hour_evening=_window(result.golden_hour_evening),
            blue_hour_morning=_window(result.blue_hour_morning),
            blue_hour_evening=_window(result.blue_hour_evening),
            day_length_hours=round(result.day_length.total_seconds() / 3600.0, 2) if result.day_length else None,
            is_polar_day=result.is_polar_day,
            is_polar_night=result.is_polar_night,
            reduced_precision=sorted(result.reduced_precision),
        )

    except HTTPException:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Twilight calculation error: {e}")
        raise HTTPException(status_code=500, detail=f"Twilight calculation failed: {str(e)}")


# =============================================================================
# MOON ENDPOINT
# =============================================================================

@app.post(
    f"{settings.API_V1_PREFIX}/moon",
    response_model=MoonPhaseResponse,
    tags=["Moon"],
    summary="Moon phase and visibility",
    description="""
    Phase, illumination, apparent magnitude and phase name for a date or
    instant. With a location, also moonrise, moonset and the moon's
    position in the sky.
    """
)
async def compute_moon_phase(request: MoonPhaseRequest):
    """Moon phase endpoint."""
    try:
        if request.date is None and request.instant is None:
            raise HTTPException(status_code=400, detail="Either date or instant is required")
        if (request.latitude is None) != (request.longitude is None):
            raise HTTPException(status_code=400, detail="latitude and longitude must be given together")

        when = request.instant if request.instant is not None else _parse_date(request.date)
        zone_date = when.date() if isinstance(when, datetime) else when
        zone = _zone(request.timezone, zone_date)
        coordinate = None
        if request.latitude is not None:
            coordinate = GeoCoordinate(request.latitude, request.longitude)

        result = await run_in_threadpool(get_light_engine().compute_moon_phase, when, coordinate, zone)

        return MoonPhaseResponse(
            phase=round(result.phase, 4),
            illumination_pct=round(result.illumination, 2),
            phase_name=result.phase_name,
            age_days=round(result.age_days, 2),
            magnitude=round(result.magnitude, 2) if result.magnitude is not None else None,
            moonrise=_iso(result.rise),
            moonset=_iso(result.set),
            position=_position(result.position),
            next_perigee=_iso(result.next_perigee),
            next_apogee=_iso(result.next_apogee),
        )

    except HTTPException:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Moon phase error: {e}")
        raise HTTPException(status_code=500, detail=f"Moon phase calculation failed: {str(e)}")


# =============================================================================
# SHADOW ENDPOINT
# =============================================================================

@app.post(
    f"{settings.API_V1_PREFIX}/shadow",
    response_model=ShadowResponse,
    tags=["Sun"],
    summary="Shadow length and direction",
    description="""
    Shadow of a vertical object at an instant, and optionally its
    progression until ``end``. Length is null while the sun is at or
    below the horizon.

    **Terrain factors:** flat 1.0, urban 0.8, forest 0.6, mountain 1.2, beach 1.1
    """
)
async def compute_shadow(request: ShadowRequest):
    """Shadow projection endpoint."""
    try:
        coordinate = GeoCoordinate(request.latitude, request.longitude)
        engine = get_light_engine()
        zone = _zone(request.timezone, request.instant.date())

        shadow = await run_in_threadpool(
            engine.compute_shadow, coordinate, request.instant, request.height_m, request.terrain
        )

        progression = None
        if request.end is not None:
            sequence = engine.shadow_progression(
                coordinate, request.height_m, request.terrain,
                request.instant, request.end, request.step_minutes,
            )
            if len(sequence) > settings.MAX_PROGRESSION_POINTS:
                raise HTTPException(
                    status_code=400,
                    detail=f"Progression of {len(sequence)} points exceeds the limit of {settings.MAX_PROGRESSION_POINTS}",
                )
            progression = [_shadow(s) for s in await run_in_threadpool(list, sequence)]

        return ShadowResponse(
            location=_location(request.latitude, request.longitude, zone),
            shadow=_shadow(shadow),
            progression=progression,
        )

    except HTTPException:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Shadow calculation error: {e}")
        raise HTTPException(status_code=500, detail=f"Shadow calculation failed: {str(e)}")


# =============================================================================
# SUN PATH ENDPOINT
# =============================================================================

@app.post(
    f"{settings.API_V1_PREFIX}/sun-path",
    response_model=SunPathResponse,
    tags=["Sun"],
    summary="Sun path over a day",
    description="Sun azimuth and elevation sampled across the local day."
)
async def sample_sun_path(request: SunPathRequest):
    """Sun path endpoint."""
    try:
        target_date = _parse_date(request.date)
        zone = _zone(request.timezone, target_date)
        coordinate = GeoCoordinate(request.latitude, request.longitude)
        engine = get_light_engine()

        path = engine.sample_sun_path(coordinate, target_date, request.step_minutes, zone)
        points = await run_in_threadpool(engine.materialize_sun_path, path)

        return SunPathResponse(
            location=_location(request.latitude, request.longitude, zone),
            date=target_date.isoformat(),
            step_minutes=path.grid.step.total_seconds() / 60.0,
            count=len(points),
            points=[
                SunPathPointResponse(
                    instant=p.instant.isoformat(),
                    azimuth_deg=round(p.position.azimuth, 2),
                    elevation_deg=round(p.position.elevation, 2),
                    above_horizon=p.above_horizon,
                    condition=p.condition.value,
                )
                for p in points
            ],
        )

    except HTTPException:
        raise
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Sun path error: {e}")
        raise HTTPException(status_code=500, detail=f"Sun path sampling failed: {str(e)}")


# =============================================================================
# DAY PREDICTION ENDPOINT
# =============================================================================

@app.post(
    f"{settings.API_V1_PREFIX}/predict-day",
    response_model=DayPredictionResponse,
    tags=["Exposure"],
    summary="Hourly exposure predictions and shooting windows",
    description="""
    Predict exposure value, light quality and camera settings for every
    hour of a local day, then merge good consecutive hours into ranked
    shooting windows.

    Weather comes from the request. With ``fetch_weather`` and a server
    OpenWeatherMap key, it is fetched when the request has none. Without
    weather, a clear sky is assumed and confidence is lowered.
    """
)
async def predict_day(request: PredictDayRequest):
    """
    Full-day prediction endpoint.

    Args:
        request: PredictDayRequest with coordinates, date and weather

    Returns:
        DayPredictionResponse with hourly predictions and windows
    """
    try:
        target_date = _parse_date(request.date)
        zone = _zone(request.timezone, target_date)
        coordinate = GeoCoordinate(request.latitude, request.longitude)

        snapshots = [WeatherSnapshot(**w.model_dump()) for w in request.weather]
        weather_source = "request" if snapshots else "none"
        if not snapshots and request.fetch_weather:
            provider = get_weather_provider()
            if not provider.is_configured():
                raise HTTPException(status_code=400, detail="Weather fetching is not configured on this server")
            snapshots = await provider.fetch_snapshots(coordinate)
            weather_source = "openweathermap"

        result: DayPrediction = await run_in_threadpool(
            get_light_engine().predict_day,
            coordinate,
            target_date,
            snapshots,
            zone,
            request.intent,
            request.ev_offset,
        )

        return DayPredictionResponse(
            location=_location(request.latitude, request.longitude, zone),
            date=target_date.isoformat(),
            weather_source=weather_source,
            hourly=[_hour(p) for p in result.hourly],
            windows=[_optimal_window(w) for w in result.windows],
            best_window=_optimal_window(result.best_window),
        )

    except HTTPException:
        raise
    except WeatherProviderError as e:
        logger.error(f"Weather provider error: {e}")
        raise HTTPException(status_code=502, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Day prediction error: {e}")
        raise HTTPException(status_code=500, detail=f"Day prediction failed: {str(e)}")


# =============================================================================
# HEALTH & ROOT
# =============================================================================

@app.get(
    f"{settings.API_V1_PREFIX}/health",
    response_model=HealthResponse,
    tags=["System"],
    summary="Health check",
    description="Check the health of all system components."
)
async def health_check():
    """Health check endpoint."""
    components = {}

    try:
        get_light_engine()
        components["engine"] = "available"
    except Exception as e:
        components["engine"] = f"error: {str(e)}"

    components["weather"] = "configured" if get_weather_provider().is_configured() else "not_configured"

    status = "healthy" if components["engine"] == "available" else "degraded"
    return HealthResponse(status=status, version=settings.APP_VERSION, components=components)


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "docs": "/docs",
        "endpoints": {
            "health": f"{settings.API_V1_PREFIX}/health",
            "twilight": f"{settings.API_V1_PREFIX}/twilight",
            "moon": f"{settings.API_V1_PREFIX}/moon",
            "shadow": f"{settings.API_V1_PREFIX}/shadow",
            "sun_path": f"{settings.API_V1_PREFIX}/sun-path",
            "predict_day": f"{settings.API_V1_PREFIX}/predict-day",
        }
    }


# =============================================================================
# ERROR HANDLERS
# =============================================================================

@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unhandled errors."""
    logger.error(f"Unhandled exception: {exc}")
    return JSONResponse(
        status_code=500,
        content=ErrorResponse(
            error="internal_error",
            message="An unexpected error occurred",
            details={"exception": str(exc)} if settings.DEBUG else None
        ).model_dump()
    )

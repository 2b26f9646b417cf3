"""
Lightcast value types.

Every type in this module is an immutable snapshot. Components build them
fresh for each request and never hold a reference back to the component
that produced them, so results can be shared freely across threads.

Conventions:
    - Angles are in degrees.
    - Azimuth is measured from north, clockwise, in [0, 360).
    - Instants are timezone-aware datetimes. Naive datetimes are rejected.
    - Optional fields use None for "does not occur" (polar day, a shadow
      with the sun below the horizon, a moon that never rises, ...).
"""

import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from enum import Enum, IntEnum
from typing import Any, Dict, FrozenSet, Optional, Tuple


def require_aware(instant: datetime, name: str = "instant") -> datetime:
    """Return ``instant`` unchanged, raising ValueError if it is naive."""
    if not isinstance(instant, datetime):
        raise ValueError(f"{name} must be a datetime, got {type(instant).__name__}")
    if instant.tzinfo is None or instant.utcoffset() is None:
        raise ValueError(f"{name} must be timezone-aware: {instant.isoformat()}")
    return instant


# =============================================================================
# LOCATION AND TIME
# =============================================================================

@dataclass(frozen=True)
class GeoCoordinate:
    """
    Observer position on the Earth's surface.

    Attributes:
        latitude: Decimal degrees, north positive, in [-90, 90]
        longitude: Decimal degrees, east positive, in [-180, 180]

    Out-of-range values raise ValueError instead of being clamped.
    """
    latitude: float
    longitude: float

    def __post_init__(self):
        for name, value, limit in (
            ("latitude", self.latitude, 90.0),
            ("longitude", self.longitude, 180.0),
        ):
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                raise ValueError(f"{name} must be a number, got {value!r}")
            if not math.isfinite(value) or abs(value) > limit:
                raise ValueError(f"Invalid {name}: {value}. Must be between -{limit:g} and {limit:g}")

    def to_dict(self) -> Dict[str, Any]:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass(frozen=True)
class LocalZone:
    """
    A time zone already resolved by the caller for a specific date.

    Attributes:
        utc_offset: Offset from UTC in effect on that date
        is_dst: Whether daylight saving time is in effect
        name: Optional IANA name or abbreviation, for display only
    """
    utc_offset: timedelta
    is_dst: bool = False
    name: Optional[str] = None

    def __post_init__(self):
        if abs(self.utc_offset) > timedelta(hours=18):
            raise ValueError(f"UTC offset out of range: {self.utc_offset}")

    @property
    def tzinfo(self) -> timezone:
        if self.name:
            return timezone(self.utc_offset, self.name)
        return timezone(self.utc_offset)

    def localize(self, instant: datetime) -> datetime:
        """Express an aware instant in this zone."""
        return require_aware(instant).astimezone(self.tzinfo)

    @classmethod
    def from_hours(cls, hours: float, is_dst: bool = False, name: Optional[str] = None) -> "LocalZone":
        return cls(utc_offset=timedelta(hours=hours), is_dst=is_dst, name=name)


@dataclass(frozen=True)
class TimeWindow:
    """
    A half-open interval of time [start, end).

    Attributes:
        start: Window start (aware datetime)
        end: Window end, strictly after start
    """
    start: datetime
    end: datetime

    def __post_init__(self):
        require_aware(self.start, "start")
        require_aware(self.end, "end")
        if self.end <= self.start:
            raise ValueError(f"Window end {self.end.isoformat()} must be after start {self.start.isoformat()}")

    @property
    def duration_minutes(self) -> float:
        return (self.end - self.start).total_seconds() / 60.0

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant < self.end

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "duration_minutes": round(self.duration_minutes, 1),
        }


# =============================================================================
# CELESTIAL POSITIONS
# =============================================================================

class CelestialBody(str, Enum):
    """Bodies the ephemeris can place in the sky."""
    SUN = "sun"
    MOON = "moon"


@dataclass(frozen=True)
class CelestialPosition:
    """
    Topocentric horizontal position of a body.

    Attributes:
        body: Which body this is
        azimuth: Compass bearing in degrees (0=N, 90=E, 180=S, 270=W)
        elevation: Geometric altitude above the horizon in degrees
            (no refraction applied)
        distance: Sun in astronomical units, moon in kilometres
    """
    body: CelestialBody
    azimuth: float
    elevation: float
    distance: float

    @property
    def above_horizon(self) -> bool:
        return self.elevation > 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "body": self.body.value,
            "azimuth_deg": round(self.azimuth, 3),
            "elevation_deg": round(self.elevation, 3),
            "distance": self.distance,
        }


# =============================================================================
# TWILIGHT
# =============================================================================

@dataclass(frozen=True)
class TwilightSet:
    """
    Named solar events for one local day.

    Every instant is optional: a missing value means the sun never crosses
    that elevation on this day (polar day or polar night), not an error.

    Attributes:
        date: The local calendar date
        solar_noon: Upper transit of the sun (always present)
        solar_noon_elevation: Sun elevation at upper transit (degrees)
        nadir: Lower transit of the sun following solar noon
        sunrise / sunset: Upper limb on the refracted horizon (-0.833°)
        civil_dawn / civil_dusk: -6°
        nautical_dawn / nautical_dusk: -12°
        astronomical_dawn / astronomical_dusk: -18°
        blue_hour_morning / blue_hour_evening: -6° to -4°
        golden_hour_morning_start/end: -4° rising to +6° rising
        golden_hour_evening_start/end: +6° setting to -4° setting
        reduced_precision: Names of fields whose refinement ran out of
            iterations and fell back to the bracket midpoint
    """
    date: date
    solar_noon: datetime
    solar_noon_elevation: float
    nadir: Optional[datetime] = None
    sunrise: Optional[datetime] = None
    sunset: Optional[datetime] = None
    civil_dawn: Optional[datetime] = None
    civil_dusk: Optional[datetime] = None
    nautical_dawn: Optional[datetime] = None
    nautical_dusk: Optional[datetime] = None
    astronomical_dawn: Optional[datetime] = None
    astronomical_dusk: Optional[datetime] = None
    blue_hour_morning: Optional[TimeWindow] = None
    blue_hour_evening: Optional[TimeWindow] = None
    golden_hour_morning_start: Optional[datetime] = None
    golden_hour_morning_end: Optional[datetime] = None
    golden_hour_evening_start: Optional[datetime] = None
    golden_hour_evening_end: Optional[datetime] = None
    reduced_precision: FrozenSet[str] = field(default_factory=frozenset)

    @property
    def golden_hour_morning(self) -> Optional[TimeWindow]:
        if self.golden_hour_morning_start and self.golden_hour_morning_end:
            return TimeWindow(self.golden_hour_morning_start, self.golden_hour_morning_end)
        return None

    @property
    def golden_hour_evening(self) -> Optional[TimeWindow]:
        if self.golden_hour_evening_start and self.golden_hour_evening_end:
            return TimeWindow(self.golden_hour_evening_start, self.golden_hour_evening_end)
        return None

    @property
    def day_length(self) -> Optional[timedelta]:
        if self.sunrise is None or self.sunset is None:
            return None
        return self.sunset - self.sunrise

    @property
    def is_polar_day(self) -> bool:
        return self.sunrise is None and self.sunset is None and self.solar_noon_elevation > 0

    @property
    def is_polar_night(self) -> bool:
        return self.sunrise is None and self.sunset is None and self.solar_noon_elevation <= 0


# =============================================================================
# MOON
# =============================================================================

@dataclass(frozen=True)
class MoonPhase:
    """
    Lunar phase and visibility.

    Attributes:
        phase: Fraction of the synodic month elapsed, in [0, 1)
            (0 = new, 0.25 = first quarter, 0.5 = full, 0.75 = third quarter)
        illumination: Illuminated fraction of the disc in percent,
            always 100·(1 − cos(2π·phase))/2
        phase_name: Human-readable phase name
        age_days: Days since the last new moon
        rise / set: Moonrise and moonset on the local day, if they occur
        magnitude: Approximate apparent visual magnitude
        position: Topocentric position at the evaluated instant
        next_perigee / next_apogee: Closest and farthest approach of the
            moon after the evaluated instant
    """
    phase: float
    illumination: float
    phase_name: str
    age_days: float
    rise: Optional[datetime] = None
    set: Optional[datetime] = None
    magnitude: Optional[float] = None
    position: Optional[CelestialPosition] = None
    next_perigee: Optional[datetime] = None
    next_apogee: Optional[datetime] = None


# =============================================================================
# SHADOWS
# =============================================================================

class TerrainType(str, Enum):
    """Ground classification supplied by the caller."""
    FLAT = "flat"
    URBAN = "urban"
    FOREST = "forest"
    MOUNTAIN = "mountain"
    BEACH = "beach"


@dataclass(frozen=True)
class ShadowResult:
    """
    Shadow cast by a vertical object.

    Attributes:
        length_m: Shadow length in metres, None when the sun is at or
            below the horizon
        direction_deg: Bearing the shadow points to (opposite the sun)
        object_height_m: Height of the casting object
        terrain: Terrain the shadow falls on
        sun_elevation_deg: Sun elevation used for the projection
        instant: When the projection applies, if known
    """
    length_m: Optional[float]
    direction_deg: float
    object_height_m: float
    terrain: TerrainType
    sun_elevation_deg: float
    instant: Optional[datetime] = None

    @property
    def is_defined(self) -> bool:
        return self.length_m is not None


class SunCondition(str, Enum):
    """Where the sun sits relative to the horizon and the twilight bands."""
    UP = "up"
    CIVIL_TWILIGHT = "civil_twilight"
    NAUTICAL_TWILIGHT = "nautical_twilight"
    ASTRONOMICAL_TWILIGHT = "astronomical_twilight"
    DOWN = "down"

    @classmethod
    def from_elevation(cls, elevation: float) -> "SunCondition":
        for floor, condition in _SUN_CONDITION_FLOORS:
            if elevation > floor:
                return condition
        return cls.DOWN


# Lower elevation bound of each band, checked in order
_SUN_CONDITION_FLOORS = (
    (0.0, SunCondition.UP),
    (-6.0, SunCondition.CIVIL_TWILIGHT),
    (-12.0, SunCondition.NAUTICAL_TWILIGHT),
    (-18.0, SunCondition.ASTRONOMICAL_TWILIGHT),
)


@dataclass(frozen=True)
class SunPathPoint:
    """One sample of the sun's path across the sky."""
    instant: datetime
    position: CelestialPosition

    @property
    def above_horizon(self) -> bool:
        return self.position.above_horizon

    @property
    def condition(self) -> SunCondition:
        return SunCondition.from_elevation(self.position.elevation)


# =============================================================================
# WEATHER INPUT
# =============================================================================

@dataclass(frozen=True)
class WeatherSnapshot:
    """
    Forecast conditions for one instant, as supplied by the caller.

    Any measurement may be missing. Missing measurements lower the
    confidence of predictions made from the snapshot.

    Attributes:
        time: Instant the forecast applies to
        cloud_cover_pct: Total cloud cover, 0-100
        humidity_pct: Relative humidity, 0-100
        wind_speed_ms: Wind speed in metres per second
        visibility_km: Horizontal visibility in kilometres
        precipitation_mm: Precipitation over the forecast step
        description: Free-text condition ("light rain")
        issued_at: When the forecast was produced
    """
    time: datetime
    cloud_cover_pct: Optional[float] = None
    humidity_pct: Optional[float] = None
    wind_speed_ms: Optional[float] = None
    visibility_km: Optional[float] = None
    precipitation_mm: Optional[float] = None
    description: Optional[str] = None
    issued_at: Optional[datetime] = None

    MEASUREMENTS = (
        "cloud_cover_pct",
        "humidity_pct",
        "wind_speed_ms",
        "visibility_km",
        "precipitation_mm",
    )

    def __post_init__(self):
        require_aware(self.time, "time")
        if self.issued_at is not None:
            require_aware(self.issued_at, "issued_at")
        for name in ("cloud_cover_pct", "humidity_pct"):
            value = getattr(self, name)
            if value is not None and not 0.0 <= value <= 100.0:
                raise ValueError(f"{name} must be between 0 and 100, got {value}")
        for name in ("wind_speed_ms", "visibility_km", "precipitation_mm"):
            value = getattr(self, name)
            if value is not None and value < 0.0:
                raise ValueError(f"{name} must not be negative, got {value}")

    def missing_fields(self) -> Tuple[str, ...]:
        return tuple(name for name in self.MEASUREMENTS if getattr(self, name) is None)


# =============================================================================
# LIGHT AND EXPOSURE
# =============================================================================

class LightQuality(str, Enum):
    """Qualitative light classification."""
    UNKNOWN = "unknown"
    HARSH = "harsh"
    SOFT = "soft"
    GOLDEN_HOUR = "golden_hour"
    BLUE_HOUR = "blue_hour"
    OVERCAST = "overcast"
    DRAMATIC = "dramatic"
    NIGHT = "night"
    FLAT = "flat"
    DIRECT = "direct"


class ShadowIntensity(IntEnum):
    """Shadow edge hardness, ordered from none to very hard."""
    NONE = 0
    SOFT = 1
    MEDIUM = 2
    HARD = 3
    VERY_HARD = 4

    @property
    def label(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class LightCharacteristics:
    """
    Light at one instant.

    Attributes:
        color_temperature_k: Correlated colour temperature in kelvin
        softness: 0 (point source) to 1 (fully diffuse)
        shadow_harshness: Shadow edge hardness bucket
        directionality: 0 (no preferred direction) to 1 (strongly directional)
        quality: Qualitative tag
        suitable_for: Subjects that suit this light
    """
    color_temperature_k: float
    softness: float
    shadow_harshness: ShadowIntensity
    directionality: float
    quality: LightQuality
    suitable_for: Tuple[str, ...] = ()


class ExposureIntent(str, Enum):
    """What the photographer wants the exposure triangle to favour."""
    BALANCED = "balanced"
    FREEZE_MOTION = "freeze_motion"
    DEPTH_OF_FIELD = "depth_of_field"


@dataclass(frozen=True)
class ExposureTriangle:
    """
    Camera settings as canonical third-stop labels.

    Attributes:
        aperture: f-number label, e.g. "f/8"
        shutter_speed: "1/125" for fractions, '2"' for whole seconds
        iso: ISO label, e.g. "400"
        ev100: Exposure value at ISO 100 these settings reproduce
    """
    aperture: str
    shutter_speed: str
    iso: str
    ev100: float

    @property
    def formatted(self) -> str:
        return f"{self.aperture}, {self.shutter_speed}, ISO {self.iso}"


@dataclass(frozen=True)
class ExposurePrediction:
    """
    Predicted exposure for one hour.

    Attributes:
        instant: Start of the hour
        predicted_ev: Exposure value at ISO 100
        confidence_margin: ± stops around predicted_ev
        confidence_level: 0-1
        confidence_reason: Why confidence is where it is
        settings: Suggested exposure triangle
        light: Light characteristics for the hour
        quality_score: 0-1 desirability of the hour
        is_optimal: Whether the hour is good for shooting at all
        sun_position: Sun position at the instant
        recommendations: Short shooting tips
    """
    instant: datetime
    predicted_ev: float
    confidence_margin: float
    confidence_level: float
    confidence_reason: str
    settings: ExposureTriangle
    light: LightCharacteristics
    quality_score: float
    is_optimal: bool
    sun_position: CelestialPosition
    recommendations: Tuple[str, ...] = ()


@dataclass(frozen=True)
class OptimalWindow:
    """
    A run of consecutive good hours.

    Attributes:
        start / end: Window bounds, start < end
        quality_score: Mean hourly score over the window, 0-1
        light_quality: Dominant light tag
        description: Short summary
        suitable_for: Subjects that suit the window
        rank: 1 for the best window of the day
        peak_ev: Brightest predicted EV in the window
    """
    start: datetime
    end: datetime
    quality_score: float
    light_quality: LightQuality
    description: str
    suitable_for: Tuple[str, ...]
    rank: int
    peak_ev: float


@dataclass(frozen=True)
class DayPrediction:
    """Hourly predictions and ranked windows for one local day."""
    date: date
    coordinate: GeoCoordinate
    hourly: Tuple[ExposurePrediction, ...]
    windows: Tuple[OptimalWindow, ...]

    @property
    def best_window(self) -> Optional[OptimalWindow]:
        if not self.windows:
            return None
        return min(self.windows, key=lambda w: w.rank)

    @property
    def optimal_hours(self) -> Tuple[ExposurePrediction, ...]:
        return tuple(p for p in self.hourly if p.is_optimal)

"""
Light Quality Model.

Maps sun elevation and sky conditions to colour temperature, softness,
shadow harshness, directionality and a qualitative tag.

All curves are explicit breakpoint tables, linearly interpolated and
clamped at both ends, so every number the model produces can be traced
back to a row below.
"""

import math
import logging
from bisect import bisect_right
from typing import Dict, Optional, Sequence, Tuple

from ..models import LightCharacteristics, LightQuality, ShadowIntensity

logger = logging.getLogger(__name__)

# (sun elevation°, kelvin) under a clear sky, sun above -4°
CLEAR_SKY_KELVIN = (
    (-4.0, 2500.0),
    (0.0, 2700.0),
    (6.0, 3500.0),
    (15.0, 4500.0),
    (30.0, 5200.0),
    (45.0, 5500.0),
    (90.0, 5800.0),
)
# Deep twilight is lit by the blue sky alone
TWILIGHT_SKY_KELVIN = 9000.0
OVERCAST_KELVIN = 6500.0
# Fraction of the gap to the overcast baseline closed at 100 % cloud
CLOUD_KELVIN_BLEND = 0.8

# (sun elevation°, directionality) under a clear sky
DIRECTIONALITY = (
    (0.0, 1.0),
    (6.0, 0.95),
    (15.0, 0.85),
    (30.0, 0.7),
    (60.0, 0.5),
    (90.0, 0.4),
)
CLOUD_DIRECTIONALITY_LOSS = 0.8

# Softness terms
BASE_SOFTNESS = 0.3
CLOUD_SOFTNESS = 0.6
LOW_SUN_SOFTNESS = 0.3
LOW_SUN_LIMIT = 30.0
HUMID_THRESHOLD_PCT = 80.0
HAZE_SOFTNESS = 0.15
CLEAR_VISIBILITY_KM = 10.0

# (minimum softness, harshness), checked in order
HARSHNESS_BUCKETS = (
    (0.95, ShadowIntensity.NONE),
    (0.7, ShadowIntensity.SOFT),
    (0.5, ShadowIntensity.MEDIUM),
    (0.35, ShadowIntensity.HARD),
)

# Elevation bands (degrees)
NIGHT_BELOW = -6.0
BLUE_HOUR_BELOW = -4.0
GOLDEN_HOUR_BELOW = 6.0
HARSH_FROM = 30.0

OVERCAST_CLOUD_PCT = 80.0
DRAMATIC_CLOUD_PCT = 40.0
FLAT_VISIBILITY_KM = 2.0
SOFT_LIGHT_SOFTNESS = 0.65

SUBJECTS_BY_QUALITY: Dict[LightQuality, Tuple[str, ...]] = {
    LightQuality.GOLDEN_HOUR: ("landscape", "portrait", "architecture", "silhouette"),
    LightQuality.BLUE_HOUR: ("cityscape", "architecture", "long exposure"),
    LightQuality.DRAMATIC: ("landscape", "seascape", "storm"),
    LightQuality.SOFT: ("portrait", "macro", "product"),
    LightQuality.OVERCAST: ("portrait", "macro", "forest", "waterfall"),
    LightQuality.FLAT: ("street", "documentary"),
    LightQuality.DIRECT: ("street", "architecture", "travel"),
    LightQuality.HARSH: ("high contrast", "black and white", "abstract"),
    LightQuality.NIGHT: ("astrophotography", "light painting", "night cityscape"),
    LightQuality.UNKNOWN: (),
}


def interpolate(table: Sequence[Tuple[float, float]], x: float) -> float:
    """Piecewise-linear lookup, clamped to the first and last rows."""
    xs = [row[0] for row in table]
    if x <= xs[0]:
        return table[0][1]
    if x >= xs[-1]:
        return table[-1][1]
    i = bisect_right(xs, x)
    (x0, y0), (x1, y1) = table[i - 1], table[i]
    return y0 + (y1 - y0) * (x - x0) / (x1 - x0)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _check_range(name: str, value: Optional[float], low: float, high: float) -> None:
    if value is None:
        return
    if not math.isfinite(value) or not low <= value <= high:
        raise ValueError(f"{name} must be between {low:g} and {high:g}, got {value}")


class LightQualityModel:
    """
    Classify light from sun elevation and sky conditions.

    Example:
        >>> model = LightQualityModel()
        >>> light = model.evaluate(2.0, cloud_cover_pct=0.0)
        >>> light.quality
        <LightQuality.GOLDEN_HOUR: 'golden_hour'>
    """

    def evaluate(
        self,
        sun_elevation: float,
        cloud_cover_pct: float = 0.0,
        humidity_pct: Optional[float] = None,
        visibility_km: Optional[float] = None,
    ) -> LightCharacteristics:
        """
        Evaluate light characteristics.

        Args:
            sun_elevation: Geometric sun elevation in degrees
            cloud_cover_pct: Total cloud cover 0-100
            humidity_pct: Relative humidity 0-100, if known
            visibility_km: Horizontal visibility, if known

        Returns:
            LightCharacteristics

        Raises:
            ValueError: Any input outside its physical range
        """
        _check_range("sun_elevation", sun_elevation, -90.0, 90.0)
        _check_range("cloud_cover_pct", cloud_cover_pct, 0.0, 100.0)
        _check_range("humidity_pct", humidity_pct, 0.0, 100.0)
        _check_range("visibility_km", visibility_km, 0.0, math.inf)

        cloud = cloud_cover_pct / 100.0
        kelvin = self.color_temperature(sun_elevation, cloud)
        softness = self.softness(sun_elevation, cloud, humidity_pct, visibility_km)
        harshness = self.shadow_harshness(sun_elevation, softness)
        directionality = self.directionality(sun_elevation, cloud)
        quality = self.classify(sun_elevation, cloud_cover_pct, softness, visibility_km)

        return LightCharacteristics(
            color_temperature_k=round(kelvin, 1),
            softness=round(softness, 4),
            shadow_harshness=harshness,
            directionality=round(directionality, 4),
            quality=quality,
            suitable_for=SUBJECTS_BY_QUALITY[quality],
        )

    def color_temperature(self, sun_elevation: float, cloud: float) -> float:
        if sun_elevation < BLUE_HOUR_BELOW:
            base = TWILIGHT_SKY_KELVIN
        else:
            base = interpolate(CLEAR_SKY_KELVIN, sun_elevation)
        return base + (OVERCAST_KELVIN - base) * CLOUD_KELVIN_BLEND * cloud

    def softness(
        self,
        sun_elevation: float,
        cloud: float,
        humidity_pct: Optional[float],
        visibility_km: Optional[float],
    ) -> float:
        # Skylight only
        if sun_elevation <= 0.0:
            return 1.0

        softness = BASE_SOFTNESS + CLOUD_SOFTNESS * cloud
        if sun_elevation < LOW_SUN_LIMIT:
            softness += LOW_SUN_SOFTNESS * (LOW_SUN_LIMIT - sun_elevation) / LOW_SUN_LIMIT
        if humidity_pct is not None and humidity_pct > HUMID_THRESHOLD_PCT:
            softness += HAZE_SOFTNESS * (humidity_pct - HUMID_THRESHOLD_PCT) / (100.0 - HUMID_THRESHOLD_PCT)
        if visibility_km is not None and visibility_km < CLEAR_VISIBILITY_KM:
            softness += HAZE_SOFTNESS * (CLEAR_VISIBILITY_KM - visibility_km) / CLEAR_VISIBILITY_KM
        return _clamp(softness, 0.1, 1.0)

    def shadow_harshness(self, sun_elevation: float, softness: float) -> ShadowIntensity:
        if sun_elevation <= 0.0:
            return ShadowIntensity.NONE
        for minimum, harshness in HARSHNESS_BUCKETS:
            if softness >= minimum:
                return harshness
        return ShadowIntensity.VERY_HARD

    def directionality(self, sun_elevation: float, cloud: float) -> float:
        if sun_elevation <= 0.0:
            return 0.0
        return interpolate(DIRECTIONALITY, sun_elevation) * (1.0 - CLOUD_DIRECTIONALITY_LOSS * cloud)

    def classify(
        self,
        sun_elevation: float,
        cloud_cover_pct: float,
        softness: float,
        visibility_km: Optional[float],
    ) -> LightQuality:
        if sun_elevation < NIGHT_BELOW:
            return LightQuality.NIGHT
        if sun_elevation < BLUE_HOUR_BELOW:
            return LightQuality.BLUE_HOUR
        if cloud_cover_pct >= OVERCAST_CLOUD_PCT:
            return LightQuality.OVERCAST
        if sun_elevation < GOLDEN_HOUR_BELOW:
            if cloud_cover_pct >= DRAMATIC_CLOUD_PCT:
                return LightQuality.DRAMATIC
            return LightQuality.GOLDEN_HOUR
        if visibility_km is not None and visibility_km < FLAT_VISIBILITY_KM:
            return LightQuality.FLAT
        if softness >= SOFT_LIGHT_SOFTNESS:
            return LightQuality.SOFT
        if sun_elevation >= HARSH_FROM:
            return LightQuality.HARSH
        return LightQuality.DIRECT

"""
Exposure Prediction and Optimal Window Ranking.

==============================================================================
EXPOSURE MODEL
==============================================================================

Brightness:
    A clear-sky exposure value at ISO 100 is read from a breakpoint table
    over sun elevation, then reduced for sky conditions:

        EV = EV_clear(h) − overcast_stops·cloud − haze − precipitation + offset

    Exposure value and illuminance are related by E ≈ 2.5·2^EV lux, which
    is how the 100 lux and 1000 lux thresholds below become EV values.

Exposure triangle:
    All settings live on the standard third-stop scale. With
        AV = log2(N²), TV = log2(1/t), SV = log2(ISO/100)
    every label maps to an integer number of thirds, and

        EV100 = AV + TV − SV

    holds exactly in thirds. The solver picks AV, TV and SV from those
    scales, so the triangle it returns reproduces the quantised EV with
    no error beyond the 1/6 stop rounding.

Confidence:
    confidence = 0.95 × completeness × freshness, clamped to [0.2, 0.95]
    margin     = 2·(1 − confidence) + 1/6 stop
==============================================================================
"""

import math
import logging
from collections import Counter
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from ..config import settings
from ..models import (
    ExposureIntent,
    ExposurePrediction,
    ExposureTriangle,
    GeoCoordinate,
    LightCharacteristics,
    LightQuality,
    OptimalWindow,
    WeatherSnapshot,
    require_aware,
)
from ..physics.ephemeris import EphemerisCalculator
from .light_quality import LightQualityModel, interpolate

logger = logging.getLogger(__name__)


# =============================================================================
# STOP SCALES
# =============================================================================

# Third-stop apertures, AV thirds 3 (f/1.4) .. 27 (f/22)
APERTURE_LABELS = (
    "f/1.4", "f/1.6", "f/1.8", "f/2", "f/2.2", "f/2.5", "f/2.8", "f/3.2", "f/3.5",
    "f/4", "f/4.5", "f/5", "f/5.6", "f/6.3", "f/7.1", "f/8", "f/9", "f/10",
    "f/11", "f/13", "f/14", "f/16", "f/18", "f/20", "f/22",
)
AV_MIN = 3

# Third-stop shutter speeds, TV thirds -15 (30") .. 39 (1/8000)
SHUTTER_LABELS = (
    '30"', '25"', '20"', '15"', '13"', '10"', '8"', '6"', '5"', '4"',
    '3.2"', '2.5"', '2"', '1.6"', '1.3"', '1"', '0.8"', '0.6"',
    "1/2", "1/2.5", "1/3", "1/4", "1/5", "1/6", "1/8", "1/10", "1/13",
    "1/15", "1/20", "1/25", "1/30", "1/40", "1/50", "1/60", "1/80",
    "1/100", "1/125", "1/160", "1/200", "1/250", "1/320", "1/400",
    "1/500", "1/640", "1/800", "1/1000", "1/1250", "1/1600", "1/2000",
    "1/2500", "1/3200", "1/4000", "1/5000", "1/6400", "1/8000",
)
TV_MIN = -15

# Third-stop ISO values, SV thirds 0 (100) .. 18 (6400)
ISO_LABELS = (
    "100", "125", "160", "200", "250", "320", "400", "500", "640", "800",
    "1000", "1250", "1600", "2000", "2500", "3200", "4000", "5000", "6400",
)
SV_MIN = 0

AV_MAX = AV_MIN + len(APERTURE_LABELS) - 1
TV_MAX = TV_MIN + len(SHUTTER_LABELS) - 1
SV_MAX = SV_MIN + len(ISO_LABELS) - 1

_AV_BY_LABEL = {label: AV_MIN + i for i, label in enumerate(APERTURE_LABELS)}
_TV_BY_LABEL = {label: TV_MIN + i for i, label in enumerate(SHUTTER_LABELS)}
_SV_BY_LABEL = {label: SV_MIN + i for i, label in enumerate(ISO_LABELS)}

# 1/60 s, the slowest comfortable handheld speed
HANDHELD_TV = _TV_BY_LABEL["1/60"]
HIGH_ISO_SV = _SV_BY_LABEL["1600"]


@dataclass(frozen=True)
class IntentProfile:
    """
    Where the solver anchors each setting.

    Attributes:
        aperture: Preferred AV in thirds
        shutter_floor: Slowest TV in thirds before compromising
        iso_first: Raise ISO before opening the aperture
    """
    aperture: int
    shutter_floor: int
    iso_first: bool = False


INTENT_PROFILES: Dict[ExposureIntent, IntentProfile] = {
    ExposureIntent.BALANCED: IntentProfile(aperture=_AV_BY_LABEL["f/8"], shutter_floor=HANDHELD_TV),
    ExposureIntent.FREEZE_MOTION: IntentProfile(aperture=_AV_BY_LABEL["f/4"], shutter_floor=_TV_BY_LABEL["1/500"]),
    ExposureIntent.DEPTH_OF_FIELD: IntentProfile(
        aperture=_AV_BY_LABEL["f/11"], shutter_floor=_TV_BY_LABEL["1/30"], iso_first=True
    ),
}


def triangle_thirds(triangle: ExposureTriangle) -> Tuple[int, int, int]:
    """(AV, TV, SV) in thirds for a triangle's labels."""
    try:
        return (
            _AV_BY_LABEL[triangle.aperture],
            _TV_BY_LABEL[triangle.shutter_speed],
            _SV_BY_LABEL[triangle.iso],
        )
    except KeyError as e:
        raise ValueError(f"Not a third-stop setting: {e.args[0]}")


def triangle_ev100(triangle: ExposureTriangle) -> float:
    """Recompute EV100 from a triangle's labels."""
    av, tv, sv = triangle_thirds(triangle)
    return (av + tv - sv) / 3.0


def solve_triangle(ev100: float, intent: ExposureIntent = ExposureIntent.BALANCED) -> ExposureTriangle:
    """
    Pick third-stop settings reproducing ``ev100``.

    The target is rounded to the nearest third. Starting from the intent's
    preferred aperture at base ISO, a scene too bright for the fastest
    shutter stops the lens down; a scene too dark for the intent's
    shutter floor opens the aperture and raises ISO (in the intent's order)
    and only then lets the shutter slow down.

    Raises:
        ValueError: EV outside what the scales can reproduce
    """
    target = round(ev100 * 3)
    lowest = AV_MIN + TV_MIN - SV_MAX
    highest = AV_MAX + TV_MAX - SV_MIN
    if not lowest <= target <= highest:
        raise ValueError(f"EV {ev100:.2f} outside the reproducible range {lowest / 3:.1f}..{highest / 3:.1f}")

    profile = INTENT_PROFILES[ExposureIntent(intent)]
    av, sv = profile.aperture, SV_MIN
    tv = target - av + sv

    if tv > TV_MAX:
        av = target - TV_MAX + sv
        tv = TV_MAX

    steps = ("iso", "aperture") if profile.iso_first else ("aperture", "iso")
    for step in steps:
        if tv >= profile.shutter_floor:
            break
        if step == "aperture":
            av = max(AV_MIN, min(av, target + sv - profile.shutter_floor))
        else:
            sv = min(SV_MAX, max(sv, profile.shutter_floor - target + av))
        tv = target - av + sv

    return ExposureTriangle(
        aperture=APERTURE_LABELS[av - AV_MIN],
        shutter_speed=SHUTTER_LABELS[tv - TV_MIN],
        iso=ISO_LABELS[sv - SV_MIN],
        ev100=(av + tv - sv) / 3.0,
    )


# =============================================================================
# BRIGHTNESS AND CONFIDENCE
# =============================================================================

# (sun elevation°, clear-sky EV at ISO 100)
EV_CURVE = (
    (-18.0, -4.0),
    (-12.0, -1.0),
    (-6.0, 3.0),
    (-4.0, 5.0),
    (0.0, 8.0),
    (6.0, 11.0),
    (15.0, 13.0),
    (30.0, 14.5),
    (45.0, 15.0),
    (90.0, 15.3),
)
EV_FLOOR = -6.0
EV_CEILING = 20.0
MAX_EV_OFFSET = 5.0

HAZE_STOPS = 1.0
CLEAR_VISIBILITY_KM = 10.0
LIGHT_PRECIPITATION_STOPS = 1.0
HEAVY_PRECIPITATION_STOPS = 2.3
HEAVY_PRECIPITATION_MM = 0.5

MAX_CONFIDENCE = 0.95
MIN_CONFIDENCE = 0.2
NO_WEATHER_FACTOR = 0.8
MISSING_FIELD_PENALTY = {
    "cloud_cover_pct": 0.2,
    "humidity_pct": 0.1,
    "wind_speed_ms": 0.1,
    "visibility_km": 0.1,
    "precipitation_mm": 0.1,
}
# (forecast lead hours, freshness factor), first match wins
FRESHNESS_BY_LEAD_HOURS = ((24.0, 1.0), (48.0, 0.95), (72.0, 0.9), (120.0, 0.85))
STALE_FRESHNESS = 0.75
UNKNOWN_ISSUE_FRESHNESS = 0.9
QUANTIZATION_MARGIN = 1.0 / 6.0


def ev_for_lux(lux: float) -> float:
    """EV at ISO 100 for an illuminance, E = 2.5·2^EV."""
    return math.log2(lux / 2.5)


# =============================================================================
# HOUR SCORING
# =============================================================================

QUALITY_BASE_SCORE: Dict[LightQuality, float] = {
    LightQuality.GOLDEN_HOUR: 1.0,
    LightQuality.DRAMATIC: 0.9,
    LightQuality.BLUE_HOUR: 0.85,
    LightQuality.SOFT: 0.75,
    LightQuality.OVERCAST: 0.7,
    LightQuality.DIRECT: 0.6,
    LightQuality.FLAT: 0.45,
    LightQuality.HARSH: 0.35,
    LightQuality.NIGHT: 0.1,
    LightQuality.UNKNOWN: 0.0,
}
WINDY_MS = 10.0
WIND_PENALTY = 0.1
LIGHT_RAIN_PENALTY = 0.15
HEAVY_RAIN_PENALTY = 0.3

GOLDEN_OPTIMAL_MAX_ELEVATION = 15.0
GOLDEN_OPTIMAL_MIN_EV = ev_for_lux(1000.0)
DAYLIGHT_OPTIMAL_MIN_ELEVATION = 5.0
DAYLIGHT_OPTIMAL_MIN_EV = ev_for_lux(100.0)
OPTIMAL_MAX_PRECIPITATION_MM = 0.7
OPTIMAL_MAX_WIND_MS = 7.0

# Tags that read the same way to a photographer and may share a window
DIFFUSE_QUALITIES = frozenset({LightQuality.SOFT, LightQuality.OVERCAST, LightQuality.FLAT})

TIPS_BY_QUALITY: Dict[LightQuality, str] = {
    LightQuality.GOLDEN_HOUR: "Warm low-angle light: try backlit portraits and side-lit landscapes",
    LightQuality.BLUE_HOUR: "Balance ambient and artificial light for cityscapes",
    LightQuality.DRAMATIC: "Expose for the highlights to hold detail in the clouds",
    LightQuality.SOFT: "Soft, even light suits portraits and close-ups",
    LightQuality.OVERCAST: "Overcast light saturates greens: good for forests and waterfalls",
    LightQuality.FLAT: "Low contrast: look for strong shapes and colour",
    LightQuality.DIRECT: "Direct sun: use side light to bring out texture",
    LightQuality.HARSH: "Harsh overhead sun: seek open shade or use fill flash",
    LightQuality.NIGHT: "Night: astrophotography or light trails on a tripod",
}


class ExposurePredictor:
    """
    Per-hour exposure predictions and optimal window ranking.

    Stateless apart from its configuration; calibration is the caller's
    business and arrives as ``ev_offset`` on each call.
    """

    def __init__(
        self,
        ephemeris: Optional[EphemerisCalculator] = None,
        light_model: Optional[LightQualityModel] = None,
        overcast_stops: Optional[float] = None,
        window_threshold: Optional[float] = None,
    ):
        self.ephemeris = ephemeris or EphemerisCalculator()
        self.light_model = light_model or LightQualityModel()
        self.overcast_stops = settings.OVERCAST_STOPS if overcast_stops is None else overcast_stops
        self.window_threshold = settings.WINDOW_QUALITY_THRESHOLD if window_threshold is None else window_threshold

    # -------------------------------------------------------------------------
    # Brightness
    # -------------------------------------------------------------------------

    def clear_sky_ev(self, sun_elevation: float) -> float:
        return interpolate(EV_CURVE, sun_elevation)

    def weather_stops(self, weather: Optional[WeatherSnapshot]) -> float:
        """Stops lost to cloud, haze and precipitation (non-negative)."""
        if weather is None:
            return 0.0
        stops = 0.0
        if weather.cloud_cover_pct is not None:
            stops += self.overcast_stops * weather.cloud_cover_pct / 100.0
        if weather.visibility_km is not None and weather.visibility_km < CLEAR_VISIBILITY_KM:
            stops += HAZE_STOPS * (CLEAR_VISIBILITY_KM - weather.visibility_km) / CLEAR_VISIBILITY_KM
        if weather.precipitation_mm:
            if weather.precipitation_mm > HEAVY_PRECIPITATION_MM:
                stops += HEAVY_PRECIPITATION_STOPS
            else:
                stops += LIGHT_PRECIPITATION_STOPS
        return stops

    def predict_ev(
        self,
        sun_elevation: float,
        weather: Optional[WeatherSnapshot] = None,
        ev_offset: float = 0.0,
    ) -> float:
        ev = self.clear_sky_ev(sun_elevation) - self.weather_stops(weather) + ev_offset
        return max(EV_FLOOR, min(EV_CEILING, ev))

    # -------------------------------------------------------------------------
    # Confidence
    # -------------------------------------------------------------------------

    def confidence(self, instant: datetime, weather: Optional[WeatherSnapshot]) -> Tuple[float, str]:
        """
        Confidence level and the reason for it.

        Missing measurements and long forecast lead times both lower
        confidence; the result never leaves [0.2, 0.95].
        """
        if weather is None:
            level = MAX_CONFIDENCE * NO_WEATHER_FACTOR
            return _clamp(level, MIN_CONFIDENCE, MAX_CONFIDENCE), "no weather data, clear sky assumed"

        reasons = []
        missing = weather.missing_fields()
        completeness = 1.0 - sum(MISSING_FIELD_PENALTY[name] for name in missing)
        if missing:
            reasons.append(f"missing {', '.join(missing)}")

        if weather.issued_at is None:
            freshness = UNKNOWN_ISSUE_FRESHNESS
            reasons.append("forecast issue time unknown")
        else:
            lead_hours = (instant - weather.issued_at).total_seconds() / 3600.0
            freshness = STALE_FRESHNESS
            for limit, factor in FRESHNESS_BY_LEAD_HOURS:
                if lead_hours <= limit:
                    freshness = factor
                    break
            reasons.append(f"forecast lead {max(0.0, lead_hours):.0f}h")

        level = _clamp(MAX_CONFIDENCE * completeness * freshness, MIN_CONFIDENCE, MAX_CONFIDENCE)
        return level, "; ".join(reasons)

    # -------------------------------------------------------------------------
    # Hour prediction
    # -------------------------------------------------------------------------

    def predict_hour(
        self,
        coordinate: GeoCoordinate,
        instant: datetime,
        weather: Optional[WeatherSnapshot] = None,
        intent: ExposureIntent = ExposureIntent.BALANCED,
        ev_offset: float = 0.0,
    ) -> ExposurePrediction:
        """
        Predict exposure and light for one instant.

        Args:
            coordinate: Observer position
            instant: Aware datetime
            weather: Forecast snapshot for the instant, if any
            intent: What the exposure triangle should favour
            ev_offset: Caller calibration in stops, added to the prediction

        Returns:
            ExposurePrediction

        Raises:
            ValueError: Naive instant or calibration offset out of range
        """
        require_aware(instant)
        if not math.isfinite(ev_offset) or abs(ev_offset) > MAX_EV_OFFSET:
            raise ValueError(f"ev_offset must be within ±{MAX_EV_OFFSET:g} stops, got {ev_offset}")

        sun = self.ephemeris.sun_position(coordinate, instant)
        light = self.light_model.evaluate(
            sun.elevation,
            cloud_cover_pct=weather.cloud_cover_pct if weather and weather.cloud_cover_pct is not None else 0.0,
            humidity_pct=weather.humidity_pct if weather else None,
            visibility_km=weather.visibility_km if weather else None,
        )
        ev = self.predict_ev(sun.elevation, weather, ev_offset)
        triangle = solve_triangle(ev, intent)
        level, reason = self.confidence(instant, weather)

        return ExposurePrediction(
            instant=instant,
            predicted_ev=ev,
            confidence_margin=2.0 * (1.0 - level) + QUANTIZATION_MARGIN,
            confidence_level=level,
            confidence_reason=reason,
            settings=triangle,
            light=light,
            quality_score=self.quality_score(light, level, weather),
            is_optimal=self.is_optimal(sun.elevation, ev, weather),
            sun_position=sun,
            recommendations=self.recommendations(light, triangle, weather),
        )

    def quality_score(
        self,
        light: LightCharacteristics,
        confidence: float,
        weather: Optional[WeatherSnapshot],
    ) -> float:
        score = QUALITY_BASE_SCORE[light.quality] * (0.6 + 0.4 * confidence)
        if weather is not None:
            if weather.precipitation_mm:
                score -= HEAVY_RAIN_PENALTY if weather.precipitation_mm > HEAVY_PRECIPITATION_MM else LIGHT_RAIN_PENALTY
            if weather.wind_speed_ms is not None and weather.wind_speed_ms > WINDY_MS:
                score -= WIND_PENALTY
        return _clamp(score, 0.0, 1.0)

    def is_optimal(self, sun_elevation: float, ev: float, weather: Optional[WeatherSnapshot]) -> bool:
        if 0.0 < sun_elevation < GOLDEN_OPTIMAL_MAX_ELEVATION and ev >= GOLDEN_OPTIMAL_MIN_EV:
            return True
        precipitation = (weather.precipitation_mm or 0.0) if weather else 0.0
        wind = (weather.wind_speed_ms or 0.0) if weather else 0.0
        return (
            sun_elevation > DAYLIGHT_OPTIMAL_MIN_ELEVATION
            and ev >= DAYLIGHT_OPTIMAL_MIN_EV
            and precipitation < OPTIMAL_MAX_PRECIPITATION_MM
            and wind < OPTIMAL_MAX_WIND_MS
        )

    def recommendations(
        self,
        light: LightCharacteristics,
        triangle: ExposureTriangle,
        weather: Optional[WeatherSnapshot],
    ) -> Tuple[str, ...]:
        tips = []
        if light.quality in TIPS_BY_QUALITY:
            tips.append(TIPS_BY_QUALITY[light.quality])

        _, tv, sv = triangle_thirds(triangle)
        if tv < HANDHELD_TV:
            tips.append(f"Shutter at {triangle.shutter_speed}: use a tripod or stabilisation")
        if sv >= HIGH_ISO_SV:
            tips.append(f"ISO {triangle.iso}: expect visible noise")
        if weather is not None:
            if weather.wind_speed_ms is not None and weather.wind_speed_ms > WINDY_MS:
                tips.append("Strong wind: keep shutter speeds fast for foliage and water")
            if weather.precipitation_mm:
                tips.append("Rain expected: protect your gear")
        return tuple(tips)

    # -------------------------------------------------------------------------
    # Windows
    # -------------------------------------------------------------------------

    def rank_windows(
        self,
        predictions: Sequence[ExposurePrediction],
        slot: Optional[timedelta] = None,
    ) -> Tuple[OptimalWindow, ...]:
        """
        Merge consecutive good hours into ranked, non-overlapping windows.

        Hours join a window when their score reaches the threshold, they
        follow the previous hour by at most one slot and their light tags
        are compatible. A window ends one slot after its last hour,
        or where the next window starts if that comes sooner.

        Returns:
            Windows ordered by start time; ``rank`` 1 is the best score,
            ties going to the earlier window

        Raises:
            ValueError: Two predictions for the same instant
        """
        ordered = sorted(predictions, key=lambda p: p.instant)
        if not ordered:
            return ()
        for a, b in zip(ordered, ordered[1:]):
            if a.instant == b.instant:
                raise ValueError(f"Duplicate prediction for {a.instant.isoformat()}")
        slot = slot or _infer_slot(ordered)

        runs: List[List[ExposurePrediction]] = []
        current: List[ExposurePrediction] = []
        for prediction in ordered:
            good = prediction.quality_score >= self.window_threshold
            if (
                good
                and current
                and prediction.instant - current[-1].instant <= slot
                and _compatible(current[-1].light.quality, prediction.light.quality)
            ):
                current.append(prediction)
                continue
            if current:
                runs.append(current)
            current = [prediction] if good else []
        if current:
            runs.append(current)

        scored = [(sum(p.quality_score for p in run) / len(run), run) for run in runs]
        ranking = sorted(range(len(scored)), key=lambda i: (-scored[i][0], scored[i][1][0].instant))
        rank_of = {index: position + 1 for position, index in enumerate(ranking)}

        windows = []
        for index, (score, run) in enumerate(scored):
            quality = Counter(p.light.quality for p in run).most_common(1)[0][0]
            end = run[-1].instant + slot
            if index + 1 < len(scored):
                end = min(end, scored[index + 1][1][0].instant)
            hours = (end - run[0].instant).total_seconds() / 3600.0
            subjects: List[str] = []
            for p in run:
                subjects.extend(s for s in p.light.suitable_for if s not in subjects)
            windows.append(OptimalWindow(
                start=run[0].instant,
                end=end,
                quality_score=score,
                light_quality=quality,
                description=f"{quality.value.replace('_', ' ').capitalize()} light for {hours:g}h",
                suitable_for=tuple(subjects),
                rank=rank_of[index],
                peak_ev=max(p.predicted_ev for p in run),
            ))

        logger.debug(f"Ranked {len(windows)} windows from {len(ordered)} hourly predictions")
        return tuple(windows)


def _compatible(a: LightQuality, b: LightQuality) -> bool:
    return a == b or (a in DIFFUSE_QUALITIES and b in DIFFUSE_QUALITIES)


def _infer_slot(ordered: Sequence[ExposurePrediction]) -> timedelta:
    gaps = [
        b.instant - a.instant
        for a, b in zip(ordered, ordered[1:])
        if b.instant > a.instant
    ]
    return min(gaps) if gaps else timedelta(hours=1)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))

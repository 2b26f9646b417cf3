"""
Twilight, Golden Hour and Blue Hour Resolution.

Physical Definitions:
    - Sunrise / Sunset: upper limb on the horizon. With standard refraction
      (34') and the solar semidiameter (16') that is a geometric centre
      elevation of -0.833°.
    - Civil twilight: -6°
    - Nautical twilight: -12°
    - Astronomical twilight: -18°
    - Golden Hour: between -4° and +6°
    - Blue Hour: between -6° and -4°

Method:
    1. Solar noon is the upper transit (local hour angle = 0) nearest the
       middle of the local day; the nadir is the lower transit after it.
    2. One coarse elevation scan covers noon ± 12 h. Every threshold reuses
       the same samples.
    3. Dawn-side events are rising crossings before noon, dusk-side events
       are setting crossings after noon. Each bracket is refined by
       bisection to a configurable tolerance.
    4. No sign change means the event does not happen that day (polar day
       or night) and the field is left empty.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Dict, Optional, Set

from ..config import settings
from ..models import GeoCoordinate, LocalZone, TimeWindow, TwilightSet
from . import crossing
from .ephemeris import EphemerisCalculator, equation_of_time
from .timegrid import local_day_bounds, to_local

logger = logging.getLogger(__name__)

# Event elevations (degrees)
SUNRISE_ELEVATION = -0.833
CIVIL_TWILIGHT_ELEVATION = -6.0
NAUTICAL_TWILIGHT_ELEVATION = -12.0
ASTRONOMICAL_TWILIGHT_ELEVATION = -18.0
GOLDEN_HOUR_MIN_ELEVATION = -4.0
GOLDEN_HOUR_MAX_ELEVATION = 6.0
BLUE_HOUR_MIN_ELEVATION = CIVIL_TWILIGHT_ELEVATION
BLUE_HOUR_MAX_ELEVATION = GOLDEN_HOUR_MIN_ELEVATION

# (dawn-side field, dusk-side field, elevation)
EVENT_THRESHOLDS = (
    ("sunrise", "sunset", SUNRISE_ELEVATION),
    ("civil_dawn", "civil_dusk", CIVIL_TWILIGHT_ELEVATION),
    ("nautical_dawn", "nautical_dusk", NAUTICAL_TWILIGHT_ELEVATION),
    ("astronomical_dawn", "astronomical_dusk", ASTRONOMICAL_TWILIGHT_ELEVATION),
    ("golden_hour_morning_start", "golden_hour_evening_end", GOLDEN_HOUR_MIN_ELEVATION),
    ("golden_hour_morning_end", "golden_hour_evening_start", GOLDEN_HOUR_MAX_ELEVATION),
)

# The sun's hour angle advances 360° per solar day
_HOUR_ANGLE_RATE = 360.0


class TwilightResolver:
    """
    Resolve the named solar events for a local day.

    Args:
        ephemeris: Position source (defaults to a fresh EphemerisCalculator)
        scan_step_minutes: Coarse scan resolution
        tolerance_seconds: Bisection target precision
        max_iterations: Bisection iteration cap per event

    Example:
        >>> resolver = TwilightResolver()
        >>> seattle = GeoCoordinate(47.6062, -122.3321)
        >>> result = resolver.resolve(seattle, date(2024, 6, 21), LocalZone.from_hours(-7))
        >>> result.sunrise.strftime("%H:%M")
        '05:11'
    """

    def __init__(
        self,
        ephemeris: Optional[EphemerisCalculator] = None,
        scan_step_minutes: Optional[float] = None,
        tolerance_seconds: Optional[float] = None,
        max_iterations: Optional[int] = None,
    ):
        self.ephemeris = ephemeris or EphemerisCalculator()
        self.scan_step_minutes = settings.SCAN_STEP_MINUTES if scan_step_minutes is None else scan_step_minutes
        self.tolerance_seconds = settings.BISECTION_TOLERANCE_SECONDS if tolerance_seconds is None else tolerance_seconds
        self.max_iterations = settings.BISECTION_MAX_ITERATIONS if max_iterations is None else max_iterations

        if self.scan_step_minutes <= 0 or self.tolerance_seconds <= 0 or self.max_iterations < 0:
            raise ValueError("Scan step and tolerance must be positive, iterations non-negative")

    def solar_noon(self, coordinate: GeoCoordinate, around: datetime) -> datetime:
        """
        Upper transit of the sun nearest ``around``.

        Newton-style iteration on the local hour angle, taken from true
        solar time; converges to well under a second in a few steps.
        """
        return self._transit(coordinate, around, 0.0)

    def solar_nadir(self, coordinate: GeoCoordinate, around: datetime) -> datetime:
        """Lower transit of the sun (solar midnight) nearest ``around``."""
        return self._transit(coordinate, around, 180.0)

    @staticmethod
    def _transit(coordinate: GeoCoordinate, around: datetime, target_hour_angle: float) -> datetime:
        t = around
        for _ in range(5):
            utc = t.astimezone(timezone.utc)
            minutes = utc.hour * 60.0 + utc.minute + (utc.second + utc.microsecond / 1e6) / 60.0
            true_solar = minutes + equation_of_time(utc) + 4.0 * coordinate.longitude
            hour_angle = (true_solar / 4.0 - target_hour_angle) % 360.0 - 180.0
            correction = timedelta(days=hour_angle / _HOUR_ANGLE_RATE)
            t -= correction
            if abs(correction) < timedelta(seconds=1):
                break
        return t

    def resolve(
        self,
        coordinate: GeoCoordinate,
        day: date,
        zone: Optional[LocalZone] = None,
    ) -> TwilightSet:
        """
        Compute every twilight event for ``day``.

        Args:
            coordinate: Observer position
            day: Local calendar date
            zone: Caller-resolved time zone; results are expressed in it
                (UTC without one)

        Returns:
            TwilightSet with absent fields where the sun never reaches
            the corresponding elevation
        """
        if not isinstance(coordinate, GeoCoordinate):
            raise ValueError(f"coordinate must be a GeoCoordinate, got {type(coordinate).__name__}")

        day_start, day_end = local_day_bounds(day, coordinate, zone)
        noon = self.solar_noon(coordinate, day_start + (day_end - day_start) / 2)

        def elevation(instant: datetime) -> float:
            return self.ephemeris.sun_elevation(coordinate, instant)

        step = timedelta(minutes=self.scan_step_minutes)
        half = int(-(-720 // self.scan_step_minutes))
        instants = [noon + k * step for k in range(-half, half + 1)]
        samples = crossing.sample(elevation, instants)
        morning = samples[: half + 1]
        evening = samples[half:]

        events: Dict[str, Optional[datetime]] = {}
        reduced: Set[str] = set()
        for dawn_field, dusk_field, threshold in EVENT_THRESHOLDS:
            for name, segment, rising, last in (
                (dawn_field, morning, True, True),
                (dusk_field, evening, False, False),
            ):
                found = crossing.first_crossing(
                    elevation, segment, threshold, rising,
                    self.tolerance_seconds, self.max_iterations, last=last,
                )
                if found is None:
                    events[name] = None
                    continue
                if not found.precise:
                    reduced.add(name)
                events[name] = to_local(found.instant, zone)

        if reduced:
            logger.warning(
                f"Twilight refinement hit the iteration cap for {sorted(reduced)} "
                f"at ({coordinate.latitude}, {coordinate.longitude}) on {day}"
            )

        return TwilightSet(
            date=day,
            solar_noon=to_local(noon, zone),
            solar_noon_elevation=samples[half].value,
            nadir=to_local(self.solar_nadir(coordinate, noon + timedelta(hours=12)), zone),
            blue_hour_morning=_window(events["civil_dawn"], events["golden_hour_morning_start"]),
            blue_hour_evening=_window(events["golden_hour_evening_end"], events["civil_dusk"]),
            reduced_precision=frozenset(reduced),
            **events,
        )


def _window(start: Optional[datetime], end: Optional[datetime]) -> Optional[TimeWindow]:
    if start is None or end is None or end <= start:
        return None
    return TimeWindow(start, end)

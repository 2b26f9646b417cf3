"""
Moon phase, illumination, brightness and rise/set.

Phase is measured from a reference new moon using the mean synodic month,
which keeps it well inside a day of the true lunation. Illumination follows
directly from phase so the two can never disagree.
"""

import math
import logging
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional, Tuple, Union

from ..config import settings
from ..models import CelestialPosition, GeoCoordinate, LocalZone, MoonPhase, require_aware
from . import crossing
from .ephemeris import EphemerisCalculator
from .timegrid import TimeGrid, local_day_bounds, to_local

logger = logging.getLogger(__name__)

# New moon of 2000-01-06 18:14 UTC
REFERENCE_NEW_MOON = datetime(2000, 1, 6, 18, 14, tzinfo=timezone.utc)
SYNODIC_MONTH_DAYS = 29.530588853

# Topocentric centre on the geometric horizon; refraction is not applied to the moon
MOONRISE_ELEVATION = 0.0

# Apsis search: one anomalistic month (27.55 d) plus margin for its variation
ANOMALISTIC_MONTH_DAYS = 27.554550
APSIS_SCAN_STEP = timedelta(hours=12)
APSIS_TOLERANCE_SECONDS = 60.0

# Upper phase bounds, checked in order
PHASE_NAMES = (
    (0.03, "New Moon"),
    (0.22, "Waxing Crescent"),
    (0.28, "First Quarter"),
    (0.47, "Waxing Gibbous"),
    (0.53, "Full Moon"),
    (0.72, "Waning Gibbous"),
    (0.78, "Third Quarter"),
    (0.97, "Waning Crescent"),
)


def phase_name(phase: float) -> str:
    for limit, name in PHASE_NAMES:
        if phase < limit:
            return name
    return "New Moon"


def illumination_for_phase(phase: float) -> float:
    """Illuminated percentage of the disc: 100·(1 − cos 2πp)/2."""
    return 100.0 * (1.0 - math.cos(2.0 * math.pi * phase)) / 2.0


def magnitude_for_phase(phase: float) -> float:
    """
    Apparent visual magnitude from the phase angle.

    m = −12.73 + 0.026·|i| + 4e−9·i⁴, with i = 0° at full moon and 180° at
    new moon.
    """
    phase_angle = abs(180.0 - 360.0 * phase)
    return -12.73 + 0.026 * phase_angle + 4e-9 * phase_angle ** 4


class MoonPhaseCalculator:
    """
    Lunar phase and visibility for a date or instant.

    A date is evaluated at local noon: in ``zone`` when given, else at
    local mean noon for ``coordinate``, else at 12:00 UTC.
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

    def position(self, coordinate: GeoCoordinate, instant: datetime) -> CelestialPosition:
        return self.ephemeris.moon_position(coordinate, instant)

    def phase(
        self,
        when: Union[date, datetime],
        coordinate: Optional[GeoCoordinate] = None,
        zone: Optional[LocalZone] = None,
    ) -> MoonPhase:
        """
        Compute the moon phase.

        Args:
            when: Calendar date or aware instant
            coordinate: Observer position; enables rise/set and position
            zone: Caller-resolved time zone for date handling and output

        Returns:
            MoonPhase
        """
        instant, day = self._resolve_instant(when, coordinate, zone)

        age = ((instant - REFERENCE_NEW_MOON).total_seconds() / 86400.0) % SYNODIC_MONTH_DAYS
        phase = age / SYNODIC_MONTH_DAYS
        if phase >= 1.0:
            phase, age = 0.0, 0.0

        rise = moonset = position = None
        if coordinate is not None:
            position = self.position(coordinate, instant)
            rise, moonset = self.rise_set(coordinate, day, zone)
        perigee, apogee = self.apsides(instant, zone)

        return MoonPhase(
            phase=phase,
            illumination=illumination_for_phase(phase),
            phase_name=phase_name(phase),
            age_days=age,
            rise=rise,
            set=moonset,
            magnitude=magnitude_for_phase(phase),
            position=position,
            next_perigee=perigee,
            next_apogee=apogee,
        )

    def apsides(
        self,
        after: datetime,
        zone: Optional[LocalZone] = None,
    ) -> Tuple[Optional[datetime], Optional[datetime]]:
        """
        Next lunar perigee and apogee after an instant.

        The geocentric distance is sampled every 12 hours over one
        anomalistic month; each turning point is then narrowed down to a
        minute by golden-section search.
        """
        after = require_aware(after, "after")
        steps = int(ANOMALISTIC_MONTH_DAYS * 86400 // APSIS_SCAN_STEP.total_seconds()) + 5
        instants = [after + (k - 1) * APSIS_SCAN_STEP for k in range(steps + 1)]
        samples = crossing.sample(self.ephemeris.moon_distance, instants)

        events = []
        for minimum in (True, False):
            found = crossing.next_extremum(
                self.ephemeris.moon_distance, samples, minimum, after,
                APSIS_TOLERANCE_SECONDS, self.max_iterations,
            )
            events.append(to_local(found.instant, zone) if found else None)
        return events[0], events[1]

    def rise_set(
        self,
        coordinate: GeoCoordinate,
        day: date,
        zone: Optional[LocalZone] = None,
    ) -> Tuple[Optional[datetime], Optional[datetime]]:
        """
        First moonrise and moonset within the local day.

        Either may be None: the moon skips one rise and one set roughly
        every month, and never crosses the horizon at all in some polar
        conditions.
        """
        start, end = local_day_bounds(day, coordinate, zone)
        grid = TimeGrid(start, end, timedelta(minutes=self.scan_step_minutes))

        def elevation(instant: datetime) -> float:
            return self.ephemeris.moon_elevation(coordinate, instant)

        samples = crossing.sample(elevation, list(grid))
        events = []
        for rising in (True, False):
            found = crossing.first_crossing(
                elevation, samples, MOONRISE_ELEVATION, rising,
                self.tolerance_seconds, self.max_iterations,
            )
            if found is not None and not found.precise:
                logger.warning(f"Moon {'rise' if rising else 'set'} on {day} refined with reduced precision")
            events.append(to_local(found.instant, zone) if found else None)
        return events[0], events[1]

    @staticmethod
    def _resolve_instant(
        when: Union[date, datetime],
        coordinate: Optional[GeoCoordinate],
        zone: Optional[LocalZone],
    ) -> Tuple[datetime, date]:
        longitude_shift = timedelta(hours=coordinate.longitude / 15.0) if coordinate else timedelta(0)

        if isinstance(when, datetime):
            instant = require_aware(when, "when")
            if zone is not None:
                day = zone.localize(instant).date()
            else:
                day = (instant.astimezone(timezone.utc) + longitude_shift).date()
            return instant, day

        if not isinstance(when, date):
            raise ValueError(f"Expected a date or datetime, got {type(when).__name__}")

        if zone is not None:
            instant = datetime.combine(when, time(12), tzinfo=zone.tzinfo)
        else:
            instant = datetime.combine(when, time(12), tzinfo=timezone.utc) - longitude_shift
        return instant, when

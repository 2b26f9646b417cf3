"""
Solar and Lunar Ephemeris.

==============================================================================
SOURCES
==============================================================================

Sun:
    astral's NOAA implementation (``astral.sun``). Elevations are taken
    with ``with_refraction=False`` so every threshold in this package is a
    geometric one; sunrise folds standard refraction into its -0.833°.

Moon:
    astral's low-precision lunar theory (``astral.moon``, van Flandern &
    Pulkkinen 1979) for right ascension, declination and distance. astral
    reports a geocentric altitude; it is corrected here for the lunar
    horizontal parallax (up to ~1°) so results are topocentric:

        π  = asin(R⊕ / Δ)
        h' = h − asin(sin π · cos h)

Time:
    astral works from the calendar fields of a datetime, so every instant
    is converted to UTC before it is handed over. Sub-second precision is
    dropped, which is far below the crossing tolerance.

References:
    [1] NOAA Solar Calculator. https://gml.noaa.gov/grad/solcalc/
    [2] van Flandern, T. C. & Pulkkinen, K. F. (1979). Low-precision
        formulae for planetary positions. ApJS 41, 391.
==============================================================================
"""

import math
import logging
from datetime import datetime, timezone

import astral.moon
import astral.sun
from astral import Observer
from astral.julian import julianday, julianday_2000, julianday_to_juliancentury

from ..models import CelestialBody, CelestialPosition, GeoCoordinate, require_aware

logger = logging.getLogger(__name__)

# Equatorial Earth radius; astral gives the lunar distance in these units
EARTH_EQUATORIAL_RADIUS_KM = 6378.14


def _utc(instant: datetime) -> datetime:
    return require_aware(instant).astimezone(timezone.utc)


def julian_day(instant: datetime) -> float:
    """Julian Day (UT) of an aware instant."""
    return julianday(_utc(instant))


def equation_of_time(instant: datetime) -> float:
    """Apparent minus mean solar time, in minutes."""
    return astral.sun.eq_of_time(julianday_to_juliancentury(julian_day(instant)))


def _observer(coordinate: GeoCoordinate) -> Observer:
    return Observer(latitude=coordinate.latitude, longitude=coordinate.longitude)


class EphemerisCalculator:
    """
    Sun and moon positions for an observer.

    Stateless and deterministic: the same (body, coordinate, instant)
    always yields the same position, and instances may be shared between
    threads.

    Example:
        >>> calc = EphemerisCalculator()
        >>> pos = calc.position(
        ...     CelestialBody.SUN,
        ...     GeoCoordinate(47.6062, -122.3321),
        ...     datetime(2024, 6, 21, 20, 0, tzinfo=timezone.utc),
        ... )
        >>> round(pos.elevation)
        66
    """

    def position(
        self,
        body: CelestialBody,
        coordinate: GeoCoordinate,
        instant: datetime,
    ) -> CelestialPosition:
        """
        Topocentric position of ``body``.

        Args:
            body: CelestialBody.SUN or CelestialBody.MOON
            coordinate: Observer position
            instant: Aware datetime

        Returns:
            CelestialPosition with azimuth in [0, 360) and elevation in [-90, 90]
        """
        if body is CelestialBody.SUN:
            return self.sun_position(coordinate, instant)
        if body is CelestialBody.MOON:
            return self.moon_position(coordinate, instant)
        raise ValueError(f"Unsupported body: {body!r}")

    def sun_position(self, coordinate: GeoCoordinate, instant: datetime) -> CelestialPosition:
        utc = _utc(instant)
        observer = _observer(coordinate)
        zenith, azimuth = astral.sun.zenith_and_azimuth(observer, utc, with_refraction=False)
        distance = astral.sun.sun_rad_vector(julianday_to_juliancentury(julianday(utc)))
        return CelestialPosition(CelestialBody.SUN, _normalize_azimuth(azimuth), 90.0 - zenith, distance)

    def sun_elevation(self, coordinate: GeoCoordinate, instant: datetime) -> float:
        """Geometric sun elevation only, for crossing searches."""
        return astral.sun.elevation(_observer(coordinate), _utc(instant), with_refraction=False)

    def moon_position(self, coordinate: GeoCoordinate, instant: datetime) -> CelestialPosition:
        utc = _utc(instant)
        observer = _observer(coordinate)
        distance = self.moon_distance(utc)
        geocentric = astral.moon.elevation(observer, utc)

        # Geocentric to topocentric altitude
        parallax = math.asin(EARTH_EQUATORIAL_RADIUS_KM / distance)
        elevation = geocentric - math.degrees(math.asin(math.sin(parallax) * math.cos(math.radians(geocentric))))
        return CelestialPosition(
            CelestialBody.MOON,
            _normalize_azimuth(astral.moon.azimuth(observer, utc)),
            max(-90.0, elevation),
            distance,
        )

    def moon_elevation(self, coordinate: GeoCoordinate, instant: datetime) -> float:
        return self.moon_position(coordinate, instant).elevation

    def moon_distance(self, instant: datetime) -> float:
        """Geocentric lunar distance in kilometres."""
        return astral.moon.moon_position(julianday_2000(_utc(instant))).distance * EARTH_EQUATORIAL_RADIUS_KM


def _normalize_azimuth(azimuth: float) -> float:
    azimuth %= 360.0
    # Tiny negative inputs round up to exactly 360.0
    return 0.0 if azimuth >= 360.0 else azimuth

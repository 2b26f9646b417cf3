"""
Tests for twilight, golden hour and blue hour resolution.

Covers:
1. Sunrise/sunset against published NOAA times
2. Ordering of the twilight sequence
3. Polar day and polar night
4. Zone handling and reduced-precision reporting
"""

import pytest
import sys
from datetime import date, datetime, time, timedelta
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from lightcast.models import GeoCoordinate, LocalZone
from lightcast.physics import EphemerisCalculator, TwilightResolver
from lightcast.physics.twilight import (
    CIVIL_TWILIGHT_ELEVATION,
    GOLDEN_HOUR_MAX_ELEVATION,
    GOLDEN_HOUR_MIN_ELEVATION,
    SUNRISE_ELEVATION,
)


SEATTLE = GeoCoordinate(47.6062, -122.3321)
PDT = LocalZone.from_hours(-7, is_dst=True, name="America/Los_Angeles")
SVALBARD = GeoCoordinate(78.0, 15.0)
EQUATOR = GeoCoordinate(0.0, 0.0)


@pytest.fixture(scope="module")
def resolver():
    return TwilightResolver()


@pytest.fixture(scope="module")
def seattle_solstice(resolver):
    return resolver.resolve(SEATTLE, date(2024, 6, 21), PDT)


def _minutes_apart(a: datetime, b: datetime) -> float:
    return abs((a - b).total_seconds()) / 60.0


class TestSunriseSunset:
    """Sunrise and sunset timing."""

    def test_seattle_solstice_times(self, seattle_solstice):
        """Seattle on the June solstice: sunrise ~05:11, sunset ~21:10 PDT."""
        expected_rise = datetime(2024, 6, 21, 5, 11, tzinfo=PDT.tzinfo)
        expected_set = datetime(2024, 6, 21, 21, 10, tzinfo=PDT.tzinfo)

        assert _minutes_apart(seattle_solstice.sunrise, expected_rise) < 3, \
            f"Sunrise {seattle_solstice.sunrise} not near 05:11"
        assert _minutes_apart(seattle_solstice.sunset, expected_set) < 3, \
            f"Sunset {seattle_solstice.sunset} not near 21:10"

    @pytest.mark.parametrize("coordinate,offset,day,rise,dusk_set,dawn,dusk", [
        (SEATTLE, -7, date(2024, 6, 21), (5, 11), (21, 10), (4, 31), (21, 51)),
        (SEATTLE, -8, date(2024, 12, 21), (7, 55), (16, 20), (7, 19), (16, 56)),
        (EQUATOR, 0, date(2024, 3, 20), (6, 4), (18, 11), (5, 43), (18, 32)),
    ])
    def test_matches_published_times(self, resolver, coordinate, offset, day, rise, dusk_set, dawn, dusk):
        """Sunrise, sunset and civil twilight agree with NOAA within three minutes."""
        zone = LocalZone.from_hours(offset)
        result = resolver.resolve(coordinate, day, zone)

        def local(hour_minute):
            return datetime.combine(day, time(*hour_minute), tzinfo=zone.tzinfo)

        for ours, published in (
            (result.sunrise, local(rise)),
            (result.sunset, local(dusk_set)),
            (result.civil_dawn, local(dawn)),
            (result.civil_dusk, local(dusk)),
        ):
            assert _minutes_apart(ours, published) < 3, f"{ours} differs from published {published}"

    def test_results_in_requested_zone(self, seattle_solstice):
        """All instants are expressed in the caller's zone."""
        assert seattle_solstice.sunrise.utcoffset() == timedelta(hours=-7)
        assert seattle_solstice.solar_noon.utcoffset() == timedelta(hours=-7)

    def test_utc_without_zone(self, resolver):
        """Without a zone, instants come back in UTC."""
        result = resolver.resolve(SEATTLE, date(2024, 6, 21))
        assert result.sunrise.utcoffset() == timedelta(0)
        # Local mean solar day: sunrise still falls on the 21st locally
        assert (result.sunrise - timedelta(hours=8)).date() == date(2024, 6, 21)

    def test_elevation_at_sunrise(self, seattle_solstice):
        """The sun sits at the sunrise elevation at the computed instant."""
        elevation = EphemerisCalculator().sun_elevation(SEATTLE, seattle_solstice.sunrise)
        assert abs(elevation - SUNRISE_ELEVATION) < 0.02


class TestTwilightSequence:
    """Ordering of the named events."""

    def test_morning_order(self, seattle_solstice):
        """Astronomical < nautical < civil dawn < sunrise < noon < sunset < dusks."""
        t = seattle_solstice
        sequence = [
            t.astronomical_dawn, t.nautical_dawn, t.civil_dawn, t.sunrise,
            t.solar_noon,
            t.sunset, t.civil_dusk, t.nautical_dusk, t.astronomical_dusk,
        ]
        assert all(x is not None for x in sequence), "All events occur in Seattle in June"
        assert sequence == sorted(sequence), "Events out of order"

    def test_solar_noon(self, seattle_solstice):
        """Solar noon in Seattle is ~13:11 PDT with the sun ~65.8° high."""
        noon = seattle_solstice.solar_noon
        assert _minutes_apart(noon, datetime(2024, 6, 21, 13, 11, tzinfo=PDT.tzinfo)) < 2
        assert abs(seattle_solstice.solar_noon_elevation - 65.8) < 0.3

    def test_nadir_follows_noon(self, seattle_solstice):
        """Solar midnight is about twelve hours after noon, with the sun at its lowest."""
        nadir = seattle_solstice.nadir
        assert _minutes_apart(nadir, datetime(2024, 6, 22, 1, 11, tzinfo=PDT.tzinfo)) < 2
        assert nadir.utcoffset() == timedelta(hours=-7)

        calc = EphemerisCalculator()
        lowest = calc.sun_elevation(SEATTLE, nadir)
        assert abs(lowest - (-18.96)) < 0.1, f"Nadir elevation {lowest}"
        for minutes in (-20, 20):
            assert calc.sun_elevation(SEATTLE, nadir + timedelta(minutes=minutes)) > lowest

    def test_golden_hour_bounds(self, seattle_solstice):
        """Golden hour spans -4° to +6° and brackets sunrise and sunset."""
        calc = EphemerisCalculator()
        morning = seattle_solstice.golden_hour_morning
        evening = seattle_solstice.golden_hour_evening

        assert morning.start < seattle_solstice.sunrise < morning.end
        assert evening.start < seattle_solstice.sunset < evening.end
        assert abs(calc.sun_elevation(SEATTLE, morning.start) - GOLDEN_HOUR_MIN_ELEVATION) < 0.02
        assert abs(calc.sun_elevation(SEATTLE, morning.end) - GOLDEN_HOUR_MAX_ELEVATION) < 0.02

    def test_blue_hour_precedes_golden_hour(self, seattle_solstice):
        """Morning blue hour runs from civil dawn into golden hour."""
        blue = seattle_solstice.blue_hour_morning
        assert blue.start == seattle_solstice.civil_dawn
        assert blue.end == seattle_solstice.golden_hour_morning_start
        assert 10 < blue.duration_minutes < 40

        elevation = EphemerisCalculator().sun_elevation(SEATTLE, blue.start)
        assert abs(elevation - CIVIL_TWILIGHT_ELEVATION) < 0.02

    def test_day_length(self, seattle_solstice):
        """Day length is sunset minus sunrise, ~16 h in Seattle in June."""
        hours = seattle_solstice.day_length.total_seconds() / 3600.0
        assert 15.8 < hours < 16.1, f"Unexpected day length {hours}"

    def test_no_reduced_precision_by_default(self, seattle_solstice):
        """Default settings converge for every event."""
        assert seattle_solstice.reduced_precision == frozenset()


class TestPolarConditions:
    """Polar day and polar night."""

    def test_polar_day(self, resolver):
        """Svalbard at midsummer: no sunrise or sunset, sun always up."""
        result = resolver.resolve(SVALBARD, date(2024, 6, 21))
        assert result.sunrise is None
        assert result.sunset is None
        assert result.day_length is None
        assert result.is_polar_day
        assert not result.is_polar_night
        assert result.blue_hour_morning is None

    def test_polar_night(self, resolver):
        """Svalbard at midwinter: no sunrise, only the deeper twilights."""
        result = resolver.resolve(SVALBARD, date(2024, 12, 21))
        assert result.sunrise is None and result.sunset is None
        assert result.civil_dawn is None and result.civil_dusk is None
        assert result.is_polar_night
        assert result.solar_noon_elevation < CIVIL_TWILIGHT_ELEVATION
        # Noon sun around -11.4° still reaches nautical twilight
        assert result.nautical_dawn is not None
        assert result.nautical_dawn < result.solar_noon < result.nautical_dusk

    def test_no_astronomical_night_in_summer(self, resolver):
        """London in June never gets below -18°: no astronomical twilight."""
        result = resolver.resolve(GeoCoordinate(51.5074, -0.1278), date(2024, 6, 21))
        assert result.sunrise is not None
        assert result.astronomical_dawn is None
        assert result.astronomical_dusk is None


class TestResolverConfiguration:
    """Constructor validation and precision reporting."""

    @pytest.mark.parametrize("kwargs", [
        {"scan_step_minutes": -5},
        {"scan_step_minutes": 0},
        {"tolerance_seconds": 0},
        {"max_iterations": -1},
    ])
    def test_invalid_settings(self, kwargs):
        """Zero or negative steps and tolerances are rejected, not replaced by defaults."""
        with pytest.raises(ValueError):
            TwilightResolver(**kwargs)

    def test_iteration_cap_reports_reduced_precision(self):
        """With no bisection allowed, every event is flagged as imprecise."""
        resolver = TwilightResolver(max_iterations=0)
        result = resolver.resolve(SEATTLE, date(2024, 6, 21), PDT)

        assert "sunrise" in result.reduced_precision
        assert "sunset" in result.reduced_precision
        # Midpoint of a 5 minute bracket is still within 3 minutes
        precise = TwilightResolver().resolve(SEATTLE, date(2024, 6, 21), PDT)
        assert _minutes_apart(result.sunrise, precise.sunrise) <= 3

    def test_rejects_non_coordinate(self, resolver):
        """A tuple is not a coordinate."""
        with pytest.raises(ValueError):
            resolver.resolve((47.6, -122.3), date(2024, 6, 21))

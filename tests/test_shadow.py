"""
Tests for shadow geometry.
"""

import pytest
import math
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from lightcast.models import CelestialBody, CelestialPosition, GeoCoordinate, TerrainType
from lightcast.physics import TERRAIN_FACTORS, ShadowProjector


SEATTLE = GeoCoordinate(47.6062, -122.3321)


def sun_at(elevation: float, azimuth: float = 180.0) -> CelestialPosition:
    return CelestialPosition(CelestialBody.SUN, azimuth, elevation, 1.0)


@pytest.fixture
def projector():
    return ShadowProjector()


class TestProjection:
    """Shadow length and direction from a sun position."""

    def test_45_degrees_equals_height(self, projector):
        """At 45° the shadow is as long as the object is tall."""
        result = projector.project(sun_at(45.0), 2.0)
        assert result.length_m == pytest.approx(2.0)
        assert result.is_defined

    def test_low_sun_long_shadow(self, projector):
        """At 10° a 2 m object casts an ~11.3 m shadow."""
        result = projector.project(sun_at(10.0), 2.0)
        assert result.length_m == pytest.approx(2.0 / math.tan(math.radians(10.0)))
        assert 11.0 < result.length_m < 11.5

    def test_length_decreases_with_elevation(self, projector):
        """Higher sun, shorter shadow."""
        lengths = [projector.project(sun_at(e), 1.0).length_m for e in (5, 15, 30, 60, 85)]
        assert lengths == sorted(lengths, reverse=True)

    def test_direction_opposite_sun(self, projector):
        """The shadow points away from the sun."""
        assert projector.project(sun_at(30.0, 90.0), 1.0).direction_deg == pytest.approx(270.0)
        assert projector.project(sun_at(30.0, 270.0), 1.0).direction_deg == pytest.approx(90.0)
        assert projector.project(sun_at(30.0, 180.0), 1.0).direction_deg == pytest.approx(0.0)

    @pytest.mark.parametrize("elevation", [0.0, -2.0, -30.0])
    def test_sun_down_no_length(self, projector, elevation):
        """At or below the horizon the length is undefined, not infinite."""
        result = projector.project(sun_at(elevation), 2.0)
        assert result.length_m is None
        assert not result.is_defined
        assert 0.0 <= result.direction_deg < 360.0

    @pytest.mark.parametrize("terrain", list(TerrainType))
    def test_terrain_factors(self, projector, terrain):
        """Terrain scales the flat-ground length by its factor."""
        flat = projector.project(sun_at(30.0), 3.0).length_m
        result = projector.project(sun_at(30.0), 3.0, terrain)
        assert result.length_m == pytest.approx(flat * TERRAIN_FACTORS[terrain])
        assert result.terrain is terrain

    def test_terrain_from_string(self, projector):
        """Terrain can be given by its value."""
        result = projector.project(sun_at(30.0), 1.0, "forest")
        assert result.terrain is TerrainType.FOREST

    @pytest.mark.parametrize("height", [0.0, -1.0, float("nan"), float("inf")])
    def test_invalid_height(self, projector, height):
        """Non-positive or non-finite heights raise ValueError."""
        with pytest.raises(ValueError):
            projector.project(sun_at(30.0), height)

    def test_unknown_terrain(self, projector):
        """Unknown terrain names raise ValueError."""
        with pytest.raises(ValueError):
            projector.project(sun_at(30.0), 1.0, "glacier")


class TestShadowAt:
    """Shadows located from real sun positions."""

    def test_seattle_noon_points_north(self, projector):
        """Near solar noon in the northern hemisphere shadows point north."""
        result = projector.at(SEATTLE, datetime(2024, 6, 21, 20, 11, tzinfo=timezone.utc), 2.0)
        assert result.length_m is not None
        assert result.length_m < 1.0, "Sun is ~66° high, shadow shorter than 1 m"
        north_offset = min(result.direction_deg, 360.0 - result.direction_deg)
        assert north_offset < 2.0, f"Shadow should point north, got {result.direction_deg}"

    def test_night_shadow_undefined(self, projector):
        """At local midnight there is no shadow."""
        result = projector.at(SEATTLE, datetime(2024, 6, 21, 8, 0, tzinfo=timezone.utc), 2.0)
        assert result.length_m is None
        assert result.sun_elevation_deg < 0.0

    def test_instant_recorded(self, projector):
        """The result carries the instant it was computed for."""
        instant = datetime(2024, 6, 21, 18, 0, tzinfo=timezone.utc)
        assert projector.at(SEATTLE, instant, 1.0).instant == instant


class TestProgression:
    """Shadow sequences over a time range."""

    def test_endpoints_included(self, projector):
        """Both ends are included when the range is a whole number of steps."""
        start = datetime(2024, 6, 21, 16, 0, tzinfo=timezone.utc)
        sequence = projector.progression(SEATTLE, 2.0, TerrainType.FLAT, start, start + timedelta(hours=4), 60)
        results = list(sequence)
        assert len(sequence) == 5
        assert [r.instant for r in results] == [start + timedelta(hours=k) for k in range(5)]

    def test_restartable(self, projector):
        """Iterating twice gives identical results."""
        start = datetime(2024, 6, 21, 16, 0, tzinfo=timezone.utc)
        sequence = projector.progression(SEATTLE, 2.0, TerrainType.URBAN, start, start + timedelta(hours=2), 30)
        assert list(sequence) == list(sequence)

    def test_afternoon_shadows_lengthen(self, projector):
        """After noon, shadows grow as the sun sinks."""
        start = datetime(2024, 6, 21, 21, 0, tzinfo=timezone.utc)
        sequence = projector.progression(SEATTLE, 2.0, TerrainType.FLAT, start, start + timedelta(hours=5), 60)
        lengths = [r.length_m for r in sequence]
        assert lengths == sorted(lengths)

    def test_empty_range_rejected(self, projector):
        """End before start raises ValueError."""
        start = datetime(2024, 6, 21, 16, 0, tzinfo=timezone.utc)
        with pytest.raises(ValueError):
            projector.progression(SEATTLE, 2.0, TerrainType.FLAT, start, start - timedelta(hours=1), 30)

    def test_non_positive_step_rejected(self, projector):
        """Zero step raises ValueError."""
        start = datetime(2024, 6, 21, 16, 0, tzinfo=timezone.utc)
        with pytest.raises(ValueError):
            projector.progression(SEATTLE, 2.0, TerrainType.FLAT, start, start + timedelta(hours=1), 0)

"""
Shadow geometry for vertical objects.

    length    = height / tan(elevation) × terrain factor
    direction = (sun azimuth + 180°) mod 360°

With the sun at or below the horizon a shadow has no defined length; the
result carries None rather than dividing by a non-positive tangent.
"""

import math
import logging
from datetime import datetime
from typing import Dict, Iterator, Optional

from ..models import (
    CelestialPosition,
    GeoCoordinate,
    ShadowResult,
    TerrainType,
)
from .ephemeris import EphemerisCalculator
from .timegrid import TimeGrid

logger = logging.getLogger(__name__)

# Multiplier applied to the flat-ground shadow length. Built-up and
# forested ground breaks shadows up; slopes and open sand stretch them.
TERRAIN_FACTORS: Dict[TerrainType, float] = {
    TerrainType.FLAT: 1.0,
    TerrainType.URBAN: 0.8,
    TerrainType.FOREST: 0.6,
    TerrainType.MOUNTAIN: 1.2,
    TerrainType.BEACH: 1.1,
}


class ShadowProgression:
    """
    Shadows over a time grid.

    Restartable: every iteration recomputes from the grid, so the same
    instance can be walked any number of times.
    """

    def __init__(
        self,
        projector: "ShadowProjector",
        coordinate: GeoCoordinate,
        object_height_m: float,
        terrain: TerrainType,
        grid: TimeGrid,
    ):
        self._projector = projector
        self._coordinate = coordinate
        self._height = object_height_m
        self._terrain = terrain
        self.grid = grid

    def __len__(self) -> int:
        return len(self.grid)

    def __iter__(self) -> Iterator[ShadowResult]:
        for instant in self.grid:
            yield self._projector.at(self._coordinate, instant, self._height, self._terrain)


class ShadowProjector:
    """Project shadows from sun positions."""

    def __init__(self, ephemeris: Optional[EphemerisCalculator] = None):
        self.ephemeris = ephemeris or EphemerisCalculator()

    def project(
        self,
        sun_position: CelestialPosition,
        object_height_m: float,
        terrain: TerrainType = TerrainType.FLAT,
        instant: Optional[datetime] = None,
    ) -> ShadowResult:
        """
        Shadow of a vertical object for a given sun position.

        Args:
            sun_position: Sun position (elevation, azimuth)
            object_height_m: Height of the object, must be positive
            terrain: Ground the shadow falls on
            instant: Time the sun position applies to, for the record

        Returns:
            ShadowResult, with ``length_m`` None when the sun is down

        Raises:
            ValueError: Non-positive height or unknown terrain
        """
        _validate_height(object_height_m)
        terrain = TerrainType(terrain)

        elevation = sun_position.elevation
        length = None
        if elevation > 0.0:
            length = object_height_m / math.tan(math.radians(elevation)) * TERRAIN_FACTORS[terrain]

        direction = (sun_position.azimuth + 180.0) % 360.0
        if direction >= 360.0:
            direction = 0.0

        return ShadowResult(
            length_m=length,
            direction_deg=direction,
            object_height_m=object_height_m,
            terrain=terrain,
            sun_elevation_deg=elevation,
            instant=instant,
        )

    def at(
        self,
        coordinate: GeoCoordinate,
        instant: datetime,
        object_height_m: float,
        terrain: TerrainType = TerrainType.FLAT,
    ) -> ShadowResult:
        """Shadow at an instant, locating the sun first."""
        sun = self.ephemeris.sun_position(coordinate, instant)
        return self.project(sun, object_height_m, terrain, instant)

    def progression(
        self,
        coordinate: GeoCoordinate,
        object_height_m: float,
        terrain: TerrainType,
        start: datetime,
        end: datetime,
        step_minutes: float,
    ) -> ShadowProgression:
        """
        Shadows from ``start`` to ``end`` every ``step_minutes``.

        Both endpoints are included when ``end`` lies on the grid.

        Raises:
            ValueError: Empty range, non-positive step or height
        """
        _validate_height(object_height_m)
        grid = TimeGrid.from_minutes(start, end, step_minutes)
        return ShadowProgression(self, coordinate, object_height_m, TerrainType(terrain), grid)


def _validate_height(object_height_m: float) -> None:
    if not isinstance(object_height_m, (int, float)) or not math.isfinite(object_height_m):
        raise ValueError(f"Object height must be a finite number, got {object_height_m!r}")
    if object_height_m <= 0:
        raise ValueError(f"Object height must be positive, got {object_height_m}")

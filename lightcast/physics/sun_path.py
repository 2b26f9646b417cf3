"""Sun path sampling over a local day."""

import logging
from datetime import date, datetime
from typing import Iterator, Optional

from ..models import GeoCoordinate, LocalZone, SunPathPoint
from .ephemeris import EphemerisCalculator
from .timegrid import TimeGrid, local_day_bounds, to_local

logger = logging.getLogger(__name__)


class SunPath:
    """
    Lazily computed sun positions on a regular grid.

    Finite and restartable. Points are computed on iteration; callers that
    want them in parallel can map ``point_at`` over ``grid``.
    """

    def __init__(
        self,
        ephemeris: EphemerisCalculator,
        coordinate: GeoCoordinate,
        grid: TimeGrid,
        zone: Optional[LocalZone] = None,
    ):
        self._ephemeris = ephemeris
        self.coordinate = coordinate
        self.grid = grid
        self.zone = zone

    def point_at(self, instant: datetime) -> SunPathPoint:
        position = self._ephemeris.sun_position(self.coordinate, instant)
        return SunPathPoint(instant=to_local(instant, self.zone), position=position)

    def __len__(self) -> int:
        return len(self.grid)

    def __iter__(self) -> Iterator[SunPathPoint]:
        for instant in self.grid:
            yield self.point_at(instant)


class SunPathSampler:
    """Build sun paths for a coordinate and local day."""

    def __init__(self, ephemeris: Optional[EphemerisCalculator] = None):
        self.ephemeris = ephemeris or EphemerisCalculator()

    def samples(
        self,
        coordinate: GeoCoordinate,
        day: date,
        step_minutes: float,
        zone: Optional[LocalZone] = None,
    ) -> SunPath:
        """
        Sun positions every ``step_minutes`` across the local day.

        The grid starts at local midnight and stops before the next one.

        Raises:
            ValueError: Non-positive step
        """
        start, end = local_day_bounds(day, coordinate, zone)
        grid = TimeGrid.from_minutes(start, end, step_minutes, include_end=False)
        return SunPath(self.ephemeris, coordinate, grid, zone)

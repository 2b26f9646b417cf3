"""
Regular time grids and local day bounds.

A TimeGrid is a finite, restartable sequence of instants: iterating it
twice yields the same instants, and it can be sized up front so callers
can fan the work out to a thread pool.
"""

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Iterator, Optional, Tuple

from ..models import GeoCoordinate, LocalZone, require_aware


@dataclass(frozen=True)
class TimeGrid:
    """
    Instants ``start, start + step, ...`` up to ``end``.

    Attributes:
        start: First instant
        end: Last instant bound
        step: Positive spacing
        include_end: Whether ``end`` itself is emitted when it falls on
            the grid
    """
    start: datetime
    end: datetime
    step: timedelta
    include_end: bool = True

    def __post_init__(self):
        require_aware(self.start, "start")
        require_aware(self.end, "end")
        if self.step <= timedelta(0):
            raise ValueError(f"Step must be positive, got {self.step}")
        if self.end <= self.start:
            raise ValueError(
                f"Empty time range: end {self.end.isoformat()} is not after start {self.start.isoformat()}"
            )

    @classmethod
    def from_minutes(
        cls,
        start: datetime,
        end: datetime,
        step_minutes: float,
        include_end: bool = True,
    ) -> "TimeGrid":
        if step_minutes is None or step_minutes <= 0:
            raise ValueError(f"step_minutes must be positive, got {step_minutes}")
        return cls(start, end, timedelta(minutes=step_minutes), include_end)

    def __len__(self) -> int:
        steps, remainder = divmod(self.end - self.start, self.step)
        if remainder:
            return steps + 1
        return steps + 1 if self.include_end else steps

    def __iter__(self) -> Iterator[datetime]:
        for k in range(len(self)):
            yield self.start + k * self.step


def local_day_bounds(
    day: date,
    coordinate: GeoCoordinate,
    zone: Optional[LocalZone] = None,
) -> Tuple[datetime, datetime]:
    """
    UTC bounds of the local calendar day.

    With a zone, this is midnight to midnight in that zone. Without one,
    it is the local mean solar day: UTC midnight shifted by the
    longitude (15° per hour).
    """
    if zone is not None:
        start = datetime.combine(day, time(0), tzinfo=zone.tzinfo).astimezone(timezone.utc)
    else:
        start = datetime.combine(day, time(0), tzinfo=timezone.utc) - timedelta(
            hours=coordinate.longitude / 15.0
        )
    return start, start + timedelta(days=1)


def to_local(instant: datetime, zone: Optional[LocalZone]) -> datetime:
    """Express an instant in the caller's zone, or UTC without one."""
    if zone is None:
        return instant.astimezone(timezone.utc)
    return zone.localize(instant)

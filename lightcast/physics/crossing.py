"""
Threshold crossing search.

Elevation curves are sampled once on a coarse grid; sign changes against a
threshold give brackets that are refined independently by bisection.
Sharing the coarse samples between thresholds keeps the number of
ephemeris evaluations per day small.

Turning points (the moon's closest and farthest approach) use the same
coarse samples to find a local minimum or maximum, then golden-section
search to narrow it down.
"""

import math
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence

logger = logging.getLogger(__name__)

ElevationFn = Callable[[datetime], float]


@dataclass(frozen=True)
class Sample:
    instant: datetime
    value: float


@dataclass(frozen=True)
class Bracket:
    """Consecutive samples straddling a threshold."""
    low: Sample
    high: Sample
    rising: bool


@dataclass(frozen=True)
class Crossing:
    """
    A refined threshold crossing.

    Attributes:
        instant: Crossing time
        rising: True when the curve goes from below to above the threshold
        precise: False when bisection ran out of iterations and the
            instant is the midpoint of the last bracket
    """
    instant: datetime
    rising: bool
    precise: bool = True


def sample(fn: ElevationFn, instants: Sequence[datetime]) -> List[Sample]:
    return [Sample(t, fn(t)) for t in instants]


def find_brackets(samples: Sequence[Sample], threshold: float) -> List[Bracket]:
    """All sign changes of ``value - threshold`` between consecutive samples."""
    brackets = []
    for a, b in zip(samples, samples[1:]):
        if a.value < threshold <= b.value:
            brackets.append(Bracket(a, b, rising=True))
        elif a.value >= threshold > b.value:
            brackets.append(Bracket(a, b, rising=False))
    return brackets


def refine(
    fn: ElevationFn,
    bracket: Bracket,
    threshold: float,
    tolerance_seconds: float,
    max_iterations: int,
) -> Crossing:
    """
    Bisect a bracket down to ``tolerance_seconds``.

    Gives up after ``max_iterations`` evaluations and returns the midpoint
    of the remaining bracket flagged as imprecise.
    """
    lo = bracket.low.instant
    hi = bracket.high.instant
    tolerance = timedelta(seconds=tolerance_seconds)

    iterations = 0
    while hi - lo > tolerance and iterations < max_iterations:
        mid = lo + (hi - lo) / 2
        above = fn(mid) >= threshold
        if above == bracket.rising:
            hi = mid
        else:
            lo = mid
        iterations += 1

    precise = hi - lo <= tolerance
    return Crossing(lo + (hi - lo) / 2, bracket.rising, precise)


def first_crossing(
    fn: ElevationFn,
    samples: Sequence[Sample],
    threshold: float,
    rising: bool,
    tolerance_seconds: float,
    max_iterations: int,
    last: bool = False,
) -> Optional[Crossing]:
    """
    Refine the first (or last) crossing in the given direction.

    Returns None when the samples never cross the threshold that way.
    """
    candidates = [b for b in find_brackets(samples, threshold) if b.rising == rising]
    if not candidates:
        return None
    bracket = candidates[-1] if last else candidates[0]
    return refine(fn, bracket, threshold, tolerance_seconds, max_iterations)


# 1/φ, the golden-section shrink factor
_INVERSE_GOLDEN = (math.sqrt(5.0) - 1.0) / 2.0


@dataclass(frozen=True)
class Extremum:
    """
    A refined turning point of a sampled curve.

    Attributes:
        instant: Time of the turning point
        value: Curve value there
        minimum: True for a minimum, False for a maximum
        precise: False when the search ran out of iterations
    """
    instant: datetime
    value: float
    minimum: bool
    precise: bool = True


def find_turning_points(samples: Sequence[Sample], minimum: bool) -> List[int]:
    """Indices of interior samples that are local minima (or maxima)."""
    sign = 1.0 if minimum else -1.0
    return [
        k for k in range(1, len(samples) - 1)
        if sign * samples[k - 1].value > sign * samples[k].value <= sign * samples[k + 1].value
    ]


def golden_section(
    fn: ElevationFn,
    lo: datetime,
    hi: datetime,
    minimum: bool,
    tolerance_seconds: float,
    max_iterations: int,
) -> Extremum:
    """
    Narrow a unimodal interval down to ``tolerance_seconds``.

    Gives up after ``max_iterations`` shrinks and returns the best interior
    point found so far, flagged as imprecise.
    """
    sign = 1.0 if minimum else -1.0
    tolerance = timedelta(seconds=tolerance_seconds)

    a, b = lo, hi
    c = b - (b - a) * _INVERSE_GOLDEN
    d = a + (b - a) * _INVERSE_GOLDEN
    fc, fd = sign * fn(c), sign * fn(d)

    iterations = 0
    while b - a > tolerance and iterations < max_iterations:
        if fc <= fd:
            b, d, fd = d, c, fc
            c = b - (b - a) * _INVERSE_GOLDEN
            fc = sign * fn(c)
        else:
            a, c, fc = c, d, fd
            d = a + (b - a) * _INVERSE_GOLDEN
            fd = sign * fn(d)
        iterations += 1

    instant, value = (c, fc) if fc <= fd else (d, fd)
    return Extremum(instant, sign * value, minimum, precise=b - a <= tolerance)


def next_extremum(
    fn: ElevationFn,
    samples: Sequence[Sample],
    minimum: bool,
    after: datetime,
    tolerance_seconds: float,
    max_iterations: int,
) -> Optional[Extremum]:
    """
    Refine the first turning point later than ``after``.

    Returns None when the samples hold no such minimum (or maximum).
    """
    for k in find_turning_points(samples, minimum):
        found = golden_section(
            fn, samples[k - 1].instant, samples[k + 1].instant, minimum,
            tolerance_seconds, max_iterations,
        )
        if found.instant > after:
            return found
    return None

"""
Lightcast Engine Facade.

Single entry point for the five public operations:

    compute_twilight    Named solar events for a local day
    compute_moon_phase  Phase, illumination, brightness, rise/set
    compute_shadow      Shadow of a vertical object at an instant
    sample_sun_path     Lazy sun path over a local day
    predict_day         Hourly exposure predictions and ranked windows

Concurrency:
    Per-hour and per-sample work fans out over a ThreadPoolExecutor and is
    joined before anything is returned. Outputs are sorted by instant, so
    scheduling order never leaks into results. Every component is
    stateless, so no locking is needed.

    Cancellation is cooperative: once the caller's ``threading.Event`` is
    set, no further work is submitted, pending work is cancelled and
    ``concurrent.futures.CancelledError`` is raised. A partial day is never
    returned.
"""

import logging
import threading
from bisect import bisect_left
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional, Sequence, Tuple, TypeVar, Union

from ..config import settings
from ..models import (
    CelestialBody,
    CelestialPosition,
    DayPrediction,
    ExposureIntent,
    ExposurePrediction,
    GeoCoordinate,
    LocalZone,
    MoonPhase,
    ShadowResult,
    SunPathPoint,
    TerrainType,
    TwilightSet,
    WeatherSnapshot,
    require_aware,
)
from ..physics import (
    EphemerisCalculator,
    MoonPhaseCalculator,
    ShadowProgression,
    ShadowProjector,
    SunPath,
    SunPathSampler,
    TwilightResolver,
)
from ..physics.timegrid import TimeGrid, local_day_bounds
from .exposure import ExposurePredictor
from .light_quality import LightQualityModel

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Forecast snapshots further than this from an hour are not used for it
MAX_WEATHER_GAP = timedelta(hours=3)


class LightEngine:
    """
    Astronomical and light-prediction engine.

    Example:
        >>> engine = LightEngine()
        >>> day = engine.predict_day(
        ...     GeoCoordinate(47.6062, -122.3321),
        ...     date(2024, 6, 21),
        ...     weather_snapshots=[],
        ...     zone=LocalZone.from_hours(-7),
        ... )
        >>> day.best_window.light_quality
        <LightQuality.GOLDEN_HOUR: 'golden_hour'>
    """

    def __init__(
        self,
        ephemeris: Optional[EphemerisCalculator] = None,
        max_workers: Optional[int] = None,
    ):
        self.ephemeris = ephemeris or EphemerisCalculator()
        self.max_workers = max_workers or settings.MAX_WORKERS
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be at least 1, got {self.max_workers}")

        self.twilight_resolver = TwilightResolver(self.ephemeris)
        self.moon_calculator = MoonPhaseCalculator(self.ephemeris)
        self.shadow_projector = ShadowProjector(self.ephemeris)
        self.sun_path_sampler = SunPathSampler(self.ephemeris)
        self.light_model = LightQualityModel()
        self.exposure_predictor = ExposurePredictor(self.ephemeris, self.light_model)

        logger.info(f"LightEngine initialized with {self.max_workers} workers")

    # =========================================================================
    # POSITIONS AND EVENTS
    # =========================================================================

    def position(self, body: CelestialBody, coordinate: GeoCoordinate, instant: datetime) -> CelestialPosition:
        return self.ephemeris.position(body, _coordinate(coordinate), instant)

    def compute_twilight(
        self,
        coordinate: GeoCoordinate,
        day: date,
        zone: Optional[LocalZone] = None,
    ) -> TwilightSet:
        """Twilight, golden hour and blue hour events for a local day."""
        return self.twilight_resolver.resolve(_coordinate(coordinate), day, zone)

    def compute_moon_phase(
        self,
        when: Union[date, datetime],
        coordinate: Optional[GeoCoordinate] = None,
        zone: Optional[LocalZone] = None,
    ) -> MoonPhase:
        """Moon phase for a date or instant; rise/set need a coordinate."""
        if coordinate is not None:
            _coordinate(coordinate)
        return self.moon_calculator.phase(when, coordinate, zone)

    def compute_shadow(
        self,
        coordinate: GeoCoordinate,
        instant: datetime,
        height_m: float,
        terrain: TerrainType = TerrainType.FLAT,
    ) -> ShadowResult:
        """Shadow of a vertical object of ``height_m`` at ``instant``."""
        return self.shadow_projector.at(_coordinate(coordinate), require_aware(instant), height_m, terrain)

    def shadow_progression(
        self,
        coordinate: GeoCoordinate,
        height_m: float,
        terrain: TerrainType,
        start: datetime,
        end: datetime,
        step_minutes: float,
    ) -> ShadowProgression:
        """Restartable shadow sequence from ``start`` to ``end``."""
        return self.shadow_projector.progression(
            _coordinate(coordinate), height_m, terrain, start, end, step_minutes
        )

    def sample_sun_path(
        self,
        coordinate: GeoCoordinate,
        day: date,
        step_minutes: Optional[float] = None,
        zone: Optional[LocalZone] = None,
    ) -> SunPath:
        """Lazy, restartable sun path over the local day."""
        step = settings.DEFAULT_SAMPLE_STEP_MINUTES if step_minutes is None else step_minutes
        return self.sun_path_sampler.samples(_coordinate(coordinate), day, step, zone)

    def materialize_sun_path(
        self,
        path: SunPath,
        cancel_event: Optional[threading.Event] = None,
    ) -> Tuple[SunPathPoint, ...]:
        """Compute every point of ``path`` in parallel, ordered by instant."""
        points = self._fan_out(path.point_at, list(path.grid), cancel_event)
        return tuple(sorted(points, key=lambda p: p.instant))

    # =========================================================================
    # DAY PREDICTION
    # =========================================================================

    def predict_day(
        self,
        coordinate: GeoCoordinate,
        day: date,
        weather_snapshots: Optional[Sequence[WeatherSnapshot]] = None,
        zone: Optional[LocalZone] = None,
        intent: ExposureIntent = ExposureIntent.BALANCED,
        ev_offset: float = 0.0,
        cancel_event: Optional[threading.Event] = None,
    ) -> DayPrediction:
        """
        Predict the 24 hours of a local day and rank shooting windows.

        Args:
            coordinate: Observer position
            day: Local calendar date
            weather_snapshots: Forecast snapshots, any order; each hour
                uses the nearest one within three hours
            zone: Caller-resolved time zone; hours are expressed in it
            intent: Exposure triangle preference
            ev_offset: Caller calibration in stops
            cancel_event: Set to abandon the computation

        Returns:
            DayPrediction with hourly results sorted by instant and
            windows sorted by start

        Raises:
            ValueError: Invalid coordinate, offset or snapshot
            concurrent.futures.CancelledError: ``cancel_event`` was set
        """
        coordinate = _coordinate(coordinate)
        intent = ExposureIntent(intent)
        snapshots = sorted(weather_snapshots or (), key=lambda s: s.time)
        if not snapshots:
            logger.info(f"No weather snapshots for {day}; assuming clear sky")

        start, end = local_day_bounds(day, coordinate, zone)
        hours = list(TimeGrid(start, end, timedelta(hours=1), include_end=False))
        if zone is not None:
            hours = [zone.localize(h) for h in hours]

        def predict(instant: datetime) -> ExposurePrediction:
            return self.exposure_predictor.predict_hour(
                coordinate,
                instant,
                weather=_nearest_snapshot(snapshots, instant),
                intent=intent,
                ev_offset=ev_offset,
            )

        hourly = tuple(sorted(self._fan_out(predict, hours, cancel_event), key=lambda p: p.instant))
        windows = self.exposure_predictor.rank_windows(hourly, slot=timedelta(hours=1))

        logger.info(
            f"Predicted {len(hourly)} hours for ({coordinate.latitude}, {coordinate.longitude}) "
            f"on {day}: {len(windows)} windows"
        )
        return DayPrediction(date=day, coordinate=coordinate, hourly=hourly, windows=windows)

    # =========================================================================
    # FORK-JOIN
    # =========================================================================

    def _fan_out(
        self,
        task: Callable[[datetime], T],
        instants: Sequence[datetime],
        cancel_event: Optional[threading.Event] = None,
    ) -> List[T]:
        """
        Run ``task`` for each instant on the pool and join.

        Raises:
            CancelledError: ``cancel_event`` was set before all results
                were collected
        """
        futures: List[Future] = []
        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            try:
                for instant in instants:
                    _check_cancelled(cancel_event)
                    futures.append(executor.submit(task, instant))

                results = []
                for future in futures:
                    _check_cancelled(cancel_event)
                    results.append(future.result())
                return results
            except CancelledError:
                for future in futures:
                    future.cancel()
                logger.info(f"Cancelled after submitting {len(futures)} of {len(instants)} tasks")
                raise


def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise CancelledError("Computation cancelled by caller")


def _coordinate(coordinate: GeoCoordinate) -> GeoCoordinate:
    if not isinstance(coordinate, GeoCoordinate):
        raise ValueError(f"coordinate must be a GeoCoordinate, got {type(coordinate).__name__}")
    return coordinate


def _nearest_snapshot(snapshots: Sequence[WeatherSnapshot], instant: datetime) -> Optional[WeatherSnapshot]:
    """Snapshot closest to ``instant`` within MAX_WEATHER_GAP (sorted input)."""
    if not snapshots:
        return None
    times = [s.time for s in snapshots]
    i = bisect_left(times, instant)
    candidates = [snapshots[j] for j in (i - 1, i) if 0 <= j < len(snapshots)]
    best = min(candidates, key=lambda s: abs(s.time - instant))
    return best if abs(best.time - instant) <= MAX_WEATHER_GAP else None


# Singleton instance
_light_engine: Optional[LightEngine] = None


def get_light_engine() -> LightEngine:
    """
    Get or create the LightEngine singleton.

    Returns:
        LightEngine: Singleton instance
    """
    global _light_engine
    if _light_engine is None:
        _light_engine = LightEngine()
    return _light_engine

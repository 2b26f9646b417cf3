"""
Lightcast Physics Package.

This package contains the astronomical calculations:
- Sun and moon topocentric positions
- Twilight, golden hour and blue hour events
- Moon phase, brightness and rise/set
- Shadow geometry and sun path sampling
"""

from .ephemeris import EphemerisCalculator, julian_day
from .twilight import TwilightResolver
from .moon import MoonPhaseCalculator
from .shadow import ShadowProjector, ShadowProgression, TERRAIN_FACTORS
from .sun_path import SunPath, SunPathSampler
from .timegrid import TimeGrid

__all__ = [
    "EphemerisCalculator",
    "julian_day",
    "TwilightResolver",
    "MoonPhaseCalculator",
    "ShadowProjector",
    "ShadowProgression",
    "TERRAIN_FACTORS",
    "SunPath",
    "SunPathSampler",
    "TimeGrid",
]

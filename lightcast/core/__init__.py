"""
Lightcast Core Package.

Light modelling, exposure prediction and the engine facade that ties the
physics components together.
"""

from .light_quality import LightQualityModel
from .exposure import ExposurePredictor, solve_triangle, triangle_ev100
from .engine import LightEngine, get_light_engine

__all__ = [
    "LightQualityModel",
    "ExposurePredictor",
    "solve_triangle",
    "triangle_ev100",
    "LightEngine",
    "get_light_engine",
]

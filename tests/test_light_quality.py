"""
Tests for the light quality model.

Covers:
1. Classification bands by sun elevation
2. Sky condition effects (cloud, haze, visibility)
3. Colour temperature, softness and directionality curves
4. Input validation
"""

import pytest
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from lightcast.core import LightQualityModel
from lightcast.core.light_quality import interpolate
from lightcast.models import LightQuality, ShadowIntensity


@pytest.fixture
def model():
    return LightQualityModel()


class TestClassification:
    """Qualitative light tags."""

    @pytest.mark.parametrize("elevation,expected", [
        (-30.0, LightQuality.NIGHT),
        (-6.5, LightQuality.NIGHT),
        (-5.0, LightQuality.BLUE_HOUR),
        (-2.0, LightQuality.GOLDEN_HOUR),
        (2.0, LightQuality.GOLDEN_HOUR),
        (5.9, LightQuality.GOLDEN_HOUR),
        (15.0, LightQuality.DIRECT),
        (45.0, LightQuality.HARSH),
        (80.0, LightQuality.HARSH),
    ])
    def test_clear_sky_bands(self, model, elevation, expected):
        """Under a clear sky the tag follows the elevation bands."""
        assert model.evaluate(elevation).quality == expected

    def test_overcast(self, model):
        """Heavy cloud with the sun up is overcast."""
        assert model.evaluate(30.0, cloud_cover_pct=90.0).quality == LightQuality.OVERCAST

    def test_overcast_does_not_hide_blue_hour(self, model):
        """Blue hour and night are tagged by elevation regardless of cloud."""
        assert model.evaluate(-5.0, cloud_cover_pct=100.0).quality == LightQuality.BLUE_HOUR
        assert model.evaluate(-20.0, cloud_cover_pct=100.0).quality == LightQuality.NIGHT

    def test_dramatic_low_sun_with_broken_cloud(self, model):
        """Broken cloud at golden-hour elevations is dramatic."""
        assert model.evaluate(3.0, cloud_cover_pct=50.0).quality == LightQuality.DRAMATIC

    def test_flat_in_fog(self, model):
        """Poor visibility flattens daylight."""
        assert model.evaluate(30.0, cloud_cover_pct=20.0, visibility_km=1.0).quality == LightQuality.FLAT

    def test_soft_with_moderate_cloud(self, model):
        """Moderate cloud with a mid-height sun gives soft light."""
        light = model.evaluate(20.0, cloud_cover_pct=60.0)
        assert light.quality == LightQuality.SOFT
        assert light.softness >= 0.65

    def test_suitable_subjects(self, model):
        """Each tag suggests subjects."""
        light = model.evaluate(2.0)
        assert "landscape" in light.suitable_for
        assert "astrophotography" in model.evaluate(-30.0).suitable_for


class TestCurves:
    """Numeric characteristics."""

    def test_golden_hour_values(self, model):
        """At 2° under a clear sky the light is warm and strongly directional."""
        light = model.evaluate(2.0)
        assert 2900 < light.color_temperature_k < 3000, light.color_temperature_k
        assert light.directionality == pytest.approx(0.9833, abs=1e-3)

    def test_warmer_near_horizon(self, model):
        """Colour temperature rises with the sun."""
        temps = [model.evaluate(e).color_temperature_k for e in (0, 6, 15, 30, 60)]
        assert temps == sorted(temps)

    def test_blue_twilight(self, model):
        """Below -4° the sky light is blue."""
        assert model.evaluate(-5.0).color_temperature_k == 9000.0

    def test_cloud_moves_toward_overcast_kelvin(self, model):
        """Full cloud pulls colour temperature toward 6500 K."""
        clear = model.evaluate(30.0).color_temperature_k
        cloudy = model.evaluate(30.0, cloud_cover_pct=100.0).color_temperature_k
        assert clear < cloudy < 6500.0

    def test_no_shadows_with_sun_down(self, model):
        """With the sun down there are no shadows and no direction."""
        light = model.evaluate(-3.0)
        assert light.shadow_harshness == ShadowIntensity.NONE
        assert light.directionality == 0.0
        assert light.softness == 1.0

    def test_high_clear_sun_is_hard(self, model):
        """Clear midday light casts hard shadows."""
        light = model.evaluate(60.0)
        assert light.shadow_harshness >= ShadowIntensity.HARD
        assert light.shadow_harshness.label in ("hard", "very_hard")

    def test_cloud_softens(self, model):
        """Cloud increases softness and reduces directionality."""
        clear = model.evaluate(30.0)
        cloudy = model.evaluate(30.0, cloud_cover_pct=70.0)
        assert cloudy.softness > clear.softness
        assert cloudy.directionality < clear.directionality

    def test_humidity_and_haze_soften(self, model):
        """High humidity and low visibility add softness."""
        base = model.evaluate(30.0).softness
        assert model.evaluate(30.0, humidity_pct=95.0).softness > base
        assert model.evaluate(30.0, visibility_km=4.0).softness > base

    def test_values_bounded(self, model):
        """Softness and directionality stay in [0, 1]."""
        for elevation in range(-90, 91, 5):
            for cloud in (0.0, 50.0, 100.0):
                light = model.evaluate(float(elevation), cloud, humidity_pct=100.0, visibility_km=0.0)
                assert 0.0 <= light.softness <= 1.0
                assert 0.0 <= light.directionality <= 1.0


class TestValidation:
    """Out-of-range inputs."""

    @pytest.mark.parametrize("kwargs", [
        {"sun_elevation": 91.0},
        {"sun_elevation": float("nan")},
        {"sun_elevation": 10.0, "cloud_cover_pct": 120.0},
        {"sun_elevation": 10.0, "cloud_cover_pct": -1.0},
        {"sun_elevation": 10.0, "humidity_pct": 101.0},
        {"sun_elevation": 10.0, "visibility_km": -0.5},
    ])
    def test_rejects_out_of_range(self, model, kwargs):
        """Physical ranges are enforced with ValueError."""
        with pytest.raises(ValueError):
            model.evaluate(**kwargs)


class TestInterpolate:
    """Breakpoint table lookup."""

    def test_clamps_and_interpolates(self):
        """Values are clamped at the ends and linear in between."""
        table = ((0.0, 0.0), (10.0, 100.0))
        assert interpolate(table, -5.0) == 0.0
        assert interpolate(table, 15.0) == 100.0
        assert interpolate(table, 2.5) == pytest.approx(25.0)

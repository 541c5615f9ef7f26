import pytest

from yield_backend.services.fallback_estimator import (
    estimate_fallback_yield,
    rainfall_factor,
    temperature_factor,
)


def test_sandy_rice_with_monsoon_rainfall():
    estimate = estimate_fallback_yield("RICE", 2.5, 29, 939, "Sandy")

    # temperature 29 -> 0.92, rainfall 939 -> floored at 0.6, Sandy -> 0.85
    tons_per_ha = 3.8 * max(0.7, 1 - abs(29 - 25) * 0.02) * max(0.6, 1 - abs(939 - 80) * 0.003) * 0.85
    assert estimate.predicted_yield_kg == round(tons_per_ha * 1000 * 2.5, 2)
    assert estimate.predicted_yield_kg == pytest.approx(4457.4, abs=0.01)
    assert estimate.rainfall_factor == 0.6
    assert estimate.confidence == 0.65


def test_ideal_conditions_give_base_yield_times_soil():
    estimate = estimate_fallback_yield("WHEAT", 1, 25, 80, "Alluvial")

    assert estimate.temperature_factor == 1
    assert estimate.rainfall_factor == 1
    assert estimate.yield_per_hectare_kg == pytest.approx(3.2 * 1.15 * 1000)


def test_factor_floors():
    assert temperature_factor(-40) == 0.7
    assert temperature_factor(60) == 0.7
    assert rainfall_factor(5000) == 0.6
    assert rainfall_factor(0) == pytest.approx(0.76)


def test_missing_weather_values_skip_their_factor():
    estimate = estimate_fallback_yield("MAIZE", 1, None, None, "Loamy")

    assert estimate.yield_per_hectare_kg == pytest.approx(4500)


def test_zero_degrees_is_a_real_temperature():
    assert temperature_factor(0) == 0.7


@pytest.mark.parametrize("crop, base", [
    ("RICE", 3.8), ("WHEAT", 3.2), ("MAIZE", 4.5), ("SUGARCANE", 75.0), ("GROUNDNUT", 1.8), ("BARLEY", 3.0),
])
def test_base_yields(crop, base):
    assert estimate_fallback_yield(crop, 1, 25, 80, "Loamy").yield_per_hectare_kg == pytest.approx(base * 1000)


@pytest.mark.parametrize("soil, multiplier", [
    ("Alluvial", 1.15), ("Black", 1.10), ("Loamy", 1.0), ("Red-Yellow", 0.98),
    ("Red", 0.95), ("Sandy", 0.85), ("Laterite", 1.0),
])
def test_soil_multipliers(soil, multiplier):
    assert estimate_fallback_yield("RICE", 1, 25, 80, soil).soil_factor == multiplier


def test_repeated_calls_are_identical():
    args = ("GROUNDNUT", 3.7, 33.2, 412.0, "Red")

    results = {estimate_fallback_yield(*args) for _ in range(5)}

    assert len(results) == 1


@pytest.mark.parametrize("land_area", [0.1, 1, 2.5, 3.333, 120])
def test_total_is_per_hectare_times_area(land_area):
    estimate = estimate_fallback_yield("SUGARCANE", land_area, 31, 120, "Black")

    assert estimate.predicted_yield_kg == round(estimate.yield_per_hectare_kg * land_area, 2)

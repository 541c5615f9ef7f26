from typing import NamedTuple, Optional

from yield_backend.services.reference_data import (
    BASE_YIELD_TONS_PER_HA,
    DEFAULT_BASE_YIELD_TONS_PER_HA,
    DEFAULT_SOIL_MULTIPLIER,
    SOIL_FERTILITY_MULTIPLIER,
)

FALLBACK_CONFIDENCE = 0.65
FALLBACK_MODEL_VERSION = "fallback_v1.0"

OPTIMAL_TEMPERATURE_C = 25.0
OPTIMAL_RAINFALL_MM = 80.0


class FallbackEstimate(NamedTuple):
    yield_per_hectare_kg: float
    predicted_yield_kg: float
    confidence: float
    temperature_factor: float
    rainfall_factor: float
    soil_factor: float


def temperature_factor(temperature: Optional[float]) -> float:
    if temperature is None:
        return 1.0
    return max(0.7, 1 - abs(temperature - OPTIMAL_TEMPERATURE_C) * 0.02)


def rainfall_factor(rainfall: Optional[float]) -> float:
    # Saturates at 0.6 for most monsoon totals
    if rainfall is None:
        return 1.0
    return max(0.6, 1 - abs(rainfall - OPTIMAL_RAINFALL_MM) * 0.003)


def estimate_fallback_yield(
    crop: str,
    land_area: float,
    temperature: Optional[float],
    rainfall: Optional[float],
    soil_type: str,
) -> FallbackEstimate:
    """
    Analytical yield estimate used when the external model is unavailable.

    base t/ha (per crop) x temperature factor x rainfall factor x soil multiplier,
    scaled to kg over the whole land area. Deterministic for identical inputs.
    """
    temp_f = temperature_factor(temperature)
    rain_f = rainfall_factor(rainfall)
    soil_f = SOIL_FERTILITY_MULTIPLIER.get(soil_type, DEFAULT_SOIL_MULTIPLIER)

    base = BASE_YIELD_TONS_PER_HA.get(crop, DEFAULT_BASE_YIELD_TONS_PER_HA)
    tons_per_ha = base * temp_f * rain_f * soil_f

    yield_per_ha_kg = tons_per_ha * 1000
    return FallbackEstimate(
        yield_per_hectare_kg=yield_per_ha_kg,
        predicted_yield_kg=round(yield_per_ha_kg * land_area, 2),
        confidence=FALLBACK_CONFIDENCE,
        temperature_factor=temp_f,
        rainfall_factor=rain_f,
        soil_factor=soil_f,
    )

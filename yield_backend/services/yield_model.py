import httpx
import logging
import math
import os
import time
from datetime import datetime
from typing import Any, Dict, List, NamedTuple, Optional
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.85
MIN_CONFIDENCE = 0.5
MAX_CONFIDENCE = 0.95


class ModelOutcome(NamedTuple):
    used: bool
    yield_per_hectare_kg: Optional[float] = None
    confidence: Optional[float] = None
    response: Optional[Dict[str, Any]] = None
    error_details: Optional[Dict[str, Any]] = None
    duration_ms: Optional[int] = None


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _format_number(value: float) -> str:
    value = float(value)
    return str(int(value)) if value.is_integer() else str(value)


def build_model_input(
    crop: str,
    state: str,
    district: str,
    land_area: float,
    temperature: Optional[float],
    rainfall: Optional[float],
    soil_type: str,
    planting_date: datetime,
) -> Dict[str, str]:
    """Exact payload the yield model expects; every value is a string"""
    return {
        "Year": str(planting_date.year),
        "State": state,
        "District": district.lower(),
        "Area_1000_ha": _format_number(land_area),
        "Crop": crop,
        "Avg_Rainfall_mm": str(_round_half_up(rainfall if rainfall is not None else 50)),
        "Avg_Temp_C": str(_round_half_up(temperature if temperature is not None else 25)),
        "Soil_Type": soil_type,
    }


def confidence_from_interval(interval: Optional[List[float]]) -> float:
    """Narrower 95% interval relative to its mean -> higher confidence, clamped to [0.5, 0.95]"""
    if not isinstance(interval, (list, tuple)) or len(interval) != 2:
        return DEFAULT_CONFIDENCE
    try:
        lower, upper = float(interval[0]), float(interval[1])
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE

    mean = (upper + lower) / 2
    if mean <= 0:
        return DEFAULT_CONFIDENCE
    return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, 1 - (upper - lower) / mean / 2))


class YieldModelClient:
    """Single-shot client for the external crop yield model"""

    def __init__(
        self,
        api_url: Optional[str] = None,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url if api_url is not None else os.getenv("ML_MODEL_API_URL", "")
        self.timeout = timeout
        self.transport = transport

        if not self.api_url:
            logger.warning("ML_MODEL_API_URL not set. Predictions will use the fallback estimator.")

    async def predict(self, model_input: Dict[str, str]) -> ModelOutcome:
        """
        POST the payload once. Never raises: every failure is returned as an
        unused outcome carrying the error details.
        """
        started = time.monotonic()
        response = None
        try:
            if not self.api_url:
                raise ValueError("ML_MODEL_API_URL not configured")

            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(
                    self.api_url,
                    json=model_input,
                    headers={"Content-Type": "application/json", "Accept": "application/json"},
                )
                response.raise_for_status()
                data = response.json()

            duration_ms = int((time.monotonic() - started) * 1000)
            logger.info(f"✅ ML API call completed in {duration_ms}ms")

            yield_kg_ha = data.get("yield_kg_ha") if isinstance(data, dict) else None
            if yield_kg_ha is None:
                raise ValueError("ML model does not support this crop or returned an invalid response.")

            return ModelOutcome(
                used=True,
                yield_per_hectare_kg=float(yield_kg_ha),
                confidence=confidence_from_interval(data.get("confidence_interval_95")),
                response=data,
                duration_ms=duration_ms,
            )

        except Exception as e:
            logger.error(f"❌ ML API call failed: {str(e)}")
            error_details = {"error_message": str(e), "api_url": self.api_url or None}
            body = None
            if response is not None:
                body = self._response_body(response)
                error_details["status_code"] = response.status_code
                error_details["api_response"] = body
            return ModelOutcome(
                used=False,
                response=body if isinstance(body, dict) else None,
                error_details=error_details,
                duration_ms=int((time.monotonic() - started) * 1000) if response is not None else None,
            )

    @staticmethod
    def _response_body(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError:
            return response.text


# Singleton instance
yield_model_client = YieldModelClient()

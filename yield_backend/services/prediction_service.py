import logging
import time
import uuid
from datetime import datetime
from typing import Dict, List, Optional

from bson import ObjectId

from yield_backend.models.prediction import (
    Coordinates,
    ExternalData,
    Location,
    PredictionRequest,
    PredictionResponse,
    PredictionSummary,
    SoilProfile,
    WeatherObservation,
    YieldPrediction,
)
from yield_backend.services.fallback_estimator import FALLBACK_MODEL_VERSION, estimate_fallback_yield
from yield_backend.services.normalizer import normalize_inputs
from yield_backend.services.soil_service import SoilService, soil_service
from yield_backend.services.weather_service import WeatherService, weather_service
from yield_backend.services.yield_model import YieldModelClient, build_model_input, yield_model_client

logger = logging.getLogger(__name__)


class PredictionValidationError(Exception):
    """Required request fields are missing; carries every problem found"""

    def __init__(self, errors: List[str], request_id: str):
        super().__init__("Input validation failed")
        self.errors = errors
        self.request_id = request_id


class PredictionProcessingError(Exception):
    """The prediction could not be completed or stored"""

    def __init__(self, message: str, request_id: str):
        super().__init__(message)
        self.request_id = request_id


def new_request_id() -> str:
    return f"req_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def confidence_level(confidence: float) -> str:
    if confidence > 0.8:
        return "High"
    if confidence > 0.6:
        return "Medium"
    return "Low"


def validate_request(request: PredictionRequest) -> List[str]:
    errors = []
    if not request.crop_type or not request.crop_type.strip():
        errors.append("crop_type is required")
    if request.land_area is None:
        errors.append("land_area is required")
    elif request.land_area <= 0:
        errors.append("land_area must be a positive number")
    location = request.location
    if (
        location is None
        or not (location.state or "").strip()
        or not (location.district or "").strip()
    ):
        errors.append("location with state and district is required")
    return errors


def serialize_prediction(doc: Dict) -> Dict:
    """Mongo document -> API payload"""
    doc = dict(doc)
    doc["id"] = str(doc.pop("_id"))
    return doc


class PredictionService:
    """
    Runs a yield prediction end to end:
    weather -> soil -> normalization -> external model (or fallback) -> storage.
    """

    def __init__(
        self,
        weather: WeatherService = weather_service,
        soil: SoilService = soil_service,
        model: YieldModelClient = yield_model_client,
    ):
        self.weather = weather
        self.soil = soil
        self.model = model

    async def create_prediction(self, db, request: PredictionRequest, user_id: str) -> PredictionResponse:
        request_id = new_request_id()
        started = time.monotonic()
        started_at = datetime.utcnow()
        logger.info(f"🎯 [{request_id}] New prediction request from {user_id}")

        errors = validate_request(request)
        if errors:
            logger.warning(f"❌ [{request_id}] Validation errors: {errors}")
            raise PredictionValidationError(errors, request_id)

        try:
            location = request.location
            state = location.state.strip()
            district = location.district.strip()
            planting_date = request.planting_date or datetime.utcnow()
            fetch = request.fetch_external_data

            # Weather and soil
            if fetch:
                logger.info(f"📡 [{request_id}] Fetching external data for {district}, {state}")
                weather = await self.weather.get_weather(state, district, planting_date)
                if weather.data_source == "api" or location.coordinates is None:
                    coordinates = weather.coordinates
                else:
                    coordinates = location.coordinates
                soil = self.soil.resolve(state, district, coordinates)
            else:
                logger.info(f"👤 [{request_id}] Using user-provided data")
                coordinates = location.coordinates or Coordinates()
                weather = self._user_weather(request, coordinates)
                soil = self._user_soil(request.soil_type)

            # Normalization
            normalized = normalize_inputs(request.crop_type, state, soil.soil_type)
            ml_input = build_model_input(
                crop=normalized.crop,
                state=normalized.state,
                district=district,
                land_area=request.land_area,
                temperature=weather.temperature,
                rainfall=weather.rainfall,
                soil_type=normalized.soil_type,
                planting_date=planting_date,
            )
            logger.info(f"🤖 [{request_id}] ML input payload: {ml_input}")

            # External model, then fallback
            outcome = await self.model.predict(ml_input)
            fallback = None
            if outcome.used:
                yield_per_ha = outcome.yield_per_hectare_kg
                predicted_yield = round(yield_per_ha * request.land_area, 2)
                confidence = outcome.confidence
                logger.info(f"🎯 [{request_id}] ML prediction: {predicted_yield} kg")
            else:
                logger.warning(f"⚠️ [{request_id}] Using fallback prediction calculation")
                fallback = estimate_fallback_yield(
                    normalized.crop,
                    request.land_area,
                    weather.temperature,
                    weather.rainfall,
                    normalized.soil_type,
                )
                yield_per_ha = fallback.yield_per_hectare_kg
                predicted_yield = fallback.predicted_yield_kg
                confidence = fallback.confidence
                logger.info(f"🔄 [{request_id}] Fallback calculation: {predicted_yield} kg")

            # Assemble and persist
            record = YieldPrediction(
                user_id=user_id,
                crop_type=request.crop_type,
                soil_type=soil.soil_type,
                soil_profile=soil.model_dump(exclude={"raw"}),
                land_area=request.land_area,
                location=Location(state=state, district=district, coordinates=coordinates),
                planting_date=planting_date,
                weather={
                    **weather.model_dump(exclude={"raw"}),
                    "metadata": {
                        "requested_location": f"{district}, {state}",
                        "requested_date": planting_date,
                        "api_call_success": weather.data_source == "api",
                    },
                },
                external_data=ExternalData(
                    ml_input=ml_input,
                    ml_response=outcome.response,
                    error_details=outcome.error_details,
                    weather_raw=weather.raw if fetch else None,
                    soil_lookup=soil.raw,
                    processing_metadata={
                        "request_id": request_id,
                        "started_at": started_at,
                        "ml_api_call_duration_ms": outcome.duration_ms,
                        "data_validations": {
                            "original_crop": request.crop_type,
                            "crop_candidate": normalized.crop_candidate,
                            "normalized_crop": normalized.crop,
                            "original_state": state,
                            "normalized_state": normalized.state,
                            "original_soil_type": soil.soil_type,
                            "normalized_soil_type": normalized.soil_type,
                        },
                    },
                ),
                predicted_yield_kg=predicted_yield,
                yield_per_hectare_kg=yield_per_ha,
                confidence_score=confidence,
                used_external_model=outcome.used,
                fetched_from_external_apis=fetch,
                fallback_estimate=fallback._asdict() if fallback else None,
            )

            result = await db.predictions.insert_one(record.model_dump())
            prediction_id = str(result.inserted_id)
            logger.info(f"✅ [{request_id}] Prediction saved with ID: {prediction_id}")

            ml_response = outcome.response if outcome.used else None
            insights = (ml_response or {}).get("recommendations")
            if not isinstance(insights, list) or not insights:
                insights = self._default_insights(record)

            return PredictionResponse(
                prediction_id=prediction_id,
                prediction=PredictionSummary(
                    yield_kg=predicted_yield,
                    yield_kg_per_hectare=round(yield_per_ha, 2),
                    confidence_score=confidence,
                    confidence_percent=round(confidence * 100),
                    confidence_level=confidence_level(confidence),
                ),
                used_external_model=outcome.used,
                fetched_from_external_apis=fetch,
                soil_type=soil.soil_type,
                data_sources={"soil": soil.data_source, "weather": weather.data_source},
                normalized_inputs={
                    "crop": normalized.crop,
                    "state": normalized.state,
                    "soil_type": normalized.soil_type,
                },
                ml_model_version=str((ml_response or {}).get("model_version") or FALLBACK_MODEL_VERSION),
                insights=[str(item) for item in insights],
                request_id=request_id,
                processing_time_ms=int((time.monotonic() - started) * 1000),
                created_at=record.created_at,
            )

        except Exception as e:
            logger.error(f"❌ [{request_id}] Prediction processing failed: {str(e)}", exc_info=True)
            raise PredictionProcessingError(str(e), request_id) from e

    async def get_user_predictions(self, db, user_id: str) -> List[Dict]:
        cursor = db.predictions.find({"user_id": user_id}).sort("created_at", -1)
        docs = await cursor.to_list(length=None)
        return [serialize_prediction(doc) for doc in docs]

    async def get_prediction(self, db, prediction_id: str) -> Optional[Dict]:
        if not ObjectId.is_valid(prediction_id):
            return None
        doc = await db.predictions.find_one({"_id": ObjectId(prediction_id)})
        return serialize_prediction(doc) if doc else None

    def lookup_soil(self, state: str, district: str, coordinates: Optional[Coordinates] = None) -> SoilProfile:
        return self.soil.resolve(state, district, coordinates)

    @staticmethod
    def _user_weather(request: PredictionRequest, coordinates: Coordinates) -> WeatherObservation:
        supplied = request.weather
        return WeatherObservation(
            temperature=supplied.temperature if supplied else None,
            rainfall=supplied.rainfall if supplied else None,
            humidity=supplied.humidity if supplied else None,
            coordinates=coordinates,
            data_source="user",
        )

    @staticmethod
    def _user_soil(soil_type: Optional[str]) -> SoilProfile:
        soil_type = (soil_type or "").strip()
        if soil_type:
            return SoilProfile(soil_type=soil_type, detailed_type=soil_type, data_source="user")
        return SoilProfile(soil_type="Unknown", detailed_type="Unknown", data_source="default")

    @staticmethod
    def _default_insights(record: YieldPrediction) -> List[str]:
        soil = record.soil_profile
        fertility = soil.properties.fertility if soil.properties else "unknown"
        weather = record.weather
        temperature = weather.get("temperature")
        rainfall = weather.get("rainfall")
        return [
            f"Expected yield: {record.predicted_yield_kg:.2f} kg",
            f"Yield per hectare: {record.yield_per_hectare_kg:.2f} kg/ha",
            f"Soil analysis: {soil.soil_type} soil with {fertility} fertility",
            f"Weather conditions: {temperature if temperature is not None else 'N/A'}°C, "
            f"{rainfall if rainfall is not None else 'N/A'}mm rainfall",
        ]


# Singleton instance
prediction_service = PredictionService()

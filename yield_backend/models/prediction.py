from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional
from datetime import datetime


class Coordinates(BaseModel):
    lat: Optional[float] = None
    lon: Optional[float] = None

    model_config = ConfigDict(extra="ignore")


class Location(BaseModel):
    state: Optional[str] = None
    district: Optional[str] = None
    coordinates: Optional[Coordinates] = None

    model_config = ConfigDict(extra="ignore")


class WeatherInput(BaseModel):
    """User-supplied weather when external fetching is disabled"""
    temperature: Optional[float] = None  # °C
    rainfall: Optional[float] = None  # mm
    humidity: Optional[float] = None  # %

    model_config = ConfigDict(extra="ignore")


class PredictionRequest(BaseModel):
    """
    Incoming prediction request.
    Required fields are checked by the prediction service so that every
    missing field can be reported at once.
    """
    crop_type: Optional[str] = None
    land_area: Optional[float] = None  # hectares
    location: Optional[Location] = None
    planting_date: Optional[datetime] = None
    fetch_external_data: bool = False

    # Only used when fetch_external_data is False
    soil_type: Optional[str] = None
    weather: Optional[WeatherInput] = None

    model_config = ConfigDict(extra="ignore")


class WeatherObservation(BaseModel):
    temperature: Optional[float] = None
    rainfall: Optional[float] = None
    humidity: Optional[float] = None
    coordinates: Coordinates = Field(default_factory=Coordinates)
    data_source: str  # api | user | fallback
    raw: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="ignore")


class SoilComposition(BaseModel):
    sand: float
    silt: float
    clay: float


class SoilProperties(BaseModel):
    ph: float
    nitrogen: float
    organic_carbon: float
    cation_exchange_capacity: float
    fertility: str


class SoilAnalysis(BaseModel):
    drainage: str
    water_holding: str
    nutrient_retention: str


class SoilProfile(BaseModel):
    """Soil description embedded in a prediction"""
    soil_type: str
    detailed_type: str
    composition: Optional[SoilComposition] = None
    properties: Optional[SoilProperties] = None
    analysis: Optional[SoilAnalysis] = None
    recommendations: List[str] = []
    suitable_crops: List[str] = []
    coordinates: Optional[Coordinates] = None
    location: Optional[str] = None
    data_source: str  # local_database | state_default | fallback | user | default
    raw: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="ignore")


class ExternalData(BaseModel):
    """Provenance of a prediction: what was sent, what came back, where data came from"""
    ml_input: Dict[str, str]
    ml_response: Optional[Dict[str, Any]] = None
    error_details: Optional[Dict[str, Any]] = None
    weather_raw: Optional[Dict[str, Any]] = None
    soil_lookup: Optional[Dict[str, Any]] = None
    processing_metadata: Dict[str, Any] = {}


class YieldPrediction(BaseModel):
    """Stored prediction document"""
    user_id: str
    crop_type: str
    soil_type: str
    soil_profile: SoilProfile
    land_area: float
    location: Location
    planting_date: datetime
    weather: Dict[str, Any]
    external_data: ExternalData
    predicted_yield_kg: float  # total yield for the whole land area
    yield_per_hectare_kg: float
    confidence_score: float = Field(ge=0, le=1)
    used_external_model: bool
    fetched_from_external_apis: bool
    fallback_estimate: Optional[Dict[str, Any]] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    model_config = ConfigDict(extra="ignore")


class PredictionSummary(BaseModel):
    yield_kg: float
    yield_kg_per_hectare: float
    confidence_score: float = Field(ge=0, le=1)
    confidence_percent: int
    confidence_level: str  # High | Medium | Low


class PredictionResponse(BaseModel):
    """Response returned after a prediction is created"""
    success: bool = True
    prediction_id: str
    prediction: PredictionSummary
    used_external_model: bool
    fetched_from_external_apis: bool
    soil_type: str
    data_sources: Dict[str, str]
    normalized_inputs: Dict[str, str]
    ml_model_version: str
    insights: List[str] = []
    request_id: str
    processing_time_ms: int
    created_at: datetime


class SoilLookupRequest(BaseModel):
    state: Optional[str] = None
    district: Optional[str] = None
    coordinates: Optional[Coordinates] = None

    model_config = ConfigDict(extra="ignore")

from typing import Mapping, Optional, Tuple
import logging

from yield_backend.models.prediction import (
    Coordinates,
    SoilAnalysis,
    SoilComposition,
    SoilProfile,
    SoilProperties,
)
from yield_backend.services.reference_data import (
    GLOBAL_DEFAULT_SOIL,
    STATE_DEFAULT_SOIL,
    ReferenceData,
    reference_data,
)

logger = logging.getLogger(__name__)

# Used when the lookup itself fails, independent of the loaded tables
LOAMY_FALLBACK = {
    "composition": {"sand": 40, "silt": 40, "clay": 20},
    "properties": {
        "pH": 6.8,
        "nitrogen": 0.07,
        "organicCarbon": 0.75,
        "cationExchangeCapacity": 15,
        "fertility": "Medium",
    },
    "analysis": {"drainage": "Good", "waterHolding": "Medium", "nutrientRetention": "Medium"},
    "recommendations": [
        "Follow balanced NPK fertilisation based on a soil test",
        "Rotate cereals with legumes to sustain fertility",
    ],
    "crops": {"suitable": ["Wheat", "Rice", "Maize", "Vegetables", "Pulses"]},
}


def match_district(districts: Mapping[str, Tuple[str, ...]], district: str) -> Optional[str]:
    """
    Find the table key for a district name.
    Exact key first, then case-insensitive equality or substring containment
    in either direction ("24 Parganas" matches "North 24 Parganas").
    """
    if not district:
        return None
    if district in districts:
        return district

    wanted = district.lower()
    for key in districts:
        candidate = key.lower()
        if candidate == wanted or wanted in candidate or candidate in wanted:
            return key
    return None


def _build_profile(soil_type: str, record: Mapping, **extra) -> SoilProfile:
    props = record["properties"]
    analysis = record["analysis"]
    return SoilProfile(
        soil_type=soil_type,
        detailed_type=soil_type,
        composition=SoilComposition(**record["composition"]),
        properties=SoilProperties(
            ph=props["pH"],
            nitrogen=props["nitrogen"],
            organic_carbon=props["organicCarbon"],
            cation_exchange_capacity=props["cationExchangeCapacity"],
            fertility=props["fertility"],
        ),
        analysis=SoilAnalysis(
            drainage=analysis["drainage"],
            water_holding=analysis["waterHolding"],
            nutrient_retention=analysis["nutrientRetention"],
        ),
        suitable_crops=list(record["crops"]["suitable"]),
        **extra,
    )


class SoilService:
    """Soil type lookup from the local state/district table"""

    def __init__(self, data: ReferenceData = reference_data):
        self.data = data

    def find_soil_type(self, state: str, district: str) -> Tuple[str, bool, Optional[str]]:
        """Returns (soil_type, found_in_database, matched_district)"""
        # Exact match
        districts = self.data.districts_for(state)
        if district in districts:
            return districts[district][0], True, district

        # Case-insensitive state, fuzzy district
        for state_key, state_districts in self.data.state_district_soil.items():
            if state_key.lower() != state.lower():
                continue
            matched = match_district(state_districts, district)
            if matched:
                logger.info(f"✅ Fuzzy match found: {matched} -> {state_districts[matched][0]}")
                return state_districts[matched][0], True, matched

        soil_type = STATE_DEFAULT_SOIL.get(state, GLOBAL_DEFAULT_SOIL)
        logger.info(f"📍 District {district} not found, using state default for {state}: {soil_type}")
        return soil_type, False, None

    def resolve(self, state: str, district: str, coordinates: Optional[Coordinates] = None) -> SoilProfile:
        """
        Full soil profile for a location. Never raises: lookup errors
        return the Loamy fallback profile tagged "fallback".
        """
        try:
            logger.info(f"🌱 Fetching soil data for {district}, {state}")
            state = state.strip()
            district = district.strip()

            soil_type, found, matched = self.find_soil_type(state, district)
            record = self.data.soil_record(soil_type) or self.data.soil_record(GLOBAL_DEFAULT_SOIL)

            profile = _build_profile(
                soil_type,
                record,
                recommendations=list(record["recommendations"]),
                coordinates=coordinates or Coordinates(),
                location=f"{district}, {state}",
                data_source="local_database" if found else "state_default",
                raw={
                    "searched_state": state,
                    "searched_district": district,
                    "matched_district": matched,
                    "found_in_database": found,
                    "soil_type_source": "district_specific" if found else "state_default",
                },
            )
            logger.info(f"🌱 Soil analysis complete: {soil_type} (source: {profile.data_source})")
            return profile

        except Exception as e:
            logger.error(f"Local soil data lookup error: {str(e)}")
            return _build_profile(
                GLOBAL_DEFAULT_SOIL,
                LOAMY_FALLBACK,
                recommendations=[
                    "Unable to fetch soil data from local database",
                    *LOAMY_FALLBACK["recommendations"],
                ],
                coordinates=coordinates or Coordinates(),
                location=f"{district}, {state}",
                data_source="fallback",
                raw={"error": str(e)},
            )


# Singleton instance
soil_service = SoilService()

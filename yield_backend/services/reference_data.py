import json
import logging
from pathlib import Path
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parent.parent / "data"

# Closed vocabularies accepted by the external yield model
VALID_CROPS = frozenset(["RICE", "GROUNDNUT", "WHEAT", "MAIZE", "SUGARCANE"])
VALID_STATES = frozenset([
    "Chhattisgarh", "Madhya Pradesh", "West Bengal", "Bihar",
    "Jharkhand", "Orissa", "Gujarat", "Punjab",
])
VALID_SOIL_TYPES = frozenset(["Sandy", "Alluvial", "Black", "Red-Yellow", "Red", "Loamy"])

DEFAULT_CROP = "RICE"
DEFAULT_STATE = "Gujarat"
DEFAULT_SOIL_TYPE = "Sandy"

CROP_SYNONYMS = MappingProxyType({
    "rice": "RICE",
    "groundnut": "GROUNDNUT",
    "wheat": "WHEAT",
    "maize": "MAIZE",
    "corn": "MAIZE",
    "sugarcane": "SUGARCANE",
})

# Most common soil type per state, used when a district is not in the table
STATE_DEFAULT_SOIL = MappingProxyType({
    "Gujarat": "Sandy",
    "Maharashtra": "Loamy",
    "Madhya Pradesh": "Black",
    "Uttar Pradesh": "Alluvial",
    "West Bengal": "Alluvial",
    "Bihar": "Alluvial",
    "Jharkhand": "Red",
    "Orissa": "Red",
    "Chhattisgarh": "Red-Yellow",
    "Karnataka": "Loamy",
    "Tamil Nadu": "Loamy",
    "Andhra Pradesh": "Loamy",
    "Telangana": "Loamy",
    "Kerala": "Loamy",
    "Punjab": "Loamy",
    "Haryana": "Loamy",
    "Rajasthan": "Loamy",
    "Himachal Pradesh": "Loamy",
    "Uttarakhand": "Loamy",
    "Assam": "Loamy",
})
GLOBAL_DEFAULT_SOIL = "Loamy"

# Fallback estimator constants
BASE_YIELD_TONS_PER_HA = MappingProxyType({
    "RICE": 3.8,
    "WHEAT": 3.2,
    "MAIZE": 4.5,
    "SUGARCANE": 75.0,
    "GROUNDNUT": 1.8,
})
DEFAULT_BASE_YIELD_TONS_PER_HA = 3.0

SOIL_FERTILITY_MULTIPLIER = MappingProxyType({
    "Alluvial": 1.15,
    "Black": 1.10,
    "Loamy": 1.00,
    "Red-Yellow": 0.98,
    "Red": 0.95,
    "Sandy": 0.85,
})
DEFAULT_SOIL_MULTIPLIER = 1.0


def _freeze(value):
    """Recursively turn loaded JSON into read-only mappings and tuples"""
    if isinstance(value, dict):
        return MappingProxyType({k: _freeze(v) for k, v in value.items()})
    if isinstance(value, list):
        return tuple(_freeze(v) for v in value)
    return value


class ReferenceData:
    """Static soil lookup tables, loaded once and never mutated afterwards"""

    def __init__(self, data_dir: Path = DATA_DIR):
        self.data_dir = Path(data_dir)
        self.state_district_soil: Mapping[str, Mapping[str, Tuple[str, ...]]] = _freeze(
            self._load_json("state_district_soil.json")
        )
        soil_doc = self._load_json("soil_properties.json")
        self.soil_properties: Mapping[str, Mapping] = _freeze(soil_doc.get("soilProperties", {}))

        district_count = sum(len(d) for d in self.state_district_soil.values())
        logger.info(
            f"📚 Reference data loaded: {len(self.state_district_soil)} states, "
            f"{district_count} districts, {len(self.soil_properties)} soil types"
        )

    def _load_json(self, filename: str) -> Dict:
        with open(self.data_dir / filename, encoding="utf-8") as fh:
            return json.load(fh)

    def districts_for(self, state: str) -> Mapping[str, Tuple[str, ...]]:
        return self.state_district_soil.get(state, MappingProxyType({}))

    def soil_record(self, soil_type: Optional[str]) -> Optional[Mapping]:
        if soil_type is None:
            return None
        return self.soil_properties.get(soil_type)


# Singleton instance
reference_data = ReferenceData()

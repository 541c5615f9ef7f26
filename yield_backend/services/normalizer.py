from typing import NamedTuple, Optional

from yield_backend.services.reference_data import (
    CROP_SYNONYMS,
    DEFAULT_CROP,
    DEFAULT_SOIL_TYPE,
    DEFAULT_STATE,
    VALID_CROPS,
    VALID_SOIL_TYPES,
    VALID_STATES,
)


class NormalizedInputs(NamedTuple):
    crop: str
    state: str
    soil_type: str
    crop_candidate: Optional[str]  # synonym or uppercased name, before the closed-set check


def normalize_crop_name(crop_type: Optional[str]) -> Optional[str]:
    if not crop_type:
        return None
    name = crop_type.strip()
    return CROP_SYNONYMS.get(name.lower(), name.upper())


def normalize_inputs(crop_type: Optional[str], state: Optional[str], soil_type: Optional[str]) -> NormalizedInputs:
    """
    Map free-text values onto the vocabularies the yield model accepts.
    Anything unrecognized is replaced by the default, never rejected.
    """
    candidate = normalize_crop_name(crop_type)

    return NormalizedInputs(
        crop=candidate if candidate in VALID_CROPS else DEFAULT_CROP,
        state=state if state in VALID_STATES else DEFAULT_STATE,
        soil_type=soil_type if soil_type in VALID_SOIL_TYPES else DEFAULT_SOIL_TYPE,
        crop_candidate=candidate,
    )

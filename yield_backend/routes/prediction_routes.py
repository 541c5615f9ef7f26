from fastapi import APIRouter, HTTPException, Depends, status
from fastapi.responses import JSONResponse, Response
import logging
import os
import traceback

from yield_backend.database import get_database
from yield_backend.auth import require_verified_user
from yield_backend.models.prediction import PredictionRequest, PredictionResponse, SoilLookupRequest
from yield_backend.services.prediction_service import (
    PredictionProcessingError,
    PredictionValidationError,
    prediction_service,
)
from yield_backend.services.report_service import report_generator

router = APIRouter(prefix="/api", tags=["Yield Prediction"])
logger = logging.getLogger(__name__)


def debug_enabled() -> bool:
    return os.getenv("DEBUG", "").lower() in ("1", "true", "yes")


@router.post("/predict", response_model=PredictionResponse, status_code=status.HTTP_201_CREATED)
async def create_prediction(
    request: PredictionRequest,
    db=Depends(get_database),
    current_user: dict = Depends(require_verified_user)
):
    """
    Create a crop yield prediction

    1. Validates required fields
    2. Resolves weather and soil (external fetch or user-supplied)
    3. Calls the external yield model, falling back to the analytical estimate
    4. Stores the prediction with full provenance
    """
    try:
        return await prediction_service.create_prediction(db, request, current_user["uid"])

    except PredictionValidationError as e:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "success": False,
                "error": "Input validation failed",
                "validation_errors": e.errors,
                "request_id": e.request_id
            }
        )
    except PredictionProcessingError as e:
        content = {
            "success": False,
            "error": "Prediction processing failed due to an internal server error.",
            "request_id": e.request_id
        }
        if debug_enabled():
            content["debug"] = {"message": str(e), "stack": traceback.format_exc()}
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


@router.get("/predictions/{user_id}")
async def get_user_predictions(
    user_id: str,
    db=Depends(get_database),
    current_user: dict = Depends(require_verified_user)
):
    """
    Get all predictions of a user, newest first
    """
    if current_user["uid"] != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User not authorized"
        )

    try:
        predictions = await prediction_service.get_user_predictions(db, user_id)
        return {
            "success": True,
            "count": len(predictions),
            "data": predictions
        }

    except Exception as e:
        logger.error(f"Error fetching user predictions: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error fetching predictions"
        )


async def _get_owned_prediction(prediction_id: str, db, current_user: dict) -> dict:
    try:
        prediction = await prediction_service.get_prediction(db, prediction_id)
    except Exception as e:
        logger.error(f"Error fetching prediction {prediction_id}: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error fetching prediction"
        )

    if not prediction:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Prediction not found"
        )

    if prediction.get("user_id") != current_user["uid"]:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User not authorized to view this prediction"
        )
    return prediction


@router.get("/prediction/{prediction_id}")
async def get_prediction(
    prediction_id: str,
    db=Depends(get_database),
    current_user: dict = Depends(require_verified_user)
):
    """
    Get a single prediction (owner only)
    """
    prediction = await _get_owned_prediction(prediction_id, db, current_user)
    return {"success": True, "data": prediction}


@router.get("/prediction/{prediction_id}/report")
async def download_prediction_report(
    prediction_id: str,
    db=Depends(get_database),
    current_user: dict = Depends(require_verified_user)
):
    """
    Download a PDF report for a prediction (owner only)
    """
    prediction = await _get_owned_prediction(prediction_id, db, current_user)

    try:
        pdf = report_generator.build(prediction)
    except Exception as e:
        logger.error(f"Error generating PDF report: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate report"
        )

    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename=prediction_{prediction_id}.pdf"}
    )


@router.post("/soil-data")
async def get_soil_data(lookup: SoilLookupRequest):
    """
    Public soil lookup for a state/district
    """
    if not lookup.state or not lookup.district:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="state and district are required in request body"
        )

    soil = prediction_service.lookup_soil(lookup.state, lookup.district, lookup.coordinates)
    return {"success": True, "data": soil}

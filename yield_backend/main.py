# main.py - FastAPI app
import logging
import os
import sys

# -----------------------------
# Logging setup - MUST be first
# -----------------------------
logging.basicConfig(
    stream=sys.stdout,
    level=logging.INFO,  # Show INFO and above
    format="%(asctime)s [%(levelname)s] %(message)s",
)
logger = logging.getLogger(__name__)
logger.info("💡 Logger initialized successfully")

# -----------------------------
# FastAPI & imports
# -----------------------------
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from yield_backend.routes.prediction_routes import router as prediction_router
from yield_backend.database import check_db_connection
from yield_backend.services.reference_data import reference_data

# -----------------------------
# FastAPI app
# -----------------------------
app = FastAPI(
    title="Crop Yield Prediction API",
    description="Crop yield prediction with weather and soil resolution and an analytical fallback",
    version="1.0.0"
)

# -----------------------------
# CORS middleware
# -----------------------------
cors_origins = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# -----------------------------
# Include routers
# -----------------------------
app.include_router(prediction_router)

# -----------------------------
# Startup event
# -----------------------------
@app.on_event("startup")
async def startup_event():
    """Check database connection on startup"""
    logger.info(f"📚 Reference tables ready for {len(reference_data.state_district_soil)} states")
    if await check_db_connection():
        logger.info("✅ MongoDB connected successfully")
    else:
        logger.error("❌ MongoDB connection failed")

# -----------------------------
# Endpoints
# -----------------------------
@app.get("/")
async def root():
    """Simple health check"""
    logger.info("🏠 Root endpoint called")
    return {
        "message": "🌾 Crop Yield Prediction API is running!",
        "status": "healthy",
        "version": "1.0.0"
    }

@app.get("/health")
async def health_check():
    """Health check endpoint"""
    db_status = "connected" if await check_db_connection() else "disconnected"
    logger.info(f"🩺 Health check called - DB: {db_status}")
    return {
        "status": "healthy",
        "database": db_status
    }

# -----------------------------
# Run the app
# -----------------------------
if __name__ == "__main__":
    import uvicorn
    logger.info("🚀 Starting Uvicorn server on http://0.0.0.0:8000")
    uvicorn.run(app, host="0.0.0.0", port=8000)

# database.py - MongoDB connection
from motor.motor_asyncio import AsyncIOMotorClient
import logging
import os
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# MongoDB connection
MONGO_URL = os.getenv("MONGO_URI", "mongodb://localhost:27017")
MONGO_DB_NAME = os.getenv("MONGO_DB_NAME", "agri_app")
client = AsyncIOMotorClient(MONGO_URL)
db = client[MONGO_DB_NAME]


def get_database():
    """Return the MongoDB database object"""
    return db


async def check_db_connection() -> bool:
    try:
        await client.admin.command('ping')
        return True
    except Exception as e:
        logger.error(f"❌ MongoDB connection failed: {e}")
        return False

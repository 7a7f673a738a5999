"""
Configuration for the Marketplace Collections API and client

All settings come from environment variables and are read once at import time.
"""

import logging
import os

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
DEBUG = ENVIRONMENT == "development"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
PORT = int(os.getenv("PORT", 8080))

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv(
        "CORS_ORIGINS",
        "http://localhost:5173,http://localhost:3000"
    ).split(",")
    if origin.strip()
]

# Firebase
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID", "marketplace-collections")
FIREBASE_SERVICE_ACCOUNT = os.getenv(
    "FIREBASE_SERVICE_ACCOUNT",
    os.path.join(os.path.dirname(__file__), "serviceAccountKey.json")
)

# Client side
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8080")
REQUEST_TIMEOUT = float(os.getenv("REQUEST_TIMEOUT", "10"))
LOCAL_STORAGE_PATH = os.getenv(
    "LOCAL_STORAGE_PATH",
    os.path.join(os.path.dirname(__file__), "local_storage.sqlite3")
)
SESSION_HINT_TTL = float(os.getenv("SESSION_HINT_TTL", "300"))

_logging_configured = False


def configure_logging():
    """Configure root logging once for the process"""
    global _logging_configured
    if _logging_configured:
        return

    handlers = [logging.StreamHandler()]
    if ENVIRONMENT == "production":
        handlers.append(logging.FileHandler('app.log'))

    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=handlers
    )
    _logging_configured = True

"""
Marketplace Collections API

Application setup: logging, CORS, error handling and the cart/wishlist routes
that back the client-side collection store.
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging
from datetime import datetime, timezone

import config
from error_handling import global_exception_handler, MarketplaceError
from firebase_init import get_db
from models import COLLECTION_KINDS
from routes import collections

config.configure_logging()
logger = logging.getLogger(__name__)

API_VERSION = "1.0.0"

app = FastAPI(
    title="Marketplace Collections API",
    version=API_VERSION,
    description="Per-user cart and wishlist collections",
    docs_url="/docs" if config.DEBUG else None,
    redoc_url="/redoc" if config.DEBUG else None
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(MarketplaceError, global_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

app.include_router(collections.router)


@app.get("/")
async def read_root():
    """Root endpoint with API information"""
    return {
        "message": "Marketplace Collections API",
        "version": API_VERSION,
        "status": "running",
        "environment": config.ENVIRONMENT,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "collections": list(COLLECTION_KINDS)
    }


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    try:
        get_db().collection('_health_check').document('ping').get()
        db_status = "connected"
    except Exception as e:
        logger.error(f"Health check failed: {e}")
        db_status = f"error: {str(e)}"

    is_healthy = db_status == "connected"
    return JSONResponse(
        status_code=200 if is_healthy else 503,
        content={
            "status": "healthy" if is_healthy else "degraded",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "environment": config.ENVIRONMENT,
            "version": API_VERSION,
            "services": {"database": db_status}
        }
    )


@app.on_event("startup")
async def startup_event():
    """Application startup tasks"""
    logger.info(f"=== STARTING MARKETPLACE COLLECTIONS API v{API_VERSION} ===")
    logger.info(f"Environment: {config.ENVIRONMENT}")
    logger.info(f"Port: {config.PORT}")
    logger.info(f"Collections: {', '.join(COLLECTION_KINDS)}")


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown tasks"""
    logger.info("=== SHUTTING DOWN MARKETPLACE COLLECTIONS API ===")


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log requests in development mode"""
    if not config.DEBUG:
        return await call_next(request)

    start_time = datetime.now()
    logger.info(f"Request: {request.method} {request.url.path}")

    response = await call_next(request)

    process_time = datetime.now() - start_time
    logger.info(f"Response: {response.status_code} in {process_time.total_seconds():.3f}s")

    return response


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting server in {config.ENVIRONMENT} mode on port {config.PORT}")

    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=config.PORT,
        reload=config.DEBUG,
        log_level=config.LOG_LEVEL.lower(),
        access_log=config.DEBUG
    )

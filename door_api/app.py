"""
FastAPI Application Entry Point

This module creates and configures the FastAPI application for the
smart door access API.

The application provides:
- Access check endpoints (uploaded photo or door camera)
- Enrollment and listing of authorized people
- Audit log and dashboard summary endpoints
- Health check endpoint

Usage:
    # From project root:
    uvicorn door_api.app:app --host 0.0.0.0 --port 3000

    # Or run directly:
    python -m door_api.app
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from door_api.routes import access_router, logs_router, people_router
from door_api.schemas import ApiResponse, HealthResponse
from door_access.config import get_server_config, load_access_config
from door_access.engine import create_engine


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Runs on startup:
    - Load the immutable access configuration
    - Ensure the Rekognition collection exists (fatal if it cannot)
    - Load already enrolled faces into the registry

    Runs on shutdown:
    - Close the device HTTP client
    """
    logger.info("=" * 60)
    logger.info("Starting Smart Door Access API")
    logger.info("=" * 60)

    config = load_access_config()
    logger.info(f"Collection: {config.collection_id}")
    logger.info(f"Camera: {config.camera_url}")
    logger.info(f"Door: {config.door_url}")
    logger.info(f"Confidence threshold: {config.confidence_threshold}")

    # ProviderUnavailable propagates and aborts startup
    engine = create_engine(config)
    app.state.engine = engine

    logger.info(f"Engine ready: {len(engine.registry)} authorized faces")
    logger.info("API startup complete!")
    logger.info("=" * 60)

    yield

    logger.info("Shutting down API...")
    engine.close()
    app.state.engine = None
    logger.info("Shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Smart Door Access API",
    description="""
Face-recognition door lock backed by AWS Rekognition.

## Features
- **Access checks**: Upload a photo or capture one from the door camera
- **Enrollment**: Add authorized people from a single photo
- **Audit log**: Every decision is recorded in order
    """,
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS for dashboard access
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(access_router)
app.include_router(people_router)
app.include_router(logs_router)


# ============================================================
# Error Handlers
# ============================================================

@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    """Missing or malformed form fields answer with the standard envelope."""
    fields = ", ".join(
        ".".join(str(part) for part in error.get("loc", ())[1:]) or "request"
        for error in exc.errors()
    )
    return JSONResponse(
        status_code=400,
        content=ApiResponse.fail(f"Invalid request: {fields}").model_dump(),
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=ApiResponse.fail(str(exc.detail)).model_dump(),
    )


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.url.path}")
    return JSONResponse(
        status_code=500,
        content=ApiResponse.fail(f"Internal error: {exc}").model_dump(),
    )


# ============================================================
# Health Check Endpoint
# ============================================================

@app.get("/health", response_model=HealthResponse, tags=["system"])
def health_check(request: Request):
    """
    Check the health of the API.

    Returns the collection in use, the match threshold and the current
    registry and audit log sizes.
    """
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        return HealthResponse(status="starting")

    return HealthResponse(
        status="healthy",
        collection_id=engine.config.collection_id,
        confidence_threshold=engine.config.confidence_threshold,
        authorized_people=len(engine.registry),
        audit_entries=len(engine.audit_log),
    )


@app.get("/", tags=["system"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": "Smart Door Access API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    server_config = get_server_config()

    logger.info(f"Starting server on {server_config['host']}:{server_config['port']}")
    uvicorn.run(
        "door_api.app:app",
        host=server_config["host"],
        port=server_config["port"],
        log_level="info",
    )

"""
Access Check API Routes

This module provides the endpoints that decide whether the door opens:
- POST /api/check-access: check an uploaded photo
- POST /api/check-access-esp32: capture a photo from the ESP32 door camera and check it
  (also served as /api/check-access-camera)

Handlers are plain functions so FastAPI runs them in its threadpool; the
provider and device calls they make are blocking.
"""

import logging

from fastapi import APIRouter, Depends, File, UploadFile

from door_api.dependencies import get_engine, read_photo
from door_api.schemas import AccessCheckResponse, ApiResponse
from door_access.engine import AccessDecision, DecisionEngine
from door_access.errors import AccessControlError

# Setup logging
logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix="/api", tags=["access"])


def to_response(decision: AccessDecision) -> AccessCheckResponse:
    return AccessCheckResponse(
        access_granted=decision.granted,
        person_name=decision.person_name,
        confidence=decision.confidence,
        timestamp=decision.timestamp,
    )


@router.post("/check-access", response_model=ApiResponse[AccessCheckResponse])
def check_access(
    photo: UploadFile = File(...),
    engine: DecisionEngine = Depends(get_engine),
):
    """
    Check an uploaded photo against the authorized faces.

    On a confident match the door is unlocked. Every check that reaches the
    recognition provider is recorded in the audit log.
    """
    image = read_photo(photo)

    try:
        decision = engine.check_access(image)
    except AccessControlError as e:
        logger.warning(f"Access check failed: {e}")
        return ApiResponse[AccessCheckResponse].fail(str(e))

    return ApiResponse[AccessCheckResponse].ok(to_response(decision))


@router.post("/check-access-esp32", response_model=ApiResponse[AccessCheckResponse])
@router.post(
    "/check-access-camera",
    response_model=ApiResponse[AccessCheckResponse],
    include_in_schema=False,
)
def check_access_camera(engine: DecisionEngine = Depends(get_engine)):
    """
    Capture a photo from the door camera and check it.

    A capture failure is reported without an audit entry: no image means no
    decision was made.
    """
    try:
        decision = engine.check_access_via_camera()
    except AccessControlError as e:
        logger.warning(f"Access check failed: {e}")
        return ApiResponse[AccessCheckResponse].fail(str(e))

    return ApiResponse[AccessCheckResponse].ok(to_response(decision))

"""
People Management API Routes

This module provides REST endpoints for the authorized people:
- POST /api/add-person: enroll a new face under a name
- GET /api/list-people: list the names of all authorized faces

There is no delete endpoint; the registry lives as long as the process.
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, File, Form, UploadFile

from door_api.dependencies import get_engine, read_photo
from door_api.schemas import AddPersonResponse, ApiResponse
from door_access.engine import DecisionEngine
from door_access.errors import AccessControlError

# Setup logging
logger = logging.getLogger(__name__)

# Create router
router = APIRouter(prefix="/api", tags=["people"])


@router.post("/add-person", response_model=ApiResponse[AddPersonResponse])
def add_person(
    name: str = Form(...),
    photo: UploadFile = File(...),
    engine: DecisionEngine = Depends(get_engine),
):
    """
    Enroll a person from a single photo.

    The photo must contain one clearly visible face. Enrolling the same name
    twice adds a second face for that person.
    """
    image = read_photo(photo)

    try:
        result = engine.enroll(name, image)
    except (AccessControlError, ValueError) as e:
        logger.warning(f"Enrollment of '{name}' failed: {e}")
        return ApiResponse[AddPersonResponse].fail(str(e))

    return ApiResponse[AddPersonResponse].ok(
        AddPersonResponse(face_id=result.face_id, message=result.message)
    )


@router.get("/list-people", response_model=ApiResponse[List[str]])
def list_people(engine: DecisionEngine = Depends(get_engine)):
    """List the names of all authorized faces (order not significant)."""
    return ApiResponse[List[str]].ok(engine.list_people())

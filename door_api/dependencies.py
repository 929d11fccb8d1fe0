"""
Shared FastAPI dependencies for the route modules.
"""

from fastapi import HTTPException, Request, UploadFile

from door_access.config import get_api_config
from door_access.engine import DecisionEngine

DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024


class UploadTooLarge(HTTPException):
    """Raised when a photo exceeds the configured upload limit."""

    def __init__(self, limit: int):
        super().__init__(status_code=413, detail=f"Photo exceeds the {limit} byte upload limit")


def get_engine(request: Request) -> DecisionEngine:
    """Return the engine created during application startup."""
    return request.app.state.engine


def get_max_upload_bytes() -> int:
    try:
        return int(get_api_config().get("max_upload_bytes", DEFAULT_MAX_UPLOAD_BYTES))
    except (FileNotFoundError, KeyError):
        return DEFAULT_MAX_UPLOAD_BYTES


def read_photo(photo: UploadFile) -> bytes:
    """
    Read an uploaded photo, enforcing the upload size limit.

    Raises:
        UploadTooLarge: If the photo is larger than api.max_upload_bytes.
        HTTPException(400): If the photo is empty.
    """
    limit = get_max_upload_bytes()
    data = photo.file.read(limit + 1)

    if len(data) > limit:
        raise UploadTooLarge(limit)
    if not data:
        raise HTTPException(status_code=400, detail="Photo is empty")

    return data

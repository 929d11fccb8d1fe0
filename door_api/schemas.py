"""
Pydantic Schemas for API Request/Response Models

Every /api/* endpoint answers with the same envelope:

    {"success": true,  "data": {...}, "error": null}
    {"success": false, "data": null,  "error": "human readable message"}

These schemas provide:
- Type validation
- Automatic documentation in OpenAPI/Swagger
- Clear interface contracts for the dashboard and the command-line scripts
"""

from datetime import datetime
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field


T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Uniform response envelope."""
    success: bool = Field(..., description="Whether the request succeeded")
    data: Optional[T] = Field(None, description="Result payload on success")
    error: Optional[str] = Field(None, description="Error message on failure")

    @classmethod
    def ok(cls, data: T) -> "ApiResponse[T]":
        return cls(success=True, data=data, error=None)

    @classmethod
    def fail(cls, error: str) -> "ApiResponse[T]":
        return cls(success=False, data=None, error=error)


# ============================================================
# Access Schemas
# ============================================================

class AccessCheckResponse(BaseModel):
    """Result of an access check."""
    access_granted: bool = Field(..., description="Whether the door was ordered open")
    person_name: Optional[str] = Field(None, description="Matched person (if any)")
    confidence: Optional[float] = Field(
        None, ge=0.0, le=1.0, description="Normalized match confidence (0-1)"
    )
    timestamp: datetime = Field(..., description="Time of the decision (UTC)")


# ============================================================
# People Schemas
# ============================================================

class AddPersonResponse(BaseModel):
    """Result of enrolling a person."""
    face_id: str = Field(..., description="Face id assigned by the recognition provider")
    message: str = Field(..., description="Status message")


# ============================================================
# Audit Schemas
# ============================================================

class AccessLogEntry(BaseModel):
    """One audit entry."""
    timestamp: datetime = Field(..., description="When the entry was recorded (UTC)")
    action: str = Field(..., description="Human-readable description")
    person_name: Optional[str] = Field(None, description="Person involved (if any)")
    confidence: Optional[float] = Field(None, description="Normalized confidence (if any)")
    access_granted: bool = Field(..., description="Whether access was granted")
    kind: str = Field(..., description="granted, denied, enrollment or error")


class AuditStats(BaseModel):
    """Audit entry counts by kind."""
    total_events: int = 0
    granted: int = 0
    denied: int = 0
    errors: int = 0
    enrollments: int = 0


class SummaryResponse(BaseModel):
    """Dashboard summary."""
    authorized_people: int = Field(..., description="Number of registered faces")
    access_attempts: int = Field(..., description="Number of access checks recorded")
    stats: AuditStats
    recent_events: List[AccessLogEntry] = Field(default_factory=list)


# ============================================================
# Health Check Schemas
# ============================================================

class HealthResponse(BaseModel):
    """System health check response."""
    status: str = Field(..., description="Overall status: 'healthy' or 'starting'")
    collection_id: Optional[str] = Field(None, description="Rekognition collection in use")
    confidence_threshold: Optional[float] = Field(None, description="Match threshold (0-100)")
    authorized_people: int = Field(0, description="Number of registered faces")
    audit_entries: int = Field(0, description="Number of audit entries")

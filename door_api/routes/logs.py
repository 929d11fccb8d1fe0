"""
Audit Log API Routes

This module provides read access to the audit trail:
- GET /api/logs: most recent entries, newest first
- GET /api/summary: counts and recent entries for the dashboard
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from door_api.dependencies import get_engine
from door_api.schemas import AccessLogEntry, ApiResponse, AuditStats, SummaryResponse
from door_access.audit_log import AccessEvent
from door_access.config import get_api_config
from door_access.engine import DecisionEngine

# Create router
router = APIRouter(prefix="/api", tags=["logs"])

DEFAULT_LOG_LIMIT = 10


def to_entry(event: AccessEvent) -> AccessLogEntry:
    return AccessLogEntry(
        timestamp=event.timestamp,
        action=event.description,
        person_name=event.person_name,
        confidence=event.confidence,
        access_granted=event.granted,
        kind=event.kind.value,
    )


def default_limit() -> int:
    try:
        return int(get_api_config().get("default_log_limit", DEFAULT_LOG_LIMIT))
    except (FileNotFoundError, KeyError):
        return DEFAULT_LOG_LIMIT


@router.get("/logs", response_model=ApiResponse[List[AccessLogEntry]])
def recent_logs(
    limit: Optional[int] = Query(None, ge=0, le=1000),
    engine: DecisionEngine = Depends(get_engine),
):
    """Return up to `limit` of the most recent audit entries, newest first."""
    if limit is None:
        limit = default_limit()

    events = engine.recent_events(limit)
    return ApiResponse[List[AccessLogEntry]].ok([to_entry(e) for e in events])


@router.get("/summary", response_model=ApiResponse[SummaryResponse])
def summary(engine: DecisionEngine = Depends(get_engine)):
    """Counts and recent activity, as shown on the dashboard."""
    data = engine.summary(default_limit())

    return ApiResponse[SummaryResponse].ok(SummaryResponse(
        authorized_people=data["authorized_people"],
        access_attempts=data["access_attempts"],
        stats=AuditStats(**data["stats"]),
        recent_events=[to_entry(e) for e in data["recent_events"]],
    ))

"""
API Routes Package

This package contains route handlers organized by feature:
- access.py: access checks from an uploaded photo or the door camera
- people.py: enrollment and listing of authorized people
- logs.py: audit log and dashboard summary
"""

from door_api.routes.access import router as access_router
from door_api.routes.people import router as people_router
from door_api.routes.logs import router as logs_router

__all__ = [
    "access_router",
    "people_router",
    "logs_router",
]

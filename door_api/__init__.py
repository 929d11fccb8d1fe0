"""
API Layer for the Smart Door Access System

This package provides the FastAPI-based HTTP surface over the decision
engine in door_access:
- REST endpoints for access checks, enrollment and people listing
- Audit log and dashboard summary endpoints
- Health check
"""

"""
Core Module for the Smart Door Access System

This package contains the access decision and audit engine and the adapters
it drives.

Main components:
    - config: Configuration loading and the immutable AccessConfig
    - errors: Error taxonomy
    - registry: Authorized identities keyed by provider face id
    - audit_log: Append-only audit trail
    - recognition: AWS Rekognition collection adapter
    - devices: ESP32-CAM capture and Pico 2 door control over HTTP
    - engine: Decision engine and startup bootstrap

Usage:
    from door_access import create_engine, load_access_config
    engine = create_engine(load_access_config())
"""

from door_access.config import (
    AccessConfig,
    get_config,
    get_section,
    get_recognition_config,
    get_devices_config,
    get_api_config,
    get_server_config,
    load_access_config,
)

from door_access.errors import (
    AccessControlError,
    ActuatorFailure,
    CaptureFailed,
    DuplicateFaceId,
    NoFaceDetected,
    ProviderError,
    ProviderUnavailable,
)

from door_access.registry import AuthorizedPerson, IdentityRegistry

from door_access.audit_log import AccessEvent, AuditLog, EventKind

from door_access.recognition import (
    FaceMatch,
    RecognitionAdapter,
    create_rekognition_client,
)

from door_access.devices import DeviceController, LockResult

from door_access.engine import (
    AccessDecision,
    DecisionEngine,
    EnrollmentResult,
    create_engine,
)

__all__ = [
    # Configuration
    "AccessConfig",
    "get_config",
    "get_section",
    "get_recognition_config",
    "get_devices_config",
    "get_api_config",
    "get_server_config",
    "load_access_config",
    # Errors
    "AccessControlError",
    "ActuatorFailure",
    "CaptureFailed",
    "DuplicateFaceId",
    "NoFaceDetected",
    "ProviderError",
    "ProviderUnavailable",
    # Registry
    "AuthorizedPerson",
    "IdentityRegistry",
    # Audit Log
    "AccessEvent",
    "AuditLog",
    "EventKind",
    # Recognition
    "FaceMatch",
    "RecognitionAdapter",
    "create_rekognition_client",
    # Devices
    "DeviceController",
    "LockResult",
    # Engine
    "AccessDecision",
    "DecisionEngine",
    "EnrollmentResult",
    "create_engine",
]

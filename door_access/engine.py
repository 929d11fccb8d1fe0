"""
Decision Engine Module

The decision engine turns an image into an access decision and records it.

Access check (one pass, no retries):
    1. Match the image against the collection at the configured threshold
    2. On a match: send the unlock command (its outcome is only logged)
    3. Append exactly one audit entry (granted, denied, or error)
    4. Return an AccessDecision built from that entry

Enrollment:
    1. Index the face with the recognition provider
    2. Register the new face id in the identity registry
    3. Append one audit entry describing the enrollment

Failed enrollments and failed captures are not audited: nothing was decided.

The engine holds no lock of its own. The registry and the audit log each
guard their own state, and all provider/device calls run outside those locks.

Usage:
    from door_access.config import load_access_config
    from door_access.engine import create_engine

    engine = create_engine(load_access_config())
    decision = engine.check_access(image_bytes)
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from door_access.audit_log import AccessEvent, AuditLog, EventKind
from door_access.config import AccessConfig
from door_access.devices import DeviceController, LockResult
from door_access.errors import DuplicateFaceId, ProviderError
from door_access.recognition import (
    FaceMatch,
    RecognitionAdapter,
    create_rekognition_client,
)
from door_access.registry import IdentityRegistry

# Setup logging
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessDecision:
    """
    Result of one access check, returned to the caller.

    Attributes:
        granted: Whether the door was ordered open.
        person_name: Matched person, None on deny.
        confidence: Normalized match confidence (0.0-1.0), None on deny.
        timestamp: Timestamp of the corresponding audit entry.
    """

    granted: bool
    person_name: Optional[str]
    confidence: Optional[float]
    timestamp: datetime

    @classmethod
    def from_event(cls, event: AccessEvent) -> "AccessDecision":
        return cls(
            granted=event.granted,
            person_name=event.person_name,
            confidence=event.confidence,
            timestamp=event.timestamp,
        )


@dataclass(frozen=True)
class EnrollmentResult:
    """Result of a successful enrollment."""
    face_id: str
    message: str


class DecisionEngine:
    """
    Access decision and audit engine.

    Attributes:
        config: Immutable access settings.
        recognizer: Recognition adapter bound to the configured collection.
        devices: Camera and door controller.
        registry: Authorized identities.
        audit_log: Audit trail of every decision.
    """

    def __init__(
        self,
        config: AccessConfig,
        recognizer: RecognitionAdapter,
        devices: DeviceController,
        registry: Optional[IdentityRegistry] = None,
        audit_log: Optional[AuditLog] = None,
    ):
        self.config = config
        self.recognizer = recognizer
        self.devices = devices
        self.registry = registry if registry is not None else IdentityRegistry()
        self.audit_log = audit_log if audit_log is not None else AuditLog()

    # ============================================================
    # Access checks
    # ============================================================

    def check_access(self, image: bytes) -> AccessDecision:
        """
        Decide whether the face in an image may open the door.

        Args:
            image: Encoded image bytes.

        Returns:
            AccessDecision mirroring the audit entry that was appended.

        Raises:
            ProviderError: If the provider failed. An error entry is still
                           appended and the door is not actuated.
        """
        try:
            match = self.recognizer.match(image, self.config.confidence_threshold)
        except ProviderError as e:
            self.audit_log.append(AccessEvent(
                description=f"Access check FAILED - {e}",
                granted=False,
                kind=EventKind.ERROR,
            ))
            raise

        if match is None:
            event = self._deny()
        else:
            event = self._grant(match)

        self.audit_log.append(event)
        return AccessDecision.from_event(event)

    def check_access_via_camera(self) -> AccessDecision:
        """
        Capture an image from the door camera and check it.

        Raises:
            CaptureFailed: If no image could be captured (nothing is audited).
            ProviderError: See check_access.
        """
        image = self.devices.capture()
        return self.check_access(image)

    def _grant(self, match: FaceMatch) -> AccessEvent:
        lock_result = self.devices.set_lock(True)
        self._report_actuation(lock_result, match.external_id)

        return AccessEvent(
            description=f"Access GRANTED - {match.external_id}",
            granted=True,
            person_name=match.external_id,
            confidence=match.confidence,
            kind=EventKind.GRANTED,
        )

    def _deny(self) -> AccessEvent:
        return AccessEvent(
            description="Access DENIED - Face not recognized",
            granted=False,
            kind=EventKind.DENIED,
        )

    def _report_actuation(self, result: LockResult, person_name: str) -> None:
        # The decision stands regardless of what the door did
        if not result.ok:
            logger.warning(
                f"Access granted to {person_name} but door {result.action} "
                f"was not confirmed: {result.error}"
            )

    # ============================================================
    # Enrollment
    # ============================================================

    def enroll(self, name: str, image: bytes) -> EnrollmentResult:
        """
        Enroll a new authorized face.

        Args:
            name: Person's name.
            image: Encoded image containing exactly the face to enroll.

        Returns:
            EnrollmentResult with the provider-assigned face id.

        Raises:
            ValueError: If name is empty.
            NoFaceDetected: If the image has no usable face.
            ProviderError: On provider failure.
            DuplicateFaceId: If the provider returned an already registered id.
        """
        name = (name or "").strip()
        if not name:
            raise ValueError("name must not be empty")

        face_id = self.recognizer.enroll(image, name)

        try:
            self.registry.insert(face_id, name)
        except DuplicateFaceId:
            logger.error(f"Provider returned already registered face id {face_id} for '{name}'")
            raise

        self.audit_log.append(AccessEvent(
            description=f"Added authorized person: {name}",
            granted=False,
            person_name=name,
            kind=EventKind.ENROLLMENT,
        ))

        return EnrollmentResult(face_id=face_id, message=f"Successfully added {name}")

    # ============================================================
    # Read side
    # ============================================================

    def list_people(self) -> List[str]:
        """Names of all authorized faces (unordered, duplicates kept)."""
        return self.registry.list_names()

    def recent_events(self, limit: int) -> List[AccessEvent]:
        """Most recent audit entries, newest first."""
        return self.audit_log.recent(limit)

    def summary(self, recent_limit: int = 10) -> Dict[str, Any]:
        """Counts and recent activity for the dashboard."""
        stats = self.audit_log.stats()
        return {
            "authorized_people": len(self.registry),
            "access_attempts": stats["granted"] + stats["denied"] + stats["errors"],
            "stats": stats,
            "recent_events": self.audit_log.recent(recent_limit),
        }

    def close(self) -> None:
        self.devices.close()


def create_engine(
    config: AccessConfig,
    rekognition_client: Any = None,
    devices: Optional[DeviceController] = None,
) -> DecisionEngine:
    """
    Startup phase: build the engine and bring it in sync with the provider.

    Ensures the collection exists and loads the faces already indexed in it
    into a fresh registry.

    Args:
        config: Immutable access settings.
        rekognition_client: Optional boto3 client (created from config if None).
        devices: Optional device controller (created from config if None).

    Returns:
        A ready DecisionEngine.

    Raises:
        ProviderUnavailable: If the collection cannot be set up or listed.
    """
    logger.info("Initializing door access engine...")

    if rekognition_client is None:
        rekognition_client = create_rekognition_client(config.region)

    recognizer = RecognitionAdapter(rekognition_client, config.collection_id)
    recognizer.ensure_collection()

    logger.info("Loading existing authorized faces...")
    registry = IdentityRegistry()
    registry.reconcile(recognizer.list_faces())

    if devices is None:
        devices = DeviceController(
            camera_url=config.camera_url,
            door_url=config.door_url,
            timeout=config.device_timeout,
        )

    return DecisionEngine(
        config=config,
        recognizer=recognizer,
        devices=devices,
        registry=registry,
        audit_log=AuditLog(),
    )

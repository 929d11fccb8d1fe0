"""
Tests for the DecisionEngine module.

The recognition provider and the devices are replaced by in-memory fakes so
that decisions, door actuation and audit entries can be observed directly.

This test suite verifies:
- Grant/deny decisions and their audit entries
- The door is unlocked only on a grant, and a failed unlock changes nothing
- Provider errors are audited as errors and surfaced to the caller
- Capture failures and aborted enrollments leave no audit entry
- Enrollment round-trip and the people listing
- Exactly one audit entry per concurrent check
- Startup bootstrap

Run with: pytest tests/test_engine.py -v
"""

import os
import sys
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from door_access.audit_log import EventKind
from door_access.config import AccessConfig
from door_access.devices import LockResult
from door_access.engine import DecisionEngine, create_engine
from door_access.errors import (
    ActuatorFailure,
    CaptureFailed,
    DuplicateFaceId,
    NoFaceDetected,
    ProviderError,
    ProviderUnavailable,
)
from door_access.recognition import FaceMatch

ALICE_IMG = b"alice-face"
STRANGER_IMG = b"stranger-face"
BLANK_IMG = b"no-face-at-all"


# ============================================================
# Test Fakes
# ============================================================

class FakeRecognizer:
    """Deterministic provider: an image matches the name it was enrolled with."""

    def __init__(self, similarity: float = 99.0):
        self.similarity = similarity
        self.faces: Dict[bytes, tuple] = {}
        self.fail_with: Optional[Exception] = None
        self.next_face_id: Optional[str] = None
        self.delay = 0.0
        self._counter = 0

    def enroll(self, image: bytes, name: str) -> str:
        if self.fail_with is not None:
            raise self.fail_with
        if image == BLANK_IMG:
            raise NoFaceDetected("No face detected in image")
        self._counter += 1
        face_id = self.next_face_id or f"f{self._counter}"
        self.faces[image] = (face_id, name)
        return face_id

    def match(self, image: bytes, threshold: float) -> Optional[FaceMatch]:
        if self.delay:
            time.sleep(self.delay)
        if self.fail_with is not None:
            raise self.fail_with
        if image not in self.faces or self.similarity < threshold:
            return None
        face_id, name = self.faces[image]
        return FaceMatch(external_id=name, similarity=self.similarity, face_id=face_id)


class FakeDevices:
    """Records door commands; can simulate camera and door failures."""

    def __init__(self):
        self.lock_calls: List[bool] = []
        self.door_ok = True
        self.camera_image: Optional[bytes] = ALICE_IMG
        self._lock = threading.Lock()

    def capture(self) -> bytes:
        if self.camera_image is None:
            raise CaptureFailed("Camera capture failed: HTTP 503")
        return self.camera_image

    def set_lock(self, unlock: bool) -> LockResult:
        with self._lock:
            self.lock_calls.append(unlock)
        action = "unlock" if unlock else "lock"
        if self.door_ok:
            return LockResult(action=action, ok=True, status_code=200)
        return LockResult(
            action=action, ok=False, error=ActuatorFailure(f"Door {action} failed: HTTP 500")
        )

    def close(self):
        pass


@pytest.fixture
def recognizer():
    return FakeRecognizer()


@pytest.fixture
def devices():
    return FakeDevices()


@pytest.fixture
def engine(recognizer, devices):
    return DecisionEngine(AccessConfig(), recognizer, devices)


# ============================================================
# Access Checks
# ============================================================

class TestCheckAccess:
    """Tests for the access decision path."""

    def test_grant_on_match(self, engine, recognizer, devices):
        recognizer.faces[ALICE_IMG] = ("f1", "alice")

        decision = engine.check_access(ALICE_IMG)

        assert decision.granted is True
        assert decision.person_name == "alice"
        assert decision.confidence == pytest.approx(0.99)
        assert devices.lock_calls == [True]

        events = engine.recent_events(10)
        assert len(events) == 1
        assert events[0].granted is True
        assert events[0].kind == EventKind.GRANTED
        assert events[0].person_name == "alice"
        assert events[0].timestamp == decision.timestamp

    def test_deny_on_no_match(self, engine, devices):
        decision = engine.check_access(STRANGER_IMG)

        assert decision.granted is False
        assert decision.person_name is None
        assert decision.confidence is None
        assert devices.lock_calls == []

        events = engine.recent_events(10)
        assert len(events) == 1
        assert events[0].granted is False
        assert events[0].kind == EventKind.DENIED
        assert events[0].description == "Access DENIED - Face not recognized"

    def test_deny_below_threshold(self, recognizer, devices):
        engine = DecisionEngine(AccessConfig(confidence_threshold=90.0), recognizer, devices)
        recognizer.similarity = 89.0
        recognizer.faces[ALICE_IMG] = ("f1", "alice")

        decision = engine.check_access(ALICE_IMG)

        assert decision.granted is False
        assert devices.lock_calls == []
        assert len(engine.audit_log) == 1

    def test_confidence_is_normalized(self, engine, recognizer):
        recognizer.similarity = 87.5
        recognizer.faces[ALICE_IMG] = ("f1", "alice")

        decision = engine.check_access(ALICE_IMG)

        assert decision.confidence == pytest.approx(0.875)
        assert engine.recent_events(1)[0].confidence == pytest.approx(0.875)

    def test_door_failure_does_not_change_decision(self, engine, recognizer, devices):
        recognizer.faces[ALICE_IMG] = ("f1", "alice")
        devices.door_ok = False

        decision = engine.check_access(ALICE_IMG)

        assert decision.granted is True
        assert decision.person_name == "alice"
        assert devices.lock_calls == [True]
        events = engine.recent_events(10)
        assert len(events) == 1
        assert events[0].granted is True

    def test_door_failure_is_logged_as_warning(self, engine, recognizer, devices, caplog):
        recognizer.faces[ALICE_IMG] = ("f1", "alice")
        devices.door_ok = False

        with caplog.at_level("WARNING", logger="door_access.engine"):
            engine.check_access(ALICE_IMG)

        assert any("was not confirmed" in r.message for r in caplog.records)

    @pytest.mark.parametrize("door_ok", [True, False])
    def test_door_is_commanded_before_audit_append(self, engine, recognizer, devices, door_ok):
        """Within one check: match, then door command, then audit append."""
        recognizer.faces[ALICE_IMG] = ("f1", "alice")
        devices.door_ok = door_ok
        entries_at_unlock = []
        record_lock = devices.set_lock

        def set_lock(unlock):
            entries_at_unlock.append(len(engine.audit_log))
            return record_lock(unlock)

        devices.set_lock = set_lock

        decision = engine.check_access(ALICE_IMG)

        assert entries_at_unlock == [0]
        assert len(engine.audit_log) == 1
        assert decision.granted is True

    def test_provider_error_is_audited_and_raised(self, engine, recognizer, devices):
        recognizer.fail_with = ProviderError("Face search failed: throttled")

        with pytest.raises(ProviderError):
            engine.check_access(ALICE_IMG)

        assert devices.lock_calls == []
        events = engine.recent_events(10)
        assert len(events) == 1
        assert events[0].kind == EventKind.ERROR
        assert events[0].granted is False
        assert events[0].person_name is None

    def test_check_via_camera(self, engine, recognizer, devices):
        recognizer.faces[ALICE_IMG] = ("f1", "alice")

        decision = engine.check_access_via_camera()

        assert decision.granted is True
        assert len(engine.audit_log) == 1

    def test_capture_failure_is_not_audited(self, engine, devices):
        devices.camera_image = None

        with pytest.raises(CaptureFailed):
            engine.check_access_via_camera()

        assert len(engine.audit_log) == 0
        assert devices.lock_calls == []


# ============================================================
# Enrollment
# ============================================================

class TestEnroll:
    """Tests for the enrollment path."""

    def test_enroll_registers_and_audits(self, engine):
        result = engine.enroll("alice", ALICE_IMG)

        assert result.face_id == "f1"
        assert result.message == "Successfully added alice"
        assert engine.list_people() == ["alice"]

        events = engine.recent_events(10)
        assert len(events) == 1
        assert events[0].kind == EventKind.ENROLLMENT
        assert events[0].granted is False
        assert events[0].person_name == "alice"
        assert events[0].confidence is None

    def test_no_face_aborts_without_side_effects(self, engine):
        with pytest.raises(NoFaceDetected):
            engine.enroll("alice", BLANK_IMG)

        assert engine.list_people() == []
        assert len(engine.audit_log) == 0

    def test_provider_error_aborts_without_side_effects(self, engine, recognizer):
        recognizer.fail_with = ProviderError("Face indexing failed")

        with pytest.raises(ProviderError):
            engine.enroll("alice", ALICE_IMG)

        assert engine.list_people() == []
        assert len(engine.audit_log) == 0

    def test_duplicate_face_id_is_rejected(self, engine, recognizer):
        engine.enroll("alice", ALICE_IMG)
        recognizer.next_face_id = "f1"

        with pytest.raises(DuplicateFaceId):
            engine.enroll("bob", b"bob-face")

        assert engine.list_people() == ["alice"]
        assert len(engine.audit_log) == 1

    def test_empty_name_is_rejected(self, engine):
        with pytest.raises(ValueError):
            engine.enroll("   ", ALICE_IMG)
        assert len(engine.audit_log) == 0

    def test_reenrollment_keeps_both_faces(self, engine):
        engine.enroll("alice", ALICE_IMG)
        engine.enroll("alice", b"alice-second-photo")

        assert engine.list_people() == ["alice", "alice"]

    def test_enroll_then_check_round_trip(self, engine, devices):
        assert engine.list_people() == []

        result = engine.enroll("alice", ALICE_IMG)
        assert result.face_id == "f1"
        assert engine.list_people() == ["alice"]

        decision = engine.check_access(ALICE_IMG)
        assert decision.granted is True
        assert decision.person_name == "alice"
        assert decision.confidence == pytest.approx(0.99)
        assert devices.lock_calls == [True]


# ============================================================
# Concurrency
# ============================================================

class TestConcurrentChecks:
    """Exactly one audit entry per check under contention."""

    @pytest.mark.parametrize("n_checks", [2, 16, 64])
    def test_one_entry_per_check(self, engine, recognizer, devices, n_checks):
        recognizer.faces[ALICE_IMG] = ("f1", "alice")
        recognizer.delay = 0.001
        images = [ALICE_IMG if i % 2 == 0 else STRANGER_IMG for i in range(n_checks)]

        with ThreadPoolExecutor(max_workers=8) as pool:
            decisions = list(pool.map(engine.check_access, images))

        n_granted = sum(1 for d in decisions if d.granted)
        events = engine.recent_events(n_checks * 2)

        assert len(events) == n_checks
        assert sum(1 for e in events if e.granted) == n_granted
        assert len(devices.lock_calls) == n_granted
        assert {e.timestamp for e in events} == {d.timestamp for d in decisions}


# ============================================================
# Read Side
# ============================================================

class TestSummary:
    """Tests for the dashboard summary."""

    def test_summary_counts(self, engine, recognizer):
        engine.enroll("alice", ALICE_IMG)
        engine.check_access(ALICE_IMG)
        engine.check_access(STRANGER_IMG)

        summary = engine.summary(recent_limit=2)

        assert summary["authorized_people"] == 1
        assert summary["access_attempts"] == 2
        assert summary["stats"]["enrollments"] == 1
        assert len(summary["recent_events"]) == 2
        assert summary["recent_events"][0].kind == EventKind.DENIED


# ============================================================
# Startup
# ============================================================

class TestCreateEngine:
    """Tests for the startup bootstrap."""

    def test_bootstrap_loads_existing_faces(self):
        client = MagicMock()
        client.list_faces.return_value = {
            "Faces": [
                {"FaceId": "f1", "ExternalImageId": "alice"},
                {"FaceId": "f2", "ExternalImageId": "bob"},
            ],
        }

        engine = create_engine(AccessConfig(), rekognition_client=client, devices=FakeDevices())

        client.describe_collection.assert_called_once_with(CollectionId="smart-door-faces")
        assert sorted(engine.list_people()) == ["alice", "bob"]
        assert len(engine.audit_log) == 0

    def test_bootstrap_with_empty_collection(self):
        client = MagicMock()
        client.list_faces.return_value = {"Faces": []}

        engine = create_engine(AccessConfig(), rekognition_client=client, devices=FakeDevices())

        assert engine.list_people() == []

    def test_bootstrap_fails_without_collection(self):
        client = MagicMock()
        client.describe_collection.side_effect = ClientError(
            {"Error": {"Code": "AccessDeniedException", "Message": "denied"}},
            "DescribeCollection",
        )

        with pytest.raises(ProviderUnavailable):
            create_engine(AccessConfig(), rekognition_client=client, devices=FakeDevices())


if __name__ == "__main__":
    pytest.main([__file__, "-v"])

"""
Identity Registry Module

This module keeps the in-memory mapping from Rekognition face ids to the
people allowed through the door.

Records are created in two ways:
- reconcile: bulk load of the faces already indexed in the collection (startup)
- insert: one record per successful enrollment

Records are immutable and live for the lifetime of the process. Several face
ids may share one name (re-enrolling a person adds a record, it does not
replace the previous one).

Usage:
    from door_access.registry import IdentityRegistry

    registry = IdentityRegistry()
    registry.reconcile([("f-1", "alice")])
    registry.insert("f-2", "bob")
    names = registry.list_names()
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from door_access.errors import DuplicateFaceId

# Setup logging
logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AuthorizedPerson:
    """
    A person allowed to open the door.

    Attributes:
        name: Human-readable label, also the external image id sent to the provider.
        face_id: Identifier assigned by the provider to one indexed face.
        enrolled_at: When this record was created in the registry.
        external_image_id: External id stored with the face in the collection.
    """

    name: str
    face_id: str
    enrolled_at: datetime = field(default_factory=utc_now)
    external_image_id: Optional[str] = None

    def __post_init__(self):
        if self.external_image_id is None:
            object.__setattr__(self, "external_image_id", self.name)


class IdentityRegistry:
    """
    Thread-safe registry of authorized people keyed by face id.

    A single lock guards the underlying dict. It is held only for the dict
    mutation or for taking a snapshot copy; callers never perform network
    calls while holding it.
    """

    def __init__(self):
        self._people: Dict[str, AuthorizedPerson] = {}
        self._lock = threading.Lock()

    def reconcile(self, provider_faces: Iterable[Tuple[str, str]]) -> int:
        """
        Bulk-load the faces already present in the provider's collection.

        Args:
            provider_faces: Iterable of (face_id, external_id) pairs. The
                            external id becomes the person's name.

        Returns:
            Number of records added. An empty collection is valid and returns 0.
        """
        records = [
            AuthorizedPerson(name=external_id, face_id=face_id, external_image_id=external_id)
            for face_id, external_id in provider_faces
        ]

        added = 0
        with self._lock:
            for person in records:
                if person.face_id in self._people:
                    logger.warning(f"Skipping duplicate face id during reconcile: {person.face_id}")
                    continue
                self._people[person.face_id] = person
                added += 1

        logger.info(f"Loaded {added} authorized faces")
        return added

    def insert(self, face_id: str, name: str) -> AuthorizedPerson:
        """
        Add a newly enrolled face.

        Args:
            face_id: Provider-assigned face id.
            name: Person's name.

        Returns:
            The created AuthorizedPerson.

        Raises:
            DuplicateFaceId: If face_id is already registered.
        """
        person = AuthorizedPerson(name=name, face_id=face_id)

        with self._lock:
            if face_id in self._people:
                raise DuplicateFaceId(face_id)
            self._people[face_id] = person

        return person

    def people(self) -> List[AuthorizedPerson]:
        """Return a snapshot of all records."""
        with self._lock:
            return list(self._people.values())

    def list_names(self) -> List[str]:
        """
        Return the names of all registered faces.

        Order is not significant. A name enrolled several times appears once
        per face id.
        """
        return [person.name for person in self.people()]

    def __len__(self) -> int:
        with self._lock:
            return len(self._people)

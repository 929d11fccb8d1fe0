"""
Error Taxonomy for the Door Access Engine

Startup errors (ProviderUnavailable) abort the process. Per-request errors
are caught at the API boundary and reported as a failed response.
ActuatorFailure is never raised to request callers; it is carried inside a
failed LockResult and only logged.
"""


class AccessControlError(Exception):
    """Base class for all door access errors."""


class ProviderUnavailable(AccessControlError):
    """The face collection could not be described, created or listed at startup."""


class ProviderError(AccessControlError):
    """The recognition provider failed while serving a request."""


class NoFaceDetected(AccessControlError):
    """The enrollment image contained no usable face."""


class DuplicateFaceId(AccessControlError):
    """A face_id is already present in the identity registry."""

    def __init__(self, face_id: str):
        super().__init__(f"Face id already registered: {face_id}")
        self.face_id = face_id


class CaptureFailed(AccessControlError):
    """The camera was unreachable or returned a non-success status."""


class ActuatorFailure(AccessControlError):
    """The door actuator rejected or did not receive a command."""

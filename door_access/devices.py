"""
Device Controller Module

HTTP access to the two pieces of hardware at the door:

- Camera (ESP32-CAM): GET <camera_url> returns one JPEG still.
- Door lock (Pico 2): POST <door_url> with {"action": "lock"|"unlock", "timestamp": <epoch>}.

A failed capture is raised as CaptureFailed: without an image there is
nothing to decide on. A failed lock command is not raised. set_lock returns
a LockResult which the engine only logs, so the access decision and its
audit entry stand whether or not the door physically moved.

Each call is a single attempt with no retries.
"""

import logging
import time
from dataclasses import dataclass
from typing import Optional

import httpx

from door_access.errors import ActuatorFailure, CaptureFailed

# Setup logging
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LockResult:
    """
    Outcome of one door command.

    Attributes:
        action: "unlock" or "lock".
        ok: True if the door controller acknowledged the command.
        status_code: HTTP status returned by the controller, if any.
        error: ActuatorFailure describing what went wrong, if not ok.
    """

    action: str
    ok: bool
    status_code: Optional[int] = None
    error: Optional[ActuatorFailure] = None


class DeviceController:
    """
    Camera capture and door actuation over plain HTTP.

    Attributes:
        camera_url: Capture endpoint.
        door_url: Door command endpoint.
    """

    def __init__(
        self,
        camera_url: str,
        door_url: str,
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ):
        """
        Args:
            camera_url: URL returning one still image on GET.
            door_url: URL accepting JSON lock commands on POST.
            timeout: Per-request timeout in seconds.
            client: Optional preconfigured httpx.Client (used by tests).
        """
        self.camera_url = camera_url
        self.door_url = door_url
        self._client = client or httpx.Client(timeout=timeout)

    def capture(self) -> bytes:
        """
        Fetch one still image from the camera.

        Returns:
            Raw image bytes.

        Raises:
            CaptureFailed: On transport error or non-success status.
        """
        logger.info(f"Capturing image from camera at {self.camera_url}")

        try:
            response = self._client.get(self.camera_url)
        except httpx.HTTPError as e:
            raise CaptureFailed(f"Camera capture failed: {e}") from e

        if not response.is_success:
            raise CaptureFailed(f"Camera capture failed: HTTP {response.status_code}")

        image = response.content
        logger.info(f"Captured {len(image)} bytes from camera")
        return image

    def set_lock(self, unlock: bool) -> LockResult:
        """
        Send a lock or unlock command to the door controller.

        Never raises. Failures are logged as warnings and returned as a
        LockResult with ok=False.

        Args:
            unlock: True to unlock, False to lock.

        Returns:
            LockResult describing the outcome.
        """
        action = "unlock" if unlock else "lock"
        payload = {"action": action, "timestamp": int(time.time())}
        logger.info(f"Sending {action} command to door controller")

        try:
            response = self._client.post(self.door_url, json=payload)
        except httpx.HTTPError as e:
            error = ActuatorFailure(f"Door {action} failed: {e}")
            logger.warning(str(error))
            return LockResult(action=action, ok=False, error=error)

        if not response.is_success:
            error = ActuatorFailure(f"Door {action} failed: HTTP {response.status_code}")
            logger.warning(str(error))
            return LockResult(
                action=action, ok=False, status_code=response.status_code, error=error
            )

        logger.info(f"Door {action} successful")
        return LockResult(action=action, ok=True, status_code=response.status_code)

    def close(self) -> None:
        """Release the underlying HTTP connection pool."""
        self._client.close()

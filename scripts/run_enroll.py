"""
Enroll an Authorized Person from a Photo

Uploads a photo to a running Smart Door Access API and registers the face
under the given name.

Usage:
    # Start the server first
    python -m door_api.app

    python scripts/run_enroll.py --name alice --photo photos/alice.jpg

    # Different server
    python scripts/run_enroll.py --name alice --photo alice.jpg --api-url http://door.local:3000

Exit codes:
    0 enrolled, 1 rejected by the server (e.g. no face detected), 2 error.
"""

import argparse
import sys
from pathlib import Path

import httpx

DEFAULT_API_URL = "http://localhost:3000"


def print_banner(text: str, char: str = "="):
    line = char * 60
    print(f"\n{line}")
    print(text)
    print(line)


def enroll(api_url: str, name: str, photo_path: Path, timeout: float = 60.0) -> int:
    """Send the enrollment request and print the outcome.

    Returns:
        0 for success, 1 if the server rejected the enrollment, 2 for errors.
    """
    with open(photo_path, "rb") as f:
        photo = f.read()

    print(f"  Sending {len(photo):,} bytes to {api_url}/api/add-person ...")

    try:
        response = httpx.post(
            f"{api_url}/api/add-person",
            data={"name": name},
            files={"photo": (photo_path.name, photo, "application/octet-stream")},
            timeout=timeout,
        )
        result = response.json()
    except httpx.HTTPError as e:
        print(f"\n  ERROR: Cannot reach API server at {api_url}")
        print(f"  Reason: {e}")
        print("\n  Start the server first:")
        print("    python -m door_api.app")
        return 2
    except ValueError as e:
        print(f"\n  ERROR: Invalid response from server: {e}")
        return 2

    if not result.get("success"):
        print(f"\n  Enrollment rejected: {result.get('error')}")
        return 1

    data = result.get("data") or {}
    print(f"\n  {data.get('message')}")
    print(f"  Face id: {data.get('face_id')}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Enroll an authorized person through the Smart Door Access API"
    )
    parser.add_argument("--name", required=True, help="Name of the person to enroll")
    parser.add_argument("--photo", required=True, type=Path, help="Photo with one visible face")
    parser.add_argument("--api-url", default=DEFAULT_API_URL, help="API server base URL")
    args = parser.parse_args()

    if not args.photo.is_file():
        print(f"ERROR: Photo not found: {args.photo}")
        return 2

    print_banner(f"ENROLLMENT: {args.name}")
    rc = enroll(args.api_url.rstrip("/"), args.name, args.photo)

    if rc == 0:
        print_banner("ENROLLMENT: DONE")
    elif rc == 1:
        print_banner("ENROLLMENT: REJECTED")
    else:
        print_banner(f"ENROLLMENT: ERROR (exit code {rc})")

    return rc


if __name__ == "__main__":
    sys.exit(main())

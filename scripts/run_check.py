"""
Run an Access Check

Asks a running Smart Door Access API to check a face, either from a local
photo or from the door camera, and prints the decision.

Usage:
    # Check a local photo
    python scripts/run_check.py --photo photos/visitor.jpg

    # Let the server capture from the ESP32-CAM
    python scripts/run_check.py --camera

    # Show the last 20 audit entries afterwards
    python scripts/run_check.py --camera --show-log 20

Exit codes:
    0 access granted, 1 access denied, 2 error.
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


def request_check(api_url: str, photo_path: Path = None, timeout: float = 60.0) -> dict:
    """Call the photo or camera check endpoint and return the JSON envelope."""
    if photo_path is None:
        response = httpx.post(f"{api_url}/api/check-access-esp32", timeout=timeout)
    else:
        with open(photo_path, "rb") as f:
            photo = f.read()
        response = httpx.post(
            f"{api_url}/api/check-access",
            files={"photo": (photo_path.name, photo, "application/octet-stream")},
            timeout=timeout,
        )
    return response.json()


def show_log(api_url: str, limit: int) -> None:
    response = httpx.get(f"{api_url}/api/logs", params={"limit": limit}, timeout=10.0)
    entries = response.json().get("data") or []

    print_banner(f"RECENT ACCESS LOG ({len(entries)})", "-")
    for entry in entries:
        confidence = entry.get("confidence")
        suffix = f" ({int(confidence * 100)}%)" if confidence is not None else ""
        print(f"  {entry['timestamp']}  {entry['action']}{suffix}")


def main() -> int:
    parser = argparse.ArgumentParser(description="Run a Smart Door access check")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--photo", type=Path, help="Photo to check")
    source.add_argument("--camera", action="store_true", help="Capture from the door camera")
    parser.add_argument("--api-url", default=DEFAULT_API_URL, help="API server base URL")
    parser.add_argument("--show-log", type=int, default=0, metavar="N",
                        help="Print the N most recent audit entries afterwards")
    args = parser.parse_args()

    if args.photo is not None and not args.photo.is_file():
        print(f"ERROR: Photo not found: {args.photo}")
        return 2

    api_url = args.api_url.rstrip("/")

    try:
        result = request_check(api_url, args.photo)
    except httpx.HTTPError as e:
        print(f"\nERROR: Cannot reach API server at {api_url}: {e}")
        return 2
    except ValueError as e:
        print(f"\nERROR: Invalid response from server: {e}")
        return 2

    if not result.get("success"):
        print_banner(f"ACCESS CHECK: ERROR ({result.get('error')})")
        return 2

    data = result["data"]
    confidence = data.get("confidence")
    print(f"\n  Person:     {data.get('person_name') or 'Unknown'}")
    print(f"  Confidence: {f'{confidence * 100:.1f}%' if confidence is not None else 'N/A'}")
    print(f"  Time:       {data.get('timestamp')}")

    if args.show_log > 0:
        show_log(api_url, args.show_log)

    if data.get("access_granted"):
        print_banner("ACCESS GRANTED")
        return 0

    print_banner("ACCESS DENIED")
    return 1


if __name__ == "__main__":
    sys.exit(main())

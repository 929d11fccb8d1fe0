"""
Configuration Management Module

This module provides a centralized way to load and access configuration settings
from the config.yaml file. It uses the Singleton pattern to ensure only one
configuration instance exists throughout the application.

Values that differ per deployment (collection, device URLs, threshold) can be
overridden with environment variables, which are also read from a .env file.

Usage:
    from door_access.config import get_config, load_access_config
    config = get_config()
    access_config = load_access_config()
"""

import os
import yaml
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv


# Store the singleton instance (module-level variable)
_config_instance: Optional[Dict[str, Any]] = None

DEFAULT_COLLECTION_ID = "smart-door-faces"
DEFAULT_CAMERA_URL = "http://192.168.1.140/capture"
DEFAULT_DOOR_URL = "http://192.168.1.141/door"
DEFAULT_CONFIDENCE_THRESHOLD = 75.0

# Environment variable -> (section, key)
ENV_OVERRIDES = {
    "COLLECTION_ID": ("recognition", "collection_id"),
    "CONFIDENCE_THRESHOLD": ("recognition", "confidence_threshold"),
    "AWS_REGION": ("recognition", "region"),
    "ESP32_CAM_CAPTURE_URL": ("devices", "camera_url"),
    "PICO2_DOOR_URL": ("devices", "door_url"),
}


def get_project_root() -> Path:
    """
    Find the project root directory.

    The project root is identified by the presence of config.yaml file.
    This function walks up the directory tree from this file's location
    until it finds config.yaml.

    Returns:
        Path: The absolute path to the project root directory.

    Raises:
        FileNotFoundError: If config.yaml cannot be found in any parent directory.
    """
    current_dir = Path(__file__).resolve().parent

    while current_dir != current_dir.parent:
        config_path = current_dir / "config.yaml"
        if config_path.exists():
            return current_dir
        current_dir = current_dir.parent

    raise FileNotFoundError(
        "Could not find config.yaml in any parent directory. "
        "Make sure you're running from within the project directory."
    )


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load configuration from a YAML file and apply environment overrides.

    Args:
        config_path: Optional path to the config file.
                     If not provided, uses the default config.yaml in project root.

    Returns:
        Dict containing all configuration values.

    Raises:
        FileNotFoundError: If the config file doesn't exist.
        yaml.YAMLError: If the config file contains invalid YAML.
    """
    if config_path is None:
        project_root = get_project_root()
        config_path = project_root / "config.yaml"
    else:
        config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    load_dotenv()
    apply_env_overrides(config)

    return config


def apply_env_overrides(config: Dict[str, Any], environ=None) -> Dict[str, Any]:
    """
    Overlay environment variables onto a loaded configuration dict.

    Args:
        config: Configuration dict, modified in place.
        environ: Mapping to read variables from (defaults to os.environ).

    Returns:
        The same config dict, for chaining.
    """
    environ = os.environ if environ is None else environ

    for env_name, (section, key) in ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value:
            config.setdefault(section, {})[key] = value

    return config


def get_config(reload: bool = False) -> Dict[str, Any]:
    """
    Get the configuration singleton.

    Args:
        reload: If True, forces reloading the configuration from disk.
                Useful for testing or if the config file has changed.

    Returns:
        Dict containing all configuration values.
    """
    global _config_instance

    if _config_instance is None or reload:
        _config_instance = load_config()

    return _config_instance


def get_section(section_name: str) -> Dict[str, Any]:
    """
    Get a specific section from the configuration.

    Args:
        section_name: Name of the configuration section
                      (e.g., "recognition", "devices", "api")

    Returns:
        Dict containing the section's configuration values.

    Raises:
        KeyError: If the section doesn't exist in the configuration.
    """
    config = get_config()

    if section_name not in config:
        raise KeyError(
            f"Configuration section '{section_name}' not found. "
            f"Available sections: {list(config.keys())}"
        )

    return config[section_name]


def get_recognition_config() -> Dict[str, Any]:
    """Get recognition provider configuration."""
    return get_section("recognition")


def get_devices_config() -> Dict[str, Any]:
    """Get camera and door device configuration."""
    return get_section("devices")


def get_api_config() -> Dict[str, Any]:
    """Get API configuration."""
    return get_section("api")


def get_server_config() -> Dict[str, Any]:
    """
    Get server configuration for the API.

    Returns:
        Dict with host and port for the API server.
    """
    api_config = get_api_config()
    base_url = api_config.get("base_url", "http://localhost:3000")

    host = "0.0.0.0"
    port = 3000

    try:
        url_part = base_url.split("//")[-1]  # Remove http:// or https://
        if ":" in url_part:
            host_part, port_str = url_part.rsplit(":", 1)
            port = int(port_str.rstrip("/"))
            if host_part != "localhost":
                host = host_part
    except (ValueError, IndexError):
        pass

    return {"host": host, "port": port}


@dataclass(frozen=True)
class AccessConfig:
    """
    Immutable settings consumed by the decision engine.

    Attributes:
        collection_id: Rekognition collection searched on every check.
        camera_url: URL returning one still image on GET.
        door_url: URL accepting lock/unlock commands on POST.
        confidence_threshold: Minimum provider similarity (0-100) to grant access.
        region: AWS region for the Rekognition client (None = boto3 default).
        device_timeout: Per-request timeout for camera and door calls, seconds.
    """

    collection_id: str = DEFAULT_COLLECTION_ID
    camera_url: str = DEFAULT_CAMERA_URL
    door_url: str = DEFAULT_DOOR_URL
    confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD
    region: Optional[str] = None
    device_timeout: float = 10.0

    def __post_init__(self):
        if not 0.0 <= self.confidence_threshold <= 100.0:
            raise ValueError(
                f"confidence_threshold must be within 0-100, got {self.confidence_threshold}"
            )
        if not self.collection_id:
            raise ValueError("collection_id must not be empty")


def load_access_config(config: Optional[Dict[str, Any]] = None) -> AccessConfig:
    """
    Build the immutable AccessConfig from the loaded configuration.

    Missing keys fall back to the defaults above. A threshold that cannot be
    parsed as a number also falls back to the default.

    Args:
        config: Configuration dict (defaults to the singleton).

    Returns:
        AccessConfig instance.
    """
    if config is None:
        config = get_config()

    recognition = config.get("recognition") or {}
    devices = config.get("devices") or {}

    try:
        threshold = float(recognition.get("confidence_threshold", DEFAULT_CONFIDENCE_THRESHOLD))
    except (TypeError, ValueError):
        threshold = DEFAULT_CONFIDENCE_THRESHOLD

    return AccessConfig(
        collection_id=recognition.get("collection_id") or DEFAULT_COLLECTION_ID,
        camera_url=devices.get("camera_url") or DEFAULT_CAMERA_URL,
        door_url=devices.get("door_url") or DEFAULT_DOOR_URL,
        confidence_threshold=threshold,
        region=recognition.get("region") or None,
        device_timeout=float(devices.get("timeout_seconds", 10.0)),
    )


if __name__ == "__main__":
    print("Testing configuration loader...")

    config = get_config()
    print(f"Successfully loaded config with sections: {list(config.keys())}")
    print(load_access_config(config))

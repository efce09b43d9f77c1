"""
Configuration management for focuswatch.
- Loads from config.yaml
- Loads secrets from .env file
- Environment variable overrides (FOCUSWATCH_<KEY>)
- Sensible defaults with validation
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml

from focuswatch.utils.logger import get_logger

logger = get_logger(__name__)

# ──────────────────────────────────────────────────────────────────────────────
# Defaults
# ──────────────────────────────────────────────────────────────────────────────
DEFAULTS: dict[str, Any] = {
    # Camera
    "camera_source": 0,  # webcam index, or a video path/URL
    "frame_width": 640,
    "frame_height": 480,
    # Model & Detection
    "model_path": "models/yolov8n.pt",  # smallest YOLOv8, auto-downloads
    "inference_confidence": 0.25,  # YOLO pre-filter, below the trigger gate
    "detection_interval_ms": 400,  # pause between ticks
    "confidence_threshold": 0.65,  # trigger gate (strict >)
    "upper_region_fraction": 0.5,  # top edge must be above this share of the height
    "watched_classes": ["cell phone", "remote"],
    "trigger_message": "Phone down. That notification can wait, your code can't.",
    "rearm_seconds": 0,  # 0 = stop after the first distraction
    # Output
    "save_snapshots": True,
    "snapshots_dir": "snapshots",
    # Logging
    "log_level": "INFO",  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    "log_file": "logs/focuswatch.log",
    # Notifications
    "ntfy_enabled": False,
    "ntfy_topic": "",  # Can be set in YAML or via NTFY_TOPIC env var
    "notification_cooldown_minutes": 5,
}

REQUIRED_FIELDS = ["model_path"]

NUMERIC_FIELDS = [
    "frame_width",
    "frame_height",
    "inference_confidence",
    "detection_interval_ms",
    "confidence_threshold",
    "upper_region_fraction",
    "rearm_seconds",
    "notification_cooldown_minutes",
]

# Int defaults that also accept a fractional value
FRACTIONAL_FIELDS = {"detection_interval_ms", "rearm_seconds"}


# ──────────────────────────────────────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────────────────────────────────────
def _load_env_file(env_path: Path = Path(".env")) -> None:
    """Load .env file into os.environ (simple implementation without python-dotenv)."""
    if not env_path.exists():
        return

    with env_path.open() as f:
        for line in f:
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            if "=" in line:
                key, _, value = line.partition("=")
                key = key.strip()
                value = value.strip()
                # Don't override existing env vars
                if key and key not in os.environ:
                    os.environ[key] = value


def _cast(value: str, reference: Any, key: str = "value") -> Any:
    """
    Cast string value to match the type of reference.

    Raises ValueError naming the key when a number can't be parsed.
    """
    if isinstance(reference, bool):
        return value.lower() in ("1", "true", "yes")
    if isinstance(reference, list):
        return [item.strip() for item in value.split(",") if item.strip()]
    if not isinstance(reference, (int, float)):
        return value

    if isinstance(reference, int):
        try:
            return int(value)
        except ValueError:
            # camera_source may be a device index or a path/URL
            if key == "camera_source":
                return value
            if key not in FRACTIONAL_FIELDS:
                raise ValueError(f"{key} must be a whole number, got {value!r}") from None

    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{key} must be a number, got {value!r}") from None


def _apply_env_overrides(cfg: dict[str, Any]) -> None:
    """Override cfg values with FOCUSWATCH_<KEY> env vars (in-place)."""
    for key, default in DEFAULTS.items():
        env_key = f"FOCUSWATCH_{key.upper()}"
        if env_key in os.environ:
            value = os.environ[env_key]
            if value:
                cfg[key] = _cast(value, default, key)


def _validate(cfg: dict[str, Any]) -> None:
    """
    Validate configuration values.

    Raises ValueError if required fields are missing or values are out of range.
    """
    for field in REQUIRED_FIELDS:
        if not cfg.get(field):
            raise ValueError(f"Missing required config field: {field}")

    for key in NUMERIC_FIELDS:
        value = cfg.get(key, DEFAULTS[key])
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError(f"{key} must be a number, got {value!r}")

    for key in ("confidence_threshold", "inference_confidence"):
        value = cfg.get(key, DEFAULTS[key])
        if not 0.0 <= value <= 1.0:
            raise ValueError(f"{key} must be between 0.0 and 1.0")

    fraction = cfg.get("upper_region_fraction", 0.5)
    if not 0.0 < fraction <= 1.0:
        raise ValueError("upper_region_fraction must be greater than 0.0 and at most 1.0")

    interval = cfg.get("detection_interval_ms", 400)
    if interval < 1:
        raise ValueError("detection_interval_ms must be at least 1")
    if interval < 100:
        logger.warning(
            f"detection_interval_ms ({interval}) is very low. "
            f"Ticks will be paced by inference latency rather than the interval."
        )

    classes = cfg.get("watched_classes", DEFAULTS["watched_classes"])
    if not isinstance(classes, (list, tuple)):
        raise ValueError(f"watched_classes must be a list of class names, got {classes!r}")
    if not classes:
        raise ValueError("watched_classes must list at least one class name")

    if cfg.get("rearm_seconds", 0) < 0:
        raise ValueError("rearm_seconds must be non-negative")


# ──────────────────────────────────────────────────────────────────────────────
# Public API
# ──────────────────────────────────────────────────────────────────────────────
def load_config(path: str | Path = "config.yaml") -> dict[str, Any]:
    """
    Load configuration with priority: env vars > YAML file > defaults.
    Also loads .env file for secrets/credentials.
    """
    _load_env_file()

    cfg = DEFAULTS.copy()

    config_path = Path(path)
    if config_path.exists():
        with config_path.open() as f:
            file_cfg = yaml.safe_load(f) or {}
        cfg.update(file_cfg)
    else:
        logger.debug(f"No config file at {config_path}, using defaults")

    _apply_env_overrides(cfg)
    _validate(cfg)

    return cfg

"""
Output utilities for snapshot paths, snapshots, and formatting.
"""

from datetime import datetime
from pathlib import Path

import cv2

from focuswatch.utils.logger import get_logger

logger = get_logger(__name__)


def get_output_path(base_dir: str, timestamp: datetime, label: str, extension: str) -> Path:
    """
    Generate date-organized output path for snapshots.

    Args:
        base_dir: Base directory (e.g., 'snapshots')
        timestamp: Event timestamp
        label: What the file shows, e.g. 'cell_phone'
        extension: 'jpg' or 'png'

    Returns:
        Path like: snapshots/2026-10-18/distraction_143025_cell_phone.jpg
    """
    date_dir = Path(base_dir) / timestamp.strftime("%Y-%m-%d")
    date_dir.mkdir(parents=True, exist_ok=True)

    safe_label = label.replace(" ", "_")
    filename = f"distraction_{timestamp.strftime('%H%M%S')}_{safe_label}.{extension}"
    return date_dir / filename


def save_snapshot(frame_data, base_dir: str, timestamp: datetime, label: str) -> str | None:
    """
    Save frame as a timestamped JPEG.

    Returns:
        String path to saved snapshot, or None if OpenCV refused to write it
    """
    path = get_output_path(base_dir, timestamp, label, "jpg")
    if not cv2.imwrite(str(path), frame_data):
        logger.warning(f"Could not write snapshot to {path}")
        return None
    logger.debug(f"Saved snapshot: {path}")
    return str(path)


def format_duration(seconds: float) -> str:
    """
    Format duration as human-readable string.

    Examples:
        >>> format_duration(45)
        '45s'
        >>> format_duration(125)
        '2m 5s'
        >>> format_duration(3665)
        '1h 1m'
    """
    if seconds < 60:
        return f"{int(seconds)}s"
    elif seconds < 3600:
        minutes = int(seconds / 60)
        secs = int(seconds % 60)
        return f"{minutes}m {secs}s" if secs > 0 else f"{minutes}m"
    else:
        hours = int(seconds / 3600)
        minutes = int((seconds % 3600) / 60)
        return f"{hours}h {minutes}m" if minutes > 0 else f"{hours}h"

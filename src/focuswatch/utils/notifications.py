"""
Push notifications for distractions via ntfy.

The snapshot of the triggering frame is attached when one was saved;
otherwise a plain text message is sent. A cooldown keeps a restless
afternoon from turning into a wall of pushes.
"""

from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path
from typing import Any

import requests

from focuswatch.utils.logger import get_logger

logger = get_logger(__name__)

NTFY_BASE_URL = "https://ntfy.sh"


class NotificationManager:
    """
    Sends distraction alerts to an ntfy topic.

    Disabled unless ntfy_enabled is set and a topic is available
    (config ntfy_topic, or the NTFY_TOPIC env var).
    """

    def __init__(self, config: dict[str, Any]):
        self.enabled = bool(config.get("ntfy_enabled", False))
        self.cooldown_minutes = int(config.get("notification_cooldown_minutes", 5))
        self.topic = config.get("ntfy_topic") or os.getenv("NTFY_TOPIC", "")
        self.last_sent_time: datetime | None = None

        if self.enabled:
            if not self.topic:
                logger.warning(
                    "⚠️  ntfy_enabled is True but no ntfy_topic / NTFY_TOPIC set "
                    "- disabling notifications"
                )
                self.enabled = False
            else:
                logger.info(
                    f"📧 Notifications enabled: ntfy topic={self.topic}, "
                    f"cooldown={self.cooldown_minutes}min"
                )

    def send_distraction(
        self,
        message: str,
        timestamp: datetime,
        snapshot_path: Path | str | None = None,
    ) -> bool:
        """
        Send a distraction alert unless the cooldown is still running.

        Returns:
            True if notification sent, False if disabled, suppressed or failed
        """
        if not self.enabled:
            return False

        if self.last_sent_time is not None:
            elapsed_seconds = (timestamp - self.last_sent_time).total_seconds()
            cooldown_seconds = self.cooldown_minutes * 60
            if elapsed_seconds < cooldown_seconds:
                remaining_minutes = int((cooldown_seconds - elapsed_seconds) / 60)
                logger.info(
                    f"🔇 Distraction notification suppressed "
                    f"(cooldown active: {remaining_minutes}m remaining)"
                )
                return False

        title = f"Distracted at {timestamp.strftime('%I:%M %p')}"
        success = self._post(title, message, snapshot_path)
        if success:
            self.last_sent_time = timestamp
        return success

    def _post(self, title: str, message: str, snapshot_path: Path | str | None) -> bool:
        """POST to the topic, attaching the snapshot as the body when it exists."""
        url = f"{NTFY_BASE_URL}/{self.topic}"
        headers = {"Title": title}

        photo = Path(snapshot_path) if snapshot_path else None
        try:
            if photo is not None and photo.exists():
                headers["Filename"] = photo.name
                headers["X-Message"] = message
                resp = requests.post(url, data=photo.read_bytes(), headers=headers, timeout=10)
            else:
                headers["Content-Type"] = "text/plain; charset=utf-8"
                resp = requests.post(url, data=message.encode("utf-8"), headers=headers, timeout=10)

            if 200 <= resp.status_code < 300:
                logger.info(f"📧 ntfy sent: {title}")
                return True
            logger.error(f"❌ ntfy error {resp.status_code}: {resp.text[:200]}")
            return False

        except requests.Timeout:
            logger.error(f"❌ ntfy timeout (10s): {title}")
            return False
        except requests.ConnectionError as e:
            logger.error(f"❌ ntfy connection error: {e}")
            return False
        except Exception as e:
            logger.error(f"❌ ntfy failed: {e}")
            return False

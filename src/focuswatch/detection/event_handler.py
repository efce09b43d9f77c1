"""
Event handler for distraction events.

Routes a DistractionEvent to logging, a snapshot on disk and push
notifications. Separated from FocusMonitor to keep orchestration clean.
"""

from __future__ import annotations

from focuswatch.detection.events import DistractionEvent
from focuswatch.utils.logger import get_logger
from focuswatch.utils.notifications import NotificationManager
from focuswatch.utils.output import save_snapshot

logger = get_logger(__name__)


class DistractionEventHandler:
    """Handles distraction events emitted by the detection loop."""

    def __init__(
        self,
        notifications: NotificationManager | None = None,
        snapshots_dir: str = "snapshots",
        save_snapshots: bool = True,
    ):
        """
        Initialize event handler.

        Args:
            notifications: Optional notification manager for alerts
            snapshots_dir: Base directory for saving snapshots
            save_snapshots: Write the triggering frame to disk
        """
        self.notifications = notifications
        self.snapshots_dir = snapshots_dir
        self.save_snapshots = save_snapshots
        self.last_snapshot: str | None = None

    def handle_event(self, event: DistractionEvent) -> None:
        """Log, snapshot and notify for one distraction."""
        detection = event.detection
        logger.event(
            f"🚨 CAUGHT at {event.timestamp.strftime('%I:%M:%S %p')}: "
            f"{detection.class_name} ({detection.confidence:.0%}) - {event.message}"
        )

        snapshot_path = None
        if self.save_snapshots and event.frame is not None:
            snapshot_path = save_snapshot(
                event.frame.data,
                self.snapshots_dir,
                event.timestamp,
                detection.class_name,
            )
        self.last_snapshot = snapshot_path

        if self.notifications:
            self.notifications.send_distraction(event.message, event.timestamp, snapshot_path)

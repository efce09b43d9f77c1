"""
In-memory stats for one focus session.

Nothing here is written to disk; the counter lives as long as the process.
"""

from __future__ import annotations

from datetime import datetime
from typing import Callable

from focuswatch.detection.events import DistractionEvent
from focuswatch.utils.output import format_duration

FALLBACK_MESSAGE = "You were caught!"


class FocusSession:
    """Counts distractions and remembers the latest message."""

    def __init__(self, clock: Callable[[], datetime] = datetime.now):
        self._clock = clock
        self.started_at = clock()
        self.distraction_count = 0
        self.last_message = ""
        self.events: list[DistractionEvent] = []

    def record(self, event: DistractionEvent) -> str:
        """Count a distraction and return the message to show for it."""
        self.distraction_count += 1
        self.last_message = event.message or FALLBACK_MESSAGE
        self.events.append(event)
        return self.last_message

    @property
    def elapsed_seconds(self) -> float:
        return (self._clock() - self.started_at).total_seconds()

    def summary(self) -> str:
        count = self.distraction_count
        plural = "" if count == 1 else "s"
        return f"{count} distraction{plural} in {format_duration(self.elapsed_seconds)}"

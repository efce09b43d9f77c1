"""
Distraction event model and trigger message providers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from focuswatch.detection.capture import Frame
    from focuswatch.detection.detect import Detection

DEFAULT_TRIGGER_MESSAGE = "Phone down. That notification can wait, your code can't."


@dataclass
class DistractionEvent:
    """Emitted once when a loop activation catches a distraction."""

    message: str
    detection: Detection
    timestamp: datetime
    frame: Frame | None = field(default=None, repr=False)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON (frame pixels are left out)."""
        return {
            "message": self.message,
            "detection": self.detection.to_dict(),
            "timestamp": self.timestamp.isoformat(),
        }


class MessageProvider(Protocol):
    def __call__(self, detection: Detection) -> str: ...


class StaticMessageProvider:
    """Returns the same message every time."""

    def __init__(self, message: str = DEFAULT_TRIGGER_MESSAGE):
        self.message = message

    def __call__(self, detection: Detection) -> str:
        return self.message

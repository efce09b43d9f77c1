"""
Distraction trigger rule.

A detection set counts as a distraction when any single detection is a
watched class, scores strictly above the confidence gate, and has its
top edge strictly above the spatial cut-off (a fraction of the frame
height). Only the top edge is checked; a tall box starting in the lower
half never triggers.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from focuswatch.detection.detect import Detection

# COCO labels. "remote" is a stand-in for phones the model misreads.
WATCHED_CLASSES = frozenset({"cell phone", "remote"})
CONFIDENCE_THRESHOLD = 0.65
UPPER_REGION_FRACTION = 0.5


@dataclass(frozen=True)
class TriggerRule:
    """Thresholds for the distraction predicate."""

    watched_classes: frozenset[str] = field(default=WATCHED_CLASSES)
    confidence_threshold: float = CONFIDENCE_THRESHOLD
    upper_region_fraction: float = UPPER_REGION_FRACTION

    @classmethod
    def from_config(cls, config: dict) -> TriggerRule:
        return cls(
            watched_classes=frozenset(config.get("watched_classes", WATCHED_CLASSES)),
            confidence_threshold=config.get("confidence_threshold", CONFIDENCE_THRESHOLD),
            upper_region_fraction=config.get("upper_region_fraction", UPPER_REGION_FRACTION),
        )

    def is_watched(self, detection: Detection) -> bool:
        return detection.class_name in self.watched_classes

    def is_confident(self, detection: Detection) -> bool:
        return detection.confidence > self.confidence_threshold

    def is_upper_region(self, detection: Detection, frame_height: float) -> bool:
        return detection.y < frame_height * self.upper_region_fraction

    def matches(self, detection: Detection, frame_height: float) -> bool:
        """True if this one detection is a distraction."""
        return (
            self.is_watched(detection)
            and self.is_confident(detection)
            and self.is_upper_region(detection, frame_height)
        )

    def first_match(
        self, detections: Iterable[Detection], frame_height: float
    ) -> Detection | None:
        """Return the first triggering detection, or None."""
        for detection in detections:
            if self.matches(detection, frame_height):
                return detection
        return None


DEFAULT_RULE = TriggerRule()


def is_distracted(
    detections: Iterable[Detection],
    frame_height: float,
    rule: TriggerRule = DEFAULT_RULE,
) -> bool:
    """Trigger predicate over a whole detection set."""
    return rule.first_match(detections, frame_height) is not None

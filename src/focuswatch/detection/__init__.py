"""
focuswatch.detection: Camera sampling, inference and the distraction trigger.

Modules:
    capture: CameraCapture frame source
    detect: PhoneDetector (YOLOv8) and Detection records
    loader: ModelLoader with loading/ready/error status
    trigger: TriggerRule and the is_distracted predicate
    detection_loop: DetectionLoop, the cancellable sampling loop
    focus_monitor: FocusMonitor orchestration and CLI
"""

from focuswatch.detection.capture import CameraCapture, Frame
from focuswatch.detection.detect import Detection, PhoneDetector
from focuswatch.detection.detection_loop import DetectionLoop
from focuswatch.detection.events import DistractionEvent
from focuswatch.detection.loader import ModelLoader, ModelLoadError
from focuswatch.detection.loop_types import LoopState, ModelStatus
from focuswatch.detection.trigger import TriggerRule, is_distracted

__all__ = [
    "CameraCapture",
    "Frame",
    "PhoneDetector",
    "Detection",
    "DetectionLoop",
    "DistractionEvent",
    "ModelLoader",
    "ModelLoadError",
    "LoopState",
    "ModelStatus",
    "TriggerRule",
    "is_distracted",
]

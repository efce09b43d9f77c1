"""
Object detection using YOLOv8.

Provides PhoneDetector, the model handle the detection loop runs inference
with. Raw ultralytics results are converted into Detection records with
top-left based (x, y, width, height) boxes.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np

from focuswatch.utils.logger import get_logger

if TYPE_CHECKING:
    from numpy.typing import NDArray

    from focuswatch.detection.capture import Frame

logger = get_logger(__name__)

DEFAULT_MODEL_PATH = "models/yolov8n.pt"


@dataclass
class Detection:
    """A single object detection result."""

    class_name: str
    confidence: float
    bbox: tuple[float, float, float, float]  # x, y (top-left), width, height

    @property
    def x(self) -> float:
        return self.bbox[0]

    @property
    def y(self) -> float:
        return self.bbox[1]

    @property
    def width(self) -> float:
        return self.bbox[2]

    @property
    def height(self) -> float:
        return self.bbox[3]

    def to_dict(self) -> dict:
        """Serialize for JSON."""
        return {
            "class_name": self.class_name,
            "confidence": round(self.confidence, 3),
            "bbox": [round(v, 1) for v in self.bbox],
        }


def xyxy_to_xywh(x1: float, y1: float, x2: float, y2: float) -> tuple[float, float, float, float]:
    """Convert corner coordinates to (x, y, width, height) with (x, y) the top-left."""
    return (x1, y1, x2 - x1, y2 - y1)


class PhoneDetector:
    """
    YOLOv8-based detector used as the loop's model handle.

    Usage:
        detector = PhoneDetector()
        detections = await detector.detect(frame)
    """

    def __init__(
        self,
        model_path: str | Path = DEFAULT_MODEL_PATH,
        inference_confidence: float = 0.25,
    ):
        """
        Initialize detector.

        Args:
            model_path: Path to YOLO model (auto-downloads if missing)
            inference_confidence: YOLO pre-filter; the trigger applies its own gate
        """
        self.model_path = Path(model_path)
        self.inference_confidence = inference_confidence
        self._model = None

    @property
    def model(self):
        """Lazy-load the YOLO model."""
        if self._model is None:
            from ultralytics import YOLO

            logger.info(f"Loading YOLO model from {self.model_path}...")
            self._model = YOLO(str(self.model_path))
            logger.info("Model loaded successfully")
        return self._model

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    def predict(self, image: NDArray[np.uint8]) -> list[Detection]:
        """
        Run detection on a BGR image (blocking).

        Returns:
            Every detection YOLO reports above inference_confidence
        """
        results = self.model(image, conf=self.inference_confidence, verbose=False)

        detections = []
        for result in results:
            for box in result.boxes:
                class_id = int(box.cls[0])
                x1, y1, x2, y2 = (float(v) for v in box.xyxy[0].tolist())
                detections.append(
                    Detection(
                        class_name=result.names[class_id],
                        confidence=float(box.conf[0]),
                        bbox=xyxy_to_xywh(x1, y1, x2, y2),
                    )
                )

        if detections:
            summary = ", ".join(f"{d.class_name}:{d.confidence:.2f}" for d in detections[:5])
            logger.debug(f"YOLO found {len(detections)} objects: {summary}")

        return detections

    async def detect(self, frame: Frame) -> list[Detection]:
        """Run predict() on a worker thread so the event loop keeps turning."""
        return await asyncio.to_thread(self.predict, frame.data)

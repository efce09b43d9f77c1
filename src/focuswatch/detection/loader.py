"""
Model loading for the focus monitor.

ModelLoader acquires the YOLO weights once per session on a worker thread
and reports loading/ready/error to an optional status sink. A failure is
terminal until the caller invokes load() again.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Callable

from focuswatch.detection.detect import DEFAULT_MODEL_PATH, PhoneDetector
from focuswatch.detection.loop_types import ModelStatus
from focuswatch.utils.logger import get_logger

logger = get_logger(__name__)

STATUS_TEXT = {
    ModelStatus.LOADING: "Loading detection model...",
    ModelStatus.READY: "Model ready. Get to work!",
    ModelStatus.ERROR: "Could not load the detection model. Check the log.",
}


class ModelLoadError(Exception):
    """Raised when the detection model cannot be acquired or initialized."""


class ModelLoader:
    """
    Loads the detector once and hands out the same handle afterwards.

    Usage:
        loader = ModelLoader(on_status_change=print)
        detector = await loader.load()
    """

    def __init__(
        self,
        model_path: str | Path = DEFAULT_MODEL_PATH,
        inference_confidence: float = 0.25,
        on_status_change: Callable[[ModelStatus], None] | None = None,
        detector_factory: Callable[..., PhoneDetector] = PhoneDetector,
    ):
        self.model_path = Path(model_path)
        self.inference_confidence = inference_confidence
        self.on_status_change = on_status_change
        self.detector_factory = detector_factory
        self.status: ModelStatus | None = None
        self.detector: PhoneDetector | None = None

    @property
    def is_ready(self) -> bool:
        return self.status == ModelStatus.READY

    @property
    def status_text(self) -> str:
        """Human-readable status for whoever is showing it."""
        if self.status is None:
            return "Model not loaded"
        return STATUS_TEXT[self.status]

    def _set_status(self, status: ModelStatus) -> None:
        self.status = status
        if self.on_status_change is not None:
            self.on_status_change(status)

    def _load_blocking(self) -> PhoneDetector:
        detector = self.detector_factory(
            model_path=self.model_path,
            inference_confidence=self.inference_confidence,
        )
        _ = detector.model  # force the lazy load here, not on the first tick
        return detector

    async def load(self) -> PhoneDetector:
        """
        Load the model.

        Returns:
            The ready detector (the cached one on repeat calls)

        Raises:
            ModelLoadError: if the weights cannot be fetched or initialized
        """
        if self.detector is not None:
            logger.debug("Model already loaded, reusing handle")
            return self.detector

        self._set_status(ModelStatus.LOADING)
        logger.info(f"Loading detection model: {self.model_path}")

        try:
            detector = await asyncio.to_thread(self._load_blocking)
        except Exception as e:
            logger.error(f"Failed to load model {self.model_path}: {e}")
            self._set_status(ModelStatus.ERROR)
            raise ModelLoadError(f"Failed to load model {self.model_path}: {e}") from e

        self.detector = detector
        self._set_status(ModelStatus.READY)
        logger.event(f"✅ {STATUS_TEXT[ModelStatus.READY]}")
        return detector

"""
Detection loop and model status type definitions.
"""

from enum import Enum


class LoopState(Enum):
    """Lifecycle of one detection loop activation."""

    IDLE = "idle"  # Created, not started
    LOADING = "loading"  # Waiting on the model (reported by the monitor)
    RUNNING = "running"  # Ticking every interval
    TRIGGERED = "triggered"  # Distraction emitted, no more ticks
    STOPPED = "stopped"  # Cancelled by the caller


class ModelStatus(Enum):
    """Model loader status as seen by dependents."""

    LOADING = "loading"
    READY = "ready"
    ERROR = "error"

"""
focuswatch: webcam focus monitor.

Watches the camera with a small YOLO model and raises a distraction when a
phone (or something that looks like one) shows up in the upper half of the
frame with enough confidence.

Package structure:
  detection/  - Camera, detector, trigger rule, detection loop, monitor
  utils/      - Logging, configuration, snapshots, notifications
"""

__version__ = "0.1.0"

"""
Entry point for running the focus monitor as a module.

Usage:
    python -m focuswatch [--config config.yaml] [--camera 0] [--rearm SECONDS]
"""

from focuswatch.detection.focus_monitor import main

if __name__ == "__main__":
    raise SystemExit(main())

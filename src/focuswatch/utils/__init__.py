"""focuswatch.utils: logging, configuration, output and notification helpers."""

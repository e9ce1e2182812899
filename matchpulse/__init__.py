"""Live football scores: adaptive polling, change detection and match events."""

__version__ = "0.1.0"

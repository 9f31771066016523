"""Job progress tracking."""

from dubflow.tracker.progress import (
    DependencyNotReadyError,
    JobProgressTracker,
    format_countdown,
)

__all__ = [
    "JobProgressTracker",
    "DependencyNotReadyError",
    "format_countdown",
]

"""User-facing session flow.

    INPUT -> SIGNUP -> PROCESSING -> DOWNLOAD
      ^________________________________|   (reset from any stage)
"""

from dubflow.session.controller import Session, describe_error
from dubflow.session.machine import (
    TRANSITIONS,
    Notification,
    NotificationLevel,
    SessionStage,
    SessionStateMachine,
    TransitionError,
)

__all__ = [
    "Session",
    "SessionStage",
    "SessionStateMachine",
    "Notification",
    "NotificationLevel",
    "TransitionError",
    "TRANSITIONS",
    "describe_error",
]

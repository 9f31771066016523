"""User-facing session stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from dubflow.utils.logging import get_logger, set_stage

logger = get_logger("session.machine")


class SessionStage(Enum):
    """What the presentation layer should show."""

    INPUT = "input"
    SIGNUP = "signup"
    PROCESSING = "processing"
    DOWNLOAD = "download"


# Forward transitions; reset to INPUT is allowed from every other stage.
TRANSITIONS: dict[SessionStage, set[SessionStage]] = {
    SessionStage.INPUT: {SessionStage.SIGNUP},
    SessionStage.SIGNUP: {SessionStage.PROCESSING, SessionStage.INPUT},
    SessionStage.PROCESSING: {SessionStage.DOWNLOAD, SessionStage.INPUT},
    SessionStage.DOWNLOAD: {SessionStage.INPUT},
}


class TransitionError(Exception):
    """Invalid stage transition."""

    def __init__(self, from_stage: SessionStage, to_stage: SessionStage) -> None:
        self.from_stage = from_stage
        self.to_stage = to_stage
        super().__init__(
            f"Invalid transition: {from_stage.name} -> {to_stage.name}"
        )


class NotificationLevel(Enum):
    INFO = "info"
    ERROR = "error"


@dataclass(frozen=True)
class Notification:
    """A human-readable message keyed by the stage it was raised in."""

    stage: SessionStage
    title: str
    message: str
    level: NotificationLevel = NotificationLevel.INFO
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict:
        return {
            "stage": self.stage.value,
            "title": self.title,
            "message": self.message,
            "level": self.level.value,
            "created_at": self.created_at.isoformat(),
        }


class SessionStateMachine:
    """
    Finite state machine for the user-facing flow.

    INPUT -> SIGNUP -> PROCESSING -> DOWNLOAD, and back to INPUT on reset.

    Performs no I/O. Failures are recorded as notifications while the
    stage stays where it is, so the user can retry without losing data.
    """

    def __init__(self) -> None:
        self.stage = SessionStage.INPUT
        self.notifications: list[Notification] = []
        self.history: list[tuple[str, str]] = []
        set_stage(self.stage.value)

    def can_transition_to(self, new_stage: SessionStage) -> bool:
        return new_stage in TRANSITIONS[self.stage]

    def _transition(self, new_stage: SessionStage) -> None:
        if not self.can_transition_to(new_stage):
            raise TransitionError(self.stage, new_stage)

        self.history.append((
            self.stage.value,
            datetime.now(timezone.utc).isoformat(),
        ))
        old_stage = self.stage
        self.stage = new_stage
        set_stage(new_stage.value)
        logger.info(
            "stage_transition",
            from_stage=old_stage.value,
            to_stage=new_stage.value,
        )

    def on_intake_accepted(self) -> None:
        self._transition(SessionStage.SIGNUP)

    def on_verified(self) -> None:
        self._transition(SessionStage.PROCESSING)

    def on_job_complete(self) -> None:
        self._transition(SessionStage.DOWNLOAD)

    def reset(self) -> None:
        """Return to INPUT, dropping notifications and history."""
        if self.stage != SessionStage.INPUT:
            self._transition(SessionStage.INPUT)
        self.notifications.clear()
        self.history.clear()

    def notify(
        self,
        title: str,
        message: str,
        level: NotificationLevel = NotificationLevel.INFO,
    ) -> Notification:
        """Record a notification for the current stage."""
        notification = Notification(
            stage=self.stage,
            title=title,
            message=message,
            level=level,
        )
        self.notifications.append(notification)
        return notification

    @property
    def latest_notification(self) -> Optional[Notification]:
        return self.notifications[-1] if self.notifications else None

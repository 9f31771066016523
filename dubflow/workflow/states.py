"""FSM state definitions for account provisioning."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, auto
from typing import Optional


class ProvisioningState(Enum):
    """States for the provisioning FSM."""

    IDLE = auto()

    # Signup
    ACCOUNT_PENDING = auto()
    AWAITING_VERIFICATION = auto()
    VERIFIED = auto()

    # Job start
    JOB_PENDING = auto()
    JOB_RUNNING = auto()

    def is_terminal(self) -> bool:
        return self == ProvisioningState.JOB_RUNNING


# Valid state transitions. Reset replaces the whole state object instead.
TRANSITIONS: dict[ProvisioningState, set[ProvisioningState]] = {
    ProvisioningState.IDLE: {ProvisioningState.ACCOUNT_PENDING},
    ProvisioningState.ACCOUNT_PENDING: {ProvisioningState.AWAITING_VERIFICATION},
    ProvisioningState.AWAITING_VERIFICATION: {ProvisioningState.VERIFIED},
    ProvisioningState.VERIFIED: {ProvisioningState.JOB_PENDING},
    ProvisioningState.JOB_PENDING: {
        ProvisioningState.JOB_RUNNING,
        ProvisioningState.VERIFIED,  # Job start failed
    },
    ProvisioningState.JOB_RUNNING: set(),
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TransitionError(Exception):
    """Invalid state transition."""

    def __init__(self, from_state: ProvisioningState, to_state: ProvisioningState) -> None:
        self.from_state = from_state
        self.to_state = to_state
        super().__init__(
            f"Invalid transition: {from_state.name} -> {to_state.name}"
        )


@dataclass
class StateContext:
    """Context data for the current state."""

    entered_at: datetime = field(default_factory=_utcnow)

    # Set while a remote call for this state is outstanding
    in_flight: bool = False

    # Last failure seen in this state
    error_message: Optional[str] = None
    error_type: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "entered_at": self.entered_at.isoformat(),
            "in_flight": self.in_flight,
            "error_message": self.error_message,
            "error_type": self.error_type,
        }


@dataclass
class WorkflowState:
    """Current provisioning state plus its transition history."""

    state: ProvisioningState = ProvisioningState.IDLE
    context: StateContext = field(default_factory=StateContext)
    history: list[tuple[str, str]] = field(default_factory=list)

    def can_transition_to(self, new_state: ProvisioningState) -> bool:
        """Check if transition to new_state is valid."""
        return new_state in TRANSITIONS.get(self.state, set())

    def transition_to(
        self,
        new_state: ProvisioningState,
        context: Optional[StateContext] = None,
    ) -> None:
        """
        Transition to a new state.

        Args:
            new_state: Target state
            context: Optional new context for the state

        Raises:
            TransitionError: If transition is invalid
        """
        if not self.can_transition_to(new_state):
            raise TransitionError(self.state, new_state)

        self.history.append((
            self.state.name,
            _utcnow().isoformat(),
        ))

        self.state = new_state
        self.context = context or StateContext()

    def record_failure(self, error: object) -> None:
        """Remember a failure without leaving the current state."""
        self.context.in_flight = False
        self.context.error_message = str(error)
        self.context.error_type = type(error).__name__

    def to_dict(self) -> dict:
        return {
            "state": self.state.name,
            "context": self.context.to_dict(),
            "history": self.history,
        }


class WorkflowEvent(Enum):
    """Events emitted by the provisioning workflow."""

    INTAKE_ACCEPTED = auto()
    INTAKE_REJECTED = auto()

    ACCOUNT_CREATED = auto()
    ACCOUNT_FAILED = auto()

    VERIFIED = auto()
    VERIFICATION_FAILED = auto()

    JOB_STARTED = auto()
    JOB_START_FAILED = auto()

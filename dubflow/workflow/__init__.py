"""Account provisioning workflow.

Each session walks through well-defined states:

    IDLE -> ACCOUNT_PENDING -> AWAITING_VERIFICATION -> VERIFIED -> JOB_PENDING -> JOB_RUNNING
                                                             ^            |
                                                             +------------+  (job start failed)

Failures leave the workflow in its current state so the same step can be
retried; only ``reset`` goes back to IDLE.
"""

from dubflow.workflow.provisioning import ProvisioningWorkflow
from dubflow.workflow.states import (
    TRANSITIONS,
    ProvisioningState,
    StateContext,
    TransitionError,
    WorkflowEvent,
    WorkflowState,
)
from dubflow.workflow.validation import validate_credential, validate_intake

__all__ = [
    # States
    "ProvisioningState",
    "WorkflowState",
    "StateContext",
    "WorkflowEvent",
    "TransitionError",
    "TRANSITIONS",
    # Workflow
    "ProvisioningWorkflow",
    # Validation
    "validate_intake",
    "validate_credential",
]

"""Provisioning workflow: intake, signup, verification and job start."""

from __future__ import annotations

from typing import Any, Callable, Optional

from dubflow.client.remote import RemoteServiceClient
from dubflow.models.session import (
    AccountCreated,
    AccountHandle,
    Credential,
    IntakeData,
    Job,
    Verified,
)
from dubflow.utils.logging import get_logger
from dubflow.utils.result import (
    AttemptsExhaustedError,
    Err,
    Ok,
    Result,
    StateError,
    ValidationError,
)
from dubflow.workflow.states import (
    ProvisioningState,
    StateContext,
    WorkflowEvent,
    WorkflowState,
)
from dubflow.workflow.validation import validate_credential, validate_intake

logger = get_logger("workflow.provisioning")

EventHandler = Callable[[Any], None]


class ProvisioningWorkflow:
    """
    Runs the ordered provisioning sequence for one session.

    IDLE -> ACCOUNT_PENDING -> AWAITING_VERIFICATION -> VERIFIED
         -> JOB_PENDING -> JOB_RUNNING

    Owns the session's intake, credential, account handle and job. Only one
    remote call may be outstanding at a time; the state context carries the
    in-flight marker, so a second request is rejected with a StateError.
    Failures never regress the state: the caller shows the error and may
    try the same step again.
    """

    def __init__(
        self,
        client: RemoteServiceClient,
        max_verification_attempts: int = 5,
    ) -> None:
        """
        Initialize the workflow.

        Args:
            client: Remote service client
            max_verification_attempts: Rejected codes allowed before the
                session is locked; 0 disables the limit
        """
        self.client = client
        self.max_verification_attempts = max_verification_attempts

        self._handlers: dict[WorkflowEvent, list[EventHandler]] = {
            event: [] for event in WorkflowEvent
        }

        # Bumped on reset so that late results of a discarded session are dropped
        self._epoch = 0
        self._clear()

    def _clear(self) -> None:
        self._state = WorkflowState()
        self.intake: Optional[IntakeData] = None
        self.credential: Optional[Credential] = None
        self.account: Optional[AccountHandle] = None
        self.job: Optional[Job] = None
        self.email: Optional[str] = None
        self.verification_attempts = 0

    @property
    def state(self) -> ProvisioningState:
        return self._state.state

    @property
    def busy(self) -> bool:
        """True while a remote call is outstanding."""
        return self._state.context.in_flight

    @property
    def last_error(self) -> Optional[str]:
        return self._state.context.error_message

    @property
    def history(self) -> list[tuple[str, str]]:
        return list(self._state.history)

    def on(self, event: WorkflowEvent, handler: EventHandler) -> None:
        """Subscribe to a workflow event. The handler receives the event payload."""
        self._handlers[event].append(handler)

    def _emit(self, event: WorkflowEvent, payload: Any = None) -> None:
        for handler in self._handlers[event]:
            handler(payload)

    def _transition(self, new_state: ProvisioningState, in_flight: bool = False) -> None:
        old_state = self._state.state
        self._state.transition_to(new_state, StateContext(in_flight=in_flight))
        logger.info(
            "workflow_transition",
            from_state=old_state.name,
            to_state=new_state.name,
        )

    def _state_error(self, operation: str, message: str) -> Err[StateError]:
        error = StateError(operation=operation, state=self.state.name, message=message)
        logger.warning("workflow_state_error", operation=operation, state=self.state.name)
        return Err(error)

    def _stale(self, epoch: int) -> bool:
        return epoch != self._epoch

    def submit_intake(self, data: IntakeData) -> Result[IntakeData, list[ValidationError]]:
        """
        Record the intake form after syntactic validation.

        Does not start account creation; the caller triggers that separately
        so the signup form can be shown on its own.

        Args:
            data: Intake form values

        Returns:
            Ok(intake) or Err(list of field errors); state is unchanged on error
        """
        if self.state != ProvisioningState.IDLE or self.intake is not None:
            return Err([ValidationError(
                field="session",
                message=f"Intake already submitted (state {self.state.name})",
            )])

        result = validate_intake(data)
        if result.is_err():
            errors = result.unwrap_err()
            logger.info("intake_rejected", fields=[e.field for e in errors])
            self._emit(WorkflowEvent.INTAKE_REJECTED, errors)
            return result

        self.intake = data
        self.email = data.email
        logger.info(
            "intake_accepted",
            subtitle_language=data.subtitle_language,
            dubbing_language=data.dubbing_language,
        )
        self._emit(WorkflowEvent.INTAKE_ACCEPTED, data)
        return Ok(data)

    async def create_account(self, credential: Credential) -> Result[AccountCreated, Any]:
        """
        Create the remote account.

        Args:
            credential: Signup form values

        Returns:
            Ok(AccountCreated), or Err with a list of field errors, a
            RemoteError or a StateError
        """
        if self.intake is None:
            return self._state_error("create_account", "Submit the intake form first")
        if self.state not in (ProvisioningState.IDLE, ProvisioningState.ACCOUNT_PENDING):
            return self._state_error("create_account", "Account already created")
        if self.busy:
            return self._state_error("create_account", "Account creation already in progress")

        validation = validate_credential(credential)
        if validation.is_err():
            self._emit(WorkflowEvent.ACCOUNT_FAILED, validation.unwrap_err())
            return validation

        if self.state == ProvisioningState.IDLE:
            self._transition(ProvisioningState.ACCOUNT_PENDING, in_flight=True)
        else:
            self._state.context.in_flight = True

        epoch = self._epoch
        result = await self.client.create_account(
            credential.full_name,
            credential.email,
            credential.password,
        )
        if self._stale(epoch):
            return self._state_error("create_account", "Session was reset")

        if result.is_err():
            error = result.unwrap_err()
            self._state.record_failure(error)
            logger.warning("account_creation_failed", error=str(error))
            self._emit(WorkflowEvent.ACCOUNT_FAILED, error)
            return result

        created = result.unwrap()
        self.credential = credential
        self.account = AccountHandle(user_id=created.user_id)
        self.email = created.email or credential.email
        self._transition(ProvisioningState.AWAITING_VERIFICATION)
        self._emit(WorkflowEvent.ACCOUNT_CREATED, created)
        return result

    async def submit_verification_code(self, code: str) -> Result[Verified, Any]:
        """
        Verify the account and, on success, start the job.

        A rejected code leaves the workflow waiting for another code, up to
        ``max_verification_attempts`` rejections.

        Args:
            code: Code received by email

        Returns:
            Ok(Verified), or Err with a ValidationError, InvalidCodeError,
            RemoteError, AttemptsExhaustedError or StateError. The job start
            outcome is reported through events and ``self.job``.
        """
        if self.state != ProvisioningState.AWAITING_VERIFICATION:
            return self._state_error("verify", "No account is waiting for verification")
        if self.busy:
            return self._state_error("verify", "Verification already in progress")

        limit = self.max_verification_attempts
        if limit and self.verification_attempts >= limit:
            error = AttemptsExhaustedError(attempts=self.verification_attempts, limit=limit)
            logger.warning("verification_locked", attempts=self.verification_attempts)
            self._emit(WorkflowEvent.VERIFICATION_FAILED, error)
            return Err(error)

        self._state.context.in_flight = True
        epoch = self._epoch
        result = await self.client.verify_code(self.email or "", code)
        if self._stale(epoch):
            return self._state_error("verify", "Session was reset")

        if result.is_err():
            error = result.unwrap_err()
            if not isinstance(error, ValidationError):
                self.verification_attempts += 1
            self._state.record_failure(error)
            logger.warning(
                "verification_failed",
                error=str(error),
                attempts=self.verification_attempts,
            )
            self._emit(WorkflowEvent.VERIFICATION_FAILED, error)
            return result

        verified = result.unwrap()
        self.account.apply_verification(verified)
        self._transition(ProvisioningState.VERIFIED)
        self._emit(WorkflowEvent.VERIFIED, verified)

        await self.start_job()
        return result

    async def start_job(self) -> Result[Job, Any]:
        """
        Start processing the intake video with the verified account.

        Returns:
            Ok(Job) or Err with a ValidationError, RemoteError or StateError;
            a failed start returns to VERIFIED so the caller can try again
        """
        if self.state != ProvisioningState.VERIFIED:
            return self._state_error("start_job", "Account is not verified")
        if self.account is None or not self.account.verified:
            return self._state_error("start_job", "Account is not verified")

        self._transition(ProvisioningState.JOB_PENDING, in_flight=True)
        epoch = self._epoch
        result = await self.client.start_job(
            self.account.user_id,
            self.intake.video_url,
            self.intake.subtitle_language,
            self.intake.dubbing_language,
        )
        if self._stale(epoch):
            return self._state_error("start_job", "Session was reset")

        if result.is_err():
            error = result.unwrap_err()
            self._transition(ProvisioningState.VERIFIED)
            self._state.record_failure(error)
            logger.warning("job_start_failed", error=str(error))
            self._emit(WorkflowEvent.JOB_START_FAILED, error)
            return result

        started = result.unwrap()
        self.job = Job.create(started.project_id, demo=started.demo)
        self._transition(ProvisioningState.JOB_RUNNING)
        self._emit(WorkflowEvent.JOB_STARTED, self.job)
        return Ok(self.job)

    def reset(self) -> None:
        """Discard all session data and return to IDLE. Subscriptions are kept."""
        self._epoch += 1
        self._clear()
        logger.info("workflow_reset")

    def to_dict(self) -> dict:
        return {
            "state": self._state.to_dict(),
            "email": self.email,
            "account": self.account.to_dict() if self.account else None,
            "job": self.job.to_dict() if self.job else None,
            "verification_attempts": self.verification_attempts,
        }

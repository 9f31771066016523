"""Session aggregate binding the workflow, the tracker and the stage machine."""

from __future__ import annotations

import random
from typing import Any, Callable, Optional

from dubflow.client.remote import RemoteServiceClient
from dubflow.config.settings import AppConfig
from dubflow.models.downloads import DownloadBundle, build_downloads
from dubflow.models.session import (
    AccountCreated,
    AccountHandle,
    Credential,
    IntakeData,
    Job,
    Verified,
)
from dubflow.session.machine import (
    NotificationLevel,
    SessionStage,
    SessionStateMachine,
)
from dubflow.tracker.progress import JobProgressTracker
from dubflow.utils.logging import get_logger, new_session_id, set_session_context
from dubflow.utils.result import Result
from dubflow.workflow.provisioning import ProvisioningWorkflow
from dubflow.workflow.states import WorkflowEvent

logger = get_logger("session.controller")


def describe_error(error: Any) -> str:
    """Render a single error or a list of field errors as one message."""
    if isinstance(error, (list, tuple)):
        return "; ".join(str(e) for e in error)
    return str(error)


class Session:
    """
    One user's run from intake to download.

    Owns its workflow, stage machine and progress tracker; nothing is shared
    between sessions. Workflow events drive stage transitions and
    notifications; the tracker's callbacks drive the final transition.
    """

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        client: Optional[RemoteServiceClient] = None,
        on_complete: Optional[Callable[[], None]] = None,
        auto_track: bool = False,
        rng: Optional[random.Random] = None,
        session_id: Optional[str] = None,
    ) -> None:
        """
        Initialize the session.

        Args:
            config: Application configuration
            client: Remote client; one is built from the config when omitted
            on_complete: Called once when the job finishes
            auto_track: Start ticking as soon as a job starts
            rng: Random source handed to the progress tracker
            session_id: Identifier used in log context
        """
        self.config = config or AppConfig()
        self.session_id = session_id or new_session_id()
        set_session_context(self.session_id)

        self._owns_client = client is None
        self.client = client or RemoteServiceClient(self.config.remote)
        self.workflow = ProvisioningWorkflow(
            self.client,
            max_verification_attempts=self.config.verification.max_attempts,
        )
        self.machine = SessionStateMachine()
        self.tracker: Optional[JobProgressTracker] = None

        self.on_complete = on_complete
        self.auto_track = auto_track
        self._rng = rng

        self._subscribe()
        logger.info("session_created", demo_fallback=self.client.allow_demo_fallback)

    def _subscribe(self) -> None:
        on = self.workflow.on
        on(WorkflowEvent.INTAKE_ACCEPTED, self._on_intake_accepted)
        on(WorkflowEvent.INTAKE_REJECTED, self._on_intake_rejected)
        on(WorkflowEvent.ACCOUNT_CREATED, self._on_account_created)
        on(WorkflowEvent.ACCOUNT_FAILED, self._on_account_failed)
        on(WorkflowEvent.VERIFIED, self._on_verified)
        on(WorkflowEvent.VERIFICATION_FAILED, self._on_verification_failed)
        on(WorkflowEvent.JOB_STARTED, self._on_job_started)
        on(WorkflowEvent.JOB_START_FAILED, self._on_job_start_failed)

    # Workflow event handlers

    def _on_intake_accepted(self, intake: IntakeData) -> None:
        self.machine.on_intake_accepted()

    def _on_intake_rejected(self, errors: list) -> None:
        self.machine.notify("Invalid Input", describe_error(errors), NotificationLevel.ERROR)

    def _on_account_created(self, created: AccountCreated) -> None:
        message = "Please check your email for a verification code."
        if created.demo:
            message += " (demo mode)"
        self.machine.notify("Verification Required", message)

    def _on_account_failed(self, error: Any) -> None:
        self.machine.notify("Account Creation Failed", describe_error(error), NotificationLevel.ERROR)

    def _on_verified(self, verified: Verified) -> None:
        self.machine.on_verified()
        message = "Your account is now active. Processing has started."
        if verified.demo:
            message += " (demo mode)"
        self.machine.notify("Account Verified", message)

    def _on_verification_failed(self, error: Any) -> None:
        self.machine.notify("Verification Failed", describe_error(error), NotificationLevel.ERROR)

    def _on_job_started(self, job: Job) -> None:
        self.tracker = JobProgressTracker(
            job,
            config=self.config.tracker,
            on_complete=self._on_job_complete,
            on_error=self._on_step_error,
            rng=self._rng,
        )
        logger.info("tracking_job", project_id=job.project_id, demo=job.demo)
        if self.auto_track:
            self.tracker.start()

    def _on_job_start_failed(self, error: Any) -> None:
        self.machine.notify("Processing Error", describe_error(error), NotificationLevel.ERROR)

    # Tracker callbacks

    def _on_job_complete(self) -> None:
        self.machine.on_job_complete()
        self.machine.notify("Processing Complete", "Your video is ready for download!")
        if self.on_complete is not None:
            self.on_complete()

    def _on_step_error(self, message: str) -> None:
        self.machine.notify("Processing Error", message, NotificationLevel.ERROR)

    # Operations

    @property
    def stage(self) -> SessionStage:
        return self.machine.stage

    @property
    def account(self) -> Optional[AccountHandle]:
        return self.workflow.account

    @property
    def job(self) -> Optional[Job]:
        return self.workflow.job

    def submit_intake(self, data: IntakeData) -> Result:
        return self.workflow.submit_intake(data)

    async def create_account(self, credential: Credential) -> Result:
        return await self.workflow.create_account(credential)

    async def submit_verification_code(self, code: str) -> Result:
        return await self.workflow.submit_verification_code(code)

    async def start_job(self) -> Result:
        """Retry a job start that failed after verification."""
        return await self.workflow.start_job()

    def tick(self) -> bool:
        """Advance the job by one tick; False when there is nothing to advance."""
        if self.tracker is None:
            return False
        return self.tracker.tick()

    async def run_until_complete(self) -> None:
        """Tick on the event loop until the job completes or tracking is cancelled."""
        if self.tracker is None:
            raise RuntimeError("No job is running")
        self.tracker.start()
        await self.tracker.wait()

    def reset(self) -> None:
        """Discard everything and return to INPUT. Safe to call from any stage."""
        if self.tracker is not None:
            self.tracker.cancel()
            self.tracker = None
        self.workflow.reset()
        self.machine.reset()
        logger.info("session_reset")

    async def aclose(self) -> None:
        """Stop tracking and release the HTTP client."""
        if self.tracker is not None:
            await self.tracker.stop()
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> "Session":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    def downloads(self) -> Optional[DownloadBundle]:
        """Download options, available once the session reached DOWNLOAD."""
        if self.stage != SessionStage.DOWNLOAD or self.job is None:
            return None
        return build_downloads(
            self.job,
            self.workflow.intake,
            api_base_url=self.config.remote.base_url,
            editor_base_url=self.config.downloads.editor_base_url,
        )

    def snapshot(self) -> dict:
        """Everything the presentation layer renders."""
        downloads = self.downloads()
        intake = self.workflow.intake
        return {
            "session_id": self.session_id,
            "stage": self.stage.value,
            "busy": self.workflow.busy,
            "intake": intake.to_dict() if intake else None,
            "account": self.account.to_dict() if self.account else None,
            "progress": self.tracker.snapshot() if self.tracker else None,
            "downloads": downloads.to_dict() if downloads else None,
            "notifications": [n.to_dict() for n in self.machine.notifications],
        }

"""Data models for a provisioning and processing session."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


@dataclass(frozen=True)
class IntakeData:
    """Job parameters submitted on the first screen."""

    email: str
    video_url: str
    subtitle_language: str = "en"
    dubbing_language: str = "es"

    def to_dict(self) -> dict:
        return {
            "email": self.email,
            "video_url": self.video_url,
            "subtitle_language": self.subtitle_language,
            "dubbing_language": self.dubbing_language,
        }


@dataclass(frozen=True)
class Credential:
    """Signup credentials. Lives only as long as the session."""

    full_name: str
    email: str
    password: str = field(repr=False)


class AccountTier(Enum):
    """Remote account plan."""

    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"


@dataclass
class AccountHandle:
    """
    The remote account provisioned for this session.

    Created unverified from the signup response. Only a successful
    verification fills in the tier and credit fields.
    """

    user_id: str
    verified: bool = False
    account_tier: Optional[AccountTier] = None
    credits_remaining: int = 0
    credits_total: int = 0
    member_since: str = ""

    def apply_verification(self, verified: "Verified") -> None:
        """Record a successful verification result."""
        if not 0 <= verified.credits_remaining <= verified.credits_total:
            raise ValueError(
                f"Invalid credits: {verified.credits_remaining}/{verified.credits_total}"
            )
        self.verified = True
        self.account_tier = verified.account_tier
        self.credits_remaining = verified.credits_remaining
        self.credits_total = verified.credits_total
        self.member_since = verified.member_since

    @property
    def credit_percentage(self) -> int:
        """Share of credits left, rounded to a whole percent."""
        if self.credits_total == 0:
            return 0
        return round(self.credits_remaining / self.credits_total * 100)

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "verified": self.verified,
            "account_tier": self.account_tier.value if self.account_tier else None,
            "credits_remaining": self.credits_remaining,
            "credits_total": self.credits_total,
            "credit_percentage": self.credit_percentage,
            "member_since": self.member_since,
        }


class JobStatus(Enum):
    """Lifecycle of a processing job."""

    NOT_STARTED = "not_started"
    PROCESSING = "processing"
    COMPLETE = "complete"
    ERROR = "error"

    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETE, JobStatus.ERROR)


class StepStatus(Enum):
    """Lifecycle of a single job step."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

    def is_inert(self) -> bool:
        """Completed and failed steps never change again."""
        return self in (StepStatus.COMPLETED, StepStatus.ERROR)


@dataclass
class Step:
    """One ordered unit of job progress."""

    id: str
    name: str
    status: StepStatus = StepStatus.PENDING
    progress: int = 0
    message: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "status": self.status.value,
            "progress": self.progress,
            "message": self.message,
        }


# Fixed step order for every job: (id, display name)
JOB_STEPS: tuple[tuple[str, str], ...] = (
    ("account", "Account Setup"),
    ("video", "Video Processing"),
    ("subtitles", "Subtitle Generation"),
    ("dubbing", "Audio Dubbing"),
)


@dataclass
class Job:
    """A processing job started on the remote service."""

    project_id: str
    status: JobStatus = JobStatus.NOT_STARTED
    steps: list[Step] = field(default_factory=list)
    demo: bool = False

    @classmethod
    def create(cls, project_id: str, demo: bool = False) -> "Job":
        """Build a freshly started job with every step pending."""
        return cls(
            project_id=project_id,
            status=JobStatus.PROCESSING,
            steps=[Step(id=step_id, name=name) for step_id, name in JOB_STEPS],
            demo=demo,
        )

    def get_step(self, step_id: str) -> Step:
        for step in self.steps:
            if step.id == step_id:
                return step
        raise KeyError(f"Unknown step: {step_id}")

    @property
    def all_completed(self) -> bool:
        return bool(self.steps) and all(
            step.status == StepStatus.COMPLETED for step in self.steps
        )

    def to_dict(self) -> dict:
        return {
            "project_id": self.project_id,
            "status": self.status.value,
            "demo": self.demo,
            "steps": [step.to_dict() for step in self.steps],
        }


# Values returned by the remote service client


@dataclass(frozen=True)
class AccountCreated:
    """Signup accepted; a verification code is on its way."""

    user_id: str
    email: str
    verification_sent: bool
    demo: bool = False


@dataclass(frozen=True)
class Verified:
    """Verification accepted; account plan and credits."""

    account_tier: AccountTier
    credits_remaining: int
    credits_total: int
    member_since: str
    demo: bool = False


@dataclass(frozen=True)
class JobStarted:
    """The remote service accepted a processing job."""

    project_id: str
    status: str = "processing"
    demo: bool = False

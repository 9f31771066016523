"""Data models for dubflow."""

from dubflow.models.downloads import (
    DownloadBundle,
    DownloadKind,
    DownloadOption,
    build_downloads,
)
from dubflow.models.languages import LANGUAGES, is_supported, language_name
from dubflow.models.session import (
    JOB_STEPS,
    AccountCreated,
    AccountHandle,
    AccountTier,
    Credential,
    IntakeData,
    Job,
    JobStarted,
    JobStatus,
    Step,
    StepStatus,
    Verified,
)

__all__ = [
    # Session models
    "IntakeData",
    "Credential",
    "AccountTier",
    "AccountHandle",
    "JobStatus",
    "StepStatus",
    "Step",
    "Job",
    "JOB_STEPS",
    # Remote results
    "AccountCreated",
    "Verified",
    "JobStarted",
    # Languages
    "LANGUAGES",
    "is_supported",
    "language_name",
    # Downloads
    "DownloadKind",
    "DownloadOption",
    "DownloadBundle",
    "build_downloads",
]

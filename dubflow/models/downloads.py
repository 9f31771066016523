"""Download options for a finished job."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from urllib.parse import urlencode

from dubflow.models.languages import language_name
from dubflow.models.session import IntakeData, Job, JobStatus


class DownloadKind(Enum):
    """Variants of the processed video."""

    ORIGINAL = "original"
    SUBTITLES = "subtitles"
    DUBBED = "dubbed"


@dataclass(frozen=True)
class DownloadOption:
    """A single downloadable variant."""

    kind: DownloadKind
    title: str
    description: str
    url: str

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "title": self.title,
            "description": self.description,
            "url": self.url,
        }


@dataclass(frozen=True)
class DownloadBundle:
    """Everything the download screen shows."""

    project_id: str
    editor_url: str
    options: tuple[DownloadOption, ...]

    def to_dict(self) -> dict:
        return {
            "project_id": self.project_id,
            "editor_url": self.editor_url,
            "options": [option.to_dict() for option in self.options],
        }


def download_url(api_base_url: str, project_id: str, kind: DownloadKind, video_url: str) -> str:
    """Download endpoint for one variant of a project."""
    query = urlencode({"type": kind.value, "url": video_url})
    return f"{api_base_url}/videos/download/{project_id}?{query}"


def build_downloads(
    job: Job,
    intake: IntakeData,
    api_base_url: str,
    editor_base_url: str,
) -> DownloadBundle:
    """
    Build the download options for a completed job.

    Args:
        job: The completed job
        intake: Intake data the job was started from
        api_base_url: Remote API base URL
        editor_base_url: Base URL of the online project editor

    Raises:
        ValueError: If the job has not completed
    """
    if job.status != JobStatus.COMPLETE:
        raise ValueError(f"Job {job.project_id} is not complete ({job.status.value})")

    subtitle_name = language_name(intake.subtitle_language)
    dubbing_name = language_name(intake.dubbing_language)

    options = (
        DownloadOption(
            kind=DownloadKind.ORIGINAL,
            title="Original Video",
            description="Download the original video without any modifications.",
            url=intake.video_url,
        ),
        DownloadOption(
            kind=DownloadKind.SUBTITLES,
            title="Video with Subtitles",
            description=f"Download the video with {subtitle_name} subtitles.",
            url=download_url(api_base_url, job.project_id, DownloadKind.SUBTITLES, intake.video_url),
        ),
        DownloadOption(
            kind=DownloadKind.DUBBED,
            title="Dubbed Video",
            description=f"Download the video dubbed in {dubbing_name}.",
            url=download_url(api_base_url, job.project_id, DownloadKind.DUBBED, intake.video_url),
        ),
    )

    return DownloadBundle(
        project_id=job.project_id,
        editor_url=f"{editor_base_url}/{job.project_id}",
        options=options,
    )

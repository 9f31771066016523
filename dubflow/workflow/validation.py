"""Syntactic checks for user-submitted fields.

Each check returns a Result so that all field errors of a form can be
collected at once with ``collect_results``.
"""

from __future__ import annotations

import re

from dubflow.models.languages import is_supported
from dubflow.models.session import Credential, IntakeData
from dubflow.utils.result import (
    Err,
    Ok,
    Result,
    ValidationError,
    collect_results,
)

EMAIL_PATTERN = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
URL_SCHEMES = ("http://", "https://")
MIN_PASSWORD_LENGTH = 8


def check_email(value: str, field: str = "email") -> Result[str, ValidationError]:
    if not value:
        return Err(ValidationError(field=field, message="Email is required"))
    if not EMAIL_PATTERN.fullmatch(value):
        return Err(ValidationError(field=field, message="Please enter a valid email address"))
    return Ok(value)


def check_video_url(value: str) -> Result[str, ValidationError]:
    if not value:
        return Err(ValidationError(field="video_url", message="Video URL is required"))
    if not value.lower().startswith(URL_SCHEMES):
        return Err(ValidationError(field="video_url", message="Please enter a valid URL"))
    return Ok(value)


def check_language(value: str, field: str) -> Result[str, ValidationError]:
    if not is_supported(value):
        return Err(ValidationError(field=field, message=f"Unsupported language: {value!r}"))
    return Ok(value)


def validate_intake(data: IntakeData) -> Result[IntakeData, list[ValidationError]]:
    """Check every intake field, reporting all failures together."""
    return collect_results([
        check_email(data.email),
        check_video_url(data.video_url),
        check_language(data.subtitle_language, "subtitle_language"),
        check_language(data.dubbing_language, "dubbing_language"),
    ]).map(lambda _: data)


def validate_credential(credential: Credential) -> Result[Credential, list[ValidationError]]:
    """Check the signup form, reporting all failures together."""
    checks: list[Result[str, ValidationError]] = []

    if not credential.full_name.strip():
        checks.append(Err(ValidationError(field="full_name", message="Full name is required")))

    checks.append(check_email(credential.email))

    if not credential.password:
        checks.append(Err(ValidationError(field="password", message="Password is required")))
    elif len(credential.password) < MIN_PASSWORD_LENGTH:
        checks.append(Err(ValidationError(
            field="password",
            message=f"Password must be at least {MIN_PASSWORD_LENGTH} characters",
        )))

    return collect_results(checks).map(lambda _: credential)

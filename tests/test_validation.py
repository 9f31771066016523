"""Tests for intake and signup field checks."""

from __future__ import annotations

import pytest

from dubflow.models.session import Credential, IntakeData
from dubflow.workflow.validation import validate_credential, validate_intake


def _fields(result) -> list[str]:
    return [error.field for error in result.unwrap_err()]


def test_valid_intake_passes(intake):
    assert validate_intake(intake).unwrap() is intake


def test_bad_email_only_flags_email():
    result = validate_intake(IntakeData(email="bad", video_url="https://x.test/v"))

    assert _fields(result) == ["email"]
    assert result.unwrap_err()[0].message == "Please enter a valid email address"


@pytest.mark.parametrize(
    ("video_url", "message"),
    [
        ("", "Video URL is required"),
        ("ftp://x.test/v.mp4", "Please enter a valid URL"),
        ("x.test/v.mp4", "Please enter a valid URL"),
    ],
)
def test_video_url_requires_http_scheme(video_url, message):
    result = validate_intake(IntakeData(email="a@b.co", video_url=video_url))

    assert _fields(result) == ["video_url"]
    assert result.unwrap_err()[0].message == message


def test_all_field_errors_are_collected():
    result = validate_intake(IntakeData(
        email="",
        video_url="nope",
        subtitle_language="xx",
        dubbing_language="es",
    ))

    assert _fields(result) == ["email", "video_url", "subtitle_language"]


@pytest.mark.parametrize("email", ["a@b", "a b@c.de", "@c.de", "a@@c.de"])
def test_email_syntax(email):
    assert _fields(validate_intake(IntakeData(email=email, video_url="https://x.test"))) == ["email"]


def test_valid_credential_passes(credential):
    assert validate_credential(credential).unwrap() is credential


def test_credential_checks():
    result = validate_credential(Credential(full_name="  ", email="ana@example", password="short"))

    assert _fields(result) == ["full_name", "email", "password"]
    assert result.unwrap_err()[2].message == "Password must be at least 8 characters"


def test_credential_repr_hides_password(credential):
    assert "s3cret-pass" not in repr(credential)

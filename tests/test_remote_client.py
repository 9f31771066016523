"""Tests for the remote service client and its demo fallback."""

from __future__ import annotations

import json
from datetime import datetime

import httpx
import pytest

from dubflow.client.remote import demo_user_id, member_since_label
from dubflow.models.session import AccountTier
from dubflow.utils.result import InvalidCodeError, RemoteError, ValidationError

from tests.conftest import PROCESS, SIGNUP, VERIFY


# ======================================================================
# Reachable service
# ======================================================================


async def test_create_account_parses_response(service, make_client):
    client = make_client(service)

    result = await client.create_account("Ana Lima", "ana@example.com", "s3cret-pass")

    created = result.unwrap()
    assert created.user_id == "user-123"
    assert created.verification_sent is True
    assert created.demo is False

    request = service.calls(SIGNUP)[0]
    assert json.loads(request.content) == {
        "fullName": "Ana Lima",
        "email": "ana@example.com",
        "password": "s3cret-pass",
    }


async def test_verify_code_parses_response(service, make_client):
    client = make_client(service)

    verified = (await client.verify_code("ana@example.com", "654321")).unwrap()

    assert verified.account_tier == AccountTier.PRO
    assert (verified.credits_remaining, verified.credits_total) == (40, 50)
    assert verified.member_since == "May 2024"
    assert verified.demo is False


async def test_start_job_sends_bearer_identity(service, make_client):
    client = make_client(service)

    started = (await client.start_job("user-123", "https://v.test/a.mp4", "fr", "de")).unwrap()

    assert started.project_id == "proj-42"
    assert started.status == "processing"
    request = service.calls(PROCESS)[0]
    assert request.headers["Authorization"] == "Bearer user-123"
    assert json.loads(request.content) == {
        "videoUrl": "https://v.test/a.mp4",
        "subtitleLanguage": "fr",
        "dubbingLanguage": "de",
    }


# ======================================================================
# Validation happens before any request
# ======================================================================


@pytest.mark.parametrize(
    ("args", "field"),
    [
        (("", "ana@example.com", "pw"), "full_name"),
        (("Ana", "   ", "pw"), "email"),
        (("Ana", "ana@example.com", ""), "password"),
    ],
)
async def test_create_account_rejects_empty_fields(service, make_client, args, field):
    client = make_client(service)

    result = await client.create_account(*args)

    assert result.unwrap_err() == ValidationError(field=field, message="This field is required")
    assert service.requests == []


async def test_verify_code_rejects_empty_code(offline, make_client):
    client = make_client(offline)

    result = await client.verify_code("ana@example.com", "")

    assert isinstance(result.unwrap_err(), ValidationError)
    assert result.unwrap_err().field == "code"
    assert offline.requests == []


async def test_start_job_rejects_empty_video_url(offline, make_client):
    client = make_client(offline)

    result = await client.start_job("user-123", "", "en", "es")

    assert result.unwrap_err().field == "video_url"
    assert offline.requests == []


# ======================================================================
# Demo fallback
# ======================================================================


async def test_create_account_falls_back_when_offline(offline, make_client):
    client = make_client(offline)

    created = (await client.create_account("Ana", "ana@example.com", "s3cret-pass")).unwrap()

    assert created.demo is True
    assert created.verification_sent is True
    assert created.user_id == demo_user_id("ana@example.com")


@pytest.mark.parametrize(
    ("when", "expected"),
    [(datetime(2024, 1, 31), "January 2024"), (datetime(2026, 10, 18), "October 2026")],
)
def test_member_since_label_uses_english_month(when, expected):
    assert member_since_label(when) == expected


def test_demo_user_id_is_stable():
    assert demo_user_id("ana@example.com") == demo_user_id("ana@example.com")
    assert demo_user_id("ana@example.com") == demo_user_id(" ANA@example.com ")
    assert demo_user_id("ana@example.com") != demo_user_id("bo@example.com")


async def test_verify_six_digit_code_falls_back_to_free_tier(offline, make_client):
    client = make_client(offline)

    verified = (await client.verify_code("ana@example.com", "123456")).unwrap()

    assert verified.account_tier == AccountTier.FREE
    assert verified.credits_remaining == 5
    assert verified.credits_total == 10
    assert verified.member_since == member_since_label()
    assert verified.demo is True


@pytest.mark.parametrize("code", ["abc123", "12345", "1234567", "12 456", " 123456 ", "123456\n"])
async def test_verify_other_codes_rejected_when_offline(offline, make_client, code):
    client = make_client(offline)

    result = await client.verify_code("ana@example.com", code)

    assert isinstance(result.unwrap_err(), InvalidCodeError)


async def test_start_job_falls_back_with_random_project(offline, make_client):
    client = make_client(offline)

    first = (await client.start_job("user-123", "https://v.test/a.mp4", "en", "es")).unwrap()
    second = (await client.start_job("user-123", "https://v.test/a.mp4", "en", "es")).unwrap()

    assert first.project_id.startswith("demo-project-")
    assert first.status == "processing"
    assert first.demo is True
    assert first.project_id != second.project_id


async def test_non_2xx_response_falls_back(service, make_client):
    service.reply(SIGNUP, 503, {"message": "Service unavailable"})
    client = make_client(service)

    created = (await client.create_account("Ana", "ana@example.com", "s3cret-pass")).unwrap()

    assert created.demo is True


async def test_timeout_falls_back(service, make_client):
    service.fail(PROCESS, httpx.ReadTimeout)
    client = make_client(service)

    started = (await client.start_job("user-123", "https://v.test/a.mp4", "en", "es")).unwrap()

    assert started.demo is True


@pytest.mark.parametrize(
    "body",
    [
        b"<html>gateway error</html>",
        {"accountType": "platinum", "credits": 1, "maxCredits": 2},
        {"accountType": "free", "credits": 11, "maxCredits": 10},
        {"accountType": "free", "credits": "5", "maxCredits": 10},
        [1, 2, 3],
    ],
)
async def test_malformed_verification_body_falls_back(service, make_client, body):
    service.reply(VERIFY, 200, body)
    client = make_client(service)

    verified = (await client.verify_code("ana@example.com", "123456")).unwrap()

    assert verified.demo is True
    assert verified.account_tier == AccountTier.FREE


# ======================================================================
# Fallback disabled
# ======================================================================


async def test_remote_message_surfaced_without_fallback(service, make_client):
    service.reply(SIGNUP, 409, {"message": "Email already registered"})
    client = make_client(service, allow_demo_fallback=False)

    error = (await client.create_account("Ana", "ana@example.com", "s3cret-pass")).unwrap_err()

    assert error == RemoteError(
        operation="create_account",
        message="Email already registered",
        status_code=409,
    )


async def test_default_message_without_fallback(service, make_client):
    service.reply(PROCESS, 500, b"")
    client = make_client(service, allow_demo_fallback=False)

    error = (await client.start_job("user-123", "https://v.test/a.mp4", "en", "es")).unwrap_err()

    assert isinstance(error, RemoteError)
    assert error.message == "Failed to process video"
    assert error.status_code == 500


async def test_verify_offline_without_fallback_is_remote_error(offline, make_client):
    client = make_client(offline, allow_demo_fallback=False)

    error = (await client.verify_code("ana@example.com", "123456")).unwrap_err()

    assert isinstance(error, RemoteError)
    assert error.operation == "verify_code"
    assert error.status_code is None


async def test_missing_project_id_without_fallback(service, make_client):
    service.reply(PROCESS, 200, {"status": "processing"})
    client = make_client(service, allow_demo_fallback=False)

    error = (await client.start_job("user-123", "https://v.test/a.mp4", "en", "es")).unwrap_err()

    assert "projectId" in error.message

"""Client for the remote video service: signup, verification and job start."""

from __future__ import annotations

import hashlib
import re
import uuid
from datetime import datetime
from typing import Any, Optional

import httpx

from dubflow.config.settings import RemoteConfig
from dubflow.models.session import AccountCreated, AccountTier, JobStarted, Verified
from dubflow.utils.logging import get_logger
from dubflow.utils.result import (
    Err,
    InvalidCodeError,
    Ok,
    RemoteError,
    Result,
    ValidationError,
)

logger = get_logger("client.remote")

SIGNUP_PATH = "/auth/signup"
VERIFY_PATH = "/auth/verify"
PROCESS_PATH = "/videos/process"

# Demo verification accepts exactly six ASCII digits
DEMO_CODE_PATTERN = re.compile(r"[0-9]{6}")

DEMO_ACCOUNT_TIER = AccountTier.FREE
DEMO_CREDITS_REMAINING = 5
DEMO_CREDITS_TOTAL = 10


def demo_user_id(email: str) -> str:
    """Stable pseudo identifier for an account created in demo mode."""
    digest = hashlib.sha256(email.strip().lower().encode("utf-8")).hexdigest()
    return f"demo-user-{digest[:12]}"


def demo_project_id() -> str:
    """Random identifier for a job started in demo mode."""
    return f"demo-project-{uuid.uuid4().hex[:8]}"


MONTH_NAMES = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


def member_since_label(when: Optional[datetime] = None) -> str:
    """Month and year label in English, e.g. 'October 2026', whatever the locale."""
    when = when or datetime.now()
    return f"{MONTH_NAMES[when.month - 1]} {when.year}"


def _missing(value: Optional[str]) -> bool:
    return value is None or not value.strip()


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


class RemoteServiceClient:
    """
    Typed wrapper around the three remote operations.

    Every method returns a Result. Transport failures (network errors,
    timeouts, non-2xx responses, malformed bodies) never raise: they either
    degrade to deterministic demo data, when ``allow_demo_fallback`` is on,
    or come back as ``Err(RemoteError)``.
    """

    def __init__(
        self,
        config: Optional[RemoteConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            config: Remote service settings
            http_client: Preconfigured httpx client; one is created from
                the config when omitted and closed by ``aclose``
        """
        self.config = config or RemoteConfig()
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=self.config.base_url,
            timeout=self.config.request_timeout,
        )

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "RemoteServiceClient":
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.aclose()

    @property
    def allow_demo_fallback(self) -> bool:
        return self.config.allow_demo_fallback

    async def create_account(
        self,
        full_name: str,
        email: str,
        password: str,
    ) -> Result[AccountCreated, ValidationError | RemoteError]:
        """
        Create an account on the remote service.

        Args:
            full_name: Account holder's name
            email: Account email; the verification code is sent here
            password: Account password

        Returns:
            Ok(AccountCreated) or Err(ValidationError | RemoteError)
        """
        for name, value in (("full_name", full_name), ("email", email), ("password", password)):
            if _missing(value):
                return Err(ValidationError(field=name, message="This field is required"))

        result = await self._post(
            operation="create_account",
            path=SIGNUP_PATH,
            payload={"fullName": full_name, "email": email, "password": password},
            default_message="Failed to create account",
        )
        result = result.and_then(lambda body: self._parse_account(body, email))

        if result.is_ok():
            logger.info("account_created", user_id=result.unwrap().user_id)
            return result

        error = result.unwrap_err()
        if not self.allow_demo_fallback:
            logger.warning("remote_call_failed", operation="create_account", error=str(error))
            return result

        created = AccountCreated(
            user_id=demo_user_id(email),
            email=email,
            verification_sent=True,
            demo=True,
        )
        logger.warning(
            "demo_fallback_used",
            operation="create_account",
            reason=str(error),
            user_id=created.user_id,
        )
        return Ok(created)

    async def verify_code(
        self,
        email: str,
        code: str,
    ) -> Result[Verified, ValidationError | RemoteError | InvalidCodeError]:
        """
        Verify an account with the code sent by email.

        In demo mode only a six-digit code is accepted.

        Args:
            email: Account email
            code: Verification code

        Returns:
            Ok(Verified) or Err(ValidationError | RemoteError | InvalidCodeError)
        """
        if _missing(email):
            return Err(ValidationError(field="email", message="This field is required"))
        if _missing(code):
            return Err(ValidationError(field="code", message="Please enter the verification code"))

        result = await self._post(
            operation="verify_code",
            path=VERIFY_PATH,
            payload={"email": email, "code": code},
            default_message="Failed to verify account",
        )
        result = result.and_then(self._parse_verification)

        if result.is_ok():
            logger.info("account_verified", account_tier=result.unwrap().account_tier.value)
            return result

        error = result.unwrap_err()
        if not self.allow_demo_fallback:
            logger.warning("remote_call_failed", operation="verify_code", error=str(error))
            return result

        if not DEMO_CODE_PATTERN.fullmatch(code):
            logger.warning("demo_code_rejected", reason=str(error))
            return Err(InvalidCodeError())

        verified = Verified(
            account_tier=DEMO_ACCOUNT_TIER,
            credits_remaining=DEMO_CREDITS_REMAINING,
            credits_total=DEMO_CREDITS_TOTAL,
            member_since=member_since_label(),
            demo=True,
        )
        logger.warning("demo_fallback_used", operation="verify_code", reason=str(error))
        return Ok(verified)

    async def start_job(
        self,
        user_id: str,
        video_url: str,
        subtitle_language: str,
        dubbing_language: str,
    ) -> Result[JobStarted, ValidationError | RemoteError]:
        """
        Start a subtitle and dubbing job for a video.

        Args:
            user_id: Verified account identifier, sent as bearer identity
            video_url: Source video URL
            subtitle_language: Language code for subtitles
            dubbing_language: Language code for dubbing

        Returns:
            Ok(JobStarted) or Err(ValidationError | RemoteError)
        """
        if _missing(video_url):
            return Err(ValidationError(field="video_url", message="Video URL is required"))

        result = await self._post(
            operation="start_job",
            path=PROCESS_PATH,
            payload={
                "videoUrl": video_url,
                "subtitleLanguage": subtitle_language,
                "dubbingLanguage": dubbing_language,
            },
            headers={"Authorization": f"Bearer {user_id}"},
            default_message="Failed to process video",
        )
        result = result.and_then(self._parse_job)

        if result.is_ok():
            logger.info("job_started", project_id=result.unwrap().project_id)
            return result

        error = result.unwrap_err()
        if not self.allow_demo_fallback:
            logger.warning("remote_call_failed", operation="start_job", error=str(error))
            return result

        started = JobStarted(project_id=demo_project_id(), status="processing", demo=True)
        logger.warning(
            "demo_fallback_used",
            operation="start_job",
            reason=str(error),
            project_id=started.project_id,
        )
        return Ok(started)

    async def _post(
        self,
        operation: str,
        path: str,
        payload: dict[str, Any],
        default_message: str,
        headers: Optional[dict[str, str]] = None,
    ) -> Result[dict[str, Any], RemoteError]:
        """POST a JSON payload and return the decoded JSON object."""
        try:
            response = await self._client.post(path, json=payload, headers=headers)
        except httpx.HTTPError as e:
            return Err(RemoteError(
                operation=operation,
                message=f"{default_message}: {type(e).__name__}: {e}",
            ))

        try:
            body = response.json()
        except ValueError:
            body = None

        if not response.is_success:
            message = default_message
            if isinstance(body, dict) and body.get("message"):
                message = str(body["message"])
            return Err(RemoteError(
                operation=operation,
                message=message,
                status_code=response.status_code,
            ))

        if not isinstance(body, dict):
            return Err(RemoteError(
                operation=operation,
                message="Malformed response body",
                status_code=response.status_code,
            ))

        logger.debug("remote_call_succeeded", operation=operation, status=response.status_code)
        return Ok(body)

    @staticmethod
    def _parse_account(body: dict[str, Any], email: str) -> Result[AccountCreated, RemoteError]:
        user_id = body.get("userId")
        if not isinstance(user_id, str) or not user_id:
            return Err(RemoteError(operation="create_account", message="Response is missing userId"))

        return Ok(AccountCreated(
            user_id=user_id,
            email=str(body.get("email") or email),
            verification_sent=bool(body.get("verificationSent", True)),
        ))

    @staticmethod
    def _parse_verification(body: dict[str, Any]) -> Result[Verified, RemoteError]:
        try:
            tier = AccountTier(body.get("accountType"))
        except ValueError:
            return Err(RemoteError(
                operation="verify_code",
                message=f"Unknown account type: {body.get('accountType')!r}",
            ))

        credits = body.get("credits")
        max_credits = body.get("maxCredits")
        if not (_is_int(credits) and _is_int(max_credits) and 0 <= credits <= max_credits):
            return Err(RemoteError(
                operation="verify_code",
                message=f"Invalid credits in response: {credits!r}/{max_credits!r}",
            ))

        return Ok(Verified(
            account_tier=tier,
            credits_remaining=credits,
            credits_total=max_credits,
            member_since=str(body.get("memberSince") or ""),
        ))

    @staticmethod
    def _parse_job(body: dict[str, Any]) -> Result[JobStarted, RemoteError]:
        project_id = body.get("projectId")
        if not isinstance(project_id, str) or not project_id:
            return Err(RemoteError(operation="start_job", message="Response is missing projectId"))

        return Ok(JobStarted(
            project_id=project_id,
            status=str(body.get("status") or "processing"),
        ))

"""Shared pytest fixtures for dubflow tests.

Provides a scripted stand-in for the remote video service, served through
``httpx.MockTransport``, plus factories for clients, workflows and sessions
wired to it.
"""

from __future__ import annotations

import random
from dataclasses import replace
from typing import Any, Callable, Optional, Union

import httpx
import pytest

from dubflow.client.remote import RemoteServiceClient
from dubflow.config.settings import AppConfig, RemoteConfig, TrackerConfig
from dubflow.models.session import Credential, IntakeData
from dubflow.session.controller import Session
from dubflow.workflow.provisioning import ProvisioningWorkflow

API_BASE = "https://api.test/v1"

SIGNUP = "/v1/auth/signup"
VERIFY = "/v1/auth/verify"
PROCESS = "/v1/videos/process"

Reply = Union[tuple[int, Any], type[Exception]]


class FakeService:
    """Scripted remote video service.

    Each path maps to ``(status, body)`` or to an httpx exception class that
    is raised as a transport failure. A bytes body is sent verbatim.
    """

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.replies: dict[str, Reply] = {
            SIGNUP: (200, {"userId": "user-123", "email": "ana@example.com", "verificationSent": True}),
            VERIFY: (200, {"accountType": "pro", "credits": 40, "maxCredits": 50, "memberSince": "May 2024"}),
            PROCESS: (200, {"projectId": "proj-42", "status": "processing"}),
        }

    def reply(self, path: str, status: int, body: Any) -> None:
        self.replies[path] = (status, body)

    def fail(self, path: str, exc: type[Exception] = httpx.ConnectError) -> None:
        self.replies[path] = exc

    def go_offline(self) -> None:
        for path in list(self.replies):
            self.fail(path)

    def calls(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        reply = self.replies.get(request.url.path)
        if reply is None:
            return httpx.Response(404, json={"message": "Not found"})
        if isinstance(reply, type):
            raise reply("connection refused", request=request)
        status, body = reply
        if isinstance(body, bytes):
            return httpx.Response(status, content=body)
        return httpx.Response(status, json=body)


@pytest.fixture
def service() -> FakeService:
    """A reachable service answering every call successfully."""
    return FakeService()


@pytest.fixture
def offline() -> FakeService:
    """A service whose every call fails with a connection error."""
    fake = FakeService()
    fake.go_offline()
    return fake


@pytest.fixture
def make_client() -> Callable[..., RemoteServiceClient]:
    def factory(fake: FakeService, allow_demo_fallback: bool = True) -> RemoteServiceClient:
        config = RemoteConfig(base_url=API_BASE, allow_demo_fallback=allow_demo_fallback)
        http_client = httpx.AsyncClient(
            base_url=API_BASE,
            transport=httpx.MockTransport(fake),
        )
        return RemoteServiceClient(config, http_client=http_client)

    return factory


@pytest.fixture
def make_workflow(make_client) -> Callable[..., ProvisioningWorkflow]:
    def factory(
        fake: FakeService,
        allow_demo_fallback: bool = True,
        max_verification_attempts: int = 5,
    ) -> ProvisioningWorkflow:
        return ProvisioningWorkflow(
            make_client(fake, allow_demo_fallback),
            max_verification_attempts=max_verification_attempts,
        )

    return factory


@pytest.fixture
def make_session(make_client) -> Callable[..., Session]:
    def factory(
        fake: FakeService,
        allow_demo_fallback: bool = True,
        on_complete: Optional[Callable[[], None]] = None,
        tracker: Optional[TrackerConfig] = None,
        auto_track: bool = False,
        seed: int = 7,
    ) -> Session:
        config = AppConfig()
        config = replace(
            config,
            remote=replace(config.remote, base_url=API_BASE, allow_demo_fallback=allow_demo_fallback),
            tracker=tracker or config.tracker,
        )
        return Session(
            config,
            client=make_client(fake, allow_demo_fallback),
            on_complete=on_complete,
            auto_track=auto_track,
            rng=random.Random(seed),
        )

    return factory


@pytest.fixture
def intake() -> IntakeData:
    return IntakeData(
        email="ana@example.com",
        video_url="https://videos.example.com/talk.mp4",
        subtitle_language="fr",
        dubbing_language="de",
    )


@pytest.fixture
def credential() -> Credential:
    return Credential(full_name="Ana Lima", email="ana@example.com", password="s3cret-pass")

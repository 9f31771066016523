"""Tests for the command line interface."""

from __future__ import annotations

import json

import pytest
from click.testing import CliRunner

from dubflow import cli as cli_module
from dubflow.cli import cli
from dubflow.session.controller import Session
from dubflow.utils.logging import configure_logging
from dubflow.utils.result import ExitCode


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("DUBFLOW_API_BASE_URL", "DUBFLOW_ALLOW_DEMO_FALLBACK", "DUBFLOW_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    yield
    # The CLI binds logging to the runner's captured stream; rebind it
    configure_logging()


@pytest.fixture
def offline_cli(monkeypatch, offline, make_client):
    """Route the CLI's sessions to an unreachable service."""

    def factory(config):
        return Session(config, client=make_client(offline, config.remote.allow_demo_fallback))

    monkeypatch.setattr(cli_module, "Session", factory)
    return offline


def _run_args(tmp_path, *extra):
    return [
        "--config", str(tmp_path),
        "--log-level", "error",
        "run",
        "--email", "ana@example.com",
        "--video-url", "https://videos.example.com/talk.mp4",
        "--full-name", "Ana Lima",
        "--password", "s3cret-pass",
        "--tick-interval", "0.001",
        *extra,
    ]


def test_languages_command():
    result = CliRunner().invoke(cli, ["languages"])

    assert result.exit_code == 0
    assert json.loads(result.output)["languages"]["ja"] == "Japanese"


def test_show_config_reads_yaml(tmp_path):
    (tmp_path / "defaults.yaml").write_text("remote:\n  base_url: https://staging.test/v1\n")

    result = CliRunner().invoke(cli, ["--config", str(tmp_path), "show-config"])

    assert result.exit_code == 0
    assert json.loads(result.output)["config"]["remote"]["base_url"] == "https://staging.test/v1"


def test_show_config_invalid_exits_with_config_error(tmp_path):
    (tmp_path / "defaults.yaml").write_text("tracker:\n  max_increment: 1\n")

    result = CliRunner().invoke(cli, ["--config", str(tmp_path), "--log-level", "error", "show-config"])

    assert result.exit_code == ExitCode.CONFIG_ERROR
    assert "tracker.max_increment" in result.output


def test_run_in_demo_mode_prints_downloads(tmp_path, offline_cli):
    result = CliRunner().invoke(cli, _run_args(tmp_path, "--code", "123456"))

    assert result.exit_code == ExitCode.SUCCESS, result.output
    assert '"status": "success"' in result.output
    assert "videos/download/demo-project-" in result.output


def test_run_rejects_bad_intake(tmp_path, offline_cli):
    args = _run_args(tmp_path, "--code", "123456")
    args[args.index("https://videos.example.com/talk.mp4")] = "not a url"

    result = CliRunner().invoke(cli, args)

    assert result.exit_code == ExitCode.INTAKE_REJECTED
    assert "Please enter a valid URL" in result.output
    assert offline_cli.requests == []


def test_run_reprompts_until_locked_out(tmp_path, offline_cli):
    result = CliRunner().invoke(
        cli,
        _run_args(tmp_path, "--code", "abc123"),
        input="000\n" * 10,
    )

    assert result.exit_code == ExitCode.VERIFICATION_FAILED
    assert "Verification locked" in result.output


def test_run_without_fallback_reports_account_failure(tmp_path, offline_cli):
    result = CliRunner().invoke(cli, _run_args(tmp_path, "--no-demo-fallback", "--code", "123456"))

    assert result.exit_code == ExitCode.ACCOUNT_FAILED
    assert "create_account" in result.output


@pytest.fixture
def logging_calls(monkeypatch):
    calls = []
    monkeypatch.setattr(
        cli_module,
        "configure_logging",
        lambda level="info", format_type="json", stream=None: calls.append((level, format_type)),
    )
    return calls


def test_configured_logging_applies_without_flags(tmp_path, monkeypatch, logging_calls):
    (tmp_path / "defaults.yaml").write_text("logging:\n  level: info\n  format: text\n")
    monkeypatch.setenv("DUBFLOW_LOG_LEVEL", "debug")

    result = CliRunner().invoke(cli, ["--config", str(tmp_path), "show-config"])

    assert result.exit_code == 0
    assert logging_calls[-1] == ("debug", "text")


def test_log_flags_override_configured_logging(tmp_path, monkeypatch, logging_calls):
    monkeypatch.setenv("DUBFLOW_LOG_LEVEL", "debug")

    result = CliRunner().invoke(
        cli,
        ["--config", str(tmp_path), "--log-level", "error", "--log-format", "json", "show-config"],
    )

    assert result.exit_code == 0
    assert logging_calls[-1] == ("error", "json")

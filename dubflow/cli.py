"""CLI entry point for dubflow."""

from __future__ import annotations

import asyncio
import json
import sys
from dataclasses import replace
from pathlib import Path
from typing import Optional

import click

from dubflow import __version__
from dubflow.config.settings import AppConfig, load_config
from dubflow.models.languages import LANGUAGES
from dubflow.models.session import Credential, IntakeData, StepStatus
from dubflow.session.controller import Session, describe_error
from dubflow.utils.logging import configure_logging, get_logger
from dubflow.utils.result import AttemptsExhaustedError, ExitCode

DEFAULT_CONFIG = "./config"


class Context:
    """CLI context for sharing state between commands."""

    def __init__(
        self,
        config_dir: Path,
        log_level: Optional[str],
        log_format: Optional[str],
    ) -> None:
        self.config_dir = config_dir
        self.log_level = log_level
        self.log_format = log_format
        self.logger = get_logger("cli")

    def load_config(self) -> AppConfig:
        result = load_config(self.config_dir)
        if result.is_err():
            error = result.unwrap_err()
            self.logger.error("config_invalid", field=error.field, message=error.message)
            output_json({"status": "error", "message": str(error)})
            sys.exit(ExitCode.CONFIG_ERROR)

        config = result.unwrap()
        # Command line flags win over the configured logging settings
        configure_logging(
            level=self.log_level or config.logging.level,
            format_type=self.log_format or config.logging.format,
        )
        return config


pass_context = click.make_pass_decorator(Context)


def output_json(data: dict) -> None:
    """Output JSON to stdout."""
    click.echo(json.dumps(data, indent=2, default=str))


@click.group()
@click.option(
    "--config",
    type=click.Path(exists=False, path_type=Path),
    default=DEFAULT_CONFIG,
    help="Path to config directory",
)
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warn", "error"], case_sensitive=False),
    default=None,
    help="Logging level [default: from config]",
)
@click.option(
    "--log-format",
    type=click.Choice(["json", "text"], case_sensitive=False),
    default=None,
    help="Log format [default: from config]",
)
@click.version_option(version=__version__)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Path,
    log_level: Optional[str],
    log_format: Optional[str],
) -> None:
    """
    dubflow - subtitle and dub a video through a hosted video service.

    Creates and verifies an account on the service, starts a processing
    job for the video and follows it until the results can be downloaded.
    """
    configure_logging(level=log_level or "warn", format_type=log_format or "text")

    ctx.obj = Context(
        config_dir=config,
        log_level=log_level,
        log_format=log_format,
    )


@cli.command()
@click.option("--email", prompt=True, help="Contact email")
@click.option("--video-url", prompt=True, help="URL of the source video")
@click.option(
    "--subtitle-language",
    type=click.Choice(sorted(LANGUAGES)),
    default="en",
    show_default=True,
    help="Subtitle language code",
)
@click.option(
    "--dubbing-language",
    type=click.Choice(sorted(LANGUAGES)),
    default="es",
    show_default=True,
    help="Dubbing language code",
)
@click.option("--full-name", prompt=True, help="Account holder name")
@click.option("--password", prompt=True, hide_input=True, help="Account password")
@click.option("--code", default=None, help="Verification code (prompted when omitted)")
@click.option(
    "--demo-fallback/--no-demo-fallback",
    default=None,
    help="Use demo data when the service is unreachable (overrides config)",
)
@click.option(
    "--tick-interval",
    type=float,
    default=None,
    help="Seconds between progress updates (overrides config)",
)
@pass_context
def run(
    ctx: Context,
    email: str,
    video_url: str,
    subtitle_language: str,
    dubbing_language: str,
    full_name: str,
    password: str,
    code: Optional[str],
    demo_fallback: Optional[bool],
    tick_interval: Optional[float],
) -> None:
    """Provision an account, process a video and print download options."""
    config = ctx.load_config()
    if demo_fallback is not None:
        config = replace(config, remote=replace(config.remote, allow_demo_fallback=demo_fallback))
    if tick_interval is not None:
        config = replace(config, tracker=replace(config.tracker, tick_interval=tick_interval))

    intake = IntakeData(
        email=email,
        video_url=video_url,
        subtitle_language=subtitle_language,
        dubbing_language=dubbing_language,
    )
    credential = Credential(full_name=full_name, email=email, password=password)

    exit_code = asyncio.run(_run_session(ctx, config, intake, credential, code))
    sys.exit(exit_code)


async def _run_session(
    ctx: Context,
    config: AppConfig,
    intake: IntakeData,
    credential: Credential,
    code: Optional[str],
) -> int:
    async with Session(config) as session:
        result = session.submit_intake(intake)
        if result.is_err():
            output_json({"status": "error", "stage": "input", "message": describe_error(result.unwrap_err())})
            return ExitCode.INTAKE_REJECTED

        result = await session.create_account(credential)
        if result.is_err():
            output_json({"status": "error", "stage": "signup", "message": describe_error(result.unwrap_err())})
            return ExitCode.ACCOUNT_FAILED
        click.echo(session.machine.latest_notification.message, err=True)

        while True:
            entered = code or click.prompt("Verification code")
            code = None
            result = await session.submit_verification_code(entered)
            if result.is_ok():
                break
            error = result.unwrap_err()
            click.echo(f"Verification failed: {describe_error(error)}", err=True)
            if isinstance(error, AttemptsExhaustedError):
                output_json({"status": "error", "stage": "signup", "message": str(error)})
                return ExitCode.VERIFICATION_FAILED

        if session.tracker is None:
            output_json({
                "status": "error",
                "stage": "processing",
                "message": session.workflow.last_error or "Failed to start video processing",
            })
            return ExitCode.JOB_START_FAILED

        tracker = session.tracker
        tracker.start()
        while tracker.running:
            await asyncio.sleep(config.tracker.tick_interval)
            snapshot = tracker.snapshot()
            steps = " ".join(
                f"{step['id']}={step['progress']}%" for step in snapshot["steps"]
            )
            click.echo(
                f"{snapshot['overall_progress']:3d}%  {snapshot['countdown']}  {steps}",
                err=True,
            )
            if any(step.status == StepStatus.ERROR for step in tracker.steps):
                tracker.abandon()
                output_json({
                    "status": "error",
                    "stage": "processing",
                    "message": describe_error(
                        [step.message for step in tracker.steps if step.message]
                    ),
                    "project_id": tracker.job.project_id,
                })
                return ExitCode.JOB_FAILED

        ctx.logger.info("run_completed", project_id=tracker.job.project_id)
        output_json({
            "status": "success",
            "account": session.account.to_dict(),
            "job": tracker.job.to_dict(),
            "downloads": session.downloads().to_dict(),
        })
        return ExitCode.SUCCESS


@cli.command()
def languages() -> None:
    """List supported subtitle and dubbing languages."""
    output_json({"languages": LANGUAGES})


@cli.command("show-config")
@pass_context
def show_config(ctx: Context) -> None:
    """Show the effective configuration."""
    config = ctx.load_config()
    output_json({"status": "success", "config": config.to_dict()})


def main() -> None:
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()

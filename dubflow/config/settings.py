"""Centralized configuration for a dubbing session.

Values can be loaded from YAML files, overridden from the environment and
validated at startup.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Optional

import yaml

from dubflow.utils.result import ConfigError, Err, Ok, Result


DEFAULT_API_BASE_URL = "https://api.kapwing.com/v1"
DEFAULT_EDITOR_BASE_URL = "https://www.kapwing.com/studio/editor"

LOG_LEVELS = ("debug", "info", "warn", "warning", "error")

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass
class RemoteConfig:
    """Remote video service settings."""

    base_url: str = DEFAULT_API_BASE_URL
    request_timeout: float = 30.0

    # Synthesize demo responses when the service cannot be reached
    allow_demo_fallback: bool = True


@dataclass
class TrackerConfig:
    """Simulated progress settings."""

    tick_interval: float = 1.0
    estimated_time_units: int = 300
    min_increment: int = 5
    max_increment: int = 15
    simulated_error_rate: float = 0.0


@dataclass
class VerificationConfig:
    """Verification code settings."""

    # 0 disables the lockout
    max_attempts: int = 5


@dataclass
class DownloadConfig:
    """Where finished projects can be fetched or edited."""

    editor_base_url: str = DEFAULT_EDITOR_BASE_URL


@dataclass
class LoggingConfig:
    """Logging settings."""

    level: str = "info"
    format: str = "json"


@dataclass
class AppConfig:
    """
    Complete session configuration.

    Single source of truth for every tunable value used by the client,
    the workflow and the progress tracker.
    """

    remote: RemoteConfig = field(default_factory=RemoteConfig)
    tracker: TrackerConfig = field(default_factory=TrackerConfig)
    verification: VerificationConfig = field(default_factory=VerificationConfig)
    downloads: DownloadConfig = field(default_factory=DownloadConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @classmethod
    def from_yaml(cls, path: Path) -> Result["AppConfig", ConfigError]:
        """
        Load configuration from a YAML file.

        Args:
            path: Path to YAML configuration file

        Returns:
            Result with loaded config or error
        """
        path = Path(path)

        if not path.exists():
            return Err(ConfigError(
                field="path",
                message=f"Configuration file not found: {path}",
            ))

        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            return Err(ConfigError(
                field="yaml",
                message=f"Failed to parse YAML: {e}",
            ))
        except OSError as e:
            return Err(ConfigError(
                field="file",
                message=f"Failed to read config file: {e}",
            ))

        if not isinstance(data, dict):
            return Err(ConfigError(
                field="yaml",
                message="Top level of the configuration must be a mapping",
            ))

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Result["AppConfig", ConfigError]:
        """
        Create configuration from a dictionary.

        Args:
            data: Configuration dictionary

        Returns:
            Result with loaded config or error
        """
        try:
            remote_data = data.get("remote", {})
            remote = RemoteConfig(
                base_url=str(remote_data.get("base_url", DEFAULT_API_BASE_URL)).rstrip("/"),
                request_timeout=float(remote_data.get("request_timeout", 30.0)),
                allow_demo_fallback=_parse_bool(
                    remote_data.get("allow_demo_fallback", True)
                ),
            )

            tracker_data = data.get("tracker", {})
            tracker = TrackerConfig(
                tick_interval=float(tracker_data.get("tick_interval", 1.0)),
                estimated_time_units=int(tracker_data.get("estimated_time_units", 300)),
                min_increment=int(tracker_data.get("min_increment", 5)),
                max_increment=int(tracker_data.get("max_increment", 15)),
                simulated_error_rate=float(tracker_data.get("simulated_error_rate", 0.0)),
            )

            verification_data = data.get("verification", {})
            verification = VerificationConfig(
                max_attempts=int(verification_data.get("max_attempts", 5)),
            )

            downloads_data = data.get("downloads", {})
            downloads = DownloadConfig(
                editor_base_url=str(
                    downloads_data.get("editor_base_url", DEFAULT_EDITOR_BASE_URL)
                ).rstrip("/"),
            )

            logging_data = data.get("logging", {})
            logging_config = LoggingConfig(
                level=str(logging_data.get("level", "info")),
                format=str(logging_data.get("format", "json")),
            )

        except (TypeError, ValueError, AttributeError) as e:
            return Err(ConfigError(
                field="unknown",
                message=f"Failed to parse configuration: {e}",
            ))

        return Ok(cls(
            remote=remote,
            tracker=tracker,
            verification=verification,
            downloads=downloads,
            logging=logging_config,
        ))

    def validate(self) -> Result[None, ConfigError]:
        """
        Validate configuration values.

        Returns:
            Result indicating success or validation error
        """
        if not self.remote.base_url.startswith(("http://", "https://")):
            return Err(ConfigError(
                field="remote.base_url",
                message=f"Must be an http(s) URL, got {self.remote.base_url!r}",
            ))
        if self.remote.request_timeout <= 0:
            return Err(ConfigError(
                field="remote.request_timeout",
                message=f"Must be positive, got {self.remote.request_timeout}",
            ))

        if self.tracker.tick_interval <= 0:
            return Err(ConfigError(
                field="tracker.tick_interval",
                message=f"Must be positive, got {self.tracker.tick_interval}",
            ))
        if self.tracker.estimated_time_units < 0:
            return Err(ConfigError(
                field="tracker.estimated_time_units",
                message=f"Must not be negative, got {self.tracker.estimated_time_units}",
            ))
        if self.tracker.min_increment < 1:
            return Err(ConfigError(
                field="tracker.min_increment",
                message=f"Must be at least 1, got {self.tracker.min_increment}",
            ))
        if self.tracker.max_increment < self.tracker.min_increment:
            return Err(ConfigError(
                field="tracker.max_increment",
                message=(
                    f"Must be at least min_increment ({self.tracker.min_increment}), "
                    f"got {self.tracker.max_increment}"
                ),
            ))
        if not 0.0 <= self.tracker.simulated_error_rate <= 1.0:
            return Err(ConfigError(
                field="tracker.simulated_error_rate",
                message=f"Must be between 0 and 1, got {self.tracker.simulated_error_rate}",
            ))

        if self.verification.max_attempts < 0:
            return Err(ConfigError(
                field="verification.max_attempts",
                message=f"Must not be negative, got {self.verification.max_attempts}",
            ))

        if self.logging.level.lower() not in LOG_LEVELS:
            return Err(ConfigError(
                field="logging.level",
                message=f"Must be one of {', '.join(LOG_LEVELS)}, got {self.logging.level!r}",
            ))
        if self.logging.format not in ("json", "text"):
            return Err(ConfigError(
                field="logging.format",
                message=f"Must be 'json' or 'text', got {self.logging.format!r}",
            ))

        return Ok(None)

    def with_env_overrides(self, environ: Optional[dict[str, str]] = None) -> Result["AppConfig", ConfigError]:
        """
        Return a new config with environment overrides applied.

        Recognized variables: DUBFLOW_API_BASE_URL, DUBFLOW_ALLOW_DEMO_FALLBACK,
        DUBFLOW_LOG_LEVEL.
        """
        env = os.environ if environ is None else environ
        remote = self.remote
        logging_config = self.logging

        base_url = env.get("DUBFLOW_API_BASE_URL")
        if base_url:
            remote = replace(remote, base_url=base_url.rstrip("/"))

        fallback = env.get("DUBFLOW_ALLOW_DEMO_FALLBACK")
        if fallback:
            try:
                remote = replace(remote, allow_demo_fallback=_parse_bool(fallback))
            except ValueError as e:
                return Err(ConfigError(field="DUBFLOW_ALLOW_DEMO_FALLBACK", message=str(e)))

        level = env.get("DUBFLOW_LOG_LEVEL")
        if level:
            logging_config = replace(logging_config, level=level)

        return Ok(replace(self, remote=remote, logging=logging_config))

    def to_dict(self) -> dict:
        """Convert to dictionary for display."""
        return {
            "remote": {
                "base_url": self.remote.base_url,
                "request_timeout": self.remote.request_timeout,
                "allow_demo_fallback": self.remote.allow_demo_fallback,
            },
            "tracker": {
                "tick_interval": self.tracker.tick_interval,
                "estimated_time_units": self.tracker.estimated_time_units,
                "min_increment": self.tracker.min_increment,
                "max_increment": self.tracker.max_increment,
                "simulated_error_rate": self.tracker.simulated_error_rate,
            },
            "verification": {
                "max_attempts": self.verification.max_attempts,
            },
            "downloads": {
                "editor_base_url": self.downloads.editor_base_url,
            },
            "logging": {
                "level": self.logging.level,
                "format": self.logging.format,
            },
        }


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUTHY:
        return True
    if text in _FALSY:
        return False
    raise ValueError(f"Not a boolean value: {value!r}")


def load_config(
    config_dir: Path = None,
    environ: Optional[dict[str, str]] = None,
) -> Result[AppConfig, ConfigError]:
    """
    Load configuration from the standard location.

    Loads config/defaults.yaml if present, then applies environment overrides.

    Args:
        config_dir: Configuration directory (defaults to ./config)
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Result with loaded config or error
    """
    if config_dir is None:
        config_dir = Path("./config")

    defaults_path = Path(config_dir) / "defaults.yaml"
    if defaults_path.exists():
        result = AppConfig.from_yaml(defaults_path)
        if result.is_err():
            return result
        config = result.unwrap()
    else:
        config = AppConfig()

    result = config.with_env_overrides(environ)
    if result.is_err():
        return result
    config = result.unwrap()

    validation_result = config.validate()
    if validation_result.is_err():
        return Err(validation_result.unwrap_err())

    return Ok(config)

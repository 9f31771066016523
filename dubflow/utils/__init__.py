"""Utility modules for dubflow."""

from dubflow.utils.logging import (
    configure_logging,
    get_logger,
    new_session_id,
    set_session_context,
    set_stage,
)
from dubflow.utils.result import (
    AttemptsExhaustedError,
    ConfigError,
    Err,
    ExitCode,
    InvalidCodeError,
    Ok,
    RemoteError,
    Result,
    ResultError,
    StateError,
    ValidationError,
    collect_results,
)

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    "new_session_id",
    "set_session_context",
    "set_stage",
    # Results
    "Ok",
    "Err",
    "Result",
    "ResultError",
    "collect_results",
    "ExitCode",
    # Error kinds
    "ValidationError",
    "RemoteError",
    "InvalidCodeError",
    "StateError",
    "AttemptsExhaustedError",
    "ConfigError",
]

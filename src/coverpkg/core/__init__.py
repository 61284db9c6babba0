"""Core module exports."""

from coverpkg.core.errors import (
    CollectError,
    ConfigError,
    CoverPkgError,
    ErrorCode,
    GitHubError,
    GroupingError,
    NoPackagesError,
    NotesError,
    ProfileParseError,
)
from coverpkg.core.logging import (
    DiagnosticSink,
    clear_run_id,
    configure_logging,
    emit,
    get_logger,
    get_run_id,
    set_run_id,
)

__all__ = [
    # Errors
    "CollectError",
    "ConfigError",
    "CoverPkgError",
    "ErrorCode",
    "GitHubError",
    "GroupingError",
    "NoPackagesError",
    "NotesError",
    "ProfileParseError",
    # Logging
    "DiagnosticSink",
    "clear_run_id",
    "configure_logging",
    "emit",
    "get_logger",
    "get_run_id",
    "set_run_id",
]

"""coverpkg error types with typed error codes.

Error code ranges:
- 2xxx: Config
- 3xxx: Coverage (profile parsing, grouping)
- 4xxx: Collection (go test)
- 5xxx: Notes (git side-channel storage)
- 6xxx: GitHub
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class ErrorCode(IntEnum):
    """Typed error codes for programmatic handling."""

    # Config (2xxx)
    CONFIG_PARSE_ERROR = 2001
    CONFIG_INVALID_VALUE = 2002

    # Coverage (3xxx)
    PROFILE_INVALID_COUNT = 3001
    PROFILE_UNREADABLE = 3002
    GROUPING_NOT_ENUMERABLE = 3101
    GROUPING_CANNOT_REFINE = 3102
    GROUPING_UNKNOWN = 3103

    # Collection (4xxx)
    COLLECT_NO_PACKAGES = 4001
    COLLECT_TESTS_FAILED = 4002
    COLLECT_TOOL_MISSING = 4003

    # Notes (5xxx)
    NOTES_NOT_FOUND = 5001
    NOTES_DIRTY_WORKSPACE = 5002
    NOTES_DECODE_FAILED = 5003
    NOTES_REMOTE_FAILED = 5004
    NOTES_NOT_A_REPOSITORY = 5005
    NOTES_NO_USER = 5006

    # GitHub (6xxx)
    GITHUB_REQUEST_FAILED = 6001
    GITHUB_FORBIDDEN = 6003


@dataclass(frozen=True, slots=True)
class CoverPkgError(Exception):
    """Base error with structured context."""

    code: ErrorCode
    message: str
    retryable: bool = False
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def error_name(self) -> str:
        """String identifier for logging (e.g., 'PROFILE_INVALID_COUNT')."""
        return self.code.name

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "code": self.code.value,
            "error": self.error_name,
            "message": self.message,
            "retryable": self.retryable,
            "details": self.details,
        }

    def __str__(self) -> str:
        return f"[{self.code.value}] {self.error_name}: {self.message}"


class ConfigError(CoverPkgError):
    """Configuration-related errors."""

    @classmethod
    def parse_error(cls, path: str, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_PARSE_ERROR,
            message=f"Failed to parse config at {path}: {reason}",
            details={"path": path, "reason": reason},
        )

    @classmethod
    def invalid_value(cls, field: str, value: Any, reason: str) -> "ConfigError":
        return cls(
            code=ErrorCode.CONFIG_INVALID_VALUE,
            message=f"Invalid value for '{field}': {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )


class ProfileParseError(CoverPkgError):
    """A coverage profile could not be loaded. Fatal for that load."""

    @classmethod
    def invalid_count(cls, line: str, lineno: int) -> "ProfileParseError":
        return cls(
            code=ErrorCode.PROFILE_INVALID_COUNT,
            message=f"Invalid statement count on line {lineno}: {line!r}",
            details={"line": line, "lineno": lineno},
        )

    @classmethod
    def unreadable(cls, path: str, reason: str) -> "ProfileParseError":
        return cls(
            code=ErrorCode.PROFILE_UNREADABLE,
            message=f"Failed to read coverage profile {path}: {reason}",
            details={"path": path, "reason": reason},
        )


class GroupingError(CoverPkgError):
    """A view cannot be enumerated at the requested granularity.

    Raised for contract violations, not data problems.
    """

    @classmethod
    def not_enumerable(cls, view: Any) -> "GroupingError":
        return cls(
            code=ErrorCode.GROUPING_NOT_ENUMERABLE,
            message=f"{type(view).__name__} does not expose grouping and each_path",
            details={"type": type(view).__name__},
        )

    @classmethod
    def cannot_refine(cls, source: str, target: str) -> "GroupingError":
        return cls(
            code=ErrorCode.GROUPING_CANNOT_REFINE,
            message=f"Cannot regroup {source} data by the finer {target} grouping",
            details={"source": source, "target": target},
        )

    @classmethod
    def unknown(cls, name: str) -> "GroupingError":
        return cls(
            code=ErrorCode.GROUPING_UNKNOWN,
            message=f"group-by value '{name}'; must be file, package, root, or module",
            details={"name": name},
        )


class CollectError(CoverPkgError):
    """Errors running the test command that produces a profile."""

    @classmethod
    def no_packages(cls) -> "NoPackagesError":
        return NoPackagesError(
            code=ErrorCode.COLLECT_NO_PACKAGES,
            message="no packages specified",
        )

    @classmethod
    def tests_failed(cls, returncode: int, stderr: str = "") -> "CollectError":
        return cls(
            code=ErrorCode.COLLECT_TESTS_FAILED,
            message=f"tests failed: exit status {returncode}",
            details={"returncode": returncode, "stderr": stderr},
        )

    @classmethod
    def tool_missing(cls, tool: str) -> "CollectError":
        return cls(
            code=ErrorCode.COLLECT_TOOL_MISSING,
            message=f"{tool} not found on PATH",
            details={"tool": tool},
        )


class NoPackagesError(CollectError):
    """No packages were resolved for analysis."""


class NotesError(CoverPkgError):
    """Errors storing or retrieving coverage notes."""

    @property
    def is_not_found(self) -> bool:
        return self.code == ErrorCode.NOTES_NOT_FOUND

    @classmethod
    def not_found(cls, ref: str, commit: str) -> "NotesError":
        return cls(
            code=ErrorCode.NOTES_NOT_FOUND,
            message=f"No coverage note in refs/notes/{ref} for {commit}",
            details={"ref": ref, "commit": commit},
        )

    @classmethod
    def dirty_workspace(cls) -> "NotesError":
        return cls(
            code=ErrorCode.NOTES_DIRTY_WORKSPACE,
            message="workspace is dirty",
        )

    @classmethod
    def decode_failed(cls, commit: str, reason: str) -> "NotesError":
        return cls(
            code=ErrorCode.NOTES_DECODE_FAILED,
            message=f"Failed to decode coverage note for {commit}: {reason}",
            details={"commit": commit, "reason": reason},
        )

    @classmethod
    def not_a_repository(cls, path: str) -> "NotesError":
        return cls(
            code=ErrorCode.NOTES_NOT_A_REPOSITORY,
            message=f"Not a git repository: {path}",
            details={"path": path},
        )

    @classmethod
    def no_user(cls, reason: str) -> "NotesError":
        return cls(
            code=ErrorCode.NOTES_NO_USER,
            message=f"Cannot determine a git user for notes: {reason}",
        )

    @classmethod
    def remote_failed(cls, remote: str, operation: str, reason: str) -> "NotesError":
        return cls(
            code=ErrorCode.NOTES_REMOTE_FAILED,
            message=f"{operation} notes with {remote} failed: {reason}",
            retryable=True,
            details={"remote": remote, "operation": operation, "reason": reason},
        )


class GitHubError(CoverPkgError):
    """Errors calling the GitHub REST API."""

    @property
    def is_forbidden(self) -> bool:
        return self.code == ErrorCode.GITHUB_FORBIDDEN

    @classmethod
    def request_failed(cls, method: str, url: str, status: int, reason: str) -> "GitHubError":
        code = ErrorCode.GITHUB_FORBIDDEN if status == 403 else ErrorCode.GITHUB_REQUEST_FAILED
        return cls(
            code=code,
            message=f"{method} {url} failed ({status}): {reason}",
            retryable=status >= 500,
            details={"method": method, "url": url, "status": status},
        )


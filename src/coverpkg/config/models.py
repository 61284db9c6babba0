"""Configuration sections and their defaults.

The defaults here are the bottom layer; see ``coverpkg.config.loader`` for
the YAML and environment layers above them. Any scalar key can be set from
the environment as ``COVERPKG__<SECTION>__<KEY>``::

    COVERPKG__LOGGING__LEVEL=DEBUG
    COVERPKG__REPORT__GROUP_BY=module
    COVERPKG__NOTES__REF=coverage
    COVERPKG__COMMENT__MODE=update
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator

LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
GroupBy = Literal["file", "package", "root", "module"]
OutputFormat = Literal["ascii", "markdown", "json"]
CommentMode = Literal["none", "append", "replace", "update"]


class LogOutputConfig(BaseModel):
    """One log destination. Lists of outputs are only settable from YAML."""

    format: Literal["json", "console"] = "console"
    destination: str = "stderr"  # or stdout, or an absolute path
    level: LogLevel | None = None  # None: LoggingConfig.level

    @field_validator("destination")
    @classmethod
    def validate_destination(cls, v: str) -> str:
        if v in ("stderr", "stdout"):
            return v
        path = Path(v).expanduser()
        if not path.is_absolute():
            raise ValueError(f"log file must be an absolute path: {v}")
        return str(path)


class LoggingConfig(BaseModel):
    """``COVERPKG__LOGGING__LEVEL`` sets the root level."""

    level: LogLevel = Field(
        default="INFO",
        description="Root log level. DEBUG traces every skipped profile line.",
    )
    outputs: list[LogOutputConfig] = Field(default_factory=lambda: [LogOutputConfig()])


class CollectConfig(BaseModel):
    """How the head coverage profile is produced.

    Env vars:
        COVERPKG__COLLECT__TIMEOUT_SEC: Bound on the whole go test run
    """

    packages: list[str] = Field(
        default_factory=lambda: ["."],
        description="Packages to test and cover. Directories expand to ./dir/...",
    )
    excludes: list[str] = Field(
        default_factory=lambda: ["gen"],
        description="Path segment tokens to drop, e.g. 'gen' drops .../gen/...",
    )
    go_flags: list[str] = Field(
        default_factory=list,
        description="Extra flags passed to go test before the package list.",
    )
    timeout_sec: float | None = Field(
        default=None,
        description="Kill go test after this many seconds. None waits forever.",
    )

    @field_validator("timeout_sec")
    @classmethod
    def validate_timeout(cls, v: float | None) -> float | None:
        if v is not None and v <= 0:
            raise ValueError(f"timeout must be positive, got {v}")
        return v


class ReportConfig(BaseModel):
    """Report grouping and format.

    Env vars:
        COVERPKG__REPORT__GROUP_BY: file, package, root, or module
        COVERPKG__REPORT__FORMAT: ascii, markdown, or json
    """

    group_by: GroupBy = "package"
    format: OutputFormat = "ascii"


class NotesConfig(BaseModel):
    """Where coverage history is kept.

    Env vars:
        COVERPKG__NOTES__REMOTE: Remote that provides and receives notes
        COVERPKG__NOTES__REF: Notes ref name (refs/notes/<ref>)
    """

    remote: str = "origin"
    ref: str = Field(default="coverpkg", description="Namespace for coverage notes.")
    pull: bool = Field(default=True, description="Fetch notes before reading them.")
    push: bool = Field(default=True, description="Push notes after storing them.")

    @field_validator("ref")
    @classmethod
    def validate_ref(cls, v: str) -> str:
        v = v.removeprefix("refs/notes/")
        if not v or v.startswith("/") or ".." in v or " " in v:
            raise ValueError(f"Invalid notes ref name: {v!r}")
        return v


class CommentConfig(BaseModel):
    """Pull request commenting.

    Env vars:
        COVERPKG__COMMENT__MODE: none, append, replace, or update
        COVERPKG__COMMENT__TOKEN: API token used to comment
    """

    mode: CommentMode = "none"
    token: str = Field(default="", repr=False)
    api_url: str = "https://api.github.com"
    timeout_sec: float = 30.0


class CoverPkgConfig(BaseModel):
    """Root configuration model."""

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    collect: CollectConfig = Field(default_factory=CollectConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)
    notes: NotesConfig = Field(default_factory=NotesConfig)
    comment: CommentConfig = Field(default_factory=CommentConfig)

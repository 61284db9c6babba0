"""Config module exports."""

from coverpkg.config.loader import load_config
from coverpkg.config.models import (
    CollectConfig,
    CommentConfig,
    CoverPkgConfig,
    LoggingConfig,
    NotesConfig,
    ReportConfig,
)

__all__ = [
    "load_config",
    "CoverPkgConfig",
    "CollectConfig",
    "CommentConfig",
    "LoggingConfig",
    "NotesConfig",
    "ReportConfig",
]

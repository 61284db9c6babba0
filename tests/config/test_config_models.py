"""Tests for config models."""

import pytest
from pydantic import ValidationError

from coverpkg.config.models import (
    CollectConfig,
    CommentConfig,
    CoverPkgConfig,
    LogOutputConfig,
    NotesConfig,
    ReportConfig,
)


class TestLogOutputConfig:
    @pytest.mark.parametrize("destination", ["stderr", "stdout"])
    def test_streams_are_accepted(self, destination: str) -> None:
        assert LogOutputConfig(destination=destination).destination == destination

    def test_relative_file_is_rejected(self) -> None:
        with pytest.raises(ValidationError, match="absolute"):
            LogOutputConfig(destination="logs/coverpkg.log")


class TestCollectConfig:
    def test_defaults(self) -> None:
        config = CollectConfig()

        assert config.packages == ["."]
        assert config.excludes == ["gen"]
        assert config.go_flags == []
        assert config.timeout_sec is None

    @pytest.mark.parametrize("timeout", [0, -5])
    def test_timeout_must_be_positive(self, timeout: float) -> None:
        with pytest.raises(ValidationError):
            CollectConfig(timeout_sec=timeout)


class TestReportConfig:
    def test_rejects_unknown_grouping(self) -> None:
        with pytest.raises(ValidationError):
            ReportConfig(group_by="statement")  # type: ignore[arg-type]

    def test_rejects_unknown_format(self) -> None:
        with pytest.raises(ValidationError):
            ReportConfig(format="html")  # type: ignore[arg-type]


class TestNotesConfig:
    @pytest.mark.parametrize("ref", ["", "refs/notes/", "a..b", "has space", "/abs"])
    def test_rejects_bad_refs(self, ref: str) -> None:
        with pytest.raises(ValidationError):
            NotesConfig(ref=ref)

    def test_nested_ref_is_allowed(self) -> None:
        assert NotesConfig(ref="ci/coverage").ref == "ci/coverage"


class TestCommentConfig:
    def test_token_is_hidden_from_repr(self) -> None:
        config = CommentConfig(token="ghp_secret")

        assert "ghp_secret" not in repr(config)

    def test_rejects_unknown_mode(self) -> None:
        with pytest.raises(ValidationError):
            CommentConfig(mode="always")  # type: ignore[arg-type]


def test_root_defaults_compose() -> None:
    config = CoverPkgConfig()

    assert config.logging.level == "INFO"
    assert config.notes.push is True
    assert config.comment.api_url == "https://api.github.com"

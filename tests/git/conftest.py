"""Test fixtures for git notes."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pygit2
import pytest

if TYPE_CHECKING:
    from collections.abc import Generator


@pytest.fixture
def temp_repo(tmp_path: Path) -> Generator[pygit2.Repository, None, None]:
    """Create a temporary git repository with initial commit."""
    repo_path = tmp_path / "repo"
    repo_path.mkdir()

    repo = pygit2.init_repository(str(repo_path), initial_head="main")

    repo.config["user.name"] = "Test User"
    repo.config["user.email"] = "test@example.com"

    (repo_path / "go.mod").write_text("module example.com/m\n")
    repo.index.add("go.mod")
    repo.index.write()
    tree = repo.index.write_tree()
    sig = pygit2.Signature("Test User", "test@example.com")
    repo.create_commit("refs/heads/main", sig, sig, "Initial commit", tree, [])

    repo.set_head("refs/heads/main")

    yield repo


@pytest.fixture
def bare_repo(tmp_path: Path) -> Generator[pygit2.Repository, None, None]:
    """Create a bare repository for remote testing."""
    bare_path = tmp_path / "bare.git"
    yield pygit2.init_repository(str(bare_path), bare=True, initial_head="main")


@pytest.fixture
def repo_with_remote(
    temp_repo: pygit2.Repository,
    bare_repo: pygit2.Repository,
) -> pygit2.Repository:
    """Repository with a configured remote."""
    temp_repo.remotes.create("origin", str(Path(bare_repo.path).resolve()))

    remote = temp_repo.remotes["origin"]
    remote.push(["refs/heads/main:refs/heads/main"])

    return temp_repo

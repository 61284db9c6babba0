"""Coverage history kept in git notes.

Each snapshot is the file-level view of one commit, stored as a JSON note on
that commit under ``refs/notes/<ref>`` (``refs/notes/coverpkg`` by default)::

    {"github.com/org/mod/a/a.go": {"Count": 10, "Covered": 7}, ...}

Notes travel with ``refs/notes/<ref>:refs/notes/<ref>`` refspecs, so a push
from CI on the default branch gives pull requests a base to compare with.
"""

from __future__ import annotations

from collections.abc import Callable
from functools import partial
from pathlib import Path
from typing import Any

import pygit2
import structlog

from coverpkg.core.errors import NotesError
from coverpkg.core.logging import DiagnosticSink, emit
from coverpkg.coverage.aggregate import by_file
from coverpkg.coverage.models import AggregatedView, Grouping, PathView
from coverpkg.git.credentials import SystemCredentialCallback

logger = structlog.get_logger(__name__)

# Changes to tracked files; untracked and ignored files don't count.
_DIRTY_FLAGS = (
    pygit2.GIT_STATUS_WT_MODIFIED
    | pygit2.GIT_STATUS_WT_DELETED
    | pygit2.GIT_STATUS_WT_TYPECHANGE
    | pygit2.GIT_STATUS_WT_RENAMED
)


class NotesStore:
    """Reads, writes and syncs coverage notes for one repository."""

    def __init__(
        self,
        repo_path: Path | str,
        *,
        remote: str = "origin",
        ref: str = "coverpkg",
        log: DiagnosticSink | None = None,
    ) -> None:
        self._path = Path(repo_path)
        try:
            self._repo = pygit2.Repository(str(self._path))
        except pygit2.GitError as e:
            raise NotesError.not_a_repository(str(self._path)) from e
        self.remote = remote
        self.ref = ref
        self._log = log

    @property
    def repo(self) -> pygit2.Repository:
        return self._repo

    @property
    def notes_ref(self) -> str:
        return f"refs/notes/{self.ref}"

    @property
    def refspec(self) -> str:
        return f"{self.notes_ref}:{self.notes_ref}"

    # =========================================================================
    # Remote
    # =========================================================================

    def _run_remote_operation(self, op_name: str, operation: Callable[[pygit2.Remote], Any]) -> Any:
        try:
            remote = self._repo.remotes[self.remote]
        except KeyError as e:
            raise NotesError.remote_failed(self.remote, op_name, "remote not found") from e
        emit(self._log, "debug", f"{op_name} {self.remote} {self.refspec}")
        try:
            return operation(remote)
        except pygit2.GitError as e:
            msg = str(e)
            if "authentication" in msg.lower() or "credential" in msg.lower():
                msg = f"authentication failed: {msg}"
            raise NotesError.remote_failed(self.remote, op_name, msg) from e

    def fetch(self, callbacks: pygit2.RemoteCallbacks | None = None) -> None:
        """Copy notes from the remote into the local repository."""
        cbs = callbacks or SystemCredentialCallback(self._repo.config)
        self._run_remote_operation(
            "fetch", partial(pygit2.Remote.fetch, refspecs=[self.refspec], callbacks=cbs)
        )
        logger.info("notes_fetched", remote=self.remote, ref=self.notes_ref)

    def push(self, callbacks: pygit2.RemoteCallbacks | None = None) -> None:
        """Copy local notes to the remote."""
        cbs = callbacks or SystemCredentialCallback(self._repo.config)
        self._run_remote_operation(
            "push", partial(pygit2.Remote.push, specs=[self.refspec], callbacks=cbs)
        )
        logger.info("notes_pushed", remote=self.remote, ref=self.notes_ref)

    # =========================================================================
    # Local
    # =========================================================================

    def is_dirty(self) -> bool:
        return any(flags & _DIRTY_FLAGS for flags in self._repo.status().values())

    def head_commit(self) -> pygit2.Commit:
        if self._repo.head_is_unborn:
            raise NotesError.not_found(self.ref, "HEAD")
        return self._repo.head.peel(pygit2.Commit)

    def resolve(self, commitish: str) -> pygit2.Commit:
        try:
            return self._repo.revparse_single(commitish).peel(pygit2.Commit)
        except (KeyError, ValueError, pygit2.GitError) as e:
            raise NotesError.not_found(self.ref, commitish) from e

    def store(self, view: PathView) -> str:
        """Save view's file-level counts as the note on HEAD, replacing any.

        Returns:
            The note's object id.

        Raises:
            NotesError: If tracked files have uncommitted changes or no
                git user is configured.
        """
        if self.is_dirty():
            raise NotesError.dirty_workspace()
        files = view if view.grouping == Grouping.FILE else by_file(view, log=self._log)
        head = self.head_commit()
        try:
            sig = self._repo.default_signature
        except (KeyError, pygit2.GitError) as e:
            raise NotesError.no_user(str(e)) from e

        oid = self._repo.create_note(
            files.to_json() + "\n",  # type: ignore[attr-defined]
            sig,
            sig,
            str(head.id),
            self.notes_ref,
            True,
        )
        logger.info("notes_stored", commit=str(head.id), ref=self.notes_ref)
        return str(oid)

    def load(self, commitish: str) -> AggregatedView:
        """Read the file-level snapshot noted on commitish.

        Raises:
            NotesError: ``is_not_found`` when the commit has no note, or
                decode_failed when the note isn't a coverage snapshot.
        """
        commit = self.resolve(commitish)
        try:
            note = self._repo.lookup_note(str(commit.id), self.notes_ref)
        except (KeyError, pygit2.GitError) as e:
            raise NotesError.not_found(self.ref, commitish) from e
        try:
            return AggregatedView.from_json(Grouping.FILE, note.message)
        except (ValueError, TypeError) as e:
            raise NotesError.decode_failed(commitish, str(e)) from e

    def ensure_user(self) -> None:
        """Copy user.name and user.email from the HEAD commit's author if unset.

        Notes are commits, so CI checkouts without an identity need one.
        """
        config = self._repo.config
        author = None
        for key, attr in (("user.name", "name"), ("user.email", "email")):
            if key in config:
                continue
            if author is None:
                author = self.head_commit().author
            config[key] = getattr(author, attr)
            emit(self._log, "debug", f"set {key} from HEAD")

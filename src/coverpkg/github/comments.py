"""Pull request coverage comments.

A coverage comment is recognised by the hidden ``<!-- coverpkg-tag -->``
marker on its first line. Publishing modes:

- none: don't comment
- append: post a new comment every run
- replace: post a new comment, then delete the previous tagged one
- update: edit the previous tagged comment in place (post if there is none)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Literal

import httpx
import structlog

from coverpkg.core.errors import GitHubError
from coverpkg.core.logging import DiagnosticSink, emit
from coverpkg.github.client import paginate, request

logger = structlog.get_logger(__name__)

COMMENT_TAG = "<!-- coverpkg-tag -->"
COMMENT_MODES = ("none", "append", "replace", "update")

CommentMode = Literal["none", "append", "replace", "update"]


@dataclass
class CommentDetails:
    """Values shown in the comment header."""

    head_ref: str
    head_sha: str
    markdown_summary: str
    head_pct: float = 0.0
    base_ref: str = ""
    base_sha: str = ""
    delta_pct: float = 0.0
    found_base: bool = False


def format_comment(details: CommentDetails) -> str:
    """Render the comment body: tag, one-line headline, Markdown table."""
    if details.found_base:
        headline = (
            f"Test coverage change for **{details.base_ref}** ({details.base_sha}) to"
            f" **{details.head_ref}** ({details.head_sha}): **{details.head_pct:5.2f}%**"
            f" ({details.delta_pct:+5.2f}%)"
        )
    else:
        headline = (
            f"Test coverage of **{details.head_ref}** ({details.head_sha}):"
            f" **{details.head_pct:5.2f}%**"
        )
    return f"{COMMENT_TAG}\n{headline}\n\n{details.markdown_summary}\n"


class IssueComments:
    """Comments on one issue or pull request."""

    def __init__(
        self,
        client: httpx.Client,
        owner: str,
        repo: str,
        issue: int,
        *,
        log: DiagnosticSink | None = None,
    ) -> None:
        self._client = client
        self.owner = owner
        self.repo = repo
        self.issue = issue
        self._log = log

    @property
    def _issue_url(self) -> str:
        return f"/repos/{self.owner}/{self.repo}/issues/{self.issue}/comments"

    def _comment_url(self, comment_id: int) -> str:
        return f"/repos/{self.owner}/{self.repo}/issues/comments/{comment_id}"

    def find(self) -> dict[str, Any] | None:
        """First comment carrying the coverage tag. Read failures are warnings."""
        try:
            for comment in paginate(self._client, self._issue_url):
                if COMMENT_TAG in (comment.get("body") or ""):
                    return comment
        except GitHubError as e:
            emit(self._log, "warning", f"reading comments: {e}")
        return None

    def post(self, body: str) -> dict[str, Any]:
        try:
            return request(self._client, "POST", self._issue_url, json={"body": body}).json()
        except GitHubError as e:
            emit(self._log, "error", f"creating comment: {e}")
            raise

    def edit(self, comment_id: int, body: str) -> dict[str, Any]:
        try:
            url = self._comment_url(comment_id)
            return request(self._client, "PATCH", url, json={"body": body}).json()
        except GitHubError as e:
            emit(self._log, "error", f"updating comment: {e}")
            raise

    def delete(self, comment_id: int) -> bool:
        try:
            request(self._client, "DELETE", self._comment_url(comment_id))
        except GitHubError as e:
            emit(self._log, "warning", f"deleting comment: {e}")
            return False
        return True

    def publish(self, mode: str, body: str) -> int | None:
        """Publish body according to mode.

        Returns:
            The id of the posted or edited comment, or None when not commenting.

        Raises:
            GitHubError: If posting or editing fails. ``is_forbidden`` is set
                for 403s, e.g. a read-only token on a fork's pull request.
        """
        if mode not in ("append", "replace", "update"):
            emit(self._log, "debug", f"skipping pr comment: {mode or 'none'}")
            return None

        old = self.find() if mode in ("replace", "update") else None
        emit(self._log, "debug", f"Existing comment ID: {old['id'] if old else 0}")

        if mode == "update" and old is not None:
            comment = self.edit(old["id"], body)
        else:
            comment = self.post(body)
            if mode == "replace" and old is not None:
                self.delete(old["id"])

        logger.info("comment_published", mode=mode, issue=self.issue, comment_id=comment.get("id"))
        return comment.get("id")

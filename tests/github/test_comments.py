"""Tests for pull request coverage comments."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import httpx
import pytest

from coverpkg.core.errors import GitHubError
from coverpkg.github.client import github_client, paginate, request
from coverpkg.github.comments import COMMENT_TAG, CommentDetails, IssueComments, format_comment

ISSUE_URL = "/repos/org/repo/issues/7/comments"


class FakeGitHub:
    """In-memory issue comments behind an httpx.MockTransport."""

    def __init__(self, comments: list[dict] | None = None, *, fail: dict[str, int] | None = None) -> None:
        self.comments = list(comments or [])
        self.fail = fail or {}
        self.requests: list[httpx.Request] = []
        self._next_id = 1000

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        status = self.fail.get(request.method)
        if status:
            return httpx.Response(status, json={"message": "Resource not accessible by integration"})
        path = request.url.path
        if request.method == "GET" and path.endswith("/issues/7/comments"):
            return httpx.Response(200, json=self.comments)
        if request.method == "POST" and path.endswith("/issues/7/comments"):
            self._next_id += 1
            comment = {"id": self._next_id, "body": json.loads(request.content)["body"]}
            self.comments.append(comment)
            return httpx.Response(201, json=comment)
        comment_id = int(path.rsplit("/", 1)[-1])
        if request.method == "PATCH":
            for comment in self.comments:
                if comment["id"] == comment_id:
                    comment["body"] = json.loads(request.content)["body"]
                    return httpx.Response(200, json=comment)
        if request.method == "DELETE":
            self.comments = [c for c in self.comments if c["id"] != comment_id]
            return httpx.Response(204)
        return httpx.Response(404, json={"message": "Not Found"})

    def client(self) -> httpx.Client:
        return github_client("t0ken", transport=httpx.MockTransport(self))


def _comments(fake: FakeGitHub, log: MagicMock | None = None) -> IssueComments:
    return IssueComments(fake.client(), "org", "repo", 7, log=log)


TAGGED = {"id": 5, "body": f"{COMMENT_TAG}\nold coverage"}
OTHER = {"id": 6, "body": "LGTM"}


class TestFormatComment:
    def test_with_base(self) -> None:
        details = CommentDetails(
            head_ref="feature",
            head_sha="def456",
            markdown_summary="| Package | Coverage | Statements |",
            head_pct=63.636,
            base_ref="main",
            base_sha="abc123",
            delta_pct=-14.14,
            found_base=True,
        )

        assert format_comment(details) == (
            "<!-- coverpkg-tag -->\n"
            "Test coverage change for **main** (abc123) to **feature** (def456):"
            " **63.64%** (-14.14%)\n"
            "\n"
            "| Package | Coverage | Statements |\n"
        )

    def test_without_base(self) -> None:
        details = CommentDetails("feature", "def456", "table", head_pct=5.0)

        assert format_comment(details) == (
            "<!-- coverpkg-tag -->\nTest coverage of **feature** (def456): ** 5.00%**\n\ntable\n"
        )


class TestPublish:
    def test_none_does_nothing(self) -> None:
        fake = FakeGitHub([TAGGED])
        log = MagicMock()

        assert _comments(fake, log).publish("none", "body") is None
        assert fake.requests == []
        log.debug.assert_called_once_with("skipping pr comment: none")

    def test_append_always_posts(self) -> None:
        fake = FakeGitHub([TAGGED])

        comment_id = _comments(fake).publish("append", "new")

        assert comment_id == 1001
        assert [c["id"] for c in fake.comments] == [5, 1001]
        assert [r.method for r in fake.requests] == ["POST"]

    def test_replace_posts_then_deletes_old(self) -> None:
        fake = FakeGitHub([OTHER, TAGGED])

        comment_id = _comments(fake).publish("replace", f"{COMMENT_TAG}\nnew")

        assert comment_id == 1001
        assert [c["id"] for c in fake.comments] == [6, 1001]
        assert [r.method for r in fake.requests] == ["GET", "POST", "DELETE"]

    def test_update_edits_in_place(self) -> None:
        fake = FakeGitHub([OTHER, dict(TAGGED)])

        comment_id = _comments(fake).publish("update", f"{COMMENT_TAG}\nnew")

        assert comment_id == 5
        assert fake.comments[1]["body"] == f"{COMMENT_TAG}\nnew"
        assert [r.method for r in fake.requests] == ["GET", "PATCH"]

    def test_update_without_existing_posts(self) -> None:
        fake = FakeGitHub([OTHER])

        assert _comments(fake).publish("update", "body") == 1001

    def test_forbidden_post_raises(self) -> None:
        fake = FakeGitHub(fail={"POST": 403})
        log = MagicMock()

        with pytest.raises(GitHubError) as exc_info:
            _comments(fake, log).publish("append", "body")

        assert exc_info.value.is_forbidden
        assert "Resource not accessible by integration" in exc_info.value.message
        assert log.error.call_args.args[0].startswith("creating comment:")

    def test_unreadable_comments_still_post(self) -> None:
        fake = FakeGitHub(fail={"GET": 500})
        log = MagicMock()

        assert _comments(fake, log).publish("replace", "body") == 1001
        assert log.warning.call_args.args[0].startswith("reading comments:")

    def test_failed_delete_is_a_warning(self) -> None:
        fake = FakeGitHub([TAGGED], fail={"DELETE": 404})
        log = MagicMock()

        assert _comments(fake, log).publish("replace", "body") == 1001
        assert log.warning.call_args.args[0].startswith("deleting comment:")


class TestClient:
    def test_headers(self) -> None:
        fake = FakeGitHub()

        list(paginate(fake.client(), ISSUE_URL))

        sent = fake.requests[0]
        assert sent.headers["Authorization"] == "Bearer t0ken"
        assert sent.headers["Accept"] == "application/vnd.github+json"
        assert sent.url.params["per_page"] == "20"

    def test_no_token_no_auth(self) -> None:
        seen: list[httpx.Request] = []

        def handler(req: httpx.Request) -> httpx.Response:
            seen.append(req)
            return httpx.Response(200, json=[])

        client = github_client(transport=httpx.MockTransport(handler))
        request(client, "GET", "/x")

        assert "Authorization" not in seen[0].headers

    def test_pagination_follows_next_links(self) -> None:
        def handler(req: httpx.Request) -> httpx.Response:
            if req.url.params.get("page") == "2":
                return httpx.Response(200, json=[{"id": 2}])
            next_link = f'<{req.url.copy_with(params={"page": "2"})}>; rel="next"'
            return httpx.Response(200, json=[{"id": 1}], headers={"Link": next_link})

        client = github_client(transport=httpx.MockTransport(handler))

        assert [item["id"] for item in paginate(client, "/items")] == [1, 2]

    def test_transport_error(self) -> None:
        def handler(req: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=req)

        client = github_client(transport=httpx.MockTransport(handler))

        with pytest.raises(GitHubError) as exc_info:
            request(client, "GET", "/x")

        assert exc_info.value.details["status"] == 0

    def test_non_json_error_body_uses_reason(self) -> None:
        client = github_client(
            transport=httpx.MockTransport(lambda req: httpx.Response(502, text="<html>"))
        )

        with pytest.raises(GitHubError, match="Bad Gateway") as exc_info:
            request(client, "GET", "/x")

        assert exc_info.value.retryable

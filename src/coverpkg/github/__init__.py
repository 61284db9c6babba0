"""GitHub Actions and REST API integration."""

from coverpkg.github.actions import GitHubActions, GitHubEvent, escape_data
from coverpkg.github.artifacts import WorkflowArtifacts
from coverpkg.github.client import github_client
from coverpkg.github.comments import (
    COMMENT_MODES,
    COMMENT_TAG,
    CommentDetails,
    IssueComments,
    format_comment,
)

__all__ = [
    "COMMENT_MODES",
    "COMMENT_TAG",
    "CommentDetails",
    "GitHubActions",
    "GitHubEvent",
    "IssueComments",
    "WorkflowArtifacts",
    "escape_data",
    "format_comment",
    "github_client",
]

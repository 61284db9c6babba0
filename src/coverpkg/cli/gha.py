"""coverpkg-gha CLI - coverage inside a GitHub Actions workflow.

Invoke in a workflow step as::

    coverpkg-gha ${{ github.event_name }}

to handle push and pull_request events. Pushes calculate and store coverage
for the head commit; pull requests show coverage and, when the base commit's
coverage was stored, its change.
"""

from __future__ import annotations

import json
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import click

from coverpkg.cli.utils import GROUP_BY_CHOICES, group_view, split_values
from coverpkg.collect import GoTestOptions, collect_files
from coverpkg.config import CoverPkgConfig, load_config
from coverpkg.core.errors import CoverPkgError, GitHubError, NotesError
from coverpkg.core.logging import configure_logging, get_logger, set_run_id
from coverpkg.coverage import (
    AggregatedView,
    Grouping,
    build_text_summary,
    diff,
    percent,
    render_markdown,
    render_text,
)
from coverpkg.git.notes import NotesStore
from coverpkg.github import (
    COMMENT_MODES,
    CommentDetails,
    GitHubActions,
    GitHubEvent,
    IssueComments,
    WorkflowArtifacts,
    format_comment,
    github_client,
)

ARTIFACT_NAME = "coverpkg"

# Events that need no coverage work; they exit quietly.
UNSUPPORTED_EVENTS = (
    "check_run",
    "check_suite",
    "create",
    "delete",
    "deployment",
    "deployment_status",
    "fork",
    "gollum",
    "issue_comment",
    "issues",
    "label",
    "milestone",
    "page_build",
    "project",
    "project_card",
    "project_column",
    "public",
    "pull_request_review",
    "pull_request_review_comment",
    "registry_package",
    "release",
    "status",
    "watch",
)


class AliasedGroup(click.Group):
    """Group that also resolves event names to the command handling them."""

    aliases: dict[str, str] = {
        "workflow_dispatch": "push",
        "repository_dispatch": "push",
        "pull_request_target": "pull_request",
        **{event: "schedule" for event in UNSUPPORTED_EVENTS},
    }

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        return super().get_command(ctx, self.aliases.get(cmd_name, cmd_name))

    def resolve_command(
        self, ctx: click.Context, args: list[str]
    ) -> tuple[str | None, click.Command | None, list[str]]:
        _, cmd, rest = super().resolve_command(ctx, args)
        return (cmd.name if cmd else None), cmd, rest


@dataclass
class ActionContext:
    """Settings shared by every event command."""

    config: CoverPkgConfig
    workspace: Path
    event_path: Path | None
    api_url: str
    group_by: str
    excludes: list[str]
    packages: list[str]
    artifacts: Path | None
    gha: GitHubActions = field(repr=False)

    def require_event(self) -> GitHubEvent:
        if self.event_path is None:
            raise click.UsageError('Required option "--event-path" not set')
        return self.gha.event(self.event_path)

    def collect(self) -> AggregatedView:
        collect = self.config.collect
        options = GoTestOptions(
            packages=self.packages,
            excludes=self.excludes,
            flags=list(collect.go_flags),
            timeout_sec=collect.timeout_sec,
        )
        return collect_files(options, cwd=self.workspace, log=self.gha)

    def notes(self, remote: str | None, ref: str | None) -> NotesStore:
        return NotesStore(
            self.workspace,
            remote=remote or self.config.notes.remote,
            ref=ref or self.config.notes.ref,
            log=self.gha,
        )


@contextmanager
def reported(gha: GitHubActions) -> Iterator[None]:
    """Report failures as ::error:: annotations and exit 1."""
    try:
        yield
    except CoverPkgError as e:
        gha.error(e.message)
        raise click.exceptions.Exit(1) from e


def _comment(
    actx: ActionContext,
    event: GitHubEvent,
    mode: str,
    token: str,
    details: CommentDetails,
    issue: int,
) -> None:
    """Publish the coverage comment; a 403 is reported as an output, not a failure."""
    gha = actx.gha
    if mode not in ("append", "replace", "update"):
        gha.debug(f"skipping pr comment: {mode or 'none'}")
        return

    owner = event.string("repository.owner.login", gha)
    repo = event.string("repository.name", gha)
    timeout = actx.config.comment.timeout_sec
    try:
        with github_client(token, api_url=actx.api_url, timeout=timeout) as client:
            comments = IssueComments(client, owner, repo, issue, log=gha)
            comment_id = comments.publish(mode, format_comment(details))
    except GitHubError as e:
        if not e.is_forbidden:
            raise
        gha.set_output("comment-failed", "403")
        return
    if comment_id:
        gha.set_output("comment-id", str(comment_id))


def _write_artifacts(actx: ActionContext, details: CommentDetails, text_summary: str) -> None:
    arts = actx.artifacts or Path(tempfile.mkdtemp(prefix="coverpkg"))
    try:
        arts.mkdir(parents=True, exist_ok=True)
        (arts / "summary.txt").write_text(text_summary, encoding="utf-8")
        (arts / "summary.md").write_text(details.markdown_summary, encoding="utf-8")
        (arts / "summary.json").write_text(json.dumps(asdict(details), indent=2), encoding="utf-8")
    except OSError as e:
        actx.gha.warning(f"writing artifacts: {e}")
        return
    actx.gha.set_output("artifacts", str(arts))


@click.group(cls=AliasedGroup)
@click.option("-v", "--verbose", is_flag=True, envvar="RUNNER_DEBUG", help="Enable debug logging")
@click.option(
    "--workspace",
    envvar="GITHUB_WORKSPACE",
    default=".",
    type=click.Path(file_okay=False, path_type=Path),
    help="Checked out repository",
)
@click.option(
    "--event-path",
    envvar="GITHUB_EVENT_PATH",
    type=click.Path(dir_okay=False, path_type=Path),
    help="GitHub webhook payload file",
)
@click.option("--api-url", envvar="GITHUB_API_URL", help="API endpoint used for comments")
@click.option(
    "--output",
    "output_path",
    envvar="GITHUB_OUTPUT",
    type=click.Path(dir_okay=False, path_type=Path),
    help="File that receives step outputs",
)
@click.option(
    "--env",
    "env_path",
    envvar="GITHUB_ENV",
    type=click.Path(dir_okay=False, path_type=Path),
    help="File that receives environment variables for later steps",
)
@click.option(
    "--group-by",
    envvar="INPUT_GROUPBY",
    type=click.Choice(GROUP_BY_CHOICES),
    help="Grouping level",
)
@click.option("--exclude", "excludes", multiple=True, envvar="INPUT_EXCLUDES", help="Path tokens to exclude")
@click.option("--package", "packages", multiple=True, envvar="INPUT_PACKAGES", help="Packages to report on")
@click.option(
    "--artifacts",
    type=click.Path(file_okay=False, path_type=Path),
    help="Artifact output directory; a temporary one if unset",
)
@click.pass_context
def gha_cli(
    ctx: click.Context,
    verbose: bool,
    workspace: Path,
    event_path: Path | None,
    api_url: str | None,
    output_path: Path | None,
    env_path: Path | None,
    group_by: str | None,
    excludes: tuple[str, ...],
    packages: tuple[str, ...],
    artifacts: Path | None,
) -> None:
    """Calculate cross-package code coverage in a GitHub action."""
    gha = GitHubActions(output_path=output_path, env_path=env_path)
    workspace = workspace.resolve()
    with reported(gha):
        config = load_config(workspace)
    if verbose:
        config.logging.level = "DEBUG"
    configure_logging(config=config.logging)
    set_run_id()

    ctx.obj = ActionContext(
        config=config,
        workspace=workspace,
        event_path=event_path,
        api_url=api_url or config.comment.api_url,
        group_by=group_by or config.report.group_by,
        excludes=split_values(excludes) or list(config.collect.excludes),
        packages=split_values(packages) or list(config.collect.packages),
        artifacts=artifacts,
        gha=gha,
    )


notes_options = [
    click.option("--coverpkg-nopull", "nopull", is_flag=True, envvar="INPUT_NOPULL", help="Skip pulling coverage"),
    click.option("--coverpkg-remote", "remote", envvar="INPUT_REMOTE", help="Alternate remote name"),
    click.option("--coverpkg-ref", "ref", envvar="INPUT_COVERPKGREF", help="Alternate notes ref name"),
]

comment_options = [
    click.option("--api-token", "token", envvar="INPUT_TOKEN", default="", help="Token for commenting on pull requests"),
    click.option(
        "--coverpkg-comment",
        "mode",
        envvar="INPUT_COMMENT",
        type=click.Choice(COMMENT_MODES),
        help="How to comment: none, append, replace, or update",
    ),
]


def _apply(options: list[Any]) -> Any:
    def decorator(f: Any) -> Any:
        for option in reversed(options):
            f = option(f)
        return f

    return decorator


@gha_cli.command("schedule")
@click.pass_obj
def schedule_command(actx: ActionContext) -> None:
    """Does nothing; exits without an error for unsupported events."""
    actx.gha.debug("Unsupported event")


@gha_cli.command("push")
@_apply(notes_options)
@click.option("--coverpkg-nopush", "nopush", is_flag=True, envvar="INPUT_NOPUSH", help="Skip pushing coverage")
@click.pass_obj
def push_command(
    actx: ActionContext, nopull: bool, remote: str | None, ref: str | None, nopush: bool
) -> None:
    """Calculate, store and push code coverage for the head commit.

    Requires the commit to be checked out and git to be able to push to the
    remote. Outputs summary-txt, summary-md and, once pushed,
    pushed-coverage=true.
    """
    gha = actx.gha
    actx.require_event()
    log = get_logger("coverpkg.gha")
    with reported(gha):
        files = actx.collect()
        view = group_view(files, actx.group_by, gha)
        log.info("coverage_calculated", summary=build_text_summary(view))
        gha.set_output("summary-txt", render_text(view))
        gha.set_output("summary-md", render_markdown(view))

        if nopush or not actx.config.notes.push:
            return

        notes = actx.notes(remote, ref)
        if not nopull and actx.config.notes.pull:
            try:
                notes.fetch()
            except NotesError as e:
                gha.warning(f"fetching notes: {e.message}")

        notes.ensure_user()
        notes.store(files)

        try:
            notes.push()
        except NotesError as e:
            gha.warning(f"pushing notes: {e.message}")
        else:
            gha.set_output("pushed-coverage", "true")
            log.info("coverage_pushed", ref=notes.notes_ref)


@gha_cli.command("pull_request")
@_apply(notes_options)
@_apply(comment_options)
@click.option("--head-ref", envvar="GITHUB_HEAD_REF", required=True, help="Head branch of the pull request")
@click.option("--base-ref", envvar="GITHUB_BASE_REF", required=True, help="Base branch of the pull request")
@click.pass_obj
def pull_request_command(
    actx: ActionContext,
    nopull: bool,
    remote: str | None,
    ref: str | None,
    token: str,
    mode: str | None,
    head_ref: str,
    base_ref: str,
) -> None:
    """Calculate and display code coverage (and change) for the head commit.

    Outputs summary-txt, summary-md, found-base, artifacts and, when a
    comment was made, comment-id. A 403 while commenting sets
    comment-failed=403 instead of failing the step.
    """
    gha = actx.gha
    log = get_logger("coverpkg.gha")
    event = actx.require_event()
    gha.mask(token)
    with reported(gha):
        notes = actx.notes(remote, ref)
        if not nopull and actx.config.notes.pull:
            try:
                notes.fetch()
            except NotesError as e:
                gha.warning(f"fetching notes: {e.message}")

        base_sha = event.string("pull_request.base.sha", gha)
        head_sha = event.string("pull_request.head.sha", gha)

        found_base = False
        try:
            base_files = notes.load(base_sha)
        except NotesError as e:
            gha.warning(f"loading base coverage: {e.message}")
            base_files = AggregatedView(Grouping.FILE)
        else:
            found_base = True
            gha.set_output("found-base", "true")

        head_files = actx.collect()
        base_view = group_view(base_files, actx.group_by, gha)
        head_view = group_view(head_files, actx.group_by, gha)
        delta = diff(base_view, head_view, log=gha)
        log.info("coverage_compared", summary=build_text_summary(delta), found_base=found_base)
        base_pct = percent(base_view)
        head_pct = percent(head_view)

        text_summary = render_text(delta)
        with gha.group("Coverage summary"):
            gha.print(text_summary)
        gha.set_output("summary-txt", text_summary)
        markdown_summary = render_markdown(delta)
        gha.set_output("summary-md", markdown_summary)

        details = CommentDetails(
            head_ref=head_ref,
            head_sha=head_sha,
            markdown_summary=markdown_summary,
            head_pct=head_pct,
            base_ref=base_ref,
            base_sha=base_sha,
            delta_pct=head_pct - base_pct,
            found_base=found_base,
        )
        _write_artifacts(actx, details, text_summary)

        issue = event.integer("pull_request.number", gha)
        _comment(actx, event, mode or actx.config.comment.mode, token or actx.config.comment.token, details, issue)


@gha_cli.command("workflow_run")
@_apply(comment_options)
@click.pass_obj
def workflow_run_command(actx: ActionContext, token: str, mode: str | None) -> None:
    """Comment on pull requests from forks.

    Reads the summary uploaded as the "coverpkg" artifact by the
    pull_request run that triggered this workflow.
    """
    gha = actx.gha
    event = actx.require_event()
    gha.mask(token)

    with gha.group(f"Event {actx.event_path}"):
        gha.print(json.dumps(event, indent=2))

    ev = event.string("workflow_run.event", gha)
    if ev != "pull_request":
        gha.warning(f"Unsupported workflow_run event: {ev}")
        return

    token = token or actx.config.comment.token
    with reported(gha):
        owner = event.string("repository.owner.login", gha)
        repo = event.string("repository.name", gha)
        run_id = event.integer("workflow_run.id", gha)
        timeout = actx.config.comment.timeout_sec
        with github_client(token, api_url=actx.api_url, timeout=timeout) as client:
            artifacts = WorkflowArtifacts(client, owner, repo, log=gha)
            summary = artifacts.read_file(run_id, ARTIFACT_NAME, "summary.md")
            meta = artifacts.read_file(run_id, ARTIFACT_NAME, "summary.json") if summary else None
        if not summary:
            return

        pr = "workflow_run.pull_requests.0"
        details = CommentDetails(
            head_ref=event.string(f"{pr}.head.ref", gha),
            head_sha=event.string(f"{pr}.head.sha", gha),
            markdown_summary=summary,
            base_ref=event.string(f"{pr}.base.ref", gha),
            base_sha=event.string(f"{pr}.base.sha", gha),
        )
        if meta:
            _apply_meta(details, meta, gha)
        gha.set_output("summary-md", summary)

        issue = event.integer(f"{pr}.number", gha)
        _comment(actx, event, mode or actx.config.comment.mode, token, details, issue)


def _apply_meta(details: CommentDetails, meta: str, gha: GitHubActions) -> None:
    """Fill coverage figures saved by the pull_request run."""
    try:
        data = json.loads(meta)
        details.head_pct = float(data["head_pct"])
        details.delta_pct = float(data["delta_pct"])
        details.found_base = bool(data["found_base"])
    except (ValueError, TypeError, KeyError) as e:
        gha.warning(f"reading summary.json: {e}")


if __name__ == "__main__":
    gha_cli()

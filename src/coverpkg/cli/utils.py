"""CLI utilities."""

import json
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from pathlib import Path

import click

from coverpkg.collect import GoTestOptions, collect_files
from coverpkg.core.errors import CoverPkgError
from coverpkg.core.logging import DiagnosticSink
from coverpkg.coverage import (
    AggregatedView,
    Grouping,
    aggregate,
    build_summary,
    by_file,
    load_profile,
    render_markdown,
    render_text,
)
from coverpkg.coverage.report import PathDetailer

GROUP_BY_CHOICES = ("file", "package", "root", "module")
FORMAT_CHOICES = ("ascii", "markdown", "json")


def find_repo_root(start_path: Path | None = None) -> Path:
    """Find the git repository root from the given path.

    Walks up the directory tree looking for a .git directory (or file, for
    worktrees). If start_path is None, uses the current working directory.

    Raises:
        click.ClickException: If not inside a git repository
    """
    if start_path is None:
        start_path = Path.cwd()

    current = start_path.resolve()
    for candidate in (current, *current.parents):
        if (candidate / ".git").exists():
            return candidate

    raise click.ClickException(f"Not inside a git repository: {start_path}")


def split_values(values: Iterable[str]) -> list[str]:
    """Flatten repeated and comma-separated option values, dropping blanks."""
    return [item.strip() for value in values for item in value.split(",") if item.strip()]


def group_view(
    files: AggregatedView, group_by: str, log: DiagnosticSink | None = None
) -> AggregatedView:
    """Roll a file-level view up to the named grouping."""
    grouping = Grouping.parse(group_by)
    if grouping == files.grouping:
        return files
    return aggregate(files, grouping, log=log)


def render(view: PathDetailer, fmt: str) -> str:
    if fmt == "markdown":
        return render_markdown(view)
    if fmt == "json":
        return json.dumps(build_summary(view), indent=2) + "\n"
    return render_text(view)


@contextmanager
def reported_errors() -> Iterator[None]:
    """Turn CoverPkgError into a clean click error message and exit status 1."""
    try:
        yield
    except CoverPkgError as e:
        raise click.ClickException(e.message) from e


def go_test_options(obj: dict) -> GoTestOptions:
    """Collection options from the group's flags, falling back to config."""
    collect = obj["config"].collect
    return GoTestOptions(
        packages=split_values(obj["packages"]) or list(collect.packages),
        excludes=split_values(obj["excludes"]) or list(collect.excludes),
        flags=list(collect.go_flags),
        timeout_sec=collect.timeout_sec,
    )


def load_files(obj: dict, profile: Path | None, log: DiagnosticSink | None = None) -> AggregatedView:
    """File-level head coverage, from an existing profile or a fresh go test run."""
    options = go_test_options(obj)
    if profile is not None:
        return by_file(load_profile(profile, excludes=options.excludes, log=log), log=log)
    return collect_files(options, cwd=obj["root"], log=log)

"""coverpkg calc command - calculate and display coverage."""

from pathlib import Path

import click

from coverpkg.cli.utils import (
    FORMAT_CHOICES,
    GROUP_BY_CHOICES,
    find_repo_root,
    group_view,
    load_files,
    render,
    reported_errors,
)
from coverpkg.core.logging import get_logger
from coverpkg.git.notes import NotesStore


@click.command()
@click.option("-g", "--group-by", type=click.Choice(GROUP_BY_CHOICES), help="Grouping level")
@click.option("-f", "--format", "fmt", type=click.Choice(FORMAT_CHOICES), help="Output format")
@click.option(
    "--profile",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Read an existing coverprofile instead of running go test",
)
@click.option("--store", is_flag=True, help="Store file coverage as a git note on HEAD")
@click.option("--coverpkg-ref", "ref", help="Alternate notes ref name")
@click.pass_obj
def calc_command(
    obj: dict,
    group_by: str | None,
    fmt: str | None,
    profile: Path | None,
    store: bool,
    ref: str | None,
) -> None:
    """Calculate and display code coverage.

    With --store, the file-level coverage is saved so later diffs against
    this commit have a base.
    """
    config = obj["config"]
    log = get_logger("coverpkg.calc")
    with reported_errors():
        files = load_files(obj, profile, log)
        view = group_view(files, group_by or config.report.group_by, log)
        click.echo(render(view, fmt or config.report.format), nl=False)

        if store:
            notes = NotesStore(find_repo_root(obj["root"]), ref=ref or config.notes.ref, log=log)
            notes.store(files)

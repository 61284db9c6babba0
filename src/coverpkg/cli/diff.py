"""coverpkg diff command - coverage and its change against a base."""

from pathlib import Path

import click

from coverpkg.cli.utils import (
    FORMAT_CHOICES,
    GROUP_BY_CHOICES,
    find_repo_root,
    go_test_options,
    group_view,
    load_files,
    render,
    reported_errors,
)
from coverpkg.core.errors import NotesError
from coverpkg.core.logging import get_logger
from coverpkg.coverage import AggregatedView, Grouping, by_file, diff, load_profile
from coverpkg.git.notes import NotesStore


@click.command()
@click.option("-g", "--group-by", type=click.Choice(GROUP_BY_CHOICES), help="Grouping level")
@click.option("-f", "--format", "fmt", type=click.Choice(FORMAT_CHOICES), help="Output format")
@click.option("--base-ref", help="Base branch or commit whose stored coverage to compare with")
@click.option(
    "--base-profile",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Base coverprofile to compare with",
)
@click.option(
    "--profile",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Read an existing head coverprofile instead of running go test",
)
@click.option("--coverpkg-ref", "ref", help="Alternate notes ref name")
@click.pass_obj
def diff_command(
    obj: dict,
    group_by: str | None,
    fmt: str | None,
    base_ref: str | None,
    base_profile: Path | None,
    profile: Path | None,
    ref: str | None,
) -> None:
    """Calculate and display code coverage and its change.

    The base comes from a stored note (--base-ref) or a profile
    (--base-profile). Without one, every path is reported as new.
    """
    if base_ref and base_profile:
        raise click.UsageError("--base-ref and --base-profile are mutually exclusive")

    config = obj["config"]
    log = get_logger("coverpkg.diff")
    base = AggregatedView(Grouping.FILE)
    with reported_errors():
        if base_ref:
            notes = NotesStore(find_repo_root(obj["root"]), ref=ref or config.notes.ref, log=log)
            try:
                base = notes.load(base_ref)
            except NotesError as e:
                if not e.is_not_found:
                    raise
                click.echo(f"no prior coverage found for {base_ref}", err=True)
        elif base_profile:
            excludes = go_test_options(obj).excludes
            base = by_file(load_profile(base_profile, excludes=excludes, log=log), log=log)

        head = load_files(obj, profile, log)
        grouping = group_by or config.report.group_by
        delta = diff(group_view(base, grouping, log), group_view(head, grouping, log), log=log)
        click.echo(render(delta, fmt or config.report.format), nl=False)

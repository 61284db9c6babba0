"""coverpkg CLI - cross-package Go coverage."""

from pathlib import Path

import click

from coverpkg.cli.calc import calc_command
from coverpkg.cli.diff import diff_command
from coverpkg.cli.utils import reported_errors
from coverpkg.config import load_config
from coverpkg.core.logging import configure_logging, set_run_id


@click.group()
@click.version_option(package_name="coverpkg", prog_name="coverpkg")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option(
    "-C",
    "--directory",
    default=".",
    type=click.Path(exists=True, file_okay=False, path_type=Path),
    help="Run as if started in this directory",
)
@click.option("--exclude", "excludes", multiple=True, help="Package path token to exclude, e.g. gen")
@click.option("--package", "packages", multiple=True, help="Package to test and report on")
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    directory: Path,
    excludes: tuple[str, ...],
    packages: tuple[str, ...],
) -> None:
    """Calculate cross-package code coverage for a Go module."""
    root = directory.resolve()
    with reported_errors():
        config = load_config(root)
    if verbose:
        config.logging.level = "DEBUG"
    configure_logging(config=config.logging)
    set_run_id()

    ctx.ensure_object(dict)
    ctx.obj["root"] = root
    ctx.obj["config"] = config
    ctx.obj["excludes"] = excludes
    ctx.obj["packages"] = packages


cli.add_command(calc_command, name="calc")
cli.add_command(diff_command, name="diff")


if __name__ == "__main__":
    cli()

"""CLI entrypoint for autonotes.

Examples::

    # download ONLY 2019-containerd release notes from this run ID
    autonotes fetch --build 76289801 --include 2019-containerd

    # download everything EXCEPT 2022-containerd-gen2 release notes
    autonotes fetch --build 76289801 --ignore 2022-containerd-gen2
"""

import logging
from datetime import datetime
from pathlib import Path

import rich_click as click

from autonotes import __version__
from autonotes.controllers import (
    FetchNotesCommand,
    ListVariantsCommand,
    ReleaseNotesCliController,
)

click.rich_click.USE_MARKDOWN = True
CONTROLLER = ReleaseNotesCliController()


def _default_build_date() -> str:
    return datetime.now().strftime("%y%m%d")


@click.group()
@click.version_option(version=__version__, prog_name="autonotes")
def autonotes() -> None:
    """VHD release notes autogeneration CLI."""


@autonotes.command("fetch")
@click.option("--build", "run_id", required=True, help="Run ID of the VHD build.")
@click.option(
    "--include",
    default=None,
    help="Comma-separated VHD variants to include; all others are skipped.",
)
@click.option(
    "--ignore",
    default=None,
    help="Comma-separated VHD variants to skip.",
)
@click.option(
    "--path",
    "output_root",
    type=click.Path(file_okay=False, path_type=Path),
    default=None,
    help="Output root for VHD notes. Defaults to AUTONOTES_OUTPUT_ROOT.",
)
@click.option(
    "--date",
    "build_date",
    default=_default_build_date,
    show_default="today",
    help="Date of the VHD build in YYMMDD format.",
)
@click.option(
    "--image-env",
    "image_env_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Env file with WINDOWS_*_BASE_IMAGE_VERSION entries.",
)
@click.option(
    "--dry-run/--no-dry-run",
    default=False,
    show_default=True,
    help="Print planned output paths without downloading.",
)
@click.option("--verbose", is_flag=True, default=False, help="Enable INFO logging.")
def fetch(  # noqa: PLR0913
    run_id: str,
    include: str | None,
    ignore: str | None,
    output_root: Path | None,
    build_date: str,
    image_env_path: Path | None,
    dry_run: bool,
    verbose: bool,
) -> None:
    """Download release notes and image lists for the selected VHD variants."""

    if verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(threadName)s %(name)s: %(message)s",
        )

    result = CONTROLLER.fetch(
        FetchNotesCommand(
            run_id=run_id,
            build_date=build_date,
            include=include,
            ignore=ignore,
            output_root=output_root,
            image_env_path=image_env_path,
            dry_run=dry_run,
        ),
        emit=click.echo,
    )
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("Release notes fetch failed.")


@autonotes.command("variants")
@click.option(
    "--image-env",
    "image_env_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Env file with WINDOWS_*_BASE_IMAGE_VERSION entries.",
)
@click.option(
    "--date",
    "build_date",
    default=_default_build_date,
    show_default="today",
    help="Date of the VHD build in YYMMDD format.",
)
def variants(image_env_path: Path | None, build_date: str) -> None:
    """List known VHD variants with their base and resolved versions."""

    result = CONTROLLER.list_variants(
        ListVariantsCommand(image_env_path=image_env_path, build_date=build_date),
    )
    _emit_lines(result.lines)
    if not result.success:
        raise click.ClickException("Some variants are not configured.")


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    autonotes()

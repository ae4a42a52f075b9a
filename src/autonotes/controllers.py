"""Controllers for release notes CLI commands."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from autonotes.catalog import load_release_notes_config
from autonotes.config import ConfigurationError, Settings
from autonotes.coordinator import FetchRunRequest, ReleaseNotesCoordinator
from autonotes.downloader import ArtifactDownloader, CliArtifactDownloader
from autonotes.models import IMAGE_BOM_ARTIFACT, RELEASE_NOTES_ARTIFACT
from autonotes.selection import select_variants
from autonotes.versioning import resolve_version


@dataclass(slots=True)
class FetchNotesCommand:
    """CLI input for release notes retrieval."""

    run_id: str
    build_date: str
    include: str | None
    ignore: str | None
    output_root: Path | None
    image_env_path: Path | None
    dry_run: bool = False


@dataclass(slots=True)
class ListVariantsCommand:
    """CLI input for catalog listing."""

    image_env_path: Path | None
    build_date: str


@dataclass(slots=True)
class CommandResult:
    """Report lines to render in CLI plus overall status."""

    lines: list[str]
    success: bool


class ReleaseNotesCliController:
    """Wires settings, configuration and downloader into the coordinator."""

    def __init__(
        self,
        downloader_factory: Callable[[Settings], ArtifactDownloader] | None = None,
    ) -> None:
        self.downloader_factory = downloader_factory or _cli_downloader

    def fetch(
        self,
        command: FetchNotesCommand,
        *,
        emit: Callable[[str], None] | None = None,
    ) -> CommandResult:
        try:
            settings = Settings.from_env(
                output_root=command.output_root,
                image_env_path=command.image_env_path,
            )
            settings.validate()
            config = load_release_notes_config(settings.image_env_path)
        except ConfigurationError as exc:
            return CommandResult(lines=[f"Configuration error: {exc}"], success=False)

        coordinator = ReleaseNotesCoordinator(
            config=config,
            downloader=self.downloader_factory(settings),
            emit=emit,
        )
        request = FetchRunRequest(
            run_id=command.run_id,
            build_date=command.build_date,
            output_root=settings.output_root,
            include=command.include,
            ignore=command.ignore,
        )

        if command.dry_run:
            selected = select_variants(
                config.catalog,
                include=command.include,
                ignore=command.ignore,
            )
            plans, failures = coordinator.plan(request, selected)
            lines = [f"Dry run: {len(plans)} variant(s) selected from build {command.run_id}"]
            for plan in plans:
                lines.append(f"{plan.variant}: {plan.output_path(RELEASE_NOTES_ARTIFACT)}")
                lines.append(f"{plan.variant}: {plan.output_path(IMAGE_BOM_ARTIFACT)}")
            lines.extend(failure.describe() for failure in failures)
            return CommandResult(lines=lines, success=not failures)

        with coordinator.signal_handlers():
            result = coordinator.run(request)

        failures = result.failures
        lines = [
            "Release notes fetch finished: "
            f"build={command.run_id} selected={len(result.outcomes)} "
            f"succeeded={result.succeeded} failed={len(failures)}",
        ]
        lines.extend(failure.describe() for failure in failures)
        return CommandResult(lines=lines, success=not failures)

    def list_variants(self, command: ListVariantsCommand) -> CommandResult:
        try:
            settings = Settings.from_env(image_env_path=command.image_env_path)
            config = load_release_notes_config(settings.image_env_path)
        except ConfigurationError as exc:
            return CommandResult(lines=[f"Configuration error: {exc}"], success=False)

        lines: list[str] = []
        success = True
        for variant, output_subpath in sorted(config.catalog.items()):
            base_version = config.base_versions.get(variant)
            if base_version is None:
                lines.append(f"{variant} path={output_subpath} base=<missing>")
                success = False
                continue
            try:
                resolved = resolve_version(base_version, command.build_date)
            except ConfigurationError as exc:
                lines.append(f"{variant} path={output_subpath} base={base_version} error={exc}")
                success = False
                continue
            lines.append(
                f"{variant} path={output_subpath} base={base_version} version={resolved}",
            )
        return CommandResult(lines=lines, success=success)


def _cli_downloader(settings: Settings) -> ArtifactDownloader:
    return CliArtifactDownloader(
        command_template=settings.download.command_template,
        timeout_seconds=settings.download.timeout_seconds,
        graceful_shutdown_seconds=settings.download.graceful_shutdown_seconds,
    )

"""Per-variant artifact fetch task."""

from __future__ import annotations

import logging
import shutil
import tempfile
import threading
from collections.abc import Callable
from pathlib import Path

from autonotes.downloader import (
    ArtifactDownloader,
    DownloadCommandError,
    DownloadRequest,
)
from autonotes.downloader.failure_classifier import classify_download_failure
from autonotes.models import (
    IMAGE_BOM_ARTIFACT,
    RELEASE_NOTES_ARTIFACT,
    ArtifactSpec,
    FailureKind,
    FetchOutcome,
    FetchPlan,
    FetchStage,
)

logger = logging.getLogger(__name__)

WORKSPACE_PREFIX = "releasenotes"


class ArtifactFetchError(RuntimeError):
    """Fetch step failure with the stage it failed to reach."""

    def __init__(
        self,
        message: str,
        *,
        kind: FailureKind,
        stage: FetchStage,
        reason_code: str | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.stage = stage
        self.reason_code = reason_code


def run_fetch_task(
    plan: FetchPlan,
    *,
    downloader: ArtifactDownloader,
    cancel_event: threading.Event | None = None,
    workspace_root: Path | None = None,
    emit: Callable[[str], None] = lambda _: None,
) -> FetchOutcome:
    """Fetch and place both artifacts of one variant.

    Never raises: every exit path produces exactly one outcome.
    """

    try:
        _fetch_variant(
            plan,
            downloader=downloader,
            cancel_event=cancel_event,
            workspace_root=workspace_root,
            emit=emit,
        )
    except ArtifactFetchError as exc:
        logger.error("Fetch for variant %s failed: %s", plan.variant, exc)
        return FetchOutcome.failure(
            variant=plan.variant,
            stage=exc.stage,
            kind=exc.kind,
            message=str(exc),
            reason_code=exc.reason_code,
        )
    except Exception as exc:  # noqa: BLE001
        logger.exception("Fetch for variant %s hit an unexpected error", plan.variant)
        return FetchOutcome.failure(
            variant=plan.variant,
            stage=FetchStage.CREATED,
            kind=FailureKind.UNEXPECTED,
            message=f"Unexpected error: {exc}",
        )

    emit(f"[{plan.variant}] placed release notes and image list for version {plan.version}")
    return FetchOutcome.success(plan.variant)


def _fetch_variant(
    plan: FetchPlan,
    *,
    downloader: ArtifactDownloader,
    cancel_event: threading.Event | None,
    workspace_root: Path | None,
    emit: Callable[[str], None],
) -> None:
    # The workspace file names are fixed, so every variant needs its own directory.
    try:
        workspace_dir = tempfile.TemporaryDirectory(prefix=WORKSPACE_PREFIX, dir=workspace_root)
    except OSError as error:
        raise ArtifactFetchError(
            f"failed to create temp working directory: {error}",
            kind=FailureKind.FILESYSTEM,
            stage=FetchStage.WORKSPACE_ACQUIRED,
        ) from error

    with workspace_dir as workspace_name:
        workspace = Path(workspace_name)
        try:
            plan.output_dir.mkdir(parents=True, exist_ok=True)
        except OSError as error:
            raise ArtifactFetchError(
                f"failed to create output directory {plan.output_dir}: {error}",
                kind=FailureKind.FILESYSTEM,
                stage=FetchStage.WORKSPACE_ACQUIRED,
            ) from error

        _fetch_artifact(
            plan,
            RELEASE_NOTES_ARTIFACT,
            workspace=workspace,
            downloader=downloader,
            cancel_event=cancel_event,
            fetched_stage=FetchStage.NOTES_FETCHED,
            placed_stage=FetchStage.NOTES_PLACED,
            emit=emit,
        )
        _fetch_artifact(
            plan,
            IMAGE_BOM_ARTIFACT,
            workspace=workspace,
            downloader=downloader,
            cancel_event=cancel_event,
            fetched_stage=FetchStage.MANIFEST_FETCHED,
            placed_stage=FetchStage.MANIFEST_PLACED,
            emit=emit,
        )


def _fetch_artifact(  # noqa: PLR0913
    plan: FetchPlan,
    artifact: ArtifactSpec,
    *,
    workspace: Path,
    downloader: ArtifactDownloader,
    cancel_event: threading.Event | None,
    fetched_stage: FetchStage,
    placed_stage: FetchStage,
    emit: Callable[[str], None],
) -> None:
    artifact_name = artifact.artifact_name(plan.variant)
    if cancel_event is not None and cancel_event.is_set():
        raise ArtifactFetchError(
            f"canceled before downloading {artifact.label} artifact {artifact_name}",
            kind=FailureKind.CANCELED,
            stage=fetched_stage,
            reason_code="canceled",
        )

    emit(
        f"[{plan.variant}] downloading {artifact.label} '{artifact_name}' "
        f"from build '{plan.run_id}'",
    )
    request = DownloadRequest(
        run_id=plan.run_id,
        destination=workspace,
        artifact_name=artifact_name,
        shutdown_requested=cancel_event.is_set if cancel_event is not None else None,
    )
    try:
        result = downloader.download(request)
    except DownloadCommandError as error:
        raise ArtifactFetchError(
            f"failed to run download of {artifact.label} artifact {artifact_name} "
            f"for variant {plan.variant}: {error}",
            kind=FailureKind.EXTERNAL_CALL,
            stage=fetched_stage,
            reason_code=error.reason_code,
        ) from error

    if not result.ok:
        classification = classify_download_failure(result)
        raise ArtifactFetchError(
            f"failed to download {artifact.label} artifact {artifact_name} "
            f"for variant {plan.variant}, exit code: {result.exit_code}, "
            f"output: {result.output.strip()}",
            kind=FailureKind.CANCELED if result.canceled else FailureKind.EXTERNAL_CALL,
            stage=fetched_stage,
            reason_code=classification.reason_code,
        )

    source = workspace / artifact.workspace_filename
    target = plan.output_path(artifact)
    try:
        shutil.move(str(source), str(target))
    except OSError as error:
        raise ArtifactFetchError(
            f"failed to rename file {source} to {target}, err: {error}",
            kind=FailureKind.FILESYSTEM,
            stage=placed_stage,
        ) from error
    logger.info("Placed %s artifact for %s at %s", artifact.label, plan.variant, target)

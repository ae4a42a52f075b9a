"""Domain models for artifact fetch tasks and their outcomes."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class FetchStage(str, Enum):
    """Fetch task lifecycle states, in execution order."""

    CREATED = "created"
    WORKSPACE_ACQUIRED = "workspace_acquired"
    NOTES_FETCHED = "notes_fetched"
    NOTES_PLACED = "notes_placed"
    MANIFEST_FETCHED = "manifest_fetched"
    MANIFEST_PLACED = "manifest_placed"
    SUCCEEDED = "succeeded"


class FailureKind(str, Enum):
    """Normalized failure classes reported by fetch tasks."""

    CONFIGURATION = "configuration"
    EXTERNAL_CALL = "external_call"
    FILESYSTEM = "filesystem"
    CANCELED = "canceled"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True, slots=True)
class ArtifactSpec:
    """One downloadable artifact and where it lands."""

    label: str
    artifact_prefix: str
    workspace_filename: str
    output_suffix: str

    def artifact_name(self, variant: str) -> str:
        return f"{self.artifact_prefix}-{variant}"

    def output_filename(self, version: str) -> str:
        return f"{version}{self.output_suffix}"


RELEASE_NOTES_ARTIFACT = ArtifactSpec(
    label="notes",
    artifact_prefix="vhd-release-notes",
    workspace_filename="release-notes.txt",
    output_suffix=".txt",
)
IMAGE_BOM_ARTIFACT = ArtifactSpec(
    label="manifest",
    artifact_prefix="vhd-image-bom",
    workspace_filename="image-bom.json",
    output_suffix="-image-list.json",
)


@dataclass(frozen=True, slots=True)
class FetchPlan:
    """Inputs for one variant's fetch task."""

    variant: str
    output_subpath: Path
    run_id: str
    version: str
    output_root: Path

    @property
    def output_dir(self) -> Path:
        return self.output_root / self.output_subpath

    def output_path(self, artifact: ArtifactSpec) -> Path:
        return self.output_dir / artifact.output_filename(self.version)


@dataclass(frozen=True, slots=True)
class FetchOutcome:
    """Exactly one outcome is produced per launched fetch task."""

    variant: str
    stage: FetchStage
    failure_kind: FailureKind | None = None
    message: str | None = None
    reason_code: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.failure_kind is None

    @classmethod
    def success(cls, variant: str) -> FetchOutcome:
        return cls(variant=variant, stage=FetchStage.SUCCEEDED)

    @classmethod
    def failure(  # noqa: PLR0913
        cls,
        *,
        variant: str,
        stage: FetchStage,
        kind: FailureKind,
        message: str,
        reason_code: str | None = None,
    ) -> FetchOutcome:
        return cls(
            variant=variant,
            stage=stage,
            failure_kind=kind,
            message=message,
            reason_code=reason_code,
        )

    def describe(self) -> str:
        """Render a one-line failure reason for CLI output."""

        if self.succeeded:
            return f"variant {self.variant}: succeeded"
        reason = f" reason={self.reason_code}" if self.reason_code else ""
        return (
            f"variant {self.variant}: failed at stage={self.stage.value} "
            f"kind={self.failure_kind.value}{reason}: {self.message}"
        )

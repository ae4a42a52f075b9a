"""Downloader interface for pipeline-run artifact retrieval."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


@dataclass(slots=True)
class DownloadRequest:
    """Inputs required to download one artifact of one pipeline run."""

    run_id: str
    destination: Path
    artifact_name: str
    shutdown_requested: Callable[[], bool] | None = None


@dataclass(slots=True)
class DownloadResult:
    """Execution outcome from a downloader."""

    exit_code: int
    output: str
    timed_out: bool = False
    canceled: bool = False

    @property
    def ok(self) -> bool:
        return self.exit_code == 0 and not self.timed_out and not self.canceled


class ArtifactDownloader(Protocol):
    """Protocol implemented by artifact downloaders."""

    def download(self, request: DownloadRequest) -> DownloadResult:
        """Download an artifact into ``request.destination``."""

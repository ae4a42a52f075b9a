"""Shared test fixtures."""

from __future__ import annotations

import sys
import threading
from collections.abc import Callable
from pathlib import Path

import pytest

from autonotes.downloader import DownloadRequest, DownloadResult
from autonotes.models import IMAGE_BOM_ARTIFACT, RELEASE_NOTES_ARTIFACT

ECHO_DOWNLOADER_COMMAND_TEMPLATE = (
    f"{sys.executable} -m autonotes.downloader.echo_downloader "
    "--run-id {run_id} --path {path} --artifact-name {artifact_name}"
)


class FakeDownloader:
    """In-process downloader that writes the files the real CLI would."""

    def __init__(
        self,
        *,
        failing: set[str] | None = None,
        before_download: Callable[[DownloadRequest], None] | None = None,
    ) -> None:
        self.failing = failing or set()
        self.before_download = before_download
        self.requests: list[DownloadRequest] = []
        self._lock = threading.Lock()

    @property
    def artifact_names(self) -> list[str]:
        return [request.artifact_name for request in self.requests]

    def download(self, request: DownloadRequest) -> DownloadResult:
        with self._lock:
            self.requests.append(request)
        if self.before_download is not None:
            self.before_download(request)
        if request.artifact_name in self.failing:
            return DownloadResult(
                exit_code=1,
                output=f"ERROR: Artifact not found: {request.artifact_name}",
            )
        for artifact in (RELEASE_NOTES_ARTIFACT, IMAGE_BOM_ARTIFACT):
            if request.artifact_name.startswith(f"{artifact.artifact_prefix}-"):
                target = request.destination / artifact.workspace_filename
                target.write_text(f"{request.run_id}:{request.artifact_name}", "utf-8")
        return DownloadResult(exit_code=0, output="ok")


@pytest.fixture()
def fake_downloader() -> FakeDownloader:
    return FakeDownloader()


@pytest.fixture()
def make_fake_downloader() -> type[FakeDownloader]:
    return FakeDownloader


@pytest.fixture()
def image_env_file(tmp_path: Path) -> Path:
    path = tmp_path / "windows-image.env"
    path.write_text(
        "\n".join(
            [
                "# base images",
                "WINDOWS_2019_BASE_IMAGE_VERSION=17763.6414.241010",
                "WINDOWS_2022_BASE_IMAGE_VERSION=20348.2762.241009",
                "WINDOWS_2022_GEN2_BASE_IMAGE_VERSION=20348.2762.241009",
                "WINDOWS_2019_BASE_IMAGE_URL=https://example.com/2019.vhd",
            ],
        )
        + "\n",
        "utf-8",
    )
    return path


@pytest.fixture()
def echo_downloader(monkeypatch) -> str:
    """Point the CLI at the local echo downloader instead of the pipelines CLI."""

    monkeypatch.setenv("AUTONOTES_DOWNLOAD_COMMAND_TEMPLATE", ECHO_DOWNLOADER_COMMAND_TEMPLATE)
    monkeypatch.delenv("AUTONOTES_ECHO_FAIL_ARTIFACTS", raising=False)
    return ECHO_DOWNLOADER_COMMAND_TEMPLATE

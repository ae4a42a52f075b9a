"""Artifact downloader implementations."""

from autonotes.downloader.base import ArtifactDownloader, DownloadRequest, DownloadResult
from autonotes.downloader.cli_downloader import CliArtifactDownloader, DownloadCommandError

__all__ = [
    "ArtifactDownloader",
    "CliArtifactDownloader",
    "DownloadCommandError",
    "DownloadRequest",
    "DownloadResult",
]

"""Subprocess-based downloader wrapping the pipelines CLI."""

from __future__ import annotations

import shlex
import subprocess
import tempfile
import time
from typing import IO

from autonotes.config import DEFAULT_DOWNLOAD_COMMAND_TEMPLATE
from autonotes.downloader.base import DownloadRequest, DownloadResult

_POLL_INTERVAL_SECONDS = 0.1


class DownloadCommandError(RuntimeError):
    """Download command could not be rendered or started."""

    def __init__(self, message: str, *, transient: bool, reason_code: str) -> None:
        super().__init__(message)
        self.transient = transient
        self.reason_code = reason_code


class CliArtifactDownloader:
    """Run the configured download command template once per artifact."""

    def __init__(
        self,
        *,
        command_template: str = DEFAULT_DOWNLOAD_COMMAND_TEMPLATE,
        timeout_seconds: int = 600,
        graceful_shutdown_seconds: int = 30,
    ) -> None:
        self.command_template = command_template
        self.timeout_seconds = timeout_seconds
        self.graceful_shutdown_seconds = graceful_shutdown_seconds

    def download(self, request: DownloadRequest) -> DownloadResult:
        argv = build_command_args(
            command_template=self.command_template,
            run_id=request.run_id,
            path=str(request.destination),
            artifact_name=request.artifact_name,
        )
        try:
            with tempfile.TemporaryFile(mode="w+b") as output_handle:
                result = _run_subprocess_with_shutdown(
                    run_args=argv,
                    timeout_seconds=self.timeout_seconds,
                    output_handle=output_handle,
                    shutdown_requested=request.shutdown_requested,
                    graceful_shutdown_seconds=self.graceful_shutdown_seconds,
                )
                output_handle.seek(0)
                # The CLI may print in the console code page, not UTF-8.
                result.output = output_handle.read().decode("utf-8", errors="replace")
                return result
        except FileNotFoundError as error:
            raise DownloadCommandError(
                f"Download command not found: {argv[0]}",
                transient=False,
                reason_code="command_missing",
            ) from error
        except OSError as error:
            raise DownloadCommandError(
                f"Download command failed to start: {error}",
                transient=True,
                reason_code="transient",
            ) from error


def build_command_args(
    *,
    command_template: str,
    run_id: str,
    path: str,
    artifact_name: str,
) -> list[str]:
    """Split the template into argv and substitute placeholders per argument.

    Substitution happens after splitting so values containing spaces or quotes
    stay a single argument on every platform. Each argument goes through
    ``str.format``, so literal braces must be doubled (``{{`` and ``}}``).
    """

    stripped = command_template.strip()
    if not stripped:
        raise DownloadCommandError(
            "Download command template is empty.",
            transient=False,
            reason_code="bad_template",
        )

    values = {"run_id": run_id, "path": path, "artifact_name": artifact_name}
    try:
        argv = [token.format(**values) for token in shlex.split(stripped)]
    except (KeyError, IndexError) as error:
        raise DownloadCommandError(
            f"Unsupported command template placeholder: {error}",
            transient=False,
            reason_code="bad_template",
        ) from error
    except ValueError as error:
        raise DownloadCommandError(
            f"Malformed download command template: {error}",
            transient=False,
            reason_code="bad_template",
        ) from error
    return argv


def _run_subprocess_with_shutdown(  # noqa: PLR0913
    *,
    run_args: list[str],
    timeout_seconds: int,
    output_handle: IO[bytes],
    shutdown_requested,
    graceful_shutdown_seconds: int,
) -> DownloadResult:
    process = subprocess.Popen(  # noqa: S603
        run_args,
        stdout=output_handle,
        stderr=subprocess.STDOUT,
        stdin=subprocess.DEVNULL,
    )
    start_monotonic = time.monotonic()
    shutdown_deadline: float | None = None
    graceful_seconds = max(0, graceful_shutdown_seconds)

    while True:
        returncode = process.poll()
        if returncode is not None:
            return DownloadResult(exit_code=returncode, output="")

        now = time.monotonic()
        if now - start_monotonic >= timeout_seconds:
            _terminate_process(process)
            return DownloadResult(exit_code=124, output="", timed_out=True)

        if shutdown_requested is not None and shutdown_requested():
            if shutdown_deadline is None:
                shutdown_deadline = now + graceful_seconds
            if now >= shutdown_deadline:
                _terminate_process(process)
                return DownloadResult(exit_code=130, output="", canceled=True)

        time.sleep(_POLL_INTERVAL_SECONDS)


def _terminate_process(process: subprocess.Popen[bytes]) -> None:
    try:
        process.terminate()
    except OSError:
        return
    try:
        process.wait(timeout=2)
    except subprocess.TimeoutExpired:
        try:
            process.kill()
        except OSError:
            return
        process.wait(timeout=2)

"""Deterministic classification of failed artifact downloads."""

from __future__ import annotations

from dataclasses import dataclass

from autonotes.downloader.base import DownloadResult

_NOT_FOUND_PATTERNS: tuple[str, ...] = (
    "artifact not found",
    "could not find artifact",
    "no artifact named",
    "artifact does not exist",
    "run not found",
)
_AUTH_PATTERNS: tuple[str, ...] = (
    "az login",
    "unauthorized",
    "forbidden",
    "permission denied",
    "authentication",
    "personal access token",
)
_TRANSIENT_PATTERNS: tuple[str, ...] = (
    "timed out",
    "temporarily unavailable",
    "connection reset",
    "connection aborted",
    "could not resolve host",
    "too many requests",
    "http 429",
    "status code 429",
    "(429)",
)
_COMMAND_MISSING_PATTERNS: tuple[str, ...] = (
    "command not found",
    "is not recognized as an internal or external command",
)
_COMMAND_MISSING_EXIT_CODES: tuple[int, ...] = (127, 9009)


@dataclass(slots=True)
class DownloadFailureClassification:
    """Normalized reason for a failed download."""

    reason_code: str
    matched_pattern: str | None


def classify_download_failure(result: DownloadResult) -> DownloadFailureClassification:
    """Pick a reason code from the exit status and captured output."""

    if result.canceled:
        return DownloadFailureClassification(reason_code="canceled", matched_pattern=None)
    if result.timed_out:
        return DownloadFailureClassification(reason_code="timeout", matched_pattern=None)

    haystack = result.output.lower()
    if result.exit_code in _COMMAND_MISSING_EXIT_CODES:
        return DownloadFailureClassification(reason_code="command_missing", matched_pattern=None)
    for pattern in _COMMAND_MISSING_PATTERNS:
        if pattern in haystack:
            return DownloadFailureClassification(
                reason_code="command_missing",
                matched_pattern=pattern,
            )

    # Auth errors often also mention a missing resource, so check them first.
    for reason_code, patterns in (
        ("auth", _AUTH_PATTERNS),
        ("not_found", _NOT_FOUND_PATTERNS),
        ("transient", _TRANSIENT_PATTERNS),
    ):
        for pattern in patterns:
            if pattern in haystack:
                return DownloadFailureClassification(
                    reason_code=reason_code,
                    matched_pattern=pattern,
                )
    return DownloadFailureClassification(reason_code="unknown", matched_pattern=None)

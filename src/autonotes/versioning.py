"""Output version resolution from base image versions."""

from __future__ import annotations

from autonotes.config import ConfigurationError

VERSION_SUFFIX_LENGTH = 6


def resolve_version(base_version: str, build_date: str) -> str:
    """Replace the trailing date suffix of ``base_version`` with ``build_date``.

    ``"1.2.3-240101"`` with ``"240615"`` resolves to ``"1.2.3-240615"``.
    """

    if len(base_version) <= VERSION_SUFFIX_LENGTH:
        raise ConfigurationError(
            f"Base version {base_version!r} must be longer than "
            f"{VERSION_SUFFIX_LENGTH} characters.",
        )
    return base_version[:-VERSION_SUFFIX_LENGTH] + build_date

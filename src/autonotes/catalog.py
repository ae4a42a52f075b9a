"""Variant catalog and base image versions loaded once per run."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType

from autonotes.config import ConfigurationError

logger = logging.getLogger(__name__)

# Output subdirectories are relied upon by downstream release tooling.
VARIANT_OUTPUT_PATHS: Mapping[str, Path] = MappingProxyType(
    {
        "2019-containerd": Path("AKSWindows") / "2019-containerd",
        "2022-containerd": Path("AKSWindows") / "2022-containerd",
        "2022-containerd-gen2": Path("AKSWindows") / "2022-containerd-gen2",
    },
)

BASE_VERSION_MARKERS: Mapping[str, str] = MappingProxyType(
    {
        "WINDOWS_2019_BASE_IMAGE_VERSION": "2019-containerd",
        "WINDOWS_2022_BASE_IMAGE_VERSION": "2022-containerd",
        "WINDOWS_2022_GEN2_BASE_IMAGE_VERSION": "2022-containerd-gen2",
    },
)


@dataclass(frozen=True, slots=True)
class ReleaseNotesConfig:
    """Immutable variant catalog plus base versions keyed by variant id."""

    catalog: Mapping[str, Path]
    base_versions: Mapping[str, str]

    @classmethod
    def build(
        cls,
        *,
        catalog: Mapping[str, Path],
        base_versions: Mapping[str, str],
    ) -> ReleaseNotesConfig:
        return cls(
            catalog=MappingProxyType(dict(catalog)),
            base_versions=MappingProxyType(dict(base_versions)),
        )

    def base_version(self, variant: str) -> str:
        """Return the base version of a variant or raise a configuration error."""

        try:
            return self.base_versions[variant]
        except KeyError as error:
            raise ConfigurationError(
                f"No base image version configured for variant {variant!r}.",
            ) from error


def load_release_notes_config(
    image_env_path: Path,
    *,
    catalog: Mapping[str, Path] = VARIANT_OUTPUT_PATHS,
    markers: Mapping[str, str] = BASE_VERSION_MARKERS,
) -> ReleaseNotesConfig:
    """Read the image env file once and build the run configuration."""

    try:
        text = image_env_path.read_text("utf-8")
    except OSError as error:
        raise ConfigurationError(
            f"Failed to read image env file {image_env_path}: {error}",
        ) from error

    base_versions = parse_base_versions(text.splitlines(), markers=markers)
    for variant in catalog:
        if variant not in base_versions:
            logger.warning("No base image version for variant %s in %s", variant, image_env_path)
    return ReleaseNotesConfig.build(catalog=catalog, base_versions=base_versions)


def parse_base_versions(
    lines: Iterable[str],
    *,
    markers: Mapping[str, str] = BASE_VERSION_MARKERS,
) -> dict[str, str]:
    """Map recognized ``KEY=VALUE`` lines to variant base versions.

    Blank lines, comments and unknown keys are skipped. Later assignments of the
    same key win, matching shell ``source`` semantics.
    """

    versions: dict[str, str] = {}
    for raw_line in lines:
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip()
        if key.startswith("export "):
            key = key.removeprefix("export ").strip()
        variant = markers.get(key)
        if variant is None:
            continue
        versions[variant] = _unquote(value.strip())
    return versions


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in {'"', "'"}:
        return value[1:-1].strip()
    return value

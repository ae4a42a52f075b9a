"""Runtime configuration for release notes retrieval."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_OUTPUT_ROOT = Path("vhdbuilder") / "release-notes"
DEFAULT_IMAGE_ENV_PATH = Path("vhdbuilder") / "packer" / "windows-image.env"
DEFAULT_DOWNLOAD_COMMAND_TEMPLATE = (
    "az pipelines runs artifact download "
    "--run-id {run_id} --path {path} --artifact-name {artifact_name}"
)
REQUIRED_TEMPLATE_PLACEHOLDERS: tuple[str, ...] = ("{run_id}", "{path}", "{artifact_name}")


class ConfigurationError(ValueError):
    """Missing or malformed configuration that prevents processing."""


@dataclass(slots=True)
class DownloadSettings:
    """External download command settings."""

    command_template: str = DEFAULT_DOWNLOAD_COMMAND_TEMPLATE
    timeout_seconds: int = 600
    graceful_shutdown_seconds: int = 30


@dataclass(slots=True)
class Settings:
    """Application settings grouped by domain concerns."""

    output_root: Path = DEFAULT_OUTPUT_ROOT
    image_env_path: Path = DEFAULT_IMAGE_ENV_PATH
    download: DownloadSettings = field(default_factory=DownloadSettings)

    @classmethod
    def from_env(
        cls,
        *,
        output_root: Path | None = None,
        image_env_path: Path | None = None,
    ) -> Settings:
        """Load settings from environment; explicit arguments take precedence."""

        return cls(
            output_root=output_root
            or Path(os.getenv("AUTONOTES_OUTPUT_ROOT", str(DEFAULT_OUTPUT_ROOT))),
            image_env_path=image_env_path
            or Path(os.getenv("AUTONOTES_IMAGE_ENV_PATH", str(DEFAULT_IMAGE_ENV_PATH))),
            download=DownloadSettings(
                command_template=os.getenv(
                    "AUTONOTES_DOWNLOAD_COMMAND_TEMPLATE",
                    DEFAULT_DOWNLOAD_COMMAND_TEMPLATE,
                ),
                timeout_seconds=_env_int("AUTONOTES_DOWNLOAD_TIMEOUT_SECONDS", 600),
                graceful_shutdown_seconds=_env_int("AUTONOTES_GRACEFUL_SHUTDOWN_SECONDS", 30),
            ),
        )

    def validate(self) -> None:
        """Raise configuration error if download settings are unusable."""

        if self.download.timeout_seconds <= 0:
            raise ConfigurationError("AUTONOTES_DOWNLOAD_TIMEOUT_SECONDS must be > 0.")
        if self.download.graceful_shutdown_seconds < 0:
            raise ConfigurationError("AUTONOTES_GRACEFUL_SHUTDOWN_SECONDS must be >= 0.")
        template = self.download.command_template.strip()
        if not template:
            raise ConfigurationError("AUTONOTES_DOWNLOAD_COMMAND_TEMPLATE is empty.")
        missing = [token for token in REQUIRED_TEMPLATE_PLACEHOLDERS if token not in template]
        if missing:
            raise ConfigurationError(
                "AUTONOTES_DOWNLOAD_COMMAND_TEMPLATE must include "
                f"{', '.join(missing)}: {template!r}",
            )


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value.strip())
    except ValueError as error:
        raise ConfigurationError(f"Invalid integer value for {name}: {value!r}") from error

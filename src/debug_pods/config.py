from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)

from .manifest import bundled_templates_dir

CONFIG_FILE_ENV = "DEBUG_PODS_CONFIG_FILE"
DEFAULT_CONFIG_FILE = Path.home() / ".config" / "debug-pods" / "config.yaml"


def config_file_path() -> Path:
    raw = os.environ.get(CONFIG_FILE_ENV)
    if raw and raw.strip():
        return Path(raw.strip()).expanduser()
    return DEFAULT_CONFIG_FILE


def _normalize_optional_text(value: Any) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        return None
    normalized = value.strip()
    if normalized:
        return normalized
    return None


class DebugPodSettings(BaseSettings):
    """
    Runtime configuration for the debug pod commands.

    Values come from `DEBUG_PODS_*` environment variables, then the YAML config
    file (`~/.config/debug-pods/config.yaml` or `$DEBUG_PODS_CONFIG_FILE`), then
    the defaults below. Command-line flags override all of them.
    """

    model_config = SettingsConfigDict(
        env_prefix="DEBUG_PODS_",
        extra="ignore",
        frozen=True,
    )

    # Templates and images.
    templates_dir: Path = Field(
        default_factory=bundled_templates_dir,
        description="Directory holding `<purpose>.yaml` pod templates.",
    )
    registry: str = Field(
        default="ghcr.io",
        description="Registry host the debug images are published to.",
    )
    registry_namespace: str = Field(
        default="debug-pods",
        description="Registry namespace (organisation) of the debug images.",
    )
    image_tag: str = Field(
        default="latest",
        description="Tag used when naming debug images.",
    )

    # Cluster access.
    namespace: str = Field(
        default="default",
        description="Namespace pods are deployed to and cleaned up from.",
    )
    context: str | None = Field(
        default=None,
        description="kubeconfig context; kubectl's current context when unset.",
    )
    kubectl_binary: str = Field(
        default="kubectl",
        description="kubectl executable name or path.",
    )
    ready_timeout_seconds: int = Field(
        default=120,
        ge=1,
        le=3600,
        description="How long to wait for a pod to become Ready before attaching.",
    )
    shell: str = Field(
        default="/bin/sh",
        description="Shell started when attaching to a pod.",
    )

    # Logging.
    log_level: str = Field(
        default="WARNING",
        description="Console log level (stderr).",
    )
    log_file: Path | None = Field(
        default=None,
        description="Optional JSON log file receiving DEBUG-level records.",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            YamlConfigSettingsSource(settings_cls, yaml_file=config_file_path()),
        )

    @field_validator("templates_dir", "log_file", mode="before")
    @classmethod
    def _normalize_paths(cls, value: Any) -> Any:
        if value is None or value == "":
            return None
        return Path(value).expanduser().resolve()

    @field_validator("context", mode="before")
    @classmethod
    def _normalize_context(cls, value: Any) -> str | None:
        return _normalize_optional_text(value)

    @field_validator("namespace", "registry", "registry_namespace", "image_tag", "shell", mode="before")
    @classmethod
    def _normalize_required_text(cls, value: Any) -> str:
        if not isinstance(value, str):
            raise ValueError("value must be a string.")
        normalized = value.strip()
        if not normalized:
            raise ValueError("value must not be empty.")
        return normalized

    def image_reference(self, purpose: str) -> str:
        """Image name a purpose is published under."""
        return f"{self.registry}/{self.registry_namespace}/{purpose}:{self.image_tag}"


def load_settings(**overrides: Any) -> DebugPodSettings:
    """Build settings, letting non-None keyword overrides (CLI flags) win."""
    explicit = {key: value for key, value in overrides.items() if value is not None}
    return DebugPodSettings(**explicit)

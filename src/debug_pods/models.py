"""Models for resource overrides and pod template validation."""

from __future__ import annotations

import re
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEBUG_POD_APP_LABEL = "debug-pod"
RESOURCE_KEYS: tuple[str, ...] = ("memory", "ephemeral-storage", "cpu")

_CPU_QUANTITY = re.compile(r"^(\d+(\.\d+)?|\.\d+)m?$")
_BYTES_QUANTITY = re.compile(r"^(\d+(\.\d+)?|\.\d+)([eE]\d+|Ki|Mi|Gi|Ti|Pi|Ei|k|M|G|T|P|E)?$")


def _normalize_quantity(value: Any, *, pattern: re.Pattern[str], label: str) -> str | None:
    if value is None:
        return None
    normalized = str(value).strip()
    if not normalized:
        return None
    if not pattern.match(normalized):
        raise ValueError(f"{label} quantity '{normalized}' is not a valid Kubernetes quantity.")
    if float(re.sub(r"[^0-9.].*$", "", normalized) or 0) <= 0:
        raise ValueError(f"{label} quantity '{normalized}' must be greater than zero.")
    return normalized


class ResourceOverrides(BaseModel):
    """Caller-supplied quantities replacing template resource defaults."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    memory: str | None = None
    ephemeral_storage: str | None = Field(default=None, alias="ephemeral-storage")
    cpu: str | None = None

    @field_validator("memory", "ephemeral_storage", mode="before")
    @classmethod
    def _validate_bytes(cls, value: Any) -> str | None:
        return _normalize_quantity(value, pattern=_BYTES_QUANTITY, label="memory/storage")

    @field_validator("cpu", mode="before")
    @classmethod
    def _validate_cpu(cls, value: Any) -> str | None:
        return _normalize_quantity(value, pattern=_CPU_QUANTITY, label="cpu")

    def as_resources(self) -> dict[str, str]:
        """Return only the supplied overrides, keyed by Kubernetes resource name."""
        return {
            key: value
            for key, value in self.model_dump(by_alias=True).items()
            if value is not None
        }


class ContainerShape(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    image: str
    command: list[str] | None = None
    resources: dict[str, Any] | None = None

    @field_validator("resources")
    @classmethod
    def _check_quantity_sections(cls, value: dict[str, Any] | None) -> dict[str, Any] | None:
        # Other keys (claims, ...) are carried through untouched.
        for section in ("requests", "limits"):
            if value and value.get(section) is not None and not isinstance(value[section], dict):
                raise ValueError(f"resources.{section} must be a mapping.")
        return value


class LabelsShape(BaseModel):
    model_config = ConfigDict(extra="allow")

    app: Literal["debug-pod"]
    type: str


class MetadataShape(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    labels: LabelsShape


class PodSpecShape(BaseModel):
    model_config = ConfigDict(extra="allow")

    containers: list[ContainerShape] = Field(min_length=1)
    restartPolicy: str = "Never"


class PodTemplateShape(BaseModel):
    """Fixed top-level shape every pod template must have."""

    model_config = ConfigDict(extra="allow")

    apiVersion: Literal["v1"]
    kind: Literal["Pod"]
    metadata: MetadataShape
    spec: PodSpecShape

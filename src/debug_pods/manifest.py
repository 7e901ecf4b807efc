"""Pod templates as structured documents with whitelisted setters."""

from __future__ import annotations

import copy
import logging
import re
from collections.abc import Mapping
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from .errors import InvalidTemplate, TemplateNotFound
from .models import PodTemplateShape

LOGGER = logging.getLogger("debug_pods.templates")

TEMPLATE_SUFFIXES: tuple[str, ...] = (".yaml", ".yml")
_PURPOSE_PATTERN = re.compile(r"^[a-z0-9]([-a-z0-9]*[a-z0-9])?$")


def bundled_templates_dir() -> Path:
    return Path(str(resources.files("debug_pods") / "templates"))


def is_valid_purpose(purpose: str) -> bool:
    return bool(_PURPOSE_PATTERN.match(purpose))


class PodManifest:
    """A parsed pod template.

    Only the pod name and the first container's resource requests/limits can
    be changed; every other field is serialized exactly as it was loaded.
    """

    def __init__(self, document: Mapping[str, Any], *, source: Path | None = None) -> None:
        self._document: dict[str, Any] = copy.deepcopy(dict(document))
        self.source = source

    @classmethod
    def from_yaml(cls, text: str, *, source: Path | None = None) -> PodManifest:
        try:
            document = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise InvalidTemplate(f"Template {source or '<string>'} is not valid YAML: {exc}") from exc
        if not isinstance(document, dict):
            raise InvalidTemplate(f"Template {source or '<string>'} must be a YAML mapping.")
        try:
            PodTemplateShape.model_validate(document)
        except ValidationError as exc:
            raise InvalidTemplate(
                f"Template {source or '<string>'} does not have the pod template shape:\n{exc}"
            ) from exc
        return cls(document, source=source)

    @property
    def name(self) -> str:
        return str(self._document["metadata"]["name"])

    @property
    def labels(self) -> dict[str, str]:
        return dict(self._document["metadata"].get("labels") or {})

    @property
    def purpose(self) -> str:
        return str(self.labels.get("type", ""))

    @property
    def image(self) -> str:
        return str(self._primary_container()["image"])

    @property
    def requests(self) -> dict[str, str]:
        return dict(self._resources().get("requests") or {})

    @property
    def limits(self) -> dict[str, str]:
        return dict(self._resources().get("limits") or {})

    def set_name(self, name: str) -> None:
        self._document["metadata"]["name"] = name

    def set_requests(self, quantities: Mapping[str, str]) -> None:
        self._merge_resources("requests", quantities)

    def set_limits(self, quantities: Mapping[str, str]) -> None:
        self._merge_resources("limits", quantities)

    def apply_resources(self, quantities: Mapping[str, str]) -> None:
        """Set the same quantities as both requests and limits."""
        if not quantities:
            return
        self.set_requests(quantities)
        self.set_limits(quantities)

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._document)

    def to_yaml(self) -> str:
        return yaml.safe_dump(self._document, sort_keys=False, default_flow_style=False)

    def _primary_container(self) -> dict[str, Any]:
        # Only the first container is addressed, even when the template has sidecars.
        return self._document["spec"]["containers"][0]

    def _resources(self) -> dict[str, Any]:
        container = self._primary_container()
        if container.get("resources") is None:
            container["resources"] = {}
        return container["resources"]

    def _merge_resources(self, section: str, quantities: Mapping[str, str]) -> None:
        resources_block = self._resources()
        current = resources_block.get(section)
        if current is None:
            current = {}
            resources_block[section] = current
        for key, value in quantities.items():
            current[key] = str(value)


class TemplateCatalog:
    """Maps purpose identifiers to template files in a directory."""

    def __init__(self, templates_dir: Path) -> None:
        self.templates_dir = templates_dir

    def list_purposes(self) -> list[str]:
        if not self.templates_dir.is_dir():
            LOGGER.warning("templates directory missing path=%s", self.templates_dir)
            return []
        purposes = {
            path.stem
            for path in self.templates_dir.iterdir()
            if path.is_file() and path.suffix in TEMPLATE_SUFFIXES and is_valid_purpose(path.stem)
        }
        return sorted(purposes)

    def path_for(self, purpose: str) -> Path:
        if is_valid_purpose(purpose):
            for suffix in TEMPLATE_SUFFIXES:
                candidate = self.templates_dir / f"{purpose}{suffix}"
                if candidate.is_file():
                    return candidate
        raise TemplateNotFound(purpose, available=self.list_purposes())

    def load(self, purpose: str) -> PodManifest:
        path = self.path_for(purpose)
        LOGGER.debug("loading template purpose=%s path=%s", purpose, path)
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise InvalidTemplate(f"Template {path} could not be read: {exc}") from exc
        manifest = PodManifest.from_yaml(text, source=path)
        if manifest.purpose != purpose:
            raise InvalidTemplate(
                f"Template {path} has metadata.labels.type '{manifest.purpose}', "
                f"expected '{purpose}'."
            )
        return manifest

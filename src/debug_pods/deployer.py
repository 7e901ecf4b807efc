"""Deploys debug pods from purpose templates."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Protocol
from uuid import uuid4

from pydantic import ValidationError
from structlog.contextvars import bound_contextvars

from .errors import AttachError, InvalidOverride, PodReadyTimeoutError, SubmissionError
from .kubectl import KubectlError, KubectlTimeoutError
from .manifest import PodManifest, TemplateCatalog
from .models import ResourceOverrides

LOGGER = logging.getLogger("debug_pods.deployer")

MAX_POD_NAME_LENGTH = 63


class PodClient(Protocol):
    namespace: str
    context: str | None

    def create_manifest(self, manifest: str) -> str: ...

    def wait_for_ready(self, pod_name: str, timeout_seconds: int) -> None: ...

    def probe_exec(self, pod_name: str, shell: str) -> None: ...

    def exec_shell(self, pod_name: str, shell: str, container: str | None = None) -> int: ...


@dataclass(frozen=True)
class DeployResult:
    pod_name: str
    namespace: str
    context: str | None
    purpose: str
    image: str
    attached: bool = False
    session_exit_code: int | None = None


def generate_pod_name(purpose: str, *, suffix_factory: Callable[[], str] | None = None) -> str:
    suffix = suffix_factory() if suffix_factory is not None else uuid4().hex[:8]
    prefix = purpose[: MAX_POD_NAME_LENGTH - len(suffix) - 1].rstrip("-")
    return f"{prefix}-{suffix}"


def parse_overrides(
    *,
    memory: str | None = None,
    ephemeral_storage: str | None = None,
    cpu: str | None = None,
) -> ResourceOverrides:
    try:
        return ResourceOverrides(memory=memory, ephemeral_storage=ephemeral_storage, cpu=cpu)
    except ValidationError as exc:
        details = "; ".join(str(error["msg"]) for error in exc.errors())
        raise InvalidOverride(f"Invalid resource override: {details}") from exc


class Deployer:
    def __init__(
        self,
        catalog: TemplateCatalog,
        client: PodClient,
        *,
        ready_timeout_seconds: int = 120,
        shell: str = "/bin/sh",
        name_factory: Callable[[str], str] = generate_pod_name,
    ) -> None:
        self._catalog = catalog
        self._client = client
        self._ready_timeout_seconds = ready_timeout_seconds
        self._shell = shell
        self._name_factory = name_factory

    def render(self, purpose: str, overrides: ResourceOverrides | None = None) -> PodManifest:
        """Load the purpose's template and apply a fresh name and the overrides."""
        manifest = self._catalog.load(purpose)
        manifest.set_name(self._name_factory(purpose))
        if overrides is not None:
            manifest.apply_resources(overrides.as_resources())
        return manifest

    def deploy(
        self,
        purpose: str,
        overrides: ResourceOverrides | None = None,
        *,
        attach: bool = False,
        on_submitted: Callable[[DeployResult], None] | None = None,
    ) -> DeployResult:
        """Submit the pod; with `attach`, also wait for it and open a shell.

        `on_submitted` runs once the cluster accepted the pod, before any wait.
        """
        manifest = self.render(purpose, overrides)
        pod_name = manifest.name
        namespace = self._client.namespace

        with bound_contextvars(purpose=purpose, pod=pod_name, namespace=namespace):
            LOGGER.info(
                "submitting debug pod requests=%s limits=%s",
                manifest.requests,
                manifest.limits,
            )
            try:
                self._client.create_manifest(manifest.to_yaml())
            except KubectlError as exc:
                raise SubmissionError(f"Cluster rejected pod {pod_name}: {exc}") from exc

            result = DeployResult(
                pod_name=pod_name,
                namespace=namespace,
                context=self._client.context,
                purpose=purpose,
                image=manifest.image,
            )
            if on_submitted is not None:
                on_submitted(result)
            if not attach:
                return result
            exit_code = self.attach(pod_name)

        return replace(result, attached=True, session_exit_code=exit_code)

    def attach(self, pod_name: str) -> int:
        """Wait for the pod to be Ready, then open an interactive shell in it."""
        namespace = self._client.namespace
        LOGGER.info("waiting for pod readiness timeout=%ss", self._ready_timeout_seconds)
        try:
            self._client.wait_for_ready(pod_name, self._ready_timeout_seconds)
        except KubectlTimeoutError as exc:
            # The pod stays up for inspection.
            raise PodReadyTimeoutError(
                pod_name, namespace, timeout_seconds=self._ready_timeout_seconds
            ) from exc
        except KubectlError as exc:
            raise AttachError(f"Pod {pod_name} could not be watched: {exc}") from exc

        try:
            self._client.probe_exec(pod_name, self._shell)
            exit_code = self._client.exec_shell(pod_name, self._shell)
        except KubectlError as exc:
            raise AttachError(f"Could not open {self._shell} in pod {pod_name}: {exc}") from exc
        LOGGER.info("shell session ended exit_code=%s", exit_code)
        return exit_code


def describe(result: DeployResult) -> dict[str, str]:
    return {
        "pod": result.pod_name,
        "namespace": result.namespace,
        "context": result.context or "(current)",
        "purpose": result.purpose,
        "image": result.image,
    }

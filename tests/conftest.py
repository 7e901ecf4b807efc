from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import pytest

from debug_pods.kubectl import KubectlError

POD_TEMPLATE = """\
apiVersion: v1
kind: Pod
metadata:
  name: {purpose}
  labels:
    app: debug-pod
    type: {label_type}
spec:
  restartPolicy: Never
  containers:
    - name: debug
      image: ghcr.io/debug-pods/{purpose}:latest
      command: ["sleep", "infinity"]
      env:
        - name: GREETING
          value: "hello: world"
      resources:
        requests:
          memory: 128Mi
          ephemeral-storage: 1Gi
          cpu: 100m
        limits:
          memory: 128Mi
          ephemeral-storage: 1Gi
          cpu: 100m
{extra_containers}  volumes:
    - name: scratch
      emptyDir: {{}}
"""

SIDECAR = """\
    - name: sidecar
      image: busybox:1.36
      resources:
        requests:
          memory: 64Mi
          cpu: 50m
"""


@pytest.fixture(autouse=True)
def _isolated_environment(  # pyright: ignore[reportUnusedFunction]
    tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch
) -> Iterator[None]:
    for name in list(os.environ):
        if name.startswith("DEBUG_PODS_"):
            monkeypatch.delenv(name)
    config_dir = tmp_path_factory.mktemp("config")
    monkeypatch.setenv("DEBUG_PODS_CONFIG_FILE", str(config_dir / "config.yaml"))
    yield
    logger = logging.getLogger("debug_pods")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def write_template(
    directory: Path,
    purpose: str,
    *,
    label_type: str | None = None,
    with_sidecar: bool = False,
    suffix: str = ".yaml",
) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{purpose}{suffix}"
    path.write_text(
        POD_TEMPLATE.format(
            purpose=purpose,
            label_type=label_type or purpose,
            extra_containers=SIDECAR if with_sidecar else "",
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def templates_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "templates"
    write_template(directory, "network-debug")
    write_template(directory, "storage-debug")
    write_template(directory, "multi-debug", with_sidecar=True)
    return directory


def _selector_matches(selector: str, labels: dict[str, str]) -> bool:
    for requirement in selector.split(","):
        key, _, value = requirement.partition("=")
        if labels.get(key) != value:
            return False
    return True


class FakeKubectl:
    """In-memory stand-in for KubectlClient."""

    def __init__(
        self,
        *,
        namespace: str = "default",
        context: str | None = None,
        pods: list[dict[str, Any]] | None = None,
    ) -> None:
        self.namespace = namespace
        self.context = context
        self.pods = list(pods or [])
        self.calls: list[tuple[str, Any]] = []
        self.created: list[str] = []
        self.create_error: str | None = None
        self.wait_error: KubectlError | None = None
        self.probe_error: str | None = None
        self.delete_errors: dict[str, str] = {}
        self.session_exit_code = 0

    def create_manifest(self, manifest: str) -> str:
        self.calls.append(("create", manifest))
        if self.create_error is not None:
            raise KubectlError(self.create_error)
        self.created.append(manifest)
        return "pod/created"

    def wait_for_ready(self, pod_name: str, timeout_seconds: int) -> None:
        self.calls.append(("wait", (pod_name, timeout_seconds)))
        if self.wait_error is not None:
            raise self.wait_error

    def probe_exec(self, pod_name: str, shell: str) -> None:
        self.calls.append(("probe", (pod_name, shell)))
        if self.probe_error is not None:
            raise KubectlError(self.probe_error)

    def exec_shell(self, pod_name: str, shell: str, container: str | None = None) -> int:
        self.calls.append(("exec", (pod_name, shell)))
        return self.session_exit_code

    def list_pods(self, selector: str) -> list[dict[str, Any]]:
        self.calls.append(("list", selector))
        return [
            {"name": pod["name"], "labels": pod["labels"]}
            for pod in self.pods
            if pod.get("namespace", self.namespace) == self.namespace
            and _selector_matches(selector, pod["labels"])
        ]

    def delete_pod(self, pod_name: str) -> str:
        self.calls.append(("delete", pod_name))
        if pod_name in self.delete_errors:
            raise KubectlError(self.delete_errors[pod_name])
        self.pods = [pod for pod in self.pods if pod["name"] != pod_name]
        return f'pod "{pod_name}" deleted'


@pytest.fixture
def fake_kubectl() -> FakeKubectl:
    return FakeKubectl()


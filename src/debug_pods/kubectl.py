"""Helpers for driving a cluster through kubectl."""

from __future__ import annotations

import json
import logging
import subprocess
from typing import Any, Optional

LOGGER = logging.getLogger("debug_pods.kubectl")


class KubectlError(RuntimeError):
    pass


class KubectlTimeoutError(KubectlError):
    pass


class KubectlClient:
    """Thin wrapper around kubectl bound to one context and namespace."""

    def __init__(
        self,
        *,
        namespace: str,
        context: Optional[str] = None,
        binary: str = "kubectl",
    ) -> None:
        self.namespace = namespace
        self.context = context
        self.binary = binary

    def create_manifest(self, manifest: str) -> str:
        """Create the resources described by a manifest."""
        return self._run_kubectl(["create", "-f", "-"], input_data=manifest)

    def wait_for_ready(self, pod_name: str, timeout_seconds: int) -> None:
        """Block until the pod reports the Ready condition."""
        try:
            self._run_kubectl(
                [
                    "wait",
                    "--for=condition=Ready",
                    f"pod/{pod_name}",
                    f"--timeout={timeout_seconds}s",
                ],
                timeout=timeout_seconds + 15,
            )
        except KubectlError as exc:
            if "timed out" in str(exc).lower():
                raise KubectlTimeoutError(str(exc)) from exc
            raise

    def probe_exec(self, pod_name: str, shell: str) -> None:
        """Run a no-op through the shell to check that exec sessions work."""
        self._run_kubectl(["exec", pod_name, "--", shell, "-c", "true"], timeout=60)

    def exec_shell(self, pod_name: str, shell: str, container: Optional[str] = None) -> int:
        """Attach an interactive shell to the pod; returns the session's exit code."""
        args = ["exec", "-it", pod_name]
        if container:
            args.extend(["-c", container])
        args.extend(["--", shell])
        command = self._command(args)
        LOGGER.debug("running %s", " ".join(command))
        try:
            result = subprocess.run(command, check=False)
        except FileNotFoundError as exc:
            raise KubectlError(f"{self.binary} not found on PATH") from exc
        return result.returncode

    def list_pods(self, selector: str) -> list[dict[str, Any]]:
        """Return `{"name", "labels"}` for each pod matching a label selector."""
        output = self._run_kubectl(["get", "pods", "-l", selector, "-o", "json"])
        items = json.loads(output).get("items", []) if output else []
        pods = []
        for item in items:
            metadata = item.get("metadata") or {}
            pods.append({"name": metadata.get("name"), "labels": metadata.get("labels") or {}})
        return pods

    def delete_pod(self, pod_name: str) -> str:
        return self._run_kubectl(["delete", "pod", pod_name, "--wait=false"])

    def _command(self, args: list[str]) -> list[str]:
        command = [self.binary]
        if self.context:
            command.append(f"--context={self.context}")
        command.extend(["-n", self.namespace, *args])
        return command

    def _run_kubectl(
        self,
        args: list[str],
        input_data: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> str:
        command = self._command(args)
        LOGGER.debug("running %s", " ".join(command))
        try:
            result = subprocess.run(
                command,
                input=input_data,
                text=True,
                capture_output=True,
                check=False,
                timeout=timeout,
            )
        except FileNotFoundError as exc:
            raise KubectlError(f"{self.binary} not found on PATH") from exc
        except subprocess.TimeoutExpired as exc:
            raise KubectlTimeoutError(f"kubectl timed out after {timeout}s") from exc
        if result.returncode != 0:
            raise KubectlError(result.stderr.strip() or "kubectl command failed")
        return result.stdout.strip()

"""Deletes debug pods selected by label."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from .errors import ClusterError, DeleteError
from .kubectl import KubectlError
from .models import DEBUG_POD_APP_LABEL

LOGGER = logging.getLogger("debug_pods.cleanup")


class PodListingClient(Protocol):
    namespace: str

    def list_pods(self, selector: str) -> list[dict[str, Any]]: ...

    def delete_pod(self, pod_name: str) -> str: ...


def build_selector(purpose: str | None = None) -> str:
    """`app=debug-pod`, narrowed to one purpose's `type` label when given."""
    selector = f"app={DEBUG_POD_APP_LABEL}"
    if purpose:
        selector += f",type={purpose}"
    return selector


@dataclass
class CleanupReport:
    selector: str
    namespace: str
    matched: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    failures: list[DeleteError] = field(default_factory=list)
    dry_run: bool = False

    @property
    def deleted_count(self) -> int:
        return len(self.deleted)

    @property
    def ok(self) -> bool:
        return not self.failures

    def summary(self) -> str:
        if self.dry_run:
            return f"{len(self.matched)} pod(s) would be deleted from {self.namespace}."
        text = f"Deleted {self.deleted_count} of {len(self.matched)} pod(s) from {self.namespace}."
        if self.failures:
            text += f" {len(self.failures)} failed."
        return text


class Cleanup:
    def __init__(self, client: PodListingClient) -> None:
        self._client = client

    def run(self, purpose: str | None = None, *, dry_run: bool = False) -> CleanupReport:
        selector = build_selector(purpose)
        report = CleanupReport(
            selector=selector,
            namespace=self._client.namespace,
            dry_run=dry_run,
        )
        try:
            pods = self._client.list_pods(selector)
        except KubectlError as exc:
            raise ClusterError(f"Could not list pods with selector {selector}: {exc}") from exc

        report.matched = [str(pod["name"]) for pod in pods if pod.get("name")]
        LOGGER.info("cleanup matched=%s selector=%s", len(report.matched), selector)
        if dry_run:
            return report

        for pod_name in report.matched:
            try:
                self._client.delete_pod(pod_name)
            except KubectlError as exc:
                LOGGER.warning("pod delete failed pod=%s error=%s", pod_name, exc)
                report.failures.append(DeleteError(pod_name, str(exc)))
                continue
            report.deleted.append(pod_name)
        return report

"""Error taxonomy for debug pod deployment and cleanup."""

from __future__ import annotations


class DebugPodError(Exception):
    exit_code = 1


class TemplateNotFound(DebugPodError):
    exit_code = 3

    def __init__(self, purpose: str, *, available: list[str] | None = None) -> None:
        message = f"No pod template found for purpose '{purpose}'."
        if available:
            message += f" Available: {', '.join(available)}"
        super().__init__(message)
        self.purpose = purpose
        self.available = list(available or [])


class InvalidTemplate(DebugPodError):
    exit_code = 3


class InvalidOverride(DebugPodError):
    exit_code = 4


class ClusterError(DebugPodError):
    """Any kubectl failure that has no more specific category."""


class SubmissionError(ClusterError):
    exit_code = 5


class PodReadyTimeoutError(ClusterError, TimeoutError):
    exit_code = 6

    def __init__(self, pod_name: str, namespace: str, *, timeout_seconds: int) -> None:
        super().__init__(
            f"Pod {namespace}/{pod_name} did not become Ready within {timeout_seconds}s; "
            "it was left running for inspection."
        )
        self.pod_name = pod_name
        self.namespace = namespace
        self.timeout_seconds = timeout_seconds


class AttachError(ClusterError):
    exit_code = 7


class DeleteError(ClusterError):
    exit_code = 8

    def __init__(self, pod_name: str, message: str) -> None:
        super().__init__(f"{pod_name}: {message}")
        self.pod_name = pod_name
        self.reason = message

from __future__ import annotations

from pathlib import Path

import pytest
import yaml

from conftest import FakeKubectl
from debug_pods.deployer import Deployer, generate_pod_name, parse_overrides
from debug_pods.errors import (
    AttachError,
    PodReadyTimeoutError,
    SubmissionError,
    TemplateNotFound,
)
from debug_pods.kubectl import KubectlError, KubectlTimeoutError
from debug_pods.manifest import TemplateCatalog


def _deployer(templates_dir: Path, client: FakeKubectl, **kwargs: object) -> Deployer:
    return Deployer(TemplateCatalog(templates_dir), client, **kwargs)  # type: ignore[arg-type]


def _submitted(client: FakeKubectl) -> list[dict[str, object]]:
    return [yaml.safe_load(manifest) for manifest in client.created]


def test_generate_pod_name_is_prefixed_and_bounded() -> None:
    assert generate_pod_name("network-debug", suffix_factory=lambda: "abc12345") == (
        "network-debug-abc12345"
    )

    long_name = generate_pod_name("x" * 80)
    assert len(long_name) <= 63
    assert long_name.startswith("x")


def test_deploy_submits_unique_names_labelled_with_purpose(
    templates_dir: Path, fake_kubectl: FakeKubectl
) -> None:
    deployer = _deployer(templates_dir, fake_kubectl)

    first = deployer.deploy("network-debug")
    second = deployer.deploy("network-debug")

    manifests = _submitted(fake_kubectl)
    names = [manifest["metadata"]["name"] for manifest in manifests]  # type: ignore[index]
    assert names == [first.pod_name, second.pod_name]
    assert first.pod_name != second.pod_name
    assert all(name.startswith("network-debug-") for name in names)
    for manifest in manifests:
        assert manifest["metadata"]["labels"]["type"] == "network-debug"  # type: ignore[index]
    assert first.image == "ghcr.io/debug-pods/network-debug:latest"
    assert first.attached is False


def test_deploy_without_overrides_keeps_template_defaults(
    templates_dir: Path, fake_kubectl: FakeKubectl
) -> None:
    _deployer(templates_dir, fake_kubectl).deploy("storage-debug", parse_overrides())

    resources = _submitted(fake_kubectl)[0]["spec"]["containers"][0]["resources"]  # type: ignore[index]
    for section in ("requests", "limits"):
        assert resources[section]["memory"] == "128Mi"
        assert resources[section]["cpu"] == "100m"


def test_deploy_applies_overrides_to_requests_and_limits(
    templates_dir: Path, fake_kubectl: FakeKubectl
) -> None:
    overrides = parse_overrides(memory="1Gi", ephemeral_storage="4Gi", cpu="250m")

    _deployer(templates_dir, fake_kubectl).deploy("network-debug", overrides)

    resources = _submitted(fake_kubectl)[0]["spec"]["containers"][0]["resources"]  # type: ignore[index]
    expected = {"memory": "1Gi", "ephemeral-storage": "4Gi", "cpu": "250m"}
    assert resources["requests"] == expected
    assert resources["limits"] == expected


def test_unknown_purpose_makes_no_cluster_calls(
    templates_dir: Path, fake_kubectl: FakeKubectl
) -> None:
    with pytest.raises(TemplateNotFound):
        _deployer(templates_dir, fake_kubectl).deploy("gpu-debug", attach=True)

    assert fake_kubectl.calls == []


def test_rejected_manifest_raises_submission_error(
    templates_dir: Path, fake_kubectl: FakeKubectl
) -> None:
    fake_kubectl.create_error = 'pods "network-debug-1" is forbidden: exceeded quota'

    with pytest.raises(SubmissionError, match="exceeded quota") as excinfo:
        _deployer(templates_dir, fake_kubectl).deploy("network-debug")

    assert excinfo.value.exit_code == 5


def test_attach_waits_probes_and_execs(templates_dir: Path, fake_kubectl: FakeKubectl) -> None:
    fake_kubectl.session_exit_code = 130
    deployer = _deployer(templates_dir, fake_kubectl, ready_timeout_seconds=30, shell="/bin/bash")

    result = deployer.deploy("network-debug", attach=True)

    assert result.attached is True
    assert result.session_exit_code == 130
    assert [call[0] for call in fake_kubectl.calls] == ["create", "wait", "probe", "exec"]
    assert fake_kubectl.calls[1] == ("wait", (result.pod_name, 30))
    assert fake_kubectl.calls[3] == ("exec", (result.pod_name, "/bin/bash"))


def test_ready_timeout_leaves_pod_running(templates_dir: Path, fake_kubectl: FakeKubectl) -> None:
    fake_kubectl.wait_error = KubectlTimeoutError("error: timed out waiting for the condition")
    deployer = _deployer(templates_dir, fake_kubectl, ready_timeout_seconds=5)

    with pytest.raises(PodReadyTimeoutError) as excinfo:
        deployer.deploy("network-debug", attach=True)

    assert isinstance(excinfo.value, TimeoutError)
    assert excinfo.value.timeout_seconds == 5
    assert excinfo.value.exit_code == 6
    assert "left running" in str(excinfo.value)
    assert [call[0] for call in fake_kubectl.calls] == ["create", "wait"]


def test_failed_wait_raises_attach_error(templates_dir: Path, fake_kubectl: FakeKubectl) -> None:
    fake_kubectl.wait_error = KubectlError('pods "x" not found')

    with pytest.raises(AttachError):
        _deployer(templates_dir, fake_kubectl).deploy("network-debug", attach=True)


def test_exec_failure_raises_attach_error(templates_dir: Path, fake_kubectl: FakeKubectl) -> None:
    fake_kubectl.probe_error = "error: unable to upgrade connection: container not found"

    with pytest.raises(AttachError, match="unable to upgrade connection") as excinfo:
        _deployer(templates_dir, fake_kubectl).deploy("network-debug", attach=True)

    assert excinfo.value.exit_code == 7
    assert "exec" not in [call[0] for call in fake_kubectl.calls]


def test_render_does_not_touch_the_cluster(templates_dir: Path, fake_kubectl: FakeKubectl) -> None:
    deployer = _deployer(templates_dir, fake_kubectl, name_factory=lambda purpose: f"{purpose}-fixed")

    manifest = deployer.render("multi-debug", parse_overrides(cpu="1"))

    assert manifest.name == "multi-debug-fixed"
    assert manifest.requests["cpu"] == "1"
    assert fake_kubectl.calls == []


def test_on_submitted_runs_before_waiting(templates_dir: Path, fake_kubectl: FakeKubectl) -> None:
    seen: list[tuple[str, int]] = []

    def _record(result: object) -> None:
        seen.append((getattr(result, "pod_name"), len(fake_kubectl.calls)))

    result = _deployer(templates_dir, fake_kubectl).deploy(
        "network-debug", attach=True, on_submitted=_record
    )

    assert seen == [(result.pod_name, 1)]
    assert [call[0] for call in fake_kubectl.calls] == ["create", "wait", "probe", "exec"]

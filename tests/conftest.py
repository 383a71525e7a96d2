# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""Common test fixtures for tssc-e2e."""

import pathlib
from typing import Any, Callable, Dict, List, Optional

import pytest

from tssc_e2e.core.models import TaskRun, TaskStep

# Test constants
TEST_SHA = "3f2a9c1d8e7b6a5f4e3d2c1b0a9f8e7d6c5b4a39"
TEST_DATE_CREATED = "2025-01-01T10:00:00Z"
TEST_IMAGE = "quay.io/rhtap/python-x7k2:sha256-0a1b2c3d.sbom"


class FakeClock:
    """Monotonic clock advanced only by :meth:`sleep`."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_clock() -> FakeClock:
    """Fake clock whose ``sleep`` advances time instantly."""
    return FakeClock()


def pipeline_payload(
    pipeline_id: int,
    sha: str = TEST_SHA,
    status: str = "running",
    ref: str = "main",
    created_at: Optional[str] = TEST_DATE_CREATED,
) -> Dict[str, Any]:
    """GitLab pipeline payload as returned by the REST API."""
    return {
        "id": pipeline_id,
        "ref": ref,
        "sha": sha,
        "status": status,
        "created_at": created_at,
        "web_url": f"https://gitlab.com/rhtap/python-x7k2/-/pipelines/{pipeline_id}",
    }


@pytest.fixture
def make_pipeline_payload() -> Callable[..., Dict[str, Any]]:
    return pipeline_payload


def task_run(pipeline_task: str, script: str = "echo done", pod: Optional[str] = "pod") -> TaskRun:
    """TaskRun with a single scripted step."""
    return TaskRun(
        name=f"python-x7k2-on-push-abc12-{pipeline_task}",
        pipeline_task=pipeline_task,
        pod_name=f"{pipeline_task}-{pod}" if pod else None,
        steps=[TaskStep(name="run", script=script)],
    )


@pytest.fixture
def make_task_run() -> Callable[..., TaskRun]:
    return task_run


@pytest.fixture
def push_task_runs() -> List[TaskRun]:
    """TaskRuns of a fully successful on-push PipelineRun."""
    scripts = {
        "build-container": "buildah push && cosign sign $IMAGE",
        "acs-image-check": "roxctl image check --image $IMAGE",
        "acs-image-scan": "roxctl image scan --image $IMAGE",
        "acs-deploy-check": "roxctl deployment check --file deployment.yaml",
    }
    tasks = (
        "init",
        "clone-repository",
        "build-container",
        "acs-image-check",
        "acs-image-scan",
        "show-sbom",
        "show-summary",
        "acs-deploy-check",
        "update-deployment",
    )
    return [task_run(name, scripts.get(name, "echo done")) for name in tasks]


@pytest.fixture
def deployment_patch() -> str:
    """Development overlay of a GitOps repository."""
    return (
        "kind: Deployment\n"
        "apiVersion: apps/v1\n"
        "metadata:\n"
        "  name: python-x7k2\n"
        "spec:\n"
        "  template:\n"
        "    spec:\n"
        "      containers:\n"
        "        - name: container-image\n"
        f"          - image: {TEST_IMAGE}\n"
    )


@pytest.fixture
def templates_file(tmp_path: pathlib.Path) -> pathlib.Path:
    """Software templates file enabling GitLab with Tekton and GitLab CI."""
    path = tmp_path / "softwareTemplates.yaml"
    path.write_text(
        "templates:\n"
        "  - go\n"
        "  - python\n"
        "gitlab:\n"
        "  active: true\n"
        "  tekton: true\n"
        "  gitlabci: true\n"
        "github:\n"
        "  active: false\n"
        "  tekton: true\n"
        "pipeline:\n"
        "  ocp: '4.16'\n"
        "  version: '1.4'\n"
    )
    return path

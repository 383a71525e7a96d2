# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""
Tekton task-run verification.

The verifier checks that a PipelineRun executed exactly the expected tasks
and that security-relevant tasks used the expected tooling (cosign for
signing, roxctl for ACS checks). It never stops at the first mismatch:
every discrepancy is logged and the caller receives one aggregate verdict.
"""

import json
import logging
import re
from typing import Dict, List, Optional, Sequence

from .errors import PipelineRunNotFound
from .models import ExpectedTaskSet, PipelineRun, TaskRun

logger = logging.getLogger(__name__)

# Task name -> substring its step scripts or commands must contain
REQUIRED_TASK_COMMANDS: Dict[str, str] = {
    "build-container": "cosign",
    "acs-image-scan": "roxctl",
    "acs-image-check": "roxctl",
    "deploy-check": "roxctl",
}

ON_PULL_TASKS = (
    "init",
    "clone-repository",
    "build-container",
    "acs-image-check",
    "acs-image-scan",
    "show-sbom",
    "show-summary",
)
ON_PUSH_TASKS = ON_PULL_TASKS + ("acs-deploy-check", "update-deployment")
ON_PULL_GITOPS_TASKS = (
    "clone-repository",
    "get-images-to-upload-sbom",
    "get-images-to-verify",
    "download-sboms",
    "verify-enterprise-contract",
    "upload-sboms-to-trustification",
)

# PipelineRun completion timeout used by the Tekton scenarios (seconds)
PIPELINE_RUN_TIMEOUT = 900


def expected_tasks_for(event_type: str, gitops: bool = False) -> ExpectedTaskSet:
    """Expected task set for a Pipelines-as-Code event."""
    if gitops:
        tasks = ON_PULL_GITOPS_TASKS
    elif event_type == "push":
        tasks = ON_PUSH_TASKS
    else:
        tasks = ON_PULL_TASKS
    return ExpectedTaskSet(tasks=tasks, required_commands=dict(REQUIRED_TASK_COMMANDS))


class TaskRunVerifier:
    """Compares observed TaskRuns with an expected list of task names."""

    def __init__(self, required_commands: Optional[Dict[str, str]] = None) -> None:
        self.required_commands = dict(
            REQUIRED_TASK_COMMANDS if required_commands is None else required_commands
        )

    def regex_in_task(self, task_run: TaskRun, pattern: str) -> bool:
        """Whether any step script matches ``pattern`` or any step command contains it."""
        for step in task_run.steps:
            if step.script and re.search(pattern, step.script):
                return True
            if any(pattern in part for part in step.command):
                return True

        logger.error(f"Failed to locate {pattern} in {task_run.pipeline_task}")
        return False

    def verify(self, task_runs: Sequence[TaskRun], expected_tasks: Sequence[str]) -> bool:
        """Check task names, counts, execution pods and required commands.

        Args:
            task_runs: TaskRuns observed for one PipelineRun
            expected_tasks: Pipeline task names that must have run

        Returns:
            True only if every check passed
        """
        return self._verify(task_runs, list(expected_tasks), self.required_commands)

    def verify_expected(self, task_runs: Sequence[TaskRun], expected: ExpectedTaskSet) -> bool:
        """Verify against an :class:`ExpectedTaskSet` and its own command table."""
        required = expected.required_commands or self.required_commands
        return self._verify(task_runs, list(expected.tasks), required)

    def _verify(self, task_runs: Sequence[TaskRun], expected_tasks: List[str], required: Dict[str, str]) -> bool:
        result = True

        for task_run in task_runs:
            if not task_run.has_run():
                logger.error(f"TaskRun {task_run.name} failed")
                result = False

            if task_run.pipeline_task is None or task_run.pipeline_task not in expected_tasks:
                logger.error(f"Unexpected taskRun: {task_run.pipeline_task}")
                result = False

        if len(task_runs) != len(expected_tasks):
            logger.error(
                f"Unexpected number of taskRuns: got {len(task_runs)}, expected {len(expected_tasks)}"
            )
            result = False

        for task_name, command in required.items():
            if task_name not in expected_tasks:
                continue

            task_run = self._find_task_run(task_runs, task_name)
            if task_run is None:
                logger.error(f"Failed to find taskRun: {task_name}")
                result = False
                continue

            if not self.regex_in_task(task_run, command):
                result = False

        return result

    @staticmethod
    def _find_task_run(task_runs: Sequence[TaskRun], task_name: str) -> Optional[TaskRun]:
        for task_run in task_runs:
            if task_run.pipeline_task and re.search(task_name, task_run.pipeline_task):
                return task_run
        return None


class TektonVerifier:
    """Runs the Tekton verification flow against a cluster."""

    def __init__(self, kube, verifier: Optional[TaskRunVerifier] = None) -> None:
        """Initialize verifier.

        Args:
            kube: A :class:`tssc_e2e.core.kube.KubeClient` (or compatible object)
            verifier: Task-run verifier to delegate to
        """
        self.kube = kube
        self.verifier = verifier or TaskRunVerifier()

    def check_task_runs(self, pipeline_run: PipelineRun, expected_tasks: Sequence[str]) -> bool:
        """Check that the correct tasks ran with the correct commands."""
        if not pipeline_run.name:
            logger.error(f"Can not access name of pipelineRun: {pipeline_run}")
            return False

        task_runs = self.kube.get_task_runs_from_pipeline_run(pipeline_run.name)
        return self.verifier.verify(task_runs, expected_tasks)

    def log_task_runs(self, pipeline_run: PipelineRun, namespace: str) -> None:
        """Store the pod logs of every TaskRun in the artifact directory."""
        if not pipeline_run.name:
            return

        for task_run in self.kube.get_task_runs_from_pipeline_run(pipeline_run.name):
            if task_run.pod_name:
                self.kube.read_pod_log(task_run.pod_name, namespace)

    def verify_pipeline_run_by_repository(
        self,
        repository: str,
        namespace: str,
        event_type: str,
        expected_tasks: Sequence[str],
        timeout: float = PIPELINE_RUN_TIMEOUT,
    ) -> bool:
        """Find the repository's PipelineRun, wait for it and verify its TaskRuns.

        TaskRuns are verified whether or not the PipelineRun succeeded.

        Raises:
            PipelineRunNotFound: If Pipelines-as-Code never created a PipelineRun
        """
        pipeline_run = self.kube.get_pipeline_run_by_repository(repository, event_type)
        if pipeline_run is None:
            raise PipelineRunNotFound(
                "Error to read pipelinerun from the cluster. Seems like pipelinerun was never "
                "created; verify PAC controller logs."
            )

        logger.info(f"PipelineRun name: {pipeline_run.name}")
        logger.debug(
            "PipelineRun metadata: "
            + json.dumps({"name": pipeline_run.name, "labels": pipeline_run.labels}, indent=2)
        )
        if not pipeline_run.name:
            return False

        finished = self.kube.wait_pipeline_run_to_be_finished(pipeline_run.name, namespace, timeout)
        self.log_task_runs(pipeline_run, namespace)
        checked = self.check_task_runs(pipeline_run, expected_tasks)
        return finished and checked

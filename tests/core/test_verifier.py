# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""Tests for Tekton task-run verification."""

import logging
from unittest.mock import Mock

import pytest

from tssc_e2e.core.errors import PipelineRunNotFound
from tssc_e2e.core.models import ExpectedTaskSet, PipelineRun, TaskRun, TaskStep
from tssc_e2e.core.verifier import (
    ON_PULL_GITOPS_TASKS,
    ON_PULL_TASKS,
    ON_PUSH_TASKS,
    REQUIRED_TASK_COMMANDS,
    TaskRunVerifier,
    TektonVerifier,
    expected_tasks_for,
)


class TestExpectedTasks:
    """Test cases for expected task sets."""

    def test_push_extends_pull(self) -> None:
        """Test that push runs add deployment tasks to pull request runs."""
        assert ON_PUSH_TASKS[: len(ON_PULL_TASKS)] == ON_PULL_TASKS
        assert "update-deployment" in ON_PUSH_TASKS
        assert "update-deployment" not in ON_PULL_TASKS

    def test_expected_tasks_for(self) -> None:
        """Test the task set chosen for each event."""
        assert expected_tasks_for("push").tasks == ON_PUSH_TASKS
        assert expected_tasks_for("pull_request").tasks == ON_PULL_TASKS
        assert expected_tasks_for("pull_request", gitops=True).tasks == ON_PULL_GITOPS_TASKS
        assert expected_tasks_for("push").required_commands == REQUIRED_TASK_COMMANDS

    def test_required_commands_table(self) -> None:
        """Test the signing and ACS command requirements."""
        assert REQUIRED_TASK_COMMANDS == {
            "build-container": "cosign",
            "acs-image-scan": "roxctl",
            "acs-image-check": "roxctl",
            "deploy-check": "roxctl",
        }


class TestTaskRunVerifier:
    """Test cases for TaskRunVerifier."""

    def setup_method(self) -> None:
        """Set up verifier."""
        self.verifier = TaskRunVerifier()

    def test_matching_runs_pass(self, push_task_runs) -> None:
        """Test that exactly the expected runs with the required commands pass."""
        assert self.verifier.verify(push_task_runs, ON_PUSH_TASKS)

    def test_verify_expected_set(self, push_task_runs) -> None:
        """Test verification against an ExpectedTaskSet."""
        assert self.verifier.verify_expected(push_task_runs, expected_tasks_for("push"))

    @pytest.mark.parametrize("task_name", ["build-container", "acs-image-check", "acs-image-scan"])
    def test_missing_required_command_fails(self, push_task_runs, make_task_run, task_name: str) -> None:
        """Test that dropping one required substring flips the verdict."""
        runs = [run if run.pipeline_task != task_name else make_task_run(task_name, "echo skipped")
                for run in push_task_runs]

        assert not self.verifier.verify(runs, ON_PUSH_TASKS)

    def test_task_without_pod_fails(self, push_task_runs, make_task_run) -> None:
        """Test that a task run that never got a pod fails verification."""
        runs = [run if run.pipeline_task != "show-sbom" else make_task_run("show-sbom", pod=None)
                for run in push_task_runs]

        assert not self.verifier.verify(runs, ON_PUSH_TASKS)

    def test_unexpected_task_fails(self, push_task_runs, make_task_run) -> None:
        """Test that an extra task is reported."""
        assert not self.verifier.verify(push_task_runs + [make_task_run("rogue-task")], ON_PUSH_TASKS)

    def test_missing_task_fails(self, push_task_runs) -> None:
        """Test that a missing task changes the count."""
        runs = [run for run in push_task_runs if run.pipeline_task != "show-summary"]
        assert not self.verifier.verify(runs, ON_PUSH_TASKS)

    def test_missing_required_task_fails(self, push_task_runs) -> None:
        """Test that a required task absent from the runs fails."""
        runs = [run for run in push_task_runs if run.pipeline_task != "build-container"]
        assert not self.verifier.verify(runs, ON_PUSH_TASKS)

    def test_task_without_label_fails(self, push_task_runs) -> None:
        """Test that a run lacking the pipelineTask label is unexpected."""
        runs = list(push_task_runs)
        runs[0] = TaskRun(name="orphan", pipeline_task=None, pod_name="pod")

        assert not self.verifier.verify(runs, ON_PUSH_TASKS)

    def test_all_mismatches_are_logged(self, push_task_runs, make_task_run, caplog) -> None:
        """Test that verification reports every problem instead of stopping at the first."""
        runs = [run for run in push_task_runs if run.pipeline_task not in ("build-container", "show-sbom")]
        runs.append(make_task_run("rogue-task"))
        runs.append(make_task_run("acs-image-scan-extra", pod=None))

        with caplog.at_level(logging.ERROR, logger="tssc_e2e.core.verifier"):
            assert not self.verifier.verify(runs, ON_PUSH_TASKS)

        messages = [record.getMessage() for record in caplog.records]
        assert any("Unexpected taskRun: rogue-task" in m for m in messages)
        assert any("failed" in m and "acs-image-scan-extra" in m for m in messages)
        assert any("Failed to find taskRun: build-container" in m for m in messages)

    def test_gitops_runs_have_no_required_commands(self, make_task_run) -> None:
        """Test that the GitOps task set only checks names and pods."""
        runs = [make_task_run(name) for name in ON_PULL_GITOPS_TASKS]
        assert self.verifier.verify(runs, ON_PULL_GITOPS_TASKS)

    def test_empty_runs_and_expectations(self) -> None:
        """Test the degenerate case."""
        assert self.verifier.verify([], [])

    def test_custom_required_commands(self, make_task_run) -> None:
        """Test a verifier with its own command table."""
        verifier = TaskRunVerifier({"sign": "gpg"})
        runs = [make_task_run("sign", "gpg --sign artifact")]

        assert verifier.verify(runs, ["sign"])
        assert not verifier.verify([make_task_run("sign", "echo unsigned")], ["sign"])

    def test_verify_expected_uses_set_commands(self, make_task_run) -> None:
        """Test that an ExpectedTaskSet brings its own command requirements."""
        expected = ExpectedTaskSet(tasks=("lint",), required_commands={"lint": "ruff"})

        assert self.verifier.verify_expected([make_task_run("lint", "ruff check .")], expected)
        assert not self.verifier.verify_expected([make_task_run("lint", "flake8")], expected)

    def test_regex_in_task_script(self) -> None:
        """Test regex matching on step scripts."""
        run = TaskRun(name="r", pipeline_task="build-container",
                      steps=[TaskStep(name="build"), TaskStep(name="sign", script="cosign sign --key k $IMG")])

        assert self.verifier.regex_in_task(run, "cosign")
        assert self.verifier.regex_in_task(run, r"sign\s+--key")
        assert not self.verifier.regex_in_task(run, "roxctl")

    def test_regex_in_task_command(self) -> None:
        """Test substring matching on step commands."""
        run = TaskRun(name="r", pipeline_task="acs-image-scan",
                      steps=[TaskStep(name="scan", command=["/usr/bin/roxctl", "image", "scan"])])

        assert self.verifier.regex_in_task(run, "roxctl")
        assert not self.verifier.regex_in_task(run, "cosign")


class TestTektonVerifier:
    """Test cases for TektonVerifier."""

    def setup_method(self) -> None:
        """Set up a mock cluster client."""
        self.kube = Mock()
        self.verifier = TektonVerifier(self.kube)
        self.pipeline_run = PipelineRun(name="python-x7k2-on-push-abc12", namespace="rhtap-app-development")

    def test_check_task_runs(self, push_task_runs) -> None:
        """Test that task runs are read by PipelineRun name."""
        self.kube.get_task_runs_from_pipeline_run.return_value = push_task_runs

        assert self.verifier.check_task_runs(self.pipeline_run, ON_PUSH_TASKS)
        self.kube.get_task_runs_from_pipeline_run.assert_called_once_with("python-x7k2-on-push-abc12")

    def test_check_task_runs_without_name(self) -> None:
        """Test that an unnamed PipelineRun cannot be checked."""
        assert not self.verifier.check_task_runs(PipelineRun(name=None), ON_PUSH_TASKS)
        self.kube.get_task_runs_from_pipeline_run.assert_not_called()

    def test_log_task_runs(self, make_task_run) -> None:
        """Test that logs are collected only for runs with a pod."""
        self.kube.get_task_runs_from_pipeline_run.return_value = [
            make_task_run("init"),
            make_task_run("skipped", pod=None),
        ]

        self.verifier.log_task_runs(self.pipeline_run, "ns")

        self.kube.read_pod_log.assert_called_once_with("init-pod", "ns")

    def test_verify_pipeline_run_by_repository(self, push_task_runs) -> None:
        """Test the full flow on a successful run."""
        self.kube.get_pipeline_run_by_repository.return_value = self.pipeline_run
        self.kube.wait_pipeline_run_to_be_finished.return_value = True
        self.kube.get_task_runs_from_pipeline_run.return_value = push_task_runs

        result = self.verifier.verify_pipeline_run_by_repository(
            "https://gitlab.com/rhtap/python-x7k2", "ns", "push", ON_PUSH_TASKS, timeout=300
        )

        assert result is True
        self.kube.get_pipeline_run_by_repository.assert_called_once_with(
            "https://gitlab.com/rhtap/python-x7k2", "push"
        )
        self.kube.wait_pipeline_run_to_be_finished.assert_called_once_with("python-x7k2-on-push-abc12", "ns", 300)

    def test_failed_run_is_still_checked(self, push_task_runs) -> None:
        """Test that task runs are verified and logged even when the run failed."""
        self.kube.get_pipeline_run_by_repository.return_value = self.pipeline_run
        self.kube.wait_pipeline_run_to_be_finished.return_value = False
        self.kube.get_task_runs_from_pipeline_run.return_value = push_task_runs

        result = self.verifier.verify_pipeline_run_by_repository("repo", "ns", "push", ON_PUSH_TASKS)

        assert result is False
        assert self.kube.get_task_runs_from_pipeline_run.call_count == 2
        assert self.kube.read_pod_log.call_count == len(push_task_runs)

    def test_missing_pipeline_run_raises(self) -> None:
        """Test that a PipelineRun never created is a hard error."""
        self.kube.get_pipeline_run_by_repository.return_value = None

        with pytest.raises(PipelineRunNotFound):
            self.verifier.verify_pipeline_run_by_repository("repo", "ns", "push", ON_PUSH_TASKS)

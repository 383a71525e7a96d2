# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""Data models for pipelines, jobs, task runs and merge requests read from remote systems."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

PIPELINE_TASK_LABEL = "tekton.dev/pipelineTask"


class PipelineStatus(Enum):
    """Pipeline states reported by CI backends."""

    CREATED = "created"
    WAITING_FOR_RESOURCE = "waiting_for_resource"
    PREPARING = "preparing"
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"
    CANCELED = "canceled"
    SKIPPED = "skipped"
    MANUAL = "manual"
    SCHEDULED = "scheduled"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> PipelineStatus:
        """Map a provider status string, falling back to UNKNOWN."""
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.UNKNOWN


TERMINAL_STATUSES = frozenset({PipelineStatus.SUCCESS, PipelineStatus.FAILED, PipelineStatus.CANCELED})


class MergeStatus(Enum):
    """Detailed mergeability of a merge request."""

    MERGEABLE = "mergeable"
    CONFLICT = "conflict"
    CHECKING = "checking"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Optional[str]) -> MergeStatus:
        try:
            return cls(str(value).lower())
        except ValueError:
            return cls.UNKNOWN


def _parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    # fromisoformat does not accept a trailing Z before Python 3.11
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@dataclass
class Pipeline:
    """A CI pipeline run as reported by the SCM provider."""

    id: int
    ref: str
    sha: str
    status: PipelineStatus
    created_at: Optional[datetime] = None
    web_url: Optional[str] = None

    def is_finished(self) -> bool:
        """Whether the pipeline reached a terminal status."""
        return self.status in TERMINAL_STATUSES

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for output."""
        return {
            "id": self.id,
            "ref": self.ref,
            "sha": self.sha,
            "status": self.status.value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "web_url": self.web_url,
        }

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> Pipeline:
        """Create from a GitLab pipeline payload."""
        return cls(
            id=int(data["id"]),
            ref=data.get("ref", ""),
            sha=data.get("sha", ""),
            status=PipelineStatus.parse(data.get("status")),
            created_at=_parse_timestamp(data.get("created_at")),
            web_url=data.get("web_url"),
        )


@dataclass
class Job:
    """A single job of a pipeline."""

    id: int
    pipeline_id: int
    name: str
    status: PipelineStatus
    log: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> Job:
        """Create from a GitLab job payload."""
        pipeline = data.get("pipeline") or {}
        return cls(
            id=int(data["id"]),
            pipeline_id=int(pipeline.get("id", 0)),
            name=data.get("name", ""),
            status=PipelineStatus.parse(data.get("status")),
        )


@dataclass
class TaskStep:
    """A step of a Tekton task with its script or command."""

    name: str
    script: Optional[str] = None
    command: List[str] = field(default_factory=list)


@dataclass
class TaskRun:
    """A Tekton TaskRun belonging to a PipelineRun."""

    name: str
    pipeline_task: Optional[str] = None
    pod_name: Optional[str] = None
    steps: List[TaskStep] = field(default_factory=list)

    def has_run(self) -> bool:
        """A task run without an execution pod never ran."""
        return bool(self.pod_name)

    @classmethod
    def from_resource(cls, resource: Dict[str, Any]) -> TaskRun:
        """Create from a tekton.dev/v1 TaskRun custom object."""
        metadata = resource.get("metadata") or {}
        labels = metadata.get("labels") or {}
        task_spec = (resource.get("spec") or {}).get("taskSpec") or {}
        status = resource.get("status") or {}

        steps = [
            TaskStep(
                name=step.get("name", ""),
                script=step.get("script"),
                command=list(step.get("command") or []),
            )
            for step in task_spec.get("steps") or []
        ]

        return cls(
            name=metadata.get("name", ""),
            pipeline_task=labels.get(PIPELINE_TASK_LABEL),
            pod_name=status.get("podName"),
            steps=steps,
        )


@dataclass
class PipelineRun:
    """A Tekton PipelineRun, as far as the harness reads it."""

    name: Optional[str]
    namespace: Optional[str] = None
    labels: Dict[str, str] = field(default_factory=dict)
    conditions: List[Dict[str, Any]] = field(default_factory=list)

    def succeeded(self) -> bool:
        return any(
            c.get("type") == "Succeeded" and c.get("status") == "True" for c in self.conditions
        )

    def failed(self) -> bool:
        return any(
            c.get("status") == "False" and c.get("reason") == "Failed" for c in self.conditions
        )

    @classmethod
    def from_resource(cls, resource: Dict[str, Any]) -> PipelineRun:
        """Create from a tekton.dev/v1 PipelineRun custom object."""
        metadata = resource.get("metadata") or {}
        status = resource.get("status") or {}
        return cls(
            name=metadata.get("name"),
            namespace=metadata.get("namespace"),
            labels=dict(metadata.get("labels") or {}),
            conditions=list(status.get("conditions") or []),
        )


@dataclass
class MergeRequest:
    """A merge request (or pull request) opened against an SCM repository."""

    iid: int
    source_branch: str
    target_branch: str
    status: MergeStatus = MergeStatus.UNKNOWN
    web_url: Optional[str] = None

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> MergeRequest:
        """Create from a GitLab merge request payload."""
        return cls(
            iid=int(data["iid"]),
            source_branch=data.get("source_branch", ""),
            target_branch=data.get("target_branch", ""),
            status=MergeStatus.parse(data.get("detailed_merge_status")),
            web_url=data.get("web_url"),
        )


@dataclass(frozen=True)
class ExpectedTaskSet:
    """Task names a scenario expects to run, with the command each must use."""

    tasks: Tuple[str, ...]
    required_commands: Dict[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if len(set(self.tasks)) != len(self.tasks):
            raise ValueError(f"Duplicate task names in expected task set: {list(self.tasks)}")

    def __contains__(self, task_name: object) -> bool:
        return task_name in self.tasks

    def __len__(self) -> int:
        return len(self.tasks)


@dataclass
class ScaffolderTask:
    """A developer portal scaffolder task."""

    id: str
    status: str
    spec: Dict[str, Any] = field(default_factory=dict)

    def is_processed(self) -> bool:
        """Tasks still 'open' or 'processing' have not finished."""
        return self.status not in ("processing", "open")

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> ScaffolderTask:
        return cls(id=str(data.get("id", "")), status=data.get("status", ""), spec=data.get("spec") or {})

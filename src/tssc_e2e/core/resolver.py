# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""Locating pipelines for a commit and waiting for them to finish."""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol

from .models import TERMINAL_STATUSES, Pipeline, PipelineStatus
from .polling import FOREVER, PollPolicy, wait_for, wait_until

logger = logging.getLogger(__name__)

_NO_TIMESTAMP = datetime.max.replace(tzinfo=timezone.utc)


class PipelineSource(Protocol):
    """What the resolver needs from an SCM provider client."""

    def list_pipelines(self, project_id: int, ref: Optional[str] = None) -> List[Pipeline]:
        ...

    def get_pipeline(self, project_id: int, pipeline_id: int) -> Pipeline:
        ...

    def cancel_pipeline(self, project_id: int, pipeline_id: int) -> Pipeline:
        ...


def find_by_sha(pipelines: Iterable[Pipeline], sha: str) -> Optional[Pipeline]:
    """Return the first pipeline built from ``sha``."""
    return next((p for p in pipelines if p.sha == sha), None)


def find_latest(pipelines: Iterable[Pipeline]) -> Optional[Pipeline]:
    """Return the pipeline with the highest id (ids grow with creation order)."""
    return max(pipelines, key=lambda p: p.id, default=None)


def find_oldest(pipelines: Iterable[Pipeline]) -> Optional[Pipeline]:
    """Return the earliest-created pipeline; entries without a timestamp sort last."""
    return min(pipelines, key=_created_key, default=None)


def _created_key(pipeline: Pipeline) -> datetime:
    created = pipeline.created_at
    if created is None:
        return _NO_TIMESTAMP
    if created.tzinfo is None:
        return created.replace(tzinfo=timezone.utc)
    return created


def is_terminal(status: PipelineStatus) -> bool:
    return status in TERMINAL_STATUSES


class PipelineResolver:
    """Polls a :class:`PipelineSource` for pipeline creation and completion."""

    def __init__(
        self,
        client: PipelineSource,
        policy: Optional[PollPolicy] = None,
        sleep: Optional[Callable[[float], None]] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        """Initialize resolver.

        Args:
            client: Provider client listing and reading pipelines
            policy: Poll interval and default timeout
            sleep: Sleep override for tests
            clock: Clock override for tests
        """
        self.client = client
        self.policy = policy or PollPolicy(interval=5.0)
        self._wait_kwargs: Dict[str, Any] = {}
        if sleep is not None:
            self._wait_kwargs["sleep"] = sleep
        if clock is not None:
            self._wait_kwargs["clock"] = clock

    def find_pipeline(self, project_id: int, ref: str, sha: str) -> Optional[Pipeline]:
        """Wait, without a timeout, for the pipeline of ``ref`` at ``sha`` to be created."""
        logger.info(f"Waiting for the pipeline with ref '{ref}' and sha '{sha}' to be created...")

        def check() -> Optional[Pipeline]:
            return find_by_sha(self.client.list_pipelines(project_id, ref=ref), sha)

        pipeline = wait_for(
            check,
            self.policy.with_timeout(FOREVER),
            description=f"pipeline for {ref}@{sha[:8]}",
            **self._wait_kwargs,
        )
        if pipeline is not None:
            logger.info(f"Pipeline created: ID {pipeline.id}")
        return pipeline

    def wait_for_pipeline_to_finish(self, project_id: int, pipeline_id: int, timeout: float) -> Optional[PipelineStatus]:
        """Wait up to ``timeout`` seconds for a terminal status; ``None`` when it runs out."""
        logger.info(f"Waiting for pipeline {pipeline_id} to finish...")
        policy = self.policy.with_timeout(timeout)

        def check() -> Optional[PipelineStatus]:
            status = self.client.get_pipeline(project_id, pipeline_id).status
            logger.debug(f"Pipeline {pipeline_id} status: {status.value}")
            return status if is_terminal(status) else None

        status = wait_for(check, policy, description=f"pipeline {pipeline_id} to finish", **self._wait_kwargs)
        if status is not None:
            logger.info(f"Pipeline {pipeline_id} finished with status: {status.value}")
        return status

    def wait_for_pipelines_count(self, project_id: int, count: int, timeout: float) -> bool:
        """Wait up to ``timeout`` seconds until exactly ``count`` pipelines exist for the project."""
        logger.info(f"Waiting for {count} pipeline(s) in project {project_id}...")
        policy = self.policy.with_timeout(timeout)
        return wait_until(
            lambda: len(self.client.list_pipelines(project_id)) == count,
            policy,
            description=f"{count} pipelines in project {project_id}",
            **self._wait_kwargs,
        )

    def get_latest_pipeline(self, project_id: int) -> Optional[Pipeline]:
        pipeline = find_latest(self.client.list_pipelines(project_id))
        if pipeline is None:
            logger.info("No pipelines found!")
        else:
            logger.info(f"Latest pipeline ID: {pipeline.id} Status: {pipeline.status.value}")
        return pipeline

    def cancel_initial_pipeline(self, project_id: int) -> Optional[Pipeline]:
        """Cancel the oldest pipeline, i.e. the stale run started when the repository was generated."""
        oldest = find_oldest(self.client.list_pipelines(project_id))
        if oldest is None:
            logger.info("No pipelines found.")
            return None

        logger.info(f"Initial pipeline ID: {oldest.id}, Status: {oldest.status.value}")
        cancelled = self.client.cancel_pipeline(project_id, oldest.id)
        logger.info(f"Initial pipeline (ID: {oldest.id}) has been canceled.")
        return cancelled

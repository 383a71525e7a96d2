# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""Client for the developer portal scaffolder that generates projects from templates."""

import logging
from typing import Any, Dict, List, Optional

import httpx

from .errors import DeveloperHubError, WaitTimeoutError
from .models import ScaffolderTask
from .polling import PollPolicy, wait_for, wait_until

logger = logging.getLogger(__name__)


class DeveloperHubClient:
    """Creates scaffolder tasks and follows them to completion."""

    def __init__(
        self,
        url: Optional[str],
        timeout: float = 30.0,
        policy: Optional[PollPolicy] = None,
        http_client: Optional[httpx.Client] = None,
        verify: bool = False,
    ) -> None:
        """Initialize developer portal client.

        Args:
            url: Portal base URL
            timeout: Request timeout in seconds
            policy: Default polling policy
            http_client: Preconfigured client, mainly for tests
            verify: Verify TLS certificates (test clusters use self-signed ones)
        """
        if not url:
            raise DeveloperHubError(
                "Cannot initialize DeveloperHubClient, missing 'RED_HAT_DEVELOPER_HUB_URL' environment variable"
            )

        self.url = url.rstrip("/")
        self.policy = policy or PollPolicy(interval=5.0)
        self.client = http_client or httpx.Client(base_url=self.url, timeout=timeout, verify=verify)

    def create_task(self, options: Dict[str, Any]) -> str:
        """Start a scaffolder task from template options; returns the task id."""
        try:
            response = self.client.post("/api/scaffolder/v2/tasks", json=options)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to create Developer Hub component: {e}")
            raise DeveloperHubError(f"Failed to create Developer Hub component: {e}") from e

        task_id = str(response.json()["id"])
        logger.info(f"Created scaffolder task {task_id}")
        return task_id

    def get_task_status(self, task_id: str) -> ScaffolderTask:
        response = self.client.get(f"/api/scaffolder/v2/tasks/{task_id}")
        response.raise_for_status()
        return ScaffolderTask.from_api(response.json())

    def wait_for_task_processed(self, task_id: str, timeout: float) -> ScaffolderTask:
        """Wait until the task leaves the open/processing states.

        Raises:
            WaitTimeoutError: If the task is still processing after ``timeout`` seconds
        """
        task = wait_for(
            lambda: self._processed_or_none(task_id),
            self.policy.with_timeout(timeout),
            description=f"scaffolder task {task_id}",
        )
        if task is None:
            raise WaitTimeoutError("Timeout to process a task. Error to process a Developer Hub Task")
        return task

    def _processed_or_none(self, task_id: str) -> Optional[ScaffolderTask]:
        task = self.get_task_status(task_id)
        return task if task.is_processed() else None

    def get_event_stream_log(self, task_id: str) -> str:
        response = self.client.get(f"/api/scaffolder/v2/tasks/{task_id}/eventstream")
        if response.status_code != 200:
            raise DeveloperHubError(
                f"Failed to get task event stream logs. Task Id: {task_id}, status:{response.status_code}"
            )
        return response.text

    def get_golden_path_templates(self) -> List[Dict[str, Any]]:
        try:
            response = self.client.get("/api/catalog/entities", params={"filter": "kind=template"})
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to retrieve Golden Path templates: {e}")
            raise DeveloperHubError("Failed to retrieve Golden Path templates") from e
        return list(response.json())

    def check_component_endpoint(self, url: str) -> bool:
        try:
            return self.client.get(url).status_code == 200
        except httpx.HTTPError:
            return False

    def wait_until_component_endpoint_ready(self, url: str, timeout: float) -> bool:
        """Wait for a deployed application route to answer 200."""
        return wait_until(
            lambda: self.check_component_endpoint(url),
            self.policy.with_interval(1.0).with_timeout(timeout),
            description=f"endpoint {url}",
        )

    def close(self) -> None:
        self.client.close()

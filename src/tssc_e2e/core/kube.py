# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""
Cluster access for Tekton, Argo CD and OpenShift resources.

PipelineRuns are created by Pipelines-as-Code; the harness only reads them
and the TaskRuns they spawn.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from .artifacts import ArtifactWriter
from .errors import ConfigError, WaitTimeoutError
from .models import PipelineRun, TaskRun
from .polling import PollPolicy, wait_for, wait_until

logger = logging.getLogger(__name__)

TEKTON_GROUP = "tekton.dev"
TEKTON_VERSION = "v1"
ARGO_GROUP = "argoproj.io"
ARGO_VERSION = "v1alpha1"

PAC_REPOSITORY_LABEL = "pipelinesascode.tekton.dev/url-repository"
PAC_EVENT_TYPE_LABEL = "pipelinesascode.tekton.dev/event-type"


def load_kube_config() -> None:
    """Use the local kubeconfig, or the in-cluster service account when there is none."""
    try:
        config.load_kube_config()
    except config.ConfigException:
        try:
            config.load_incluster_config()
        except config.ConfigException as e:
            raise ConfigError(f"No cluster configuration available: {e}") from e


class KubeClient:
    """Reads Tekton, Argo CD and OpenShift resources from the current cluster."""

    def __init__(
        self,
        core_api: Optional[client.CoreV1Api] = None,
        custom_api: Optional[client.CustomObjectsApi] = None,
        policy: Optional[PollPolicy] = None,
        argo_namespace: str = "rhtap",
        artifacts: Optional[ArtifactWriter] = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize cluster client.

        Args:
            core_api: CoreV1Api instance; built from kubeconfig when omitted
            custom_api: CustomObjectsApi instance; built from kubeconfig when omitted
            policy: Default polling policy
            argo_namespace: Namespace holding Argo CD applications
            artifacts: Writer for collected pod logs
            sleep: Sleep function, replaceable in tests
            clock: Monotonic clock, replaceable in tests
        """
        if core_api is None or custom_api is None:
            load_kube_config()
        self.core_api = core_api or client.CoreV1Api()
        self.custom_api = custom_api or client.CustomObjectsApi()
        self.policy = policy or PollPolicy(interval=10.0)
        self.argo_namespace = argo_namespace
        self.artifacts = artifacts or ArtifactWriter()
        self._sleep = sleep
        self._clock = clock

    def namespace_exists(self, name: str) -> bool:
        try:
            namespace = self.core_api.read_namespace(name)
            return namespace.metadata is not None and namespace.metadata.name == name
        except ApiException as e:
            logger.error(f"Failed to read namespace {name}: {e}")
            return False

    def get_task_runs_from_pipeline_run(self, pipeline_run_name: str) -> List[TaskRun]:
        """TaskRuns whose names start with the PipelineRun name."""
        task_runs = self.custom_api.list_cluster_custom_object(TEKTON_GROUP, TEKTON_VERSION, "taskruns")
        return [
            TaskRun.from_resource(item)
            for item in task_runs.get("items", [])
            if (item.get("metadata") or {}).get("name", "").startswith(pipeline_run_name)
        ]

    def get_pipeline_run_by_repository(
        self, repository: str, event_type: str, max_attempts: int = 10
    ) -> Optional[PipelineRun]:
        """Most recent PipelineRun Pipelines-as-Code created for a repository and event.

        Returns None when none appeared within ``max_attempts``. API errors are
        retried; the last one is raised when attempts run out.
        """
        selector = f"{PAC_REPOSITORY_LABEL}={repository},{PAC_EVENT_TYPE_LABEL}={event_type}"

        for attempt in range(1, max_attempts + 1):
            try:
                body = self.custom_api.list_cluster_custom_object(
                    TEKTON_GROUP, TEKTON_VERSION, "pipelineruns", label_selector=selector
                )
            except ApiException as e:
                logger.warning(f"Error fetching pipeline runs (Attempt {attempt}): {e}")
                if attempt == max_attempts:
                    raise
                logger.info(f"Retrying in {self.policy.interval} seconds...")
                self._sleep(self.policy.interval)
                continue

            items: List[Dict[str, Any]] = body.get("items", [])
            if items:
                latest = max(items, key=lambda item: (item.get("metadata") or {}).get("creationTimestamp") or "")
                pipeline_run = PipelineRun.from_resource(latest)
                logger.info(f"Found pipeline run {pipeline_run.name}")
                return pipeline_run

            if attempt < max_attempts:
                self._sleep(self.policy.interval)

        logger.error("Max attempts reached. Unable to fetch pipeline runs.")
        return None

    def get_pipeline_run(self, name: str, namespace: str) -> PipelineRun:
        body = self.custom_api.get_namespaced_custom_object(
            TEKTON_GROUP, TEKTON_VERSION, namespace, "pipelineruns", name
        )
        return PipelineRun.from_resource(body)

    def wait_pipeline_run_to_be_finished(self, name: str, namespace: str, timeout: float) -> bool:
        """Wait for a PipelineRun to finish (``timeout`` 0 waits forever).

        Returns:
            True if it succeeded, False if it failed

        Raises:
            WaitTimeoutError: If it did not finish within ``timeout`` seconds
        """

        def check() -> Optional[bool]:
            pipeline_run = self.get_pipeline_run(name, namespace)
            if pipeline_run.succeeded():
                logger.info(f"Pipeline run '{name}' finished successfully.")
                return True
            if pipeline_run.failed():
                logger.error(f"Pipeline run '{name}' failed.")
                return False
            return None

        finished = wait_for(
            check,
            self.policy.with_timeout(timeout),
            description=f"pipeline run '{name}'",
            sleep=self._sleep,
            clock=self._clock,
        )
        if finished is None:
            raise WaitTimeoutError(f"Timeout reached waiting for pipeline run '{name}' to finish.")
        return finished

    def read_pod_log(self, pod_name: str, namespace: str) -> None:
        """Write every container log of a pod to ``taskruns-logs/<pod>/<container>.log``."""
        try:
            pod = self.core_api.read_namespaced_pod(pod_name, namespace)
            if not pod.spec or not pod.spec.containers:
                logger.error(f"Pod {pod_name} in namespace {namespace} does not have spec or containers defined.")
                return

            for container in pod.spec.containers:
                log = self.core_api.read_namespaced_pod_log(pod_name, namespace, container=container.name)
                self.artifacts.write(
                    f"taskruns-logs/{pod_name}",
                    f"{container.name}.log",
                    f"Container: {container.name}\n{log}\n\n",
                )
        except ApiException as e:
            logger.error(f"Failed to read logs of pod {pod_name}: {e}")

    def get_openshift_route(self, name: str, namespace: str) -> str:
        """Host of an OpenShift route."""
        route = self.custom_api.get_namespaced_custom_object("route.openshift.io", "v1", namespace, "routes", name)
        return str(route["spec"]["host"])

    def is_argo_application_healthy(self, name: str) -> bool:
        application = self.custom_api.get_namespaced_custom_object(
            ARGO_GROUP, ARGO_VERSION, self.argo_namespace, "applications", name
        )
        status = application.get("status") or {}
        sync = (status.get("sync") or {}).get("status")
        health = (status.get("health") or {}).get("status")
        return sync == "Synced" and health == "Healthy"

    def wait_for_argo_application_healthy(self, name: str, timeout: float) -> bool:
        """Wait until an Argo CD application is Synced and Healthy; False on timeout."""
        healthy = wait_until(
            lambda: self.is_argo_application_healthy(name),
            self.policy.with_timeout(timeout),
            description=f"application '{name}' to be healthy",
            sleep=self._sleep,
            clock=self._clock,
        )
        if not healthy:
            logger.error(f"Timeout reached waiting for application '{name}' to be healthy.")
        return healthy

    def delete_application(self, namespace: str, name: str) -> bool:
        try:
            self.custom_api.delete_namespaced_custom_object(ARGO_GROUP, ARGO_VERSION, namespace, "applications", name)
            logger.info(f"Application {name} deleted from namespace {namespace}")
            return True
        except ApiException as e:
            logger.error(f"Failed to delete application {name}: {e}")
            return False

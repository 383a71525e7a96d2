# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""Jenkins client for the Jenkins scenarios."""

import logging
from typing import Any, Dict, Optional

import jenkins
from jenkins import Jenkins as PythonJenkins

from .errors import JenkinsError
from .polling import FOREVER, PollPolicy, wait_for, wait_until

logger = logging.getLogger(__name__)

JOB_CONFIG_TEMPLATE = """<flow-definition plugin="workflow-job@2.40">
    <actions/>
    <description></description>
    <keepDependencies>false</keepDependencies>
    <properties>
        <org.jenkinsci.plugins.workflow.job.properties.PipelineTriggersJobProperty>
            <triggers/>
        </org.jenkinsci.plugins.workflow.job.properties.PipelineTriggersJobProperty>
    </properties>
    <definition class="org.jenkinsci.plugins.workflow.cps.CpsScmFlowDefinition" plugin="workflow-cps@2.89">
        <scm class="hudson.plugins.git.GitSCM" plugin="git@4.4.5">
            <configVersion>2</configVersion>
            <userRemoteConfigs>
                <hudson.plugins.git.UserRemoteConfig>
                    <url>https://{git_host}/{organization}/{job_name}</url>
                </hudson.plugins.git.UserRemoteConfig>
            </userRemoteConfigs>
            <branches>
                <hudson.plugins.git.BranchSpec>
                    <name>*/main</name>
                </hudson.plugins.git.BranchSpec>
            </branches>
            <doGenerateSubmoduleConfigurations>false</doGenerateSubmoduleConfigurations>
            <submoduleCfg class="list"/>
            <extensions/>
        </scm>
        <scriptPath>Jenkinsfile</scriptPath>
        <lightweight>true</lightweight>
    </definition>
    <disabled>false</disabled>
</flow-definition>
"""


class JenkinsClient:
    """Jenkins client for creating pipeline jobs and following their builds."""

    def __init__(
        self,
        server: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
        timeout: int = 60,
        policy: Optional[PollPolicy] = None,
    ) -> None:
        """Initialize Jenkins client.

        Args:
            server: Jenkins server URL
            username: Jenkins username
            password: Jenkins password or API token
            timeout: Request timeout in seconds
            policy: Default polling policy for waits
        """
        if not server:
            raise JenkinsError("Cannot initialize Jenkins client, missing 'JENKINS_URL' environment variable")

        self.server = server
        self.username = username
        self.password = password
        self.timeout = timeout
        self.policy = policy or PollPolicy(interval=15.0)

        self.client: PythonJenkins = jenkins.Jenkins(
            server, username=username, password=password, timeout=timeout
        )

        # Verify connection
        try:
            self.client.get_version()
            logger.info(f"Connected to Jenkins server: {server}")
        except Exception as e:
            logger.error(f"Failed to connect to Jenkins server {server}: {e}")
            raise JenkinsError(f"Failed to connect to Jenkins server {server}: {e}") from e

    def create_job(self, git_host: str, organization: str, job_name: str) -> None:
        """Create a pipeline job building ``Jenkinsfile`` from ``git_host/organization/job_name``."""
        config_xml = JOB_CONFIG_TEMPLATE.format(git_host=git_host, organization=organization, job_name=job_name)
        try:
            self.client.create_job(job_name, config_xml)
            logger.info(f"Job '{job_name}' created successfully.")
        except jenkins.JenkinsException as e:
            logger.error(f"Failed to create job '{job_name}': {e}")
            raise JenkinsError(f"Failed to create job '{job_name}': {e}") from e

    def job_exists(self, job_name: str) -> bool:
        return bool(self.client.job_exists(job_name))

    def wait_for_job_creation(self, job_name: str, policy: Optional[PollPolicy] = None) -> bool:
        """Wait (forever by default) for a job to appear."""
        logger.info(f"Waiting for job '{job_name}' to be created...")
        created = wait_until(
            lambda: self.job_exists(job_name),
            policy or self.policy.with_interval(5.0).with_timeout(FOREVER),
            description=f"job '{job_name}'",
        )
        if created:
            logger.info(f"Job '{job_name}' is now available.")
        return created

    def build_job(self, job_name: str, parameters: Optional[Dict[str, Any]] = None) -> int:
        """Trigger a build and return its queue item id."""
        try:
            queue_id = self.client.build_job(job_name, parameters=parameters)
            logger.info(f"Build triggered for job '{job_name}' successfully.")
            return int(queue_id)
        except jenkins.JenkinsException as e:
            logger.error(f"Failed to trigger build for '{job_name}': {e}")
            raise JenkinsError(f"Failed to trigger build for '{job_name}': {e}") from e

    def get_build_number(self, queue_id: int) -> Optional[int]:
        """Build number once the queue item started executing; None while queued or if cancelled."""
        item = self.client.get_queue_item(queue_id)
        executable = item.get("executable")
        if executable:
            return int(executable["number"])
        if item.get("cancelled"):
            logger.error("Build was cancelled.")
        return None

    def wait_for_build_number(self, queue_id: int, timeout: Optional[float] = None) -> Optional[int]:
        policy = self.policy.with_interval(5.0)
        if timeout is not None:
            policy = policy.with_timeout(timeout)
        return wait_for(
            lambda: self.get_build_number(queue_id),
            policy,
            description=f"queue item {queue_id} to start",
        )

    def get_build_result(self, job_name: str, build_number: int) -> Optional[str]:
        """Result of a finished build (SUCCESS, FAILURE, ...); None while building."""
        info = self.client.get_build_info(job_name, build_number)
        if info.get("building"):
            logger.info(f"Build #{build_number} is still in progress...")
            return None
        return str(info.get("result"))

    def wait_for_build_to_finish(
        self, job_name: str, build_number: int, timeout: Optional[float] = None
    ) -> Optional[str]:
        """Wait for a build to finish; returns its result, None on timeout."""
        policy = self.policy if timeout is None else self.policy.with_timeout(timeout)
        result = wait_for(
            lambda: self.get_build_result(job_name, build_number),
            policy,
            description=f"build #{build_number} of '{job_name}'",
        )
        if result is not None:
            logger.info(f"Build #{build_number} finished with status: {result}")
        return result

    def get_latest_build_number(self, job_name: str) -> Optional[int]:
        try:
            last_build = self.client.get_job_info(job_name).get("lastBuild")
        except jenkins.JenkinsException as e:
            logger.error(f"Error getting latest build number: {e}")
            return None

        if not last_build:
            logger.info(f"No builds found for job '{job_name}'.")
            return None
        return int(last_build["number"])

    def get_build_log(self, job_name: str, build_number: int) -> str:
        return str(self.client.get_build_console_output(job_name, build_number))

    def delete_job(self, job_name: str) -> None:
        try:
            self.client.delete_job(job_name)
            logger.info(f"Job '{job_name}' deleted.")
        except jenkins.NotFoundException:
            logger.info(f"Job '{job_name}' does not exist.")

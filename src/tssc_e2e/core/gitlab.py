# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""GitLab REST client used by the GitLab scenarios."""

import base64
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from .errors import GitLabError
from .models import Job, MergeRequest, MergeStatus, Pipeline
from .polling import FOREVER, PollPolicy, wait_for, wait_until
from .promotion import deployment_patch_path, extract_image, promote

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "main"
BUILD_JOB_NAME = "buildah-rhtap"

ENV_FILE = "rhtap/env.sh"
DEFAULT_REKOR_HOST = "http://rekor-server.rhtap-tas.svc"
DEFAULT_TUF_MIRROR = "http://tuf.rhtap-tas.svc"
ACS_DISABLED = "DISABLE_ACS=true"
ACS_ENABLED = "DISABLE_ACS=false"
GITOPS_USERNAME_CREDENTIAL = "GITOPS_AUTH_USERNAME = credentials('GITOPS_AUTH_USERNAME')"

JENKINS_AGENT_TEMPLATE = """agent {{
      kubernetes {{
        label 'jenkins-agent'
        cloud 'openshift'
        serviceAccount 'jenkins'
        podRetention onFailure()
        idleMinutes '5'
        containerTemplate {{
         name 'jnlp'
         image '{image}'
         ttyEnabled true
         args '${{computer.jnlpmac}} ${{computer.name}}'
        }}
       }}
}}"""


def _quote(value: str) -> str:
    return quote(value, safe="")


class GitLabClient:
    """Thin wrapper over the GitLab v4 REST API."""

    def __init__(
        self,
        token: str,
        host: str = "https://gitlab.com",
        timeout: float = 30.0,
        policy: Optional[PollPolicy] = None,
        http_client: Optional[httpx.Client] = None,
        webhook_secret: str = "",
    ) -> None:
        """Initialize GitLab client.

        Args:
            token: GitLab personal access token
            host: GitLab instance URL
            timeout: Request timeout in seconds
            policy: Default polling policy for waits
            http_client: Preconfigured client, mainly for tests
            webhook_secret: Secret token set on created webhooks
        """
        if not token:
            raise GitLabError("Missing environment variable GITLAB_TOKEN")

        self.host = host.rstrip("/")
        self.policy = policy or PollPolicy(interval=10.0)
        self.webhook_secret = webhook_secret
        self.client = http_client or httpx.Client(
            base_url=f"{self.host}/api/v4",
            timeout=timeout,
            headers={
                "PRIVATE-TOKEN": token,
                "User-Agent": "tssc-e2e/0.1",
            },
        )

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        response = self.client.request(method, path, **kwargs)
        response.raise_for_status()
        return response

    def _paginate(self, path: str, params: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        """Every item of a list endpoint, following the X-Next-Page header."""
        params = dict(params or {}, per_page=100)
        items: List[Dict[str, Any]] = []
        page = "1"
        while page:
            response = self._request("GET", path, params=dict(params, page=page))
            items.extend(response.json())
            page = response.headers.get("X-Next-Page", "")
        return items

    def _action(self, description: str, method: str, path: str, **kwargs: Any) -> httpx.Response:
        """Perform a request a scenario depends on, raising GitLabError on failure."""
        try:
            return self._request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Failed to {description}: {e}")
            raise GitLabError(f"Failed to {description}: {e}") from e

    # Repositories

    def get_project_id(self, organization: str, repo_name: str) -> int:
        """Return the project id of ``organization/repo_name``."""
        project = self._request("GET", f"/projects/{_quote(f'{organization}/{repo_name}')}").json()
        logger.info(
            f"Repository with name '{repo_name}' found in organization '{organization}' "
            f"created at '{project.get('created_at')}' url: {self.host}/{organization}/{repo_name}"
        )
        return int(project["id"])

    def wait_for_repository(
        self, organization: str, repo_name: str, policy: Optional[PollPolicy] = None
    ) -> Optional[int]:
        """Wait (forever by default) for a generated repository to appear; returns its id."""
        return wait_for(
            lambda: self.get_project_id(organization, repo_name),
            policy or self.policy.with_timeout(FOREVER),
            description=f"repository {organization}/{repo_name}",
        )

    def has_folder(self, project_id: int, folder_path: str) -> bool:
        tree = self._paginate(f"/projects/{project_id}/repository/tree")
        return any(item.get("path") == folder_path and item.get("type") == "tree" for item in tree)

    def has_file(self, project_id: int, file_path: str, ref: str = DEFAULT_BRANCH) -> bool:
        try:
            self._request(
                "GET", f"/projects/{project_id}/repository/files/{_quote(file_path)}", params={"ref": ref}
            )
            return True
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                logger.info(f"File {file_path} does not exist.")
            else:
                logger.error(f"Error checking file existence: {e}")
            return False

    def delete_project(self, project_id: int) -> None:
        self._action(f"delete project {project_id}", "DELETE", f"/projects/{project_id}")
        logger.info(f"Project with '{project_id}' deleted successfully.")

    def create_project_webhook(self, project_id: int, webhook_url: str) -> Dict[str, Any]:
        """Create a push/merge-request/tag webhook on the project."""
        return self._action(
            "create webhook",
            "POST",
            f"/projects/{project_id}/hooks",
            json={
                "url": webhook_url,
                "token": self.webhook_secret,
                "push_events": True,
                "merge_requests_events": True,
                "tag_push_events": True,
                "enable_ssl_verification": False,
            },
        ).json()

    # Branches, commits and files

    def create_branch(self, project_id: int, branch: str, ref: str = DEFAULT_BRANCH) -> None:
        self._action(
            f"create branch {branch}",
            "POST",
            f"/projects/{project_id}/repository/branches",
            params={"branch": branch, "ref": ref},
        )
        logger.info(f"Branch '{branch}' created successfully.")

    def create_commit(
        self,
        project_id: int,
        branch: str,
        file_path: str = "test.txt",
        content: str = "Hello world",
        message: str = "Commit message",
        action: str = "create",
    ) -> str:
        """Commit a single file change and return the new commit sha."""
        commit = self._action(
            "create commit in GitLab",
            "POST",
            f"/projects/{project_id}/repository/commits",
            json={
                "branch": branch,
                "commit_message": message,
                "actions": [{"action": action, "file_path": file_path, "content": content}],
            },
        ).json()
        return str(commit.get("id", ""))

    def get_file_content(self, project_id: int, file_path: str, ref: str = DEFAULT_BRANCH) -> str:
        data = self._action(
            f"read {file_path}",
            "GET",
            f"/projects/{project_id}/repository/files/{_quote(file_path)}",
            params={"ref": ref},
        ).json()
        return base64.b64decode(data["content"]).decode("utf-8")

    def edit_file(self, project_id: int, file_path: str, branch: str, content: str, message: str) -> None:
        self._action(
            f"update {file_path}",
            "PUT",
            f"/projects/{project_id}/repository/files/{_quote(file_path)}",
            json={
                "branch": branch,
                "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
                "encoding": "base64",
                "commit_message": message,
            },
        )
        logger.info(f"{file_path} updated successfully with commit message: {message}")

    def commit_replacement_in_file(
        self, project_id: int, branch: str, file_path: str, message: str, text: str, replacement: str
    ) -> bool:
        """Replace the first occurrence of ``text`` in a file and commit the result."""
        try:
            content = self.get_file_content(project_id, file_path, branch)
            self.edit_file(project_id, file_path, branch, content.replace(text, replacement, 1), message)
            return True
        except GitLabError:
            return False

    # Repository customizations for the Jenkins and GitLab CI scenarios

    def update_rekor_host(self, project_id: int, branch: str, rekor_host: str) -> bool:
        return self.commit_replacement_in_file(
            project_id, branch, ENV_FILE, "Update Rekor host", DEFAULT_REKOR_HOST, rekor_host
        )

    def update_tuf_mirror(self, project_id: int, branch: str, tuf_mirror: str) -> bool:
        return self.commit_replacement_in_file(
            project_id, branch, ENV_FILE, "Update TUF Mirror", DEFAULT_TUF_MIRROR, tuf_mirror
        )

    def enable_acs_jenkins(self, project_id: int, branch: str) -> bool:
        return self.commit_replacement_in_file(
            project_id, branch, ENV_FILE, "Update ACS scan for Gitlab", ACS_DISABLED, ACS_ENABLED
        )

    def update_jenkinsfile_agent(self, project_id: int, branch: str, agent_image: str) -> bool:
        """Run the Jenkinsfile on the OpenShift kubernetes agent instead of ``agent any``."""
        return self.commit_replacement_in_file(
            project_id,
            branch,
            "Jenkinsfile",
            "Update Jenkins agent",
            "agent any",
            JENKINS_AGENT_TEMPLATE.format(image=agent_image),
        )

    def create_username_commit(self, project_id: int, branch: str) -> bool:
        """Uncomment the GITOPS_AUTH_USERNAME credential in the Jenkinsfile."""
        return self.commit_replacement_in_file(
            project_id,
            branch,
            "Jenkinsfile",
            "Update creds for Gitlab",
            f"/* {GITOPS_USERNAME_CREDENTIAL} */",
            GITOPS_USERNAME_CREDENTIAL,
        )

    def update_env_file_for_gitlab_ci(self, project_id: int, branch: str, rekor_host: str, tuf_mirror: str) -> bool:
        """Enable ACS and point Rekor and TUF at this cluster in a single commit."""
        try:
            content = self.get_file_content(project_id, ENV_FILE, branch)
            content = content.replace(ACS_DISABLED, ACS_ENABLED, 1)
            content = content.replace(DEFAULT_REKOR_HOST, rekor_host, 1)
            content = content.replace(DEFAULT_TUF_MIRROR, tuf_mirror, 1)
            self.edit_file(project_id, ENV_FILE, branch, content, "Update env file for GitLabCI")
            return True
        except GitLabError:
            return False

    # Pipelines

    def list_pipelines(self, project_id: int, ref: Optional[str] = None) -> List[Pipeline]:
        params = {"ref": ref} if ref else {}
        return [Pipeline.from_api(item) for item in self._paginate(f"/projects/{project_id}/pipelines", params)]

    def get_pipeline(self, project_id: int, pipeline_id: int) -> Pipeline:
        return Pipeline.from_api(self._request("GET", f"/projects/{project_id}/pipelines/{pipeline_id}").json())

    def cancel_pipeline(self, project_id: int, pipeline_id: int) -> Pipeline:
        response = self._action(
            f"cancel pipeline {pipeline_id}", "POST", f"/projects/{project_id}/pipelines/{pipeline_id}/cancel"
        )
        return Pipeline.from_api(response.json())

    def trigger_pipeline(self, project_id: int, branch: str, trigger_token: str) -> Pipeline:
        response = self._action(
            "trigger pipeline",
            "POST",
            f"/projects/{project_id}/trigger/pipeline",
            data={"token": trigger_token, "ref": branch},
        )
        pipeline = Pipeline.from_api(response.json())
        logger.info(f"Pipeline triggered successfully: {pipeline.id}")
        return pipeline

    def list_jobs(self, project_id: int, pipeline_id: int) -> List[Job]:
        return [Job.from_api(item) for item in self._paginate(f"/projects/{project_id}/pipelines/{pipeline_id}/jobs")]

    def get_job_log(self, project_id: int, job_id: int) -> str:
        return self._request("GET", f"/projects/{project_id}/jobs/{job_id}/trace").text

    def get_log_for_job_name(self, project_id: int, pipeline_id: int, job_name: str = BUILD_JOB_NAME) -> str:
        """Log of the first job whose name contains ``job_name``; empty if none."""
        for job in self.list_jobs(project_id, pipeline_id):
            if job_name in job.name:
                return self.get_job_log(project_id, job.id)
        return ""

    def set_repo_variable(self, project_id: int, key: str, value: str) -> None:
        self._action(
            f"set environment variable '{key}'",
            "POST",
            f"/projects/{project_id}/variables",
            json={"key": key, "value": value, "protected": False, "masked": False},
        )
        logger.info(f"Environment variable '{key}' set successfully.")

    # Merge requests

    def create_merge_request(
        self,
        project_id: int,
        branch: str,
        title: str,
        target_branch: str = DEFAULT_BRANCH,
        file_path: str = "test.txt",
        content: str = "Hello world",
    ) -> int:
        """Branch from ``target_branch``, commit one file and open a merge request; returns its iid."""
        self.create_branch(project_id, branch, target_branch)
        self.create_commit(
            project_id,
            branch,
            file_path=file_path,
            content=content,
            message="Automatic commit generated from TSSC E2E framework",
        )
        return self._open_merge_request(project_id, branch, target_branch, title)

    def _open_merge_request(self, project_id: int, branch: str, target_branch: str, title: str) -> int:
        data = self._action(
            "create merge request",
            "POST",
            f"/projects/{project_id}/merge_requests",
            json={"source_branch": branch, "target_branch": target_branch, "title": title},
        ).json()
        merge_request = MergeRequest.from_api(data)
        logger.info(f"Merge request '{title}' created successfully. URL: {merge_request.web_url}")
        return merge_request.iid

    def merge_merge_request(self, project_id: int, merge_request_iid: int) -> None:
        logger.info(f"Merging merge request '{merge_request_iid}'")
        self._action(
            f"merge merge request {merge_request_iid}",
            "PUT",
            f"/projects/{project_id}/merge_requests/{merge_request_iid}/merge",
        )
        logger.info(f"Merge request '{merge_request_iid}' merged successfully.")

    def get_merge_request_status(self, project_id: int, merge_request_iid: int) -> MergeStatus:
        data = self._request("GET", f"/projects/{project_id}/merge_requests/{merge_request_iid}").json()
        return MergeRequest.from_api(data).status

    def wait_for_mergeable(self, project_id: int, merge_request_iid: int, timeout: float) -> bool:
        """Wait until GitLab reports the merge request as mergeable."""
        logger.info(f"Waiting for merge request {merge_request_iid} to become mergeable...")
        return wait_until(
            lambda: self.get_merge_request_status(project_id, merge_request_iid) == MergeStatus.MERGEABLE,
            self.policy.with_interval(5.0).with_timeout(timeout),
            description=f"merge request {merge_request_iid} to be mergeable",
        )

    # GitOps promotion

    def get_image_to_promote(self, project_id: int, branch: str, component: str, environment: str) -> str:
        path = deployment_patch_path(component, environment)
        return extract_image(self.get_file_content(project_id, path, branch))

    def create_promotion_merge_request(
        self, project_id: int, branch: str, component: str, from_environment: str, to_environment: str
    ) -> int:
        """Open a merge request copying the image of one environment into another.

        Raises:
            ImageNotFoundError: If either environment's manifest has no image line
        """
        self.create_branch(project_id, branch)

        image = self.get_image_to_promote(project_id, branch, component, from_environment)
        target_path = deployment_patch_path(component, to_environment)
        target = self.get_file_content(project_id, target_path, branch)
        message = f"Promotion from {from_environment} to {to_environment}"

        self.create_commit(
            project_id,
            branch,
            file_path=target_path,
            content=promote("", target, image=image),
            message=message,
            action="update",
        )
        return self._open_merge_request(project_id, branch, DEFAULT_BRANCH, message)

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "GitLabClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

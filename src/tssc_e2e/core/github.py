# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""GitHub REST client for repository checks, GitOps promotion and Actions runs."""

import base64
import logging
from typing import Any, Dict, List, Optional, Union

import httpx

from .errors import GitHubError
from .polling import PollPolicy, wait_for
from .promotion import deployment_patch_path, extract_image, promote
from ..utils.generator import generate_random_chars

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "main"


class GitHubClient:
    """Thin wrapper over the GitHub REST API."""

    def __init__(
        self,
        token: str,
        host: str = "https://api.github.com",
        timeout: float = 30.0,
        policy: Optional[PollPolicy] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        if not token:
            raise GitHubError("Missing environment variable GITHUB_TOKEN")

        self.policy = policy or PollPolicy(interval=5.0, timeout=300.0)
        self.client = http_client or httpx.Client(
            base_url=host.rstrip("/"),
            timeout=timeout,
            headers={
                "Accept": "application/vnd.github+json",
                "Authorization": f"Bearer {token}",
                "User-Agent": "tssc-e2e/0.1",
            },
        )

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        response = self.client.request(method, path, **kwargs)
        response.raise_for_status()
        return response

    def _action(self, description: str, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Failed to {description}: {e}")
            raise GitHubError(f"Failed to {description}: {e}") from e

    def repository_exists(self, owner: str, repo: str) -> bool:
        response = self.client.get(f"/repos/{owner}/{repo}")
        return response.status_code == 200

    def delete_repository(self, owner: str, repo: str) -> bool:
        response = self.client.delete(f"/repos/{owner}/{repo}")
        if response.status_code == 204:
            logger.info(f"Repository {owner}/{repo} deleted successfully.")
            return True
        logger.error(f"Failed to delete repository {owner}/{repo}: status {response.status_code}")
        return False

    def delete_repository_if_exists(self, owner: str, repo: str) -> bool:
        if self.repository_exists(owner, repo):
            return self.delete_repository(owner, repo)
        return False

    def folder_exists(self, owner: str, repo: str, folder_path: str) -> bool:
        response = self.client.get(f"/repos/{owner}/{repo}/contents/{folder_path}")
        if response.status_code != 200:
            logger.error(
                f"Failed to fetch folderPath: {folder_path}, from repository: {owner}/{repo}, "
                f"request status: {response.status_code}"
            )
        return response.status_code == 200

    def get_file(self, owner: str, repo: str, path: str, ref: str = DEFAULT_BRANCH) -> Dict[str, Any]:
        """Return ``{"content": <decoded text>, "sha": <blob sha>}`` for a file."""
        data = self._action(
            f"read {path} from {owner}/{repo}", "GET", f"/repos/{owner}/{repo}/contents/{path}", params={"ref": ref}
        ).json()
        return {"content": base64.b64decode(data["content"]).decode("utf-8"), "sha": data.get("sha", "")}

    def create_pull_request_from_main(
        self, owner: str, repo: str, file_path: str, content: str, file_sha: str = ""
    ) -> int:
        """Commit ``content`` to a new branch off main and open a pull request; returns its number."""
        branch = f"test-{generate_random_chars(6)}"
        main = self._action("read main branch", "GET", f"/repos/{owner}/{repo}/git/ref/heads/{DEFAULT_BRANCH}").json()

        self._action(
            f"create branch {branch}",
            "POST",
            f"/repos/{owner}/{repo}/git/refs",
            json={"ref": f"refs/heads/{branch}", "sha": main["object"]["sha"]},
        )

        body: Dict[str, Any] = {
            "message": "Update from TSSC E2E framework",
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": branch,
        }
        if file_sha:
            body["sha"] = file_sha
        self._action(f"commit {file_path}", "PUT", f"/repos/{owner}/{repo}/contents/{file_path}", json=body)

        pull_request = self._action(
            "create pull request",
            "POST",
            f"/repos/{owner}/{repo}/pulls",
            json={"title": "Automatic pull request", "head": branch, "base": DEFAULT_BRANCH},
        ).json()
        logger.info(f"Pull request {pull_request['number']} created: {pull_request.get('html_url')}")
        return int(pull_request["number"])

    def merge_pull_request(self, owner: str, repo: str, number: int) -> None:
        self._action(f"merge pull request {number}", "PUT", f"/repos/{owner}/{repo}/pulls/{number}/merge")
        logger.info(f"Pull request {number} merged successfully.")

    def extract_image_from_content(self, owner: str, repo: str, component: str, environment: str) -> str:
        """Image of an environment's deployment patch.

        Raises:
            ImageNotFoundError: If the manifest has no image line
        """
        return extract_image(self.get_file(owner, repo, deployment_patch_path(component, environment))["content"])

    def promote_gitops_image(self, owner: str, repo: str, component: str, environment: str, image: str) -> int:
        """Open a pull request setting ``image`` in an environment's deployment patch."""
        path = deployment_patch_path(component, environment)
        current = self.get_file(owner, repo, path)
        patched = promote("", current["content"], image=image)
        return self.create_pull_request_from_main(owner, repo, path, patched, current["sha"])

    # Actions

    def get_workflow_id(self, owner: str, repo: str, workflow_name: str) -> int:
        """Id of the workflow matching a name or file name."""
        data = self._action("list workflows", "GET", f"/repos/{owner}/{repo}/actions/workflows").json()
        for workflow in data.get("workflows", []):
            if workflow_name in (workflow.get("name"), workflow.get("path", "").split("/")[-1]):
                return int(workflow["id"])
        raise GitHubError(f"Workflow '{workflow_name}' not found in {owner}/{repo}")

    def list_workflow_runs(
        self, owner: str, repo: str, workflow: Union[int, str], per_page: int = 1
    ) -> List[Dict[str, Any]]:
        data = self._request(
            "GET", f"/repos/{owner}/{repo}/actions/workflows/{workflow}/runs", params={"per_page": per_page}
        ).json()
        return list(data.get("workflow_runs", []))

    def wait_for_latest_workflow_run(
        self, owner: str, repo: str, workflow: Union[int, str], timeout: Optional[float] = None
    ) -> Optional[str]:
        """Wait for the latest run of a workflow to complete; returns its conclusion, None on timeout."""
        logger.info(f"Waiting for the latest job in workflow '{workflow}' to finish...")
        policy = self.policy if timeout is None else self.policy.with_timeout(timeout)

        def check() -> Optional[str]:
            runs = self.list_workflow_runs(owner, repo, workflow)
            if not runs:
                logger.info("No workflow runs found, retrying...")
                return None
            latest = runs[0]
            if latest.get("status") != "completed":
                return None
            logger.info(
                f"Latest job '{latest.get('id')}' in workflow '{workflow}' has finished. "
                f"Status: {latest.get('conclusion')}"
            )
            return str(latest.get("conclusion"))

        return wait_for(check, policy, description=f"workflow {workflow} to complete")

    def rerun_workflow(self, owner: str, repo: str, run_id: int) -> None:
        self._action(f"rerun workflow run {run_id}", "POST", f"/repos/{owner}/{repo}/actions/runs/{run_id}/rerun")
        logger.info(f"Workflow run {run_id} re-run requested.")

    def create_webhook(self, owner: str, repo: str, webhook_url: str) -> Dict[str, Any]:
        return self._action(
            "create webhook",
            "POST",
            f"/repos/{owner}/{repo}/hooks",
            json={
                "name": "web",
                "active": True,
                "events": ["push", "pull_request"],
                "config": {"url": webhook_url, "content_type": "json", "insecure_ssl": "1"},
            },
        ).json()

    def close(self) -> None:
        self.client.close()

# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""Bitbucket Cloud REST client."""

import logging
from typing import Any, Dict, Optional

import httpx

from .errors import BitbucketError
from ..utils.generator import generate_random_chars

logger = logging.getLogger(__name__)

DEFAULT_BRANCH = "main"


class BitbucketClient:
    """Thin wrapper over the Bitbucket Cloud 2.0 API."""

    def __init__(
        self,
        username: str,
        app_password: str,
        host: str = "https://api.bitbucket.org/2.0",
        timeout: float = 30.0,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.client = http_client or httpx.Client(
            base_url=host.rstrip("/"),
            timeout=timeout,
            auth=(username or "", app_password or ""),
            headers={"User-Agent": "tssc-e2e/0.1"},
        )

    def _action(self, description: str, method: str, path: str, **kwargs: Any) -> httpx.Response:
        try:
            response = self.client.request(method, path, **kwargs)
            response.raise_for_status()
            return response
        except httpx.HTTPError as e:
            logger.error(f"Failed to {description}: {e}")
            raise BitbucketError(f"Failed to {description}: {e}") from e

    def repository_exists(self, workspace: str, repo_slug: str) -> bool:
        response = self.client.get(f"/repositories/{workspace}/{repo_slug}")
        if response.status_code == 200:
            logger.info(
                f"Repository '{repo_slug}' found in Workspace '{workspace}' "
                f"created at '{response.json().get('created_on')}'"
            )
            return True
        return False

    def folder_exists(self, workspace: str, repo_slug: str, folder_path: str, branch: str = DEFAULT_BRANCH) -> bool:
        response = self.client.get(f"/repositories/{workspace}/{repo_slug}/src/{branch}/{folder_path}")
        return response.status_code == 200

    def delete_repository(self, workspace: str, repo_slug: str) -> bool:
        response = self.client.delete(f"/repositories/{workspace}/{repo_slug}")
        if response.status_code == 204:
            logger.info(f"Delete repository '{repo_slug}' from Workspace '{workspace}'")
            return True
        logger.error(f"Error deleting repository {workspace}/{repo_slug}: status {response.status_code}")
        return False

    def create_commit(
        self,
        workspace: str,
        repo_slug: str,
        branch: str,
        file_name: str,
        content: str,
        message: str = "Automatic commit generated from tests",
    ) -> None:
        """Add or update one file on ``branch`` (creating the branch if needed)."""
        self._action(
            f"commit {file_name}",
            "POST",
            f"/repositories/{workspace}/{repo_slug}/src",
            data={file_name: content, "message": message, "branch": branch},
        )
        logger.info(f"Commit successfully created on {workspace}/{repo_slug}@{branch}")

    def create_pull_request(self, workspace: str, repo_slug: str, file_name: str, content: str) -> str:
        """Commit a file to a fresh branch and open a pull request to main; returns the PR id."""
        branch = f"test-{generate_random_chars(6)}"
        self.create_commit(workspace, repo_slug, branch, file_name, content)

        data = self._action(
            "create pull request",
            "POST",
            f"/repositories/{workspace}/{repo_slug}/pullrequests",
            json={
                "title": "PR created by automated tests",
                "source": {"branch": {"name": branch}},
                "destination": {"branch": {"name": DEFAULT_BRANCH}},
                "close_source_branch": True,
            },
        ).json()
        logger.info(f"Pull request {data['id']} created")
        return str(data["id"])

    def merge_pull_request(self, workspace: str, repo_slug: str, pull_request_id: str) -> Dict[str, Any]:
        data = self._action(
            f"merge pull request {pull_request_id}",
            "POST",
            f"/repositories/{workspace}/{repo_slug}/pullrequests/{pull_request_id}/merge",
            json={"type": "pullrequest", "merge_strategy": "merge_commit"},
        ).json()
        logger.info(f"Pull request {pull_request_id} merged successfully")
        return data

    def create_webhook(self, workspace: str, repo_slug: str, webhook_url: str) -> str:
        data = self._action(
            "create webhook",
            "POST",
            f"/repositories/{workspace}/{repo_slug}/hooks",
            json={
                "description": "tssc-e2e webhook",
                "url": webhook_url,
                "active": True,
                "skip_cert_verification": True,
                "events": ["repo:push", "pullrequest:created", "pullrequest:updated", "pullrequest:fulfilled"],
            },
        ).json()
        return str(data.get("uuid", ""))

    def close(self) -> None:
        self.client.close()

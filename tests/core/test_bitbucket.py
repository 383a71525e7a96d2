# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""Tests for the Bitbucket REST client."""

import json
from typing import List
from urllib.parse import parse_qs

import httpx
import pytest

from tssc_e2e.core.bitbucket import BitbucketClient
from tssc_e2e.core.errors import BitbucketError


class TestBitbucketClient:
    """Test cases for BitbucketClient."""

    def setup_method(self) -> None:
        """Set up recorded requests."""
        self.requests: List[httpx.Request] = []

    def _client(self, handler) -> BitbucketClient:
        def recording(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        http_client = httpx.Client(
            base_url="https://api.bitbucket.org/2.0", transport=httpx.MockTransport(recording)
        )
        return BitbucketClient("user", "app-password", http_client=http_client)

    def test_default_client_uses_basic_auth(self) -> None:
        """Test that the default client authenticates with the app password."""
        client = BitbucketClient("user", "app-password")
        try:
            assert client.client.auth is not None
            assert str(client.client.base_url).startswith("https://api.bitbucket.org/2.0")
        finally:
            client.close()

    def test_repository_exists(self) -> None:
        """Test repository existence checks."""
        client = self._client(lambda request: httpx.Response(
            200 if request.url.path.endswith("/app") else 404, json={"created_on": "2025-01-01"}
        ))

        assert client.repository_exists("ws", "app")
        assert not client.repository_exists("ws", "other")

    def test_folder_exists(self) -> None:
        """Test folder checks on the main branch."""
        client = self._client(lambda request: httpx.Response(200, json={}))

        assert client.folder_exists("ws", "app", "rhtap")
        assert self.requests[0].url.path.endswith("/repositories/ws/app/src/main/rhtap")

    def test_delete_repository(self) -> None:
        """Test repository deletion status handling."""
        client = self._client(lambda request: httpx.Response(204))
        assert client.delete_repository("ws", "app")

        client = self._client(lambda request: httpx.Response(403))
        assert not client.delete_repository("ws", "app")

    def test_create_pull_request(self) -> None:
        """Test commit to a fresh branch followed by a pull request."""

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path.endswith("/src"):
                return httpx.Response(201)
            return httpx.Response(201, json={"id": 8})

        client = self._client(handler)

        assert client.create_pull_request("ws", "app", "README.md", "content") == "8"

        commit_form = parse_qs(self.requests[0].content.decode())
        branch = commit_form["branch"][0]
        assert branch.startswith("test-")
        assert commit_form["README.md"] == ["content"]

        pull_request = json.loads(self.requests[1].content)
        assert pull_request["source"]["branch"]["name"] == branch
        assert pull_request["destination"]["branch"]["name"] == "main"

    def test_merge_pull_request(self) -> None:
        """Test merging a pull request."""
        client = self._client(lambda request: httpx.Response(200, json={"state": "MERGED"}))

        assert client.merge_pull_request("ws", "app", "8") == {"state": "MERGED"}
        assert self.requests[0].url.path.endswith("/pullrequests/8/merge")

    def test_action_errors_raise(self) -> None:
        """Test that failed actions raise BitbucketError."""
        client = self._client(lambda request: httpx.Response(400, json={"error": "bad"}))

        with pytest.raises(BitbucketError, match="merge pull request 8"):
            client.merge_pull_request("ws", "app", "8")

    def test_create_webhook(self) -> None:
        """Test webhook creation."""
        client = self._client(lambda request: httpx.Response(201, json={"uuid": "{abc}"}))

        assert client.create_webhook("ws", "app", "https://hooks.example.com") == "{abc}"
        body = json.loads(self.requests[0].content)
        assert "repo:push" in body["events"]

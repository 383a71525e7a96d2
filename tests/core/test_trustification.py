# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""Tests for the Trustification SBOM client."""

from typing import Callable, List
from urllib.parse import parse_qs

import httpx
import pytest

from tssc_e2e.core.errors import TrustificationError, WaitTimeoutError
from tssc_e2e.core.polling import PollPolicy
from tssc_e2e.core.trustification import TrustificationClient

BOMBASTIC_URL = "https://sbom.apps.example.com"
OIDC_URL = "https://sso.apps.example.com/realms/chicken"
SBOM = {"id": "sha256:0a1b2c3d", "name": "0a1b2c3d"}


class TestTrustificationClient:
    """Test cases for TrustificationClient."""

    def setup_method(self) -> None:
        """Set up recorded requests."""
        self.requests: List[httpx.Request] = []

    def _client(self, handler: Callable[[httpx.Request], httpx.Response]) -> TrustificationClient:
        def recording(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        http_client = httpx.Client(transport=httpx.MockTransport(recording))
        return TrustificationClient(
            BOMBASTIC_URL, OIDC_URL, "walker", "s3cret", policy=PollPolicy(interval=0), http_client=http_client
        )

    def test_missing_settings(self) -> None:
        """Test that every endpoint and credential is required."""
        with pytest.raises(TrustificationError, match="OIDC_ISSUER_URL, OIDC_CLIENT_SECRET"):
            TrustificationClient(BOMBASTIC_URL, None, "walker", "")

    def test_initialize_tpa_token(self) -> None:
        """Test the client credentials grant."""
        client = self._client(lambda request: httpx.Response(200, json={"access_token": "tpa-token"}))

        assert client.initialize_tpa_token() == "tpa-token"

        request = self.requests[0]
        assert request.method == "POST"
        assert str(request.url) == f"{OIDC_URL}/protocol/openid-connect/token"
        assert request.headers["Content-Type"] == "application/x-www-form-urlencoded"
        assert parse_qs(request.content.decode()) == {
            "client_id": ["walker"],
            "client_secret": ["s3cret"],
            "grant_type": ["client_credentials"],
        }

    def test_initialize_tpa_token_error(self) -> None:
        """Test that a rejected grant raises."""
        client = self._client(lambda request: httpx.Response(401, json={"error": "unauthorized_client"}))

        with pytest.raises(TrustificationError, match="TPA token"):
            client.initialize_tpa_token()

    def test_search_uses_bearer_token(self) -> None:
        """Test that searches send the token and the query."""
        client = self._client(lambda request: httpx.Response(200, json={"result": [SBOM]}))
        client.token = "tpa-token"

        assert client.search_sbom_by_name("0a1b2c3d") == [SBOM]

        request = self.requests[0]
        assert request.url.path == "/api/v1/sbom/search"
        assert request.url.params["q"] == "0a1b2c3d"
        assert request.headers["Authorization"] == "Bearer tpa-token"

    def test_wait_for_sbom_search_by_name(self) -> None:
        """Test waiting until exactly one SBOM matches."""
        responses = iter([
            httpx.Response(404),
            httpx.Response(200, json={"result": []}),
            httpx.Response(200, json={"result": [SBOM]}),
        ])
        client = self._client(lambda request: next(responses))

        assert client.wait_for_sbom_search_by_name("0a1b2c3d", timeout=30) == [SBOM]
        assert len(self.requests) == 3

    def test_wait_for_sbom_ignores_ambiguous_results(self) -> None:
        """Test that several matches keep the wait going."""
        responses = iter([
            httpx.Response(200, json={"result": [SBOM, SBOM]}),
            httpx.Response(200, json={"result": [SBOM]}),
        ])
        client = self._client(lambda request: next(responses))

        assert client.wait_for_sbom_search_by_name("0a1b2c3d", timeout=30) == [SBOM]

    def test_wait_for_sbom_times_out(self) -> None:
        """Test that a missing SBOM raises after the timeout."""
        client = self._client(lambda request: httpx.Response(200, json={"result": []}))

        with pytest.raises(WaitTimeoutError, match="No SBOM found for '0a1b2c3d'"):
            client.wait_for_sbom_search_by_name("0a1b2c3d", timeout=0.05)

    def test_exported_from_core(self) -> None:
        """Test the lazy export from the core package."""
        from tssc_e2e import core

        assert core.TrustificationClient is TrustificationClient

# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""Client for the Trustification (RHTPA) SBOM index."""

import logging
from typing import Any, Dict, List, Optional

import httpx

from .errors import TrustificationError, WaitTimeoutError
from .polling import PollPolicy, wait_for

logger = logging.getLogger(__name__)

SBOM_SEARCH_TIMEOUT = 300.0


class TrustificationClient:
    """Searches the SBOMs uploaded by the gitops pipelines."""

    def __init__(
        self,
        bombastic_api_url: Optional[str],
        oidc_issuer_url: Optional[str],
        client_id: Optional[str],
        client_secret: Optional[str],
        timeout: float = 30.0,
        policy: Optional[PollPolicy] = None,
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        """Initialize Trustification client.

        Args:
            bombastic_api_url: Base URL of the bombastic SBOM API
            oidc_issuer_url: OIDC realm issuing the API token
            client_id: OIDC client id
            client_secret: OIDC client secret
            timeout: Request timeout in seconds
            policy: Default polling policy for SBOM searches
            http_client: Preconfigured client, mainly for tests
        """
        missing = [
            name
            for name, value in (
                ("BOMBASTIC_API_URL", bombastic_api_url),
                ("OIDC_ISSUER_URL", oidc_issuer_url),
                ("OIDC_CLIENT_ID", client_id),
                ("OIDC_CLIENT_SECRET", client_secret),
            )
            if not value
        ]
        if missing:
            raise TrustificationError(
                f"Cannot initialize TrustificationClient, missing {', '.join(missing)} environment variable(s)"
            )

        self.bombastic_api_url = str(bombastic_api_url).rstrip("/")
        self.oidc_issuer_url = str(oidc_issuer_url).rstrip("/")
        self.client_id = str(client_id)
        self.client_secret = str(client_secret)
        self.policy = policy or PollPolicy(interval=5.0)
        self.client = http_client or httpx.Client(timeout=timeout)
        self.token = ""

    def initialize_tpa_token(self) -> str:
        """Fetch an access token with the OIDC client credentials grant."""
        try:
            response = self.client.post(
                f"{self.oidc_issuer_url}/protocol/openid-connect/token",
                data={
                    "client_id": self.client_id,
                    "client_secret": self.client_secret,
                    "grant_type": "client_credentials",
                },
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Error getting TPA token: {e}")
            raise TrustificationError(f"Error getting TPA token: {e}") from e

        token = response.json().get("access_token")
        if token:
            self.token = str(token)
            logger.info("TPA token is set for trustification")
        return self.token

    def search_sbom_by_name(self, name: str) -> List[Dict[str, Any]]:
        response = self.client.get(
            f"{self.bombastic_api_url}/api/v1/sbom/search",
            params={"q": name},
            headers={"Authorization": f"Bearer {self.token}", "Accept": "*/*"},
        )
        response.raise_for_status()
        return list(response.json().get("result") or [])

    def _single_match_or_none(self, name: str) -> Optional[List[Dict[str, Any]]]:
        result = self.search_sbom_by_name(name)
        if len(result) == 1:
            logger.info(f"SBOM for '{name}' retrieved successfully. Found 1 result.")
            return result
        logger.info(f"No SBOM found for '{name}' yet. Retrying...")
        return None

    def wait_for_sbom_search_by_name(
        self, name: str, timeout: float = SBOM_SEARCH_TIMEOUT
    ) -> List[Dict[str, Any]]:
        """Wait until exactly one SBOM matches ``name``.

        Raises:
            WaitTimeoutError: If no single match appears within ``timeout`` seconds
        """
        result = wait_for(
            lambda: self._single_match_or_none(name),
            self.policy.with_timeout(timeout),
            description=f"SBOM '{name}'",
        )
        if result is None:
            raise WaitTimeoutError(f"Timeout: No SBOM found for '{name}' within {timeout:g} seconds.")
        return result

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> "TrustificationClient":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

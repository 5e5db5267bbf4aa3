"""
Vault Server API Client

Provides a Python interface to the Vault system endpoints used during
bootstrap: initialization status, seal status, initialize and unseal.
"""

import logging
import time
from typing import Any, Dict, Optional, Union
from urllib.parse import urljoin

import requests

from .exceptions import ServerAPIError

logger = logging.getLogger(__name__)


class VaultServerClient:
    """Client for the local Vault server's sys API."""

    def __init__(
        self,
        vault_addr: str,
        timeout: int = 10,
        retry_attempts: int = 3,
        retry_delay: float = 1.0,
        verify: Union[bool, str] = True,
    ):
        """
        Initialize the Vault client.

        Args:
            vault_addr: The URL of the Vault API (e.g., https://127.0.0.1:8200)
            timeout: Request timeout in seconds
            retry_attempts: Number of attempts for idempotent requests
            retry_delay: Base delay between retries in seconds
            verify: TLS verification flag or path to a CA bundle
        """
        self.vault_addr = vault_addr.rstrip("/")
        self.timeout = timeout
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self.session = requests.Session()
        self.session.verify = verify
        self.session.headers.update({"Content-Type": "application/json"})

    def _url(self, endpoint: str) -> str:
        return urljoin(self.vault_addr + "/", endpoint.lstrip("/"))

    def _request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Dict] = None,
        attempts: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Make a request to the Vault API with retries.

        Args:
            method: HTTP method (GET, PUT)
            endpoint: API endpoint path
            data: Request body data
            attempts: Number of attempts, defaults to ``retry_attempts``

        Returns:
            Response data as a dictionary

        Raises:
            ServerAPIError: If all attempts fail
        """
        url = self._url(endpoint)
        attempts = attempts or self.retry_attempts

        for attempt in range(attempts):
            try:
                response = self.session.request(
                    method=method,
                    url=url,
                    json=data,
                    timeout=self.timeout,
                )
                response.raise_for_status()

                if response.content:
                    return response.json()
                return {}

            except requests.RequestException as e:
                if attempt < attempts - 1:
                    logger.warning(
                        f"Request to {url} failed (attempt {attempt + 1}): {e}"
                    )
                    time.sleep(self.retry_delay * (attempt + 1))
                else:
                    logger.error(f"Request to {url} failed after {attempts} attempts")
                    status_code = getattr(e.response, "status_code", None)
                    raise ServerAPIError(f"{method} {url} failed: {e}", status_code) from e

    def is_reachable(self, endpoint: str) -> bool:
        """
        Check whether an endpoint answers at all, regardless of status.

        Args:
            endpoint: API endpoint path

        Returns:
            True if any HTTP response was received
        """
        try:
            self.session.get(self._url(endpoint), timeout=self.timeout)
            return True
        except requests.RequestException as e:
            logger.debug(f"{endpoint} not reachable yet: {e}")
            return False

    def api_ready(self) -> bool:
        """Return True once both status endpoints respond."""
        return self.is_reachable("/v1/sys/init") and self.is_reachable(
            "/v1/sys/seal-status"
        )

    def init_status(self) -> Dict[str, Any]:
        """
        Get the initialization status.

        Returns:
            Dictionary with an ``initialized`` flag
        """
        return self._request("GET", "/v1/sys/init")

    def is_initialized(self) -> bool:
        return bool(self.init_status().get("initialized"))

    def seal_status(self) -> Dict[str, Any]:
        """
        Get the current seal status.

        Returns:
            Seal status information (sealed, t, n, progress)
        """
        return self._request("GET", "/v1/sys/seal-status")

    def is_sealed(self) -> bool:
        return bool(self.seal_status().get("sealed", True))

    def initialize(self, secret_shares: int, secret_threshold: int) -> Dict[str, Any]:
        """
        Initialize the server, generating the master key shares.

        Sent exactly once; a retry against a partially initialized server is
        undefined.

        Args:
            secret_shares: Number of shares to split the master key into
            secret_threshold: Number of shares required to unseal

        Returns:
            Initialization result including:
            - keys: The hex-encoded shares (SENSITIVE - do not log)
            - keys_base64: The base64-encoded shares
            - root_token: The initial root token (SENSITIVE - do not log)
        """
        return self._request(
            "PUT",
            "/v1/sys/init",
            data={
                "secret_shares": secret_shares,
                "secret_threshold": secret_threshold,
            },
            attempts=1,
        )

    def unseal(self, key: str) -> Dict[str, Any]:
        """
        Submit one unseal key share.

        Args:
            key: The share to submit

        Returns:
            Updated seal status
        """
        return self._request("PUT", "/v1/sys/unseal", data={"key": key}, attempts=1)

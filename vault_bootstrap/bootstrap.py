"""
Vault Cluster Bootstrap

Run by the node that won the initializer election: initializes Vault once and
distributes the resulting Shamir shares and root token into the shared store.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

from .config import BootstrapConfig
from .exceptions import BootstrapError, ObjectStoreError, ServerAPIError
from .log import log_ok
from .object_store import ObjectStore
from .server_client import VaultServerClient

logger = logging.getLogger(__name__)

SUCCESS = "success"
PARTIAL_FAILURE = "partial_failure"


@dataclass
class BootstrapResult:
    """Outcome of distributing the initialization secrets."""

    written: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def status(self) -> str:
        return PARTIAL_FAILURE if self.failed else SUCCESS

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "written": list(self.written),
            "skipped": list(self.skipped),
            "failed": dict(self.failed),
        }


def parse_init_response(
    response: Dict[str, Any], secret_shares: int
) -> Tuple[List[str], str]:
    """
    Extract the shares and root token from an initialize response.

    Args:
        response: Body returned by ``PUT /v1/sys/init``
        secret_shares: Number of shares that were requested

    Returns:
        Tuple of (shares, root token)

    Raises:
        BootstrapError: If the response is missing data
    """
    shares = response.get("keys") or response.get("keys_base64") or []
    root_token = response.get("root_token")

    if len(shares) != secret_shares:
        raise BootstrapError(
            f"Expected {secret_shares} unseal keys from initialize, got {len(shares)}"
        )
    if not root_token:
        raise BootstrapError("Initialize response did not contain a root token")

    return list(shares), root_token


class Bootstrapper:
    """Initialize a Vault cluster and publish its secrets."""

    def __init__(
        self,
        client: VaultServerClient,
        store: ObjectStore,
        config: BootstrapConfig,
    ):
        """
        Initialize the bootstrapper.

        Args:
            client: VaultServerClient for the local server
            store: Shared object store receiving the secrets
            config: Bootstrap configuration
        """
        self.client = client
        self.store = store
        self.config = config

    def bootstrap(self, cluster_id: str) -> BootstrapResult:
        """
        Initialize the server and write every share and the root token.

        Args:
            cluster_id: Cluster identifier used in log messages

        Returns:
            BootstrapResult listing written, skipped and failed keys

        Raises:
            BootstrapError: If initialization itself fails
        """
        logger.info(
            f"[{cluster_id}] Initializing Vault with {self.config.secret_shares} "
            f"shares, threshold {self.config.secret_threshold}"
        )
        try:
            response = self.client.initialize(
                secret_shares=self.config.secret_shares,
                secret_threshold=self.config.secret_threshold,
            )
        except ServerAPIError as e:
            raise BootstrapError(f"Vault initialization failed: {e}") from e

        shares, root_token = parse_init_response(response, self.config.secret_shares)
        log_ok(logger, f"[{cluster_id}] Vault initialized")

        result = BootstrapResult()
        for index, share in enumerate(shares, start=1):
            self._write_once(self.config.share_key(index), share, result)
        self._write_once(self.config.root_token_key, root_token, result)

        if result.ok:
            log_ok(logger, f"[{cluster_id}] Stored {len(result.written)} secrets in the bucket")
        else:
            logger.error(
                f"[{cluster_id}] Failed to store {len(result.failed)} secret(s): "
                f"{', '.join(result.failed)}"
            )
        return result

    def _write_once(self, key: str, value: str, result: BootstrapResult) -> None:
        """
        Store ``value`` at ``key`` unless an object is already there.

        An existing object is never overwritten. It is accepted when it holds
        the same bytes and recorded as a failure otherwise, since the freshly
        generated secret would be lost.

        Args:
            key: Object key
            value: Secret value, never logged
            result: Result being accumulated
        """
        data = value.encode("utf-8")
        try:
            if self.store.exists(key):
                if self.store.get(key) == data:
                    logger.info(f"{key} already holds this value, leaving it untouched")
                    result.skipped.append(key)
                else:
                    logger.error(
                        f"{key} already holds a different value from an earlier "
                        "initialization; it must be removed before bootstrapping"
                    )
                    result.failed[key] = "conflicting value already stored"
                return
            self.store.put(key, data)
        except ObjectStoreError as e:
            logger.error(f"Failed to store {key}: {e}")
            result.failed[key] = str(e)
            return

        logger.info(f"Stored {key}")
        result.written.append(key)

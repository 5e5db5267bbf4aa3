"""
Unseal coordination.

Every node fetches the first ``secret_threshold`` shares from the shared
store and feeds them to its local server. Shares are awaited one at a time
with a bounded poll each, so the wait for a late share does not restart
the clock for shares already present, and a timeout names the missing share.
"""

import logging
import time
from typing import Any, Callable, Dict, List

from .config import BootstrapConfig
from .exceptions import ObjectStoreError, ServerAPIError, UnsealError
from .log import log_ok
from .object_store import ObjectStore
from .polling import poll_until
from .server_client import VaultServerClient

logger = logging.getLogger(__name__)


class UnsealCoordinator:
    """Fetch the unseal quorum from the store and unseal the local server."""

    def __init__(
        self,
        client: VaultServerClient,
        store: ObjectStore,
        config: BootstrapConfig,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.store = store
        self.config = config
        self.sleep = sleep

    def _share_present(self, key: str) -> bool:
        try:
            return self.store.exists(key)
        except ObjectStoreError as e:
            logger.warning(f"Could not check for {key}: {e}")
            return False

    def fetch_share(self, index: int) -> str:
        """
        Wait for share ``index`` to appear in the store and read it.

        Args:
            index: 1-based share number

        Returns:
            The share value

        Raises:
            UnsealError: If the share does not appear in time or cannot be read
        """
        key = self.config.share_key(index)
        found = poll_until(
            lambda: self._share_present(key),
            interval=self.config.share_poll_interval,
            max_attempts=self.config.share_poll_attempts,
            sleep=self.sleep,
            description=key,
        )
        if not found:
            raise UnsealError(
                f"Share {index} ({key}) not found after "
                f"{self.config.share_poll_attempts} attempts"
            )

        try:
            value = self.store.get(key)
        except ObjectStoreError as e:
            raise UnsealError(f"Share {index} ({key}) exists but could not be read: {e}") from e

        try:
            share = value.decode("utf-8").strip()
        except UnicodeDecodeError as e:
            raise UnsealError(f"Share {index} ({key}) is not valid UTF-8: {e}") from e

        logger.info(f"Retrieved share {index} from {key}")
        return share

    def unseal(self, cluster_id: str) -> Dict[str, Any]:
        """
        Unseal the local server with the first ``secret_threshold`` shares.

        Args:
            cluster_id: Cluster identifier used in log messages

        Returns:
            Dictionary with the submitted share indexes and final seal status

        Raises:
            UnsealError: On any missing share, read failure or rejection
        """
        threshold = self.config.secret_threshold
        logger.info(f"[{cluster_id}] Collecting {threshold} unseal shares")

        shares: List[str] = [self.fetch_share(index) for index in range(1, threshold + 1)]

        status: Dict[str, Any] = {}
        for index, share in enumerate(shares, start=1):
            try:
                status = self.client.unseal(share)
            except ServerAPIError as e:
                raise UnsealError(f"Vault rejected share {index}: {e}") from e
            logger.info(
                f"[{cluster_id}] Submitted share {index}/{threshold}, "
                f"progress {status.get('progress', '?')}"
            )

        if status.get("sealed", True):
            raise UnsealError(
                f"Vault is still sealed after submitting {threshold} shares"
            )

        log_ok(logger, f"[{cluster_id}] Vault unsealed")
        return {
            "shares_submitted": list(range(1, threshold + 1)),
            "sealed": False,
            "status": status,
        }

"""
Bootstrap orchestration

Sequences one node's bootstrap run: wait for the local server, stop early if
it is already unsealed, elect an initializer for a fresh cluster, bootstrap
it when this node wins, and always finish by unsealing.

Every step is safe to re-enter, so a failed run simply exits non-zero and
relies on the process supervisor to start it again.
"""

import enum
import logging
import time
from functools import partial
from typing import Callable, Optional

from .bootstrap import Bootstrapper
from .config import BootstrapConfig
from .election import Election, ElectionOutcome, SettleWindowElection
from .exceptions import BootstrapError, ServerAPIError, UnsealError
from .log import log_ok
from .object_store import ObjectStore
from .polling import poll_until
from .process import server_process_running
from .server_client import VaultServerClient
from .unseal import UnsealCoordinator

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_FAILURE = 1


class State(enum.Enum):
    """Orchestrator states, in the order a fresh node walks through them."""

    WAIT_SERVER_PROCESS = "wait_server_process"
    WAIT_API_READY = "wait_api_ready"
    CHECK_UNSEALED = "check_unsealed"
    CHECK_INITIALIZED = "check_initialized"
    ELECT = "elect"
    BOOTSTRAP = "bootstrap"
    UNSEAL = "unseal"
    DONE = "done"
    FAILED = "failed"


class Orchestrator:
    """Drive a node from a freshly started server to an unsealed one."""

    def __init__(
        self,
        client: VaultServerClient,
        store: ObjectStore,
        config: BootstrapConfig,
        election: Optional[Election] = None,
        bootstrapper: Optional[Bootstrapper] = None,
        unsealer: Optional[UnsealCoordinator] = None,
        process_probe: Optional[Callable[[], bool]] = None,
        sleep: Callable[[float], None] = time.sleep,
        max_wait_attempts: Optional[int] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            client: VaultServerClient for the local server
            store: Shared object store
            config: Bootstrap configuration
            election: Election implementation, settle-window by default
            bootstrapper: Bootstrapper run when this node wins
            unsealer: UnsealCoordinator run on every node
            process_probe: Returns True once the server process exists
            sleep: Sleep function shared by every wait
            max_wait_attempts: Cap on the readiness waits, None waits forever
        """
        self.client = client
        self.store = store
        self.config = config
        self.sleep = sleep
        self.max_wait_attempts = max_wait_attempts
        self.cluster_id = f"{config.bucket}/{config.region}"

        self.election = election or SettleWindowElection(
            store,
            config.lock_key,
            settle_seconds=config.settle_seconds,
            sleep=sleep,
        )
        self.bootstrapper = bootstrapper or Bootstrapper(client, store, config)
        self.unsealer = unsealer or UnsealCoordinator(client, store, config, sleep=sleep)
        self.process_probe = process_probe or partial(
            server_process_running, config.server_process_name
        )

        self.state = State.WAIT_SERVER_PROCESS
        self.election_outcome: Optional[ElectionOutcome] = None

    def _enter(self, state: State) -> None:
        logger.debug(f"[{self.cluster_id}] {self.state.value} -> {state.value}")
        self.state = state

    def _wait(self, check: Callable[[], bool], description: str) -> bool:
        return poll_until(
            check,
            interval=self.config.readiness_interval,
            max_attempts=self.max_wait_attempts,
            sleep=self.sleep,
            description=description,
        )

    def _fail(self, message: str) -> int:
        logger.error(f"[{self.cluster_id}] {message}")
        self._enter(State.FAILED)
        return EXIT_FAILURE

    def run(self) -> int:
        """
        Execute the bootstrap state machine once.

        Returns:
            Process exit code, 0 on success and 1 on any fatal failure
        """
        self._enter(State.WAIT_SERVER_PROCESS)
        logger.info(f"[{self.cluster_id}] Waiting for {self.config.server_process_name} process")
        if not self._wait(self.process_probe, "server process"):
            return self._fail("Vault server process never appeared")

        self._enter(State.WAIT_API_READY)
        logger.info(f"[{self.cluster_id}] Waiting for Vault API at {self.config.vault_addr}")
        if not self._wait(self.client.api_ready, "Vault API"):
            return self._fail("Vault API never became reachable")

        try:
            self._enter(State.CHECK_UNSEALED)
            if not self.client.is_sealed():
                log_ok(logger, f"[{self.cluster_id}] Vault is already unsealed")
                self._enter(State.DONE)
                return EXIT_SUCCESS

            self._enter(State.CHECK_INITIALIZED)
            if not self.client.is_initialized():
                logger.info(f"[{self.cluster_id}] Vault is not initialized")
                if not self._elect_and_bootstrap():
                    return EXIT_FAILURE
            else:
                logger.info(f"[{self.cluster_id}] Vault is already initialized")

            self._enter(State.UNSEAL)
            self.unsealer.unseal(self.cluster_id)
        except BootstrapError as e:
            return self._fail(f"Bootstrap failed: {e}")
        except UnsealError as e:
            return self._fail(f"Unseal failed: {e}")
        except ServerAPIError as e:
            return self._fail(f"Vault status check failed: {e}")

        self._enter(State.DONE)
        log_ok(logger, f"[{self.cluster_id}] Bootstrap run complete")
        return EXIT_SUCCESS

    def _elect_and_bootstrap(self) -> bool:
        """
        Run the election and, on a win, the bootstrapper.

        Returns:
            False if bootstrapping ran and did not fully succeed
        """
        self._enter(State.ELECT)
        self.election_outcome = self.election.attempt_election(self.cluster_id)

        if self.election_outcome is not ElectionOutcome.WON:
            logger.info(
                f"[{self.cluster_id}] Election {self.election_outcome.value}, "
                "waiting for the initializer to publish shares"
            )
            return True

        self._enter(State.BOOTSTRAP)
        result = self.bootstrapper.bootstrap(self.cluster_id)
        if not result.ok:
            self._fail(f"Bootstrap finished with status {result.status}")
            return False
        return True

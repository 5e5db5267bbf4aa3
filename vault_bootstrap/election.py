"""
Initializer election over the shared object store.

Decides which node of an uninitialized cluster runs ``vault operator init``.
The lock object behaves as a last-writer-wins register: candidates that find
no lock write their identifier, wait for concurrent writes to settle, then
re-read. Whoever still sees its own identifier has won.

Known weaknesses of the settle-window protocol:

- The existence check and the write are not atomic. Two candidates whose
  writes land more than ``settle_seconds`` apart on a store without
  read-after-write consistency can both win.
- Lock cleanup after a win is best effort. If the delete fails the lock
  object stays behind and every later election on that bucket is lost until
  it is removed by hand.
"""

import enum
import logging
import socket
import time
import uuid
from abc import ABC, abstractmethod
from typing import Callable, Optional

from .exceptions import ObjectNotFoundError, ObjectStoreError
from .log import log_ok
from .object_store import ObjectStore

logger = logging.getLogger(__name__)


class ElectionOutcome(enum.Enum):
    """Result of one node's election attempt."""

    WON = "won"
    LOST = "lost"
    ERROR = "error"


def make_candidate_id(hostname: Optional[str] = None) -> str:
    """Build an identifier unique per node and per attempt."""
    hostname = hostname or socket.gethostname()
    return f"{hostname}-{time.time_ns()}-{uuid.uuid4().hex[:8]}"


class Election(ABC):
    """Chooses at most one initializer for a cluster."""

    @abstractmethod
    def attempt_election(self, cluster_id: str) -> ElectionOutcome:
        """Run one election attempt for ``cluster_id``."""
        pass


class SettleWindowElection(Election):
    """Last-writer-wins election on a lock object with a settle delay."""

    def __init__(
        self,
        store: ObjectStore,
        lock_key: str,
        settle_seconds: float = 10.0,
        sleep: Callable[[float], None] = time.sleep,
        candidate_factory: Callable[[], str] = make_candidate_id,
    ):
        """
        Initialize the election.

        Args:
            store: Shared object store holding the lock
            lock_key: Key of the lock object
            settle_seconds: Time to let concurrent writes land
            sleep: Sleep function, replaceable in tests
            candidate_factory: Generates the candidate identifier
        """
        self.store = store
        self.lock_key = lock_key
        self.settle_seconds = settle_seconds
        self.sleep = sleep
        self.candidate_factory = candidate_factory

    def attempt_election(self, cluster_id: str) -> ElectionOutcome:
        candidate = self.candidate_factory()
        logger.info(f"[{cluster_id}] Entering initializer election as {candidate}")

        try:
            if self.store.exists(self.lock_key):
                logger.info(
                    f"[{cluster_id}] Lock {self.lock_key} already present, "
                    "another node is initializing"
                )
                return ElectionOutcome.LOST
        except ObjectStoreError as e:
            logger.error(f"[{cluster_id}] Could not check election lock: {e}")
            return ElectionOutcome.ERROR

        try:
            self.store.put(self.lock_key, candidate.encode("utf-8"))
        except ObjectStoreError as e:
            # Usually a concurrent candidate; the comparison below detects it.
            logger.warning(f"[{cluster_id}] Failed to write election lock: {e}")

        logger.debug(f"[{cluster_id}] Waiting {self.settle_seconds}s for election to settle")
        self.sleep(self.settle_seconds)

        try:
            current = self.store.get(self.lock_key).decode("utf-8")
        except ObjectNotFoundError:
            logger.info(f"[{cluster_id}] Election lock vanished, another node won")
            return ElectionOutcome.LOST
        except (ObjectStoreError, UnicodeDecodeError) as e:
            logger.error(f"[{cluster_id}] Could not re-read election lock: {e}")
            return ElectionOutcome.ERROR

        if current != candidate:
            logger.info(f"[{cluster_id}] Lost election to {current}")
            return ElectionOutcome.LOST

        log_ok(logger, f"[{cluster_id}] Won initializer election as {candidate}")
        try:
            self.store.delete(self.lock_key)
        except ObjectStoreError as e:
            logger.warning(
                f"[{cluster_id}] Could not remove election lock {self.lock_key}, "
                f"it must be deleted manually before another election: {e}"
            )
        return ElectionOutcome.WON

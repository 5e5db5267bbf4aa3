"""
Pytest fixtures for Vault Bootstrap tests.
"""

import os
import threading
from typing import Dict, List, Optional, Set
from unittest.mock import patch

import pytest

from vault_bootstrap.config import BootstrapConfig
from vault_bootstrap.exceptions import (
    ObjectNotFoundError,
    ObjectStoreError,
    ServerAPIError,
)
from vault_bootstrap.object_store import ObjectStore


class InMemoryObjectStore(ObjectStore):
    """Thread-safe dictionary-backed store with failure injection."""

    def __init__(self, objects: Optional[Dict[str, bytes]] = None):
        self.objects: Dict[str, bytes] = dict(objects or {})
        self.puts: List[tuple] = []
        self.deletes: List[str] = []
        self.fail: Dict[str, Set[str]] = {"put": set(), "get": set(), "exists": set(), "delete": set()}
        self._lock = threading.Lock()

    def _check(self, op: str, key: str) -> None:
        if key in self.fail[op]:
            raise ObjectStoreError(f"injected {op} failure for {key}", key)

    def put(self, key, data):
        self._check("put", key)
        with self._lock:
            self.puts.append((key, data))
            self.objects[key] = data

    def get(self, key):
        self._check("get", key)
        with self._lock:
            if key not in self.objects:
                raise ObjectNotFoundError(f"{key} does not exist", key)
            return self.objects[key]

    def exists(self, key):
        self._check("exists", key)
        with self._lock:
            return key in self.objects

    def delete(self, key):
        self._check("delete", key)
        with self._lock:
            self.deletes.append(key)
            self.objects.pop(key, None)


class FakeVaultCluster:
    """Cluster-wide Vault state shared by every node."""

    def __init__(self, shares: int = 5, initialized: bool = False):
        self.share_values = [f"share-{i}" for i in range(1, shares + 1)]
        self.root_token = "s.root-token"
        self.initialized = initialized
        self.threshold = 3
        self.init_calls = 0
        self._lock = threading.Lock()

    def initialize(self, secret_shares, secret_threshold):
        with self._lock:
            self.init_calls += 1
            if self.initialized:
                raise ServerAPIError("Vault is already initialized", 400)
            self.initialized = True
            self.threshold = secret_threshold
            self.share_values = [f"share-{i}" for i in range(1, secret_shares + 1)]
            return {
                "keys": list(self.share_values),
                "keys_base64": list(self.share_values),
                "root_token": self.root_token,
            }


class FakeVaultNode:
    """Stands in for VaultServerClient against one node of a FakeVaultCluster."""

    def __init__(self, cluster: FakeVaultCluster, sealed: bool = True, ready: bool = True):
        self.cluster = cluster
        self.sealed = sealed
        self.ready = ready
        self.progress = 0
        self.submitted: List[str] = []

    def api_ready(self):
        return self.ready

    def is_initialized(self):
        return self.cluster.initialized

    def is_sealed(self):
        return self.sealed

    def initialize(self, secret_shares, secret_threshold):
        return self.cluster.initialize(secret_shares, secret_threshold)

    def unseal(self, key):
        if not self.cluster.initialized or key not in self.cluster.share_values:
            raise ServerAPIError("invalid key", 400)
        self.submitted.append(key)
        self.progress += 1
        if self.progress >= self.cluster.threshold:
            self.sealed = False
            self.progress = 0
        return {"sealed": self.sealed, "progress": self.progress, "t": self.cluster.threshold}


@pytest.fixture
def store():
    """Empty in-memory object store."""
    return InMemoryObjectStore()


@pytest.fixture
def config():
    """Configuration with short waits for tests."""
    return BootstrapConfig(
        bucket="vault-bootstrap-test",
        region="eu-west-1",
        settle_seconds=10.0,
        share_poll_attempts=30,
        share_poll_interval=1.0,
        log_file=None,
    )


@pytest.fixture
def cluster():
    """Uninitialized fake Vault cluster."""
    return FakeVaultCluster()


@pytest.fixture
def node(cluster):
    """Sealed node of the fake cluster."""
    return FakeVaultNode(cluster)


@pytest.fixture
def node_factory(cluster):
    """Build additional nodes of the same fake cluster."""

    def make(**kwargs):
        return FakeVaultNode(cluster, **kwargs)

    return make


@pytest.fixture
def no_sleep():
    """Sleep replacement that records requested delays."""
    delays = []

    def sleep(seconds):
        delays.append(seconds)

    sleep.delays = delays
    return sleep


@pytest.fixture
def populated_store(config, cluster):
    """Store already holding every share and the root token."""
    objects = {
        config.share_key(i): value.encode("utf-8")
        for i, value in enumerate(cluster.share_values, start=1)
    }
    objects[config.root_token_key] = cluster.root_token.encode("utf-8")
    return InMemoryObjectStore(objects)


@pytest.fixture
def mock_env_vars():
    """Set up mock environment variables for testing."""
    env_vars = {
        "VAULT_ADDR": "https://vault.local:8200",
        "VAULT_CACERT": "/etc/vault/ca.pem",
        "VAULT_BOOTSTRAP_SHARES": "7",
        "VAULT_BOOTSTRAP_THRESHOLD": "4",
        "VAULT_BOOTSTRAP_PREFIX": "prod",
    }
    with patch.dict(os.environ, env_vars):
        yield env_vars

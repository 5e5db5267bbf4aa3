"""
Exception types raised by the Vault bootstrap components.
"""

from typing import Optional


class VaultBootstrapError(Exception):
    """Base class for all bootstrap errors."""


class ObjectStoreError(VaultBootstrapError):
    """An object store operation failed."""

    def __init__(self, message: str, key: Optional[str] = None):
        super().__init__(message)
        self.key = key


class ObjectNotFoundError(ObjectStoreError):
    """The requested object does not exist in the store."""


class ServerAPIError(VaultBootstrapError):
    """A call to the Vault HTTP API failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class BootstrapError(VaultBootstrapError):
    """Cluster initialization failed; the run must abort."""


class UnsealError(VaultBootstrapError):
    """Unsealing the local server failed; the run must abort."""

"""
Bootstrap configuration

Provides the configuration model for a bootstrap run together with loaders
for YAML/JSON files and environment variables.
"""

import json
import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Optional, Union

import yaml

DEFAULT_VAULT_ADDR = "https://127.0.0.1:8200"
DEFAULT_LOG_FILE = "/var/log/vault-bootstrap.log"

LOCK_KEY = "initializer.lock"
ROOT_TOKEN_KEY = "root-token"
SHARE_KEY_TEMPLATE = "shamir-key{index}"

# Keys accepted in configuration documents, camelCase as in the YAML files.
_FILE_KEYS = {
    "bucket": "bucket",
    "region": "region",
    "vaultAddr": "vault_addr",
    "caCert": "ca_cert",
    "tlsSkipVerify": "tls_skip_verify",
    "secretShares": "secret_shares",
    "secretThreshold": "secret_threshold",
    "keyPrefix": "key_prefix",
    "settleSeconds": "settle_seconds",
    "sharePollAttempts": "share_poll_attempts",
    "sharePollInterval": "share_poll_interval",
    "readinessInterval": "readiness_interval",
    "serverProcessName": "server_process_name",
    "logFile": "log_file",
    "requestTimeout": "request_timeout",
}


@dataclass
class BootstrapConfig:
    """Complete configuration for one node's bootstrap run."""

    bucket: str = ""
    region: str = ""
    vault_addr: str = DEFAULT_VAULT_ADDR
    ca_cert: Optional[str] = None
    tls_skip_verify: bool = False
    secret_shares: int = 5
    secret_threshold: int = 3
    key_prefix: str = ""
    settle_seconds: float = 10.0
    share_poll_attempts: int = 30
    share_poll_interval: float = 1.0
    readiness_interval: float = 1.0
    server_process_name: str = "vault"
    log_file: Optional[str] = DEFAULT_LOG_FILE
    request_timeout: int = 10

    @property
    def tls_verify(self) -> Union[bool, str]:
        """Value for the ``verify`` argument of requests."""
        if self.tls_skip_verify:
            return False
        if self.ca_cert:
            return self.ca_cert
        return True

    def object_key(self, name: str) -> str:
        """Return the full object key for a well-known name."""
        prefix = self.key_prefix.strip("/")
        if prefix:
            return f"{prefix}/{name}"
        return name

    @property
    def lock_key(self) -> str:
        return self.object_key(LOCK_KEY)

    @property
    def root_token_key(self) -> str:
        return self.object_key(ROOT_TOKEN_KEY)

    def share_key(self, index: int) -> str:
        """Key of the 1-based Shamir share ``index``."""
        return self.object_key(SHARE_KEY_TEMPLATE.format(index=index))

    def validate(self) -> None:
        """
        Check the configuration for consistency.

        Raises:
            ValueError: If a required value is missing or out of range
        """
        if not self.bucket:
            raise ValueError("bucket name is required")
        if not self.region:
            raise ValueError("bucket region is required")
        if self.secret_shares < 1:
            raise ValueError("secret_shares must be at least 1")
        if not 1 <= self.secret_threshold <= self.secret_shares:
            raise ValueError(
                f"secret_threshold must be between 1 and secret_shares "
                f"({self.secret_shares}), got {self.secret_threshold}"
            )
        if self.share_poll_attempts < 1:
            raise ValueError("share_poll_attempts must be at least 1")
        if self.settle_seconds < 0:
            raise ValueError("settle_seconds must not be negative")


def parse_config(data: Dict[str, Any]) -> BootstrapConfig:
    """
    Parse a configuration dictionary into a BootstrapConfig object.

    Both camelCase (file style) and snake_case keys are accepted.

    Args:
        data: Configuration dictionary

    Returns:
        BootstrapConfig object

    Raises:
        ValueError: If ``data`` is not a mapping
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(
            f"configuration must be a mapping, got {type(data).__name__}"
        )

    known = {f.name for f in fields(BootstrapConfig)}
    values = {}
    for key, value in data.items():
        name = _FILE_KEYS.get(key, key)
        if name in known:
            values[name] = value
    return BootstrapConfig(**values)


def load_config_from_file(config_path: str) -> BootstrapConfig:
    """
    Load bootstrap configuration from a YAML or JSON file.

    Args:
        config_path: Path to the configuration file

    Returns:
        Parsed BootstrapConfig object
    """
    with open(config_path, "r") as f:
        if config_path.endswith((".yml", ".yaml")):
            data = yaml.safe_load(f)
        else:
            data = json.load(f)

    return parse_config(data)


def _env_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes"}


def load_config_from_env(base: Optional[BootstrapConfig] = None) -> BootstrapConfig:
    """
    Load bootstrap configuration from environment variables.

    Environment variables:
        VAULT_BOOTSTRAP_CONFIG: JSON string with full configuration
        VAULT_ADDR: Vault API address
        VAULT_CACERT: CA bundle used to verify the Vault certificate
        VAULT_SKIP_VERIFY: Disable TLS verification (true/false)
        VAULT_BOOTSTRAP_SHARES: Number of Shamir shares
        VAULT_BOOTSTRAP_THRESHOLD: Number of shares required to unseal
        VAULT_BOOTSTRAP_PREFIX: Key prefix inside the bucket
        VAULT_BOOTSTRAP_LOG_FILE: Path of the lifecycle log file

    Args:
        base: Configuration to overlay the environment on (defaults to a
            fresh BootstrapConfig)

    Returns:
        Parsed BootstrapConfig object
    """
    config_json = os.environ.get("VAULT_BOOTSTRAP_CONFIG")
    if config_json:
        config = parse_config(json.loads(config_json))
    else:
        config = base or BootstrapConfig()

    overrides: Dict[str, Any] = {}
    if os.environ.get("VAULT_ADDR"):
        overrides["vault_addr"] = os.environ["VAULT_ADDR"]
    if os.environ.get("VAULT_CACERT"):
        overrides["ca_cert"] = os.environ["VAULT_CACERT"]
    if os.environ.get("VAULT_SKIP_VERIFY"):
        overrides["tls_skip_verify"] = _env_bool(os.environ["VAULT_SKIP_VERIFY"])
    if os.environ.get("VAULT_BOOTSTRAP_SHARES"):
        overrides["secret_shares"] = int(os.environ["VAULT_BOOTSTRAP_SHARES"])
    if os.environ.get("VAULT_BOOTSTRAP_THRESHOLD"):
        overrides["secret_threshold"] = int(os.environ["VAULT_BOOTSTRAP_THRESHOLD"])
    if "VAULT_BOOTSTRAP_PREFIX" in os.environ:
        overrides["key_prefix"] = os.environ["VAULT_BOOTSTRAP_PREFIX"]
    if "VAULT_BOOTSTRAP_LOG_FILE" in os.environ:
        overrides["log_file"] = os.environ["VAULT_BOOTSTRAP_LOG_FILE"] or None

    return replace(config, **overrides)

#!/usr/bin/env python3
"""
Main entry point for the Vault Bootstrap service.

Run once per node after the Vault process starts. Initializes the cluster
if this node wins the initializer election, then unseals the local server
using the shares stored in the given S3 bucket.

Usage:
    vault-bootstrap <bucket> <region>
    python -m vault_bootstrap.scripts.bootstrap my-vault-bucket eu-west-1 --config node.yaml
"""

import argparse
import json
import logging
import sys
from dataclasses import replace

import yaml

from vault_bootstrap.config import (
    BootstrapConfig,
    load_config_from_env,
    load_config_from_file,
)
from vault_bootstrap.exceptions import ObjectStoreError
from vault_bootstrap.log import configure_logging
from vault_bootstrap.object_store import S3ObjectStore
from vault_bootstrap.orchestrator import EXIT_FAILURE, Orchestrator
from vault_bootstrap.server_client import VaultServerClient

logger = logging.getLogger(__name__)


class ArgumentParser(argparse.ArgumentParser):
    """ArgumentParser that exits with status 1 on usage errors."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(EXIT_FAILURE, f"{self.prog}: error: {message}\n")


def build_parser() -> ArgumentParser:
    parser = ArgumentParser(
        description="Initialize and unseal a Vault cluster node using an S3 bucket"
    )
    parser.add_argument("bucket", help="S3 bucket holding the election lock and shares")
    parser.add_argument("region", help="Region of the S3 bucket")
    parser.add_argument(
        "--config",
        "-c",
        help="Path to configuration file (YAML or JSON)",
    )
    parser.add_argument(
        "--vault-addr",
        help="Vault API address (default: $VAULT_ADDR or https://127.0.0.1:8200)",
    )
    parser.add_argument(
        "--s3-endpoint",
        help="Custom S3-compatible endpoint URL",
    )
    parser.add_argument(
        "--log-file",
        help="Append-only lifecycle log file",
    )
    parser.add_argument(
        "--skip-preflight",
        action="store_true",
        help="Don't check bucket access before starting",
    )
    parser.add_argument(
        "--output",
        "-o",
        choices=["json", "text"],
        default="text",
        help="Output format of the final summary",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable verbose logging",
    )
    return parser


def build_config(args: argparse.Namespace) -> BootstrapConfig:
    """Merge file, environment and command line configuration."""
    base = load_config_from_file(args.config) if args.config else BootstrapConfig()
    config = load_config_from_env(base)

    overrides = {"bucket": args.bucket, "region": args.region}
    if args.vault_addr:
        overrides["vault_addr"] = args.vault_addr
    if args.log_file is not None:
        overrides["log_file"] = args.log_file or None
    config = replace(config, **overrides)
    config.validate()
    return config


def main(argv=None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=args.verbose)

    try:
        config = build_config(args)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_FAILURE

    configure_logging(config.log_file, verbose=args.verbose)

    try:
        store = S3ObjectStore(config.bucket, config.region, endpoint=args.s3_endpoint)
        if not args.skip_preflight:
            store.check_access()

        client = VaultServerClient(
            vault_addr=config.vault_addr,
            timeout=config.request_timeout,
            verify=config.tls_verify,
        )
        orchestrator = Orchestrator(client, store, config)
        exit_code = orchestrator.run()

    except ObjectStoreError as e:
        logger.error(f"Preflight failed: {e}")
        return EXIT_FAILURE
    except Exception as e:
        logger.error(f"Bootstrap failed: {e}")
        if args.verbose:
            import traceback
            traceback.print_exc()
        return EXIT_FAILURE

    summary = {
        "bucket": config.bucket,
        "region": config.region,
        "state": orchestrator.state.value,
        "election": (
            orchestrator.election_outcome.value if orchestrator.election_outcome else None
        ),
        "success": exit_code == 0,
    }
    if args.output == "json":
        print(json.dumps(summary, indent=2))
    else:
        status = "✓" if summary["success"] else "✗"
        print(f"\n{status} {config.bucket} ({config.region}): {summary['state']}")
        if summary["election"]:
            print(f"  Election: {summary['election']}")

    return exit_code


if __name__ == "__main__":
    sys.exit(main())

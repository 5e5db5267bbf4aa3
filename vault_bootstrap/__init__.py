"""
Vault Bootstrap - A Python package for bootstrapping sealed Vault clusters.

This package provides utilities for:
- Electing a single initializer node through a shared S3 bucket
- Initializing Vault and distributing the Shamir shares and root token
- Unsealing every node from the shares stored in the bucket
- Orchestrating the whole sequence idempotently on each node restart
"""

__version__ = "0.1.0"

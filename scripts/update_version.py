#!/usr/bin/env python3
"""
Version update script for Vault Bootstrap.

Sets ``__version__`` in the package and, with ``--check``, verifies that a
release tag matches the version currently in the tree.

Usage:
    ./scripts/update_version.py --version 1.0.0
    ./scripts/update_version.py --version v1.0.0 --check
"""

import argparse
import re
import sys
from pathlib import Path

VERSION_PATTERN = r'__version__\s*=\s*["\']([^"\']+)["\']'


def read_init_version(init_path: Path) -> str:
    """
    Read the __version__ string from __init__.py.

    Args:
        init_path: Path to __init__.py

    Returns:
        The version string, or an empty string if none is set
    """
    match = re.search(VERSION_PATTERN, init_path.read_text())
    return match.group(1) if match else ""


def update_init_version(init_path: Path, version: str) -> bool:
    """
    Update __init__.py version string.

    Args:
        init_path: Path to __init__.py
        version: New version string

    Returns:
        True if updated successfully
    """
    if not init_path.exists():
        print(f"Error: __init__.py not found at {init_path}")
        return False

    with open(init_path, "r") as f:
        content = f.read()

    new_content = re.sub(
        VERSION_PATTERN,
        f'__version__ = "{version}"',
        content,
    )

    with open(init_path, "w") as f:
        f.write(new_content)

    print(f"Updated __init__.py __version__: {version}")
    return True


def main():
    parser = argparse.ArgumentParser(
        description="Update the package version string"
    )
    parser.add_argument(
        "--version",
        "-v",
        required=True,
        help="Version/tag to set (e.g., 1.0.0, v1.0.0)",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Only verify that the tree already carries this version",
    )
    parser.add_argument(
        "--src-dir",
        default="vault_bootstrap",
        help="Path to source directory (default: vault_bootstrap)",
    )

    args = parser.parse_args()

    # Tags carry a 'v' prefix, __version__ does not
    version = args.version.lstrip("v")

    project_root = Path(__file__).parent.parent
    init_py = project_root / args.src_dir / "__init__.py"

    if args.check:
        current = read_init_version(init_py) if init_py.exists() else ""
        if current != version:
            print(f"Version mismatch: tree has {current or 'none'}, tag is {version}")
            return 1
        print(f"Version {version} matches")
        return 0

    if not update_init_version(init_py, version):
        return 1

    print(f"\nVersion update complete: {args.version}")
    return 0


if __name__ == "__main__":
    sys.exit(main())

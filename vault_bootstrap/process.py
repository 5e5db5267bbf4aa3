"""
Local server process detection.
"""

import logging

import psutil

logger = logging.getLogger(__name__)


def server_process_running(name: str) -> bool:
    """
    Check whether a process called ``name`` is running on this host.

    Args:
        name: Executable name, e.g. ``vault``

    Returns:
        True if at least one matching process exists
    """
    for proc in psutil.process_iter(["name"]):
        try:
            if proc.info.get("name") == name:
                return True
        except (psutil.NoSuchProcess, psutil.AccessDenied):
            continue
    logger.debug(f"No {name} process found")
    return False

"""
Logging setup for bootstrap runs.

Every lifecycle event goes to stderr and, when it can be opened, to an
append-only log file on the node.
"""

import logging
import sys
from typing import List, Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Milestone level between INFO and WARNING.
OK = 25
logging.addLevelName(OK, "OK")

_installed: List[logging.Handler] = []


def log_ok(logger: logging.Logger, msg: str, *args) -> None:
    """Log a completed lifecycle milestone at the OK level."""
    logger.log(OK, msg, *args)


def configure_logging(log_file: Optional[str] = None, verbose: bool = False) -> None:
    """
    Configure the root logger for a bootstrap run.

    Calling it again replaces the handlers installed by the previous call.

    Args:
        log_file: Path of the append-only lifecycle log, or None for stderr only
        verbose: Enable DEBUG output
    """
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    while _installed:
        handler = _installed.pop()
        root.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setFormatter(formatter)
    root.addHandler(stream_handler)
    _installed.append(stream_handler)

    if not log_file:
        return

    try:
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    except OSError as e:
        logging.getLogger(__name__).warning(
            f"Cannot open log file {log_file}, logging to stderr only: {e}"
        )
        return

    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)
    _installed.append(file_handler)

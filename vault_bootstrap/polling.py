"""
Sleep-and-retry polling used by every wait in the bootstrap sequence.
"""

import logging
import time
from typing import Callable, Optional

logger = logging.getLogger(__name__)


def poll_until(
    check: Callable[[], bool],
    interval: float = 1.0,
    max_attempts: Optional[int] = None,
    sleep: Callable[[float], None] = time.sleep,
    description: str = "condition",
) -> bool:
    """
    Call ``check`` until it returns True.

    Args:
        check: Predicate polled once per attempt
        interval: Seconds to sleep between attempts
        max_attempts: Upper bound on attempts, None to wait forever
        sleep: Sleep function, replaceable in tests
        description: Human readable name used in log messages

    Returns:
        True if the predicate succeeded, False if attempts ran out
    """
    attempt = 0
    while max_attempts is None or attempt < max_attempts:
        attempt += 1
        if check():
            logger.debug(f"{description} satisfied after {attempt} attempt(s)")
            return True
        if max_attempts is not None and attempt >= max_attempts:
            break
        logger.debug(f"Waiting for {description} (attempt {attempt})")
        sleep(interval)

    logger.warning(f"Gave up waiting for {description} after {attempt} attempt(s)")
    return False

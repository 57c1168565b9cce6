"""Fixed-interval retries for collaborator operations.

A failing operation is attempted once, then up to ``retries`` more times with
a constant ``retry_interval`` sleep in between. When every attempt fails the
last error propagates unchanged.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


def call_with_retries(
    operation: Callable[[], T],
    *,
    retries: int,
    retry_interval: float,
    exceptions: tuple[type[Exception], ...] = (Exception,),
    description: str = "operation",
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run ``operation`` with up to ``retries`` extra attempts.

    Args:
        operation: Zero-argument callable performing one attempt.
        retries: Extra attempts after the first one (non-negative).
        retry_interval: Seconds to sleep between attempts (non-negative).
        exceptions: Exception types that count as a failed attempt.
        description: Human readable name used in log messages.
        sleep: Sleep function, injectable for tests.

    Returns:
        The result of the first successful attempt.
    """
    if retries < 0:
        raise ValueError("retries must be >= 0")
    if retry_interval < 0:
        raise ValueError("retry_interval must be >= 0")

    remaining = retries
    while True:
        try:
            return operation()
        except exceptions as e:
            if remaining == 0:
                raise
            logger.debug(
                "%s failed but %d %s left, will retry in %.2f seconds",
                description,
                remaining,
                "retry" if remaining == 1 else "retries",
                retry_interval,
                extra={"error": str(e)},
            )
            remaining -= 1
            sleep(retry_interval)

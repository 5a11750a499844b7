"""Bounded retry for filesystem mutations.

Absorbs transient file-lock and sharing errors during staging and removal.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """Retry configuration.

    Attributes:
        max_attempts: Total number of attempts, including the first.
        delay_seconds: Fixed pause between attempts.
        retry_on: Exception types that trigger another attempt.
    """

    max_attempts: int = 5
    delay_seconds: float = 0.25
    retry_on: tuple[type[BaseException], ...] = (OSError,)

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.delay_seconds < 0:
            raise ValueError("delay_seconds must be non-negative")


DEFAULT_POLICY = RetryPolicy()


def attempt(
    operation: Callable[[], T],
    policy: RetryPolicy = DEFAULT_POLICY,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run an operation, retrying on transient errors.

    Args:
        operation: Zero-argument callable to run.
        policy: Attempt count, delay, and retryable exception types.
        sleep: Pause function (replaceable in tests).

    Returns:
        The operation's result.

    Raises:
        The last retryable exception once attempts are exhausted, or any
        non-retryable exception immediately.
    """
    for attempt_no in range(1, policy.max_attempts):
        try:
            return operation()
        except policy.retry_on as e:
            logger.warning(
                "Attempt %d/%d failed: %s; retrying in %.2fs",
                attempt_no,
                policy.max_attempts,
                e,
                policy.delay_seconds,
            )
            sleep(policy.delay_seconds)

    try:
        return operation()
    except policy.retry_on as e:
        logger.error("Giving up after %d attempts: %s", policy.max_attempts, e)
        raise

# SPDX-License-Identifier: Apache-2.0
# SPDX-FileCopyrightText: 2025 The Linux Foundation

"""
Retry-until-condition polling.

Every wait in the harness goes through :func:`wait_for`. A wait either
returns the first defined result of its predicate or, when bounded, gives
up after the policy timeout and returns ``None``. Errors raised by the
predicate are logged and retried: the loop cannot tell a provider that says
"not yet" from one that is unreachable.
"""

import logging
import random
import time
from dataclasses import dataclass, replace
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# A timeout of zero waits forever
FOREVER = 0.0


@dataclass(frozen=True)
class PollPolicy:
    """Interval, timeout and jitter for a polling loop (seconds)."""

    interval: float = 10.0
    timeout: float = FOREVER
    jitter: float = 0.0

    def __post_init__(self) -> None:
        if self.interval < 0 or self.timeout < 0 or self.jitter < 0:
            raise ValueError(f"Poll policy values must not be negative: {self}")

    @property
    def unbounded(self) -> bool:
        return self.timeout == FOREVER

    def with_timeout(self, timeout: float) -> "PollPolicy":
        return replace(self, timeout=timeout)

    def with_interval(self, interval: float) -> "PollPolicy":
        return replace(self, interval=interval)

    def next_delay(self) -> float:
        """Delay before the next attempt."""
        if self.jitter:
            return self.interval + random.uniform(0, self.jitter)
        return self.interval


def wait_for(
    predicate: Callable[[], Optional[T]],
    policy: PollPolicy,
    *,
    description: str = "condition",
    sleep: Optional[Callable[[float], None]] = None,
    clock: Optional[Callable[[], float]] = None,
) -> Optional[T]:
    """Call ``predicate`` until it returns something other than ``None``.

    Args:
        predicate: Zero-argument check returning a result or ``None``
        policy: Interval/timeout/jitter for this wait
        description: What is being waited for, used in log lines
        sleep: Sleep function; ``time.sleep`` when omitted
        clock: Monotonic clock; ``time.monotonic`` when omitted

    Returns:
        The first non-``None`` result, or ``None`` when a bounded wait ran out
    """
    sleep = sleep or time.sleep
    clock = clock or time.monotonic
    start = clock()
    attempt = 0

    while True:
        attempt += 1
        try:
            result = predicate()
        except Exception as e:
            logger.warning(f"Error while waiting for {description} (attempt {attempt}): {e}")
            result = None

        if result is not None:
            logger.debug(f"{description} reached after {attempt} attempt(s)")
            return result

        delay = policy.next_delay()
        if not policy.unbounded:
            remaining = policy.timeout - (clock() - start)
            if remaining <= 0:
                logger.error(f"Timed out after {policy.timeout}s waiting for {description}")
                return None
            delay = min(delay, remaining)

        sleep(delay)


def wait_until(
    check: Callable[[], bool],
    policy: PollPolicy,
    *,
    description: str = "condition",
    sleep: Optional[Callable[[float], None]] = None,
    clock: Optional[Callable[[], float]] = None,
) -> bool:
    """Boolean form of :func:`wait_for`: True once ``check`` holds, False on timeout."""
    return wait_for(
        lambda: True if check() else None,
        policy,
        description=description,
        sleep=sleep,
        clock=clock,
    ) is True

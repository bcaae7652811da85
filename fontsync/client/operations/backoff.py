"""
FontSync Client - Reconnect Backoff

Exponential delay schedule shared by monitor reconnects and sync retries.

Author: FontSync Project
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)


class Backoff:
    """
    Doubling delay with a ceiling and an optional attempt limit.

    next_delay() returns the delay to wait before the next attempt, or None
    once max_attempts delays have been handed out. reset() starts over after
    a successful attempt.
    """

    def __init__(self, initial: float = 1.0, ceiling: float = 60.0, factor: float = 2.0,
                 max_attempts: Optional[int] = None):
        if initial <= 0:
            raise ValueError("initial delay must be positive")
        if ceiling < initial:
            raise ValueError("ceiling must not be below the initial delay")
        if factor < 1:
            raise ValueError("factor must be at least 1")
        if max_attempts is not None and max_attempts < 0:
            raise ValueError("max_attempts must not be negative")

        self.initial = initial
        self.ceiling = ceiling
        self.factor = factor
        self.max_attempts = max_attempts
        self.attempts = 0

    @property
    def exhausted(self) -> bool:
        return self.max_attempts is not None and self.attempts >= self.max_attempts

    def next_delay(self) -> Optional[float]:
        if self.exhausted:
            return None
        delay = min(self.ceiling, self.initial * (self.factor ** self.attempts))
        self.attempts += 1
        return delay

    def reset(self):
        if self.attempts:
            logger.debug(f"Backoff reset after {self.attempts} attempt(s)")
        self.attempts = 0

"""
Capped exponential backoff for stream reconnects.
"""

import random
from typing import Optional


INITIAL_BACKOFF_MS = 1000
MAX_BACKOFF_MS = 30000
BACKOFF_MULTIPLIER = 2


class BackoffPolicy:
    """
    Maps a consecutive-failure count to a reconnect wait.

    ``next(attempt)`` is pure: ``min(initial * multiplier ** attempt, max)``.
    The policy also carries the running attempt counter for the stream that
    owns it. ``advance()`` is called after each reconnect attempt and
    ``reset()`` only after a connection opens, so back-to-back failures keep
    growing the wait until it hits the cap.

    Jitter is off by default. When enabled, each wait is spread upward by up
    to ``jitter * wait`` and then capped again.
    """

    def __init__(
        self,
        initial_ms: float = INITIAL_BACKOFF_MS,
        multiplier: float = BACKOFF_MULTIPLIER,
        max_ms: float = MAX_BACKOFF_MS,
        jitter: float = 0.0,
        rng: Optional[random.Random] = None,
    ):
        if initial_ms <= 0:
            raise ValueError("initial_ms must be positive")
        if multiplier < 1:
            raise ValueError("multiplier must be >= 1")
        if max_ms < initial_ms:
            raise ValueError("max_ms must be >= initial_ms")
        if not 0.0 <= jitter <= 1.0:
            raise ValueError("jitter must be between 0 and 1")

        self.initial_ms = initial_ms
        self.multiplier = multiplier
        self.max_ms = max_ms
        self.jitter = jitter
        self._rng = rng or random.Random()
        self.attempt = 0

    @classmethod
    def from_config(cls, config) -> "BackoffPolicy":
        """Build a policy from a StreamClientConfig."""
        return cls(
            initial_ms=config.initial_backoff_ms,
            multiplier=config.backoff_multiplier,
            max_ms=config.max_backoff_ms,
            jitter=config.backoff_jitter,
        )

    def next(self, attempt: int) -> float:
        """Wait in milliseconds before the reconnect following ``attempt`` prior failures."""
        if attempt < 0:
            raise ValueError("attempt must be >= 0")
        # Past the cap the exponent only risks float overflow
        try:
            wait = self.initial_ms * (self.multiplier ** attempt)
        except OverflowError:
            wait = self.max_ms
        wait = min(wait, self.max_ms)
        if self.jitter:
            wait = min(wait * (1 + self._rng.uniform(0, self.jitter)), self.max_ms)
        return wait

    @property
    def current_ms(self) -> float:
        """Wait for the next reconnect given the running attempt count."""
        return self.next(self.attempt)

    def advance(self) -> None:
        self.attempt += 1

    def reset(self) -> None:
        self.attempt = 0

    def __repr__(self) -> str:
        return (
            f"BackoffPolicy(initial_ms={self.initial_ms}, multiplier={self.multiplier}, "
            f"max_ms={self.max_ms}, jitter={self.jitter}, attempt={self.attempt})"
        )

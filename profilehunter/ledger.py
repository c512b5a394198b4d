"""
Paid API credit accounting.

One ledger is created per process and handed to whoever needs it. Credits
are never replenished; a restart is the only reset.
"""

import threading

DEFAULT_CREDITS = 50


class CreditLedger:
    """Bounded, thread-safe counter of remaining paid-API lookups."""

    def __init__(self, initial: int = DEFAULT_CREDITS):
        if initial < 0:
            raise ValueError(f"Initial credits must not be negative, got {initial}")
        self._remaining = initial
        self._lock = threading.Lock()

    @property
    def remaining(self) -> int:
        with self._lock:
            return self._remaining

    def available(self) -> bool:
        return self.remaining > 0

    def try_consume(self) -> bool:
        """Take one credit if any are left. Returns False when exhausted."""
        with self._lock:
            if self._remaining <= 0:
                return False
            self._remaining -= 1
            return True

    def __repr__(self) -> str:
        return f"CreditLedger(remaining={self.remaining})"

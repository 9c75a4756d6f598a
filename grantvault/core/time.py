"""
grantvault/core/time.py

Time sources for the vault.

Grant unlock checks run on integer UNIX seconds supplied by a clock
object, never on an ambient datetime.now() inside the engine. Journal
entries carry a wire-format timestamp produced by journal_timestamp()
and nothing else.

Journal wire format: YYYY-MM-DDTHH:MM:SS.mmmZ
                     (milliseconds, explicit Z, no +00:00, no microseconds)
"""

import threading
import time
from datetime import datetime, timezone


def journal_timestamp() -> str:
    """
    Return current UTC time in journal wire format.
    Format: YYYY-MM-DDTHH:MM:SS.mmmZ  (exactly 3 fractional digits, Z suffix)
    """
    now = datetime.now(timezone.utc)
    ms  = now.microsecond // 1000
    return now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{ms:03d}Z"


class SystemClock:
    """Wall clock in whole UNIX seconds."""

    def now(self) -> int:
        return int(time.time())

    def __repr__(self) -> str:
        return "SystemClock()"


class ManualClock:
    """
    Clock that only moves when told to.

    Used by tests and simulations to step across an unlock boundary:

        clock = ManualClock(1_700_000_000)
        clock.advance(200)
    """

    def __init__(self, start: int = 0) -> None:
        if not isinstance(start, int) or start < 0:
            raise ValueError(f"start must be a non-negative int, got {start!r}")
        self._lock = threading.Lock()
        self._now  = start

    def now(self) -> int:
        with self._lock:
            return self._now

    def advance(self, seconds: int) -> int:
        """Move forward by `seconds` and return the new time."""
        if not isinstance(seconds, int) or seconds < 0:
            raise ValueError(f"seconds must be a non-negative int, got {seconds!r}")
        with self._lock:
            self._now += seconds
            return self._now

    def set(self, timestamp: int) -> None:
        """Jump to an absolute time. Going backwards is refused."""
        with self._lock:
            if timestamp < self._now:
                raise ValueError(
                    f"ManualClock cannot move backwards: {timestamp} < {self._now}"
                )
            self._now = timestamp

    def __repr__(self) -> str:
        return f"ManualClock(now={self._now})"

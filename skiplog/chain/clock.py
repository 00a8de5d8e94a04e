"""Process-wide monotonic timestamps for entry metadata."""

from __future__ import annotations

import threading
import time

_lock = threading.Lock()
_last = 0


def monotonic_timestamp() -> int:
    """Return microseconds since the Unix epoch, strictly increasing per process.

    Wall-clock time is used while it moves forward. When two calls land on the
    same microsecond, or the wall clock steps backwards, the previous value is
    bumped by one instead.
    """

    global _last
    with _lock:
        now = time.time_ns() // 1_000
        if now <= _last:
            now = _last + 1
        _last = now
        return now


__all__ = ["monotonic_timestamp"]

"""One-shot timers with millisecond resolution."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Union

from zinx.delayfunc import DelayFunc

Duration = Union[timedelta, int, float]


def _duration_ns(duration: Duration) -> int:
    """Nanoseconds in ``duration``: a timedelta, or a number of seconds."""
    if isinstance(duration, timedelta):
        return (
            (duration.days * 86400 + duration.seconds) * 1_000_000_000
            + duration.microseconds * 1000
        )
    return int(duration * 1_000_000_000)


def unix_milli() -> int:
    """Milliseconds since the Unix epoch."""
    return time.time_ns() // 1_000_000


@dataclass
class Timer:
    """A callback due at ``unixts``, in Unix milliseconds."""

    delay_func: DelayFunc
    unixts: int

    @classmethod
    def at(cls, delay_func: DelayFunc, unix_nano: int) -> "Timer":
        """A timer due at ``unix_nano`` nanoseconds since the epoch."""
        return cls(delay_func=delay_func, unixts=unix_nano // 1_000_000)

    @classmethod
    def after(cls, delay_func: DelayFunc, duration: Duration) -> "Timer":
        """A timer due ``duration`` from now (a timedelta or seconds)."""
        return cls.at(delay_func, time.time_ns() + _duration_ns(duration))

    def run(self) -> threading.Thread:
        """Wait on a background thread until the timer is due, then call it."""

        def wait_and_call() -> None:
            now = unix_milli()
            if self.unixts > now:
                time.sleep((self.unixts - now) / 1000)
            self.delay_func.call()

        thread = threading.Thread(target=wait_and_call, name="zinx-timer", daemon=True)
        thread.start()
        return thread
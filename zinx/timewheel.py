"""Hierarchical timing wheels holding many timers cheaply."""

from __future__ import annotations

import threading
from typing import Optional

from zinx import zlog
from zinx.timer import Duration, Timer, _duration_ns, unix_milli

HOUR_NAME = "HOUR"
HOUR_INTERVAL = 60 * 60 * 1000
HOUR_SCALES = 12

MINUTE_NAME = "MINUTE"
MINUTE_INTERVAL = 60 * 1000
MINUTE_SCALES = 60

SECOND_NAME = "SECOND"
SECOND_INTERVAL = 1000
SECOND_SCALES = 60

TIMERS_MAX_CAP = 2048


class TimeWheel:
    """A ring of ``scales`` slots, each ``interval`` milliseconds wide.

    Timers closer than one slot are handed to the finer ``next_wheel``;
    the finest wheel keeps them in its current slot, where
    ``get_timer_within`` finds them.
    """

    def __init__(self, name: str, interval: int, scales: int, max_cap: int) -> None:
        self.name = name
        self.interval = interval
        self.scales = scales
        self.max_cap = max_cap
        self.cur_index = 0
        self._slots: list[dict[int, Timer]] = [{} for _ in range(scales)]
        self.next_wheel: Optional[TimeWheel] = None
        self._lock = threading.Lock()
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None
        zlog.info("Init timerWhell name = ", name, " is Done!")

    def _add_timer(self, tid: int, timer: Timer, force_next: bool) -> None:
        delay = timer.unixts - unix_milli()
        if delay >= self.interval:
            steps = delay // self.interval
            self._slots[(self.cur_index + steps) % self.scales][tid] = timer
            return
        if self.next_wheel is None:
            if force_next:
                # The current slot has passed; keep the timer visible in the next one.
                self._slots[(self.cur_index + 1) % self.scales][tid] = timer
            else:
                self._slots[self.cur_index][tid] = timer
            return
        self.next_wheel.add_timer(tid, timer)

    def add_timer(self, tid: int, timer: Timer) -> None:
        """Place ``timer`` under ``tid`` in this wheel or a finer one."""
        with self._lock:
            self._add_timer(tid, timer, False)

    def remove_timer(self, tid: int) -> None:
        """Remove the timer ``tid`` from every slot of this wheel."""
        with self._lock:
            for slot in self._slots:
                slot.pop(tid, None)

    def add_time_wheel(self, next_wheel: "TimeWheel") -> None:
        """Attach a finer wheel below this one."""
        self.next_wheel = next_wheel
        zlog.info("Add timerWhell[", self.name, "]'s next [", next_wheel.name, "] is succ!")

    def _tick(self) -> None:
        with self._lock:
            current = self._slots[self.cur_index]
            self._slots[self.cur_index] = {}
            for tid, timer in current.items():
                self._add_timer(tid, timer, True)

            next_index = (self.cur_index + 1) % self.scales
            upcoming = self._slots[next_index]
            self._slots[next_index] = {}
            for tid, timer in upcoming.items():
                self._add_timer(tid, timer, True)

            self.cur_index = next_index

    def _run(self) -> None:
        while not self._stopped.wait(self.interval / 1000):
            self._tick()

    def run(self) -> None:
        """Turn the wheel one slot per interval on a background thread."""
        if self._thread is not None and self._thread.is_alive():
            return
        self._stopped.clear()
        self._thread = threading.Thread(
            target=self._run, name=f"zinx-timewheel-{self.name}", daemon=True
        )
        self._thread.start()
        zlog.info("timerwheel name = ", self.name, " is running...")

    def stop(self) -> None:
        """Stop turning the wheel."""
        self._stopped.set()
        thread, self._thread = self._thread, None
        if thread is not None and thread is not threading.current_thread():
            thread.join()

    def get_timer_within(self, duration: Duration) -> dict[int, Timer]:
        """Take out the finest wheel's current timers due within ``duration``."""
        leaf = self
        while leaf.next_wheel is not None:
            leaf = leaf.next_wheel

        limit_ms = _duration_ns(duration) // 1_000_000
        due: dict[int, Timer] = {}
        with leaf._lock:
            now = unix_milli()
            slot = leaf._slots[leaf.cur_index]
            for tid, timer in list(slot.items()):
                if timer.unixts - now < limit_ms:
                    due[tid] = timer
                    del slot[tid]
        return due
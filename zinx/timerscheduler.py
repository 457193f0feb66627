"""Scheduler that drives hour, minute and second wheels and emits due callbacks."""

from __future__ import annotations

import queue
import threading
from typing import Optional

from zinx import zlog
from zinx.delayfunc import DelayFunc
from zinx.timer import Duration, Timer, unix_milli
from zinx.timewheel import (
    HOUR_INTERVAL,
    HOUR_NAME,
    HOUR_SCALES,
    MINUTE_INTERVAL,
    MINUTE_NAME,
    MINUTE_SCALES,
    SECOND_INTERVAL,
    SECOND_NAME,
    SECOND_SCALES,
    TIMERS_MAX_CAP,
    TimeWheel,
)

MAX_CHAN_BUFF = 2048
MAX_TIME_DELAY = 100

_UINT32_MASK = 0xFFFFFFFF


class TimerScheduler:
    """Owns three linked, running wheels; due callbacks go to ``trigger_chan``."""

    def __init__(self) -> None:
        second = TimeWheel(SECOND_NAME, SECOND_INTERVAL, SECOND_SCALES, TIMERS_MAX_CAP)
        minute = TimeWheel(MINUTE_NAME, MINUTE_INTERVAL, MINUTE_SCALES, TIMERS_MAX_CAP)
        hour = TimeWheel(HOUR_NAME, HOUR_INTERVAL, HOUR_SCALES, TIMERS_MAX_CAP)
        hour.add_time_wheel(minute)
        minute.add_time_wheel(second)
        self._wheels = (second, minute, hour)
        for wheel in self._wheels:
            wheel.run()

        self._tw = hour
        self.id_gen = 0
        self.trigger_chan: queue.Queue = queue.Queue(maxsize=MAX_CHAN_BUFF)
        self._lock = threading.Lock()
        self._stopped = threading.Event()
        self._threads: list[threading.Thread] = []

    def _next_id(self) -> int:
        self.id_gen = (self.id_gen + 1) & _UINT32_MASK
        return self.id_gen

    def create_timer_at(self, delay_func: DelayFunc, unix_nano: int) -> int:
        """Schedule ``delay_func`` at ``unix_nano``; return the timer ID."""
        with self._lock:
            tid = self._next_id()
            self._tw.add_timer(tid, Timer.at(delay_func, unix_nano))
            return tid

    def create_timer_after(self, delay_func: DelayFunc, duration: Duration) -> int:
        """Schedule ``delay_func`` after ``duration``; return the timer ID."""
        with self._lock:
            tid = self._next_id()
            self._tw.add_timer(tid, Timer.after(delay_func, duration))
            return tid

    def cancel_timer(self, tid: int) -> None:
        """Remove the timer ``tid`` from every wheel."""
        with self._lock:
            wheel: Optional[TimeWheel] = self._tw
            while wheel is not None:
                wheel.remove_timer(tid)
                wheel = wheel.next_wheel

    def _poll(self) -> None:
        while not self._stopped.is_set():
            now = unix_milli()
            for timer in self._tw.get_timer_within(MAX_TIME_DELAY / 1000).values():
                if abs(now - timer.unixts) > MAX_TIME_DELAY:
                    zlog.error(
                        "want call at ", timer.unixts, "; real call at", now,
                        "; delay ", now - timer.unixts,
                    )
                self.trigger_chan.put(timer.delay_func)
            self._stopped.wait(MAX_TIME_DELAY / 2 / 1000)

    def _spawn(self, target, name: str) -> None:
        thread = threading.Thread(target=target, name=name, daemon=True)
        self._threads.append(thread)
        thread.start()

    def start(self) -> None:
        """Begin moving due timers into ``trigger_chan`` on a background thread."""
        self._spawn(self._poll, "zinx-timer-scheduler")

    def _auto_exec(self) -> None:
        while not self._stopped.is_set():
            try:
                delay_func = self.trigger_chan.get(timeout=MAX_TIME_DELAY / 2 / 1000)
            except queue.Empty:
                continue
            threading.Thread(target=delay_func.call, name="zinx-timer-call", daemon=True).start()

    def stop(self) -> None:
        """Stop polling and stop the wheels."""
        self._stopped.set()
        for thread in self._threads:
            thread.join(timeout=1)
        self._threads = []
        for wheel in self._wheels:
            wheel.stop()


def new_auto_exec_timer_scheduler() -> TimerScheduler:
    """A started scheduler that also calls each due callback on its own thread."""
    scheduler = TimerScheduler()
    scheduler.start()
    scheduler._spawn(scheduler._auto_exec, "zinx-timer-auto-exec")
    return scheduler
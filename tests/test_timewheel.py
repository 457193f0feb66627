import time

from zinx.delayfunc import DelayFunc
from zinx.timer import Timer, unix_milli
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


def make_wheels():
    second = TimeWheel(SECOND_NAME, SECOND_INTERVAL, SECOND_SCALES, TIMERS_MAX_CAP)
    minute = TimeWheel(MINUTE_NAME, MINUTE_INTERVAL, MINUTE_SCALES, TIMERS_MAX_CAP)
    hour = TimeWheel(HOUR_NAME, HOUR_INTERVAL, HOUR_SCALES, TIMERS_MAX_CAP)
    hour.add_time_wheel(minute)
    minute.add_time_wheel(second)
    return hour, minute, second


def test_linking():
    hour, minute, second = make_wheels()
    assert hour.next_wheel is minute
    assert minute.next_wheel is second
    assert second.next_wheel is None


def test_due_timer_reaches_leaf_current_slot():
    hour, _, _ = make_wheels()
    timer = Timer.at(DelayFunc(lambda: None), time.time_ns())
    hour.add_timer(1, timer)
    assert hour.get_timer_within(0.1) == {1: timer}
    assert hour.get_timer_within(0.1) == {}


def test_far_timer_not_returned():
    hour, _, _ = make_wheels()
    hour.add_timer(1, Timer.after(DelayFunc(lambda: None), 10))
    assert hour.get_timer_within(1.0) == {}


def test_remove_timer():
    hour, minute, second = make_wheels()
    hour.add_timer(7, Timer.at(DelayFunc(lambda: None), time.time_ns()))
    for wheel in (hour, minute, second):
        wheel.remove_timer(7)
    assert hour.get_timer_within(0.1) == {}


def test_timers_come_due_in_order():
    hour, _, _ = make_wheels()
    calls = []

    def my_func(*v):
        calls.append(v)

    due = {}
    for n in range(1, 6):
        timer = Timer.after(DelayFunc(my_func, [n, 10 * n]), 0.05 * n)
        due[n] = timer.unixts
        hour.add_timer(n, timer)

    fired = []
    deadline = time.monotonic() + 3
    while len(fired) < 5 and time.monotonic() < deadline:
        for tid, timer in sorted(hour.get_timer_within(0.001).items()):
            assert unix_milli() >= due[tid] - 1
            fired.append(tid)
            timer.delay_func.call()
        time.sleep(0.01)

    assert fired == [1, 2, 3, 4, 5]
    assert calls == [(1, 10), (2, 20), (3, 30), (4, 40), (5, 50)]


def test_running_wheel_moves_timer_into_current_slot():
    wheel = TimeWheel("FAST", 20, 10, 16)
    timer = Timer.after(DelayFunc(lambda: None), 0.06)
    wheel.add_timer(3, timer)
    assert wheel.get_timer_within(0.005) == {}
    wheel.run()
    try:
        found = {}
        deadline = time.monotonic() + 2
        while not found and time.monotonic() < deadline:
            found = wheel.get_timer_within(0.005)
            time.sleep(0.005)
        assert found == {3: timer}
        assert wheel.cur_index != 0 or unix_milli() >= timer.unixts
    finally:
        wheel.stop()
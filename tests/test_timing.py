import time

import pytest

from concurlab.timing import Timer


def fake_clock(*values):
    return iter(values).__next__


def test_nanoseconds_is_difference_of_clock_readings():
    timer = Timer(clock=fake_clock(0, 2_500_000))
    timer.begin()
    timer.end()
    assert timer.nanoseconds() == 2_500_000


def test_unit_conversions_truncate():
    timer = Timer(clock=fake_clock(0, 2_500_000))
    timer.begin()
    timer.end()
    assert timer.microseconds() == 2500
    assert timer.milliseconds() == 2
    assert timer.seconds() == 0


def test_seconds_truncate_just_below_boundary():
    timer = Timer(clock=fake_clock(0, 1_999_999_999))
    timer.begin()
    timer.end()
    assert timer.seconds() == 1


def test_context_manager_measures_block():
    with Timer(clock=fake_clock(0, 42)) as timer:
        pass
    assert timer.nanoseconds() == 42


def test_real_clock_measures_sleep():
    with Timer() as timer:
        time.sleep(0.01)
    assert timer.milliseconds() >= 10
    assert timer.nanoseconds() >= timer.microseconds() >= timer.milliseconds()


def test_end_without_begin_raises():
    timer = Timer()
    with pytest.raises(RuntimeError):
        timer.end()


def test_reading_before_end_raises():
    timer = Timer()
    timer.begin()
    with pytest.raises(RuntimeError):
        timer.nanoseconds()
import pytest

from garden_irrigation.core.enums import TimerState
from garden_irrigation.core.timeout_timer import ThreadingTimeoutTimer
from garden_irrigation.exceptions import TimerCommandError


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()

@pytest.fixture
def timer(clock):
    return ThreadingTimeoutTimer("timer.garden", clock=clock)


def test_timer_is_idle_before_start(timer):
    assert timer.state == TimerState.IDLE


def test_timer_is_active_until_deadline(timer, clock):
    timer.start(2)
    clock.now += 119
    assert timer.state == TimerState.ACTIVE
    clock.now += 1
    assert timer.state == TimerState.IDLE


def test_stop_returns_timer_to_idle(timer):
    timer.start(5)
    timer.stop()
    assert timer.state == TimerState.IDLE


def test_stop_when_idle_is_harmless(timer):
    timer.stop()
    assert timer.state == TimerState.IDLE


def test_restart_replaces_deadline(timer, clock):
    timer.start(1)
    clock.now += 50
    timer.start(1)
    clock.now += 50
    assert timer.state == TimerState.ACTIVE


@pytest.mark.parametrize("minutes", [0, -3])
def test_non_positive_duration_is_rejected(timer, minutes):
    with pytest.raises(TimerCommandError):
        timer.start(minutes)
    assert timer.state == TimerState.IDLE

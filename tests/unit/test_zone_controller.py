import threading
from collections import defaultdict

import pytest

import garden_irrigation.core.valves as valves
from garden_irrigation.config.run_config import EngineSettings, ZoneConfig
from garden_irrigation.core.enums import TimerState, ValveCommand, ValveState, ValveType, ZoneOutcomeKind, ZoneState
from garden_irrigation.core.valves import create_valve
from garden_irrigation.core.zone_controller import ZoneController
from garden_irrigation.exceptions import ValveCommandError


# ---------------------- Fakes ----------------------

class FakeSensorReader:
    """Returns queued readings in order, then keeps repeating the last one."""
    def __init__(self, readings):
        self.readings = list(readings)
        self.calls = 0

    def read_moisture(self, sensor_ref):
        self.calls += 1
        if len(self.readings) > 1:
            return self.readings.pop(0)
        return self.readings[0]


class FakeTimer:
    def __init__(self, log, expire_after_queries=None):
        self.log = log
        self.expire_after_queries = expire_after_queries
        self._state = TimerState.IDLE
        self._queries = 0
        self.started_with = []
        self.state_at_stop = None

    def start(self, duration_minutes):
        self.log.append(("timer.start", duration_minutes))
        self.started_with.append(duration_minutes)
        self._state = TimerState.ACTIVE
        self._queries = 0

    def stop(self):
        self.log.append(("timer.stop",))
        self.state_at_stop = self._state
        self._state = TimerState.IDLE

    @property
    def state(self):
        if self._state == TimerState.ACTIVE and self.expire_after_queries is not None:
            self._queries += 1
            if self._queries > self.expire_after_queries:
                self._state = TimerState.IDLE
        return self._state


class FakeValveActuator:
    def __init__(self, log, close_after_queries=None, fail_on=None):
        self.log = log
        self.close_after_queries = close_after_queries
        self.fail_on = fail_on
        self.states = defaultdict(lambda: ValveState.CLOSED)
        self._queries = defaultdict(int)

    def set_valve(self, valve_ref, command, duration_minutes=None):
        if command == self.fail_on:
            raise RuntimeError("valve unreachable")
        self.log.append((f"valve.{command.value}", valve_ref, duration_minutes))
        self.states[valve_ref] = ValveState.OPEN if command == ValveCommand.OPEN else ValveState.CLOSED
        self._queries[valve_ref] = 0

    def valve_state(self, valve_ref):
        if self.states[valve_ref] == ValveState.OPEN and self.close_after_queries is not None:
            self._queries[valve_ref] += 1
            if self._queries[valve_ref] > self.close_after_queries:
                self.states[valve_ref] = ValveState.CLOSED
        return self.states[valve_ref]


class FakeNotifier:
    def __init__(self):
        self.messages = []

    def notify(self, title, preamble, body):
        self.messages.append(body)


class ExplodingNotifier:
    def notify(self, title, preamble, body):
        raise ConnectionError("notification service down")


# ---------------------- Fixtures ----------------------

@pytest.fixture
def zone():
    return ZoneConfig(name="Lawn", valve_ref="switch.lawn", sensor_ref="sensor.lawn",
                      threshold_pct=30, target_pct=60, max_minutes=20, default_minutes=10)

@pytest.fixture
def log():
    return []

@pytest.fixture
def notifier():
    return FakeNotifier()

@pytest.fixture(autouse=True)
def no_retry_delay(monkeypatch):
    monkeypatch.setattr(valves, "RETRY_DELAY_SECONDS", 0)


def make_controller(zone, sensor, actuator, timer, notifier, valve_type=ValveType.SWITCH, stop_event=None):
    return ZoneController(
        zone=zone,
        zone_index=1,
        valve=create_valve(valve_type, zone.valve_ref, actuator),
        timer=timer,
        sensor_reader=sensor,
        notifier=notifier,
        settings=EngineSettings(poll_interval_seconds=0, settle_delay_seconds=0),
        stop_event=stop_event or threading.Event()
    )


# ---------------------- Tests ----------------------

def test_zone_above_threshold_is_skipped_without_side_effects(zone, log, notifier):
    timer = FakeTimer(log)
    controller = make_controller(zone, FakeSensorReader([35]), FakeValveActuator(log), timer, notifier)

    outcome = controller.run()

    assert outcome.kind == ZoneOutcomeKind.SKIPPED
    assert outcome.final_moisture == 35
    assert outcome.effective_minutes is None
    assert log == []
    assert notifier.messages == [
        "Zone 'Lawn' not watered because 35% moisture level is already over its threshold of 30%."
    ]
    assert controller.state == ZoneState.DONE


def test_zone_at_threshold_is_watered(zone, log, notifier):
    timer = FakeTimer(log, expire_after_queries=0)
    controller = make_controller(zone, FakeSensorReader([30]), FakeValveActuator(log), timer, notifier)

    outcome = controller.run()

    assert outcome.kind != ZoneOutcomeKind.SKIPPED
    assert timer.started_with == [20]


def test_functional_sensor_below_threshold_uses_max_minutes(zone, log, notifier):
    timer = FakeTimer(log, expire_after_queries=0)
    controller = make_controller(zone, FakeSensorReader([25]), FakeValveActuator(log), timer, notifier)

    outcome = controller.run()

    assert outcome.effective_minutes == zone.max_minutes
    assert timer.started_with == [zone.max_minutes]
    assert notifier.messages[0] == "Started watering zone 'Lawn'; moisture level = 25%. Target level = 60%."


@pytest.mark.parametrize(
        "reading, expected_minutes, expected_valve_minutes",
        [
            (None, 10, 11),
            (0, 10, 11),
            (2, 10, 11),
            (3, 10, 11),
            (4, 20, 21),
            (25, 20, 21),
        ]
)
def test_timed_valve_runs_one_minute_longer_than_timer(zone, log, notifier, reading, expected_minutes, expected_valve_minutes):
    timer = FakeTimer(log, expire_after_queries=0)
    actuator = FakeValveActuator(log)
    controller = make_controller(zone, FakeSensorReader([reading]), actuator, timer, notifier,
                                 valve_type=ValveType.TIMED_VALVE)

    controller.run()

    assert timer.started_with == [expected_minutes]
    assert ("valve.open", "switch.lawn", expected_valve_minutes) in log


def test_switch_valve_open_carries_no_duration(zone, log, notifier):
    timer = FakeTimer(log, expire_after_queries=0)
    controller = make_controller(zone, FakeSensorReader([20]), FakeValveActuator(log), timer, notifier)

    controller.run()

    assert ("valve.open", "switch.lawn", None) in log


def test_target_reached_stops_valve_then_timer_while_timer_active(zone, log, notifier):
    timer = FakeTimer(log)
    controller = make_controller(zone, FakeSensorReader([20, 30, 45, 60]), FakeValveActuator(log), timer, notifier)

    outcome = controller.run()

    assert outcome.kind == ZoneOutcomeKind.TARGET_REACHED
    assert outcome.final_moisture == 60
    assert timer.state_at_stop == TimerState.ACTIVE
    assert log == [
        ("timer.start", 20),
        ("valve.open", "switch.lawn", None),
        ("valve.close", "switch.lawn", None),
        ("timer.stop",),
    ]
    assert notifier.messages[-1] == (
        "Finished watering zone 'Lawn'; target moisture level 60% reached. (Actual moisture level now = 60%)."
    )
    assert controller.state == ZoneState.DONE


def test_timer_expiry_times_out_and_closes_valve(zone, log, notifier):
    timer = FakeTimer(log, expire_after_queries=2)
    controller = make_controller(zone, FakeSensorReader([20]), FakeValveActuator(log), timer, notifier)

    outcome = controller.run()

    assert outcome.kind == ZoneOutcomeKind.TIMED_OUT
    assert ("valve.close", "switch.lawn", None) in log
    assert log[-1] == ("timer.stop",)
    assert notifier.messages[-1] == (
        "Stopped watering zone 'Lawn' because the time limit of 20 minutes was reached. Moisture level = 20%."
    )


def test_timeout_message_uses_default_minutes_for_dead_sensor(zone, log, notifier):
    timer = FakeTimer(log, expire_after_queries=0)
    controller = make_controller(zone, FakeSensorReader([1]), FakeValveActuator(log), timer, notifier)

    outcome = controller.run()

    assert outcome.kind == ZoneOutcomeKind.TIMED_OUT
    assert "time limit of 10 minutes" in outcome.message


def test_valve_closed_externally_is_detected_and_not_closed_again(zone, log, notifier):
    timer = FakeTimer(log)
    actuator = FakeValveActuator(log, close_after_queries=1)
    controller = make_controller(zone, FakeSensorReader([20]), actuator, timer, notifier)

    outcome = controller.run()

    assert outcome.kind == ZoneOutcomeKind.STOPPED_EXTERNALLY
    assert ("valve.close", "switch.lawn", None) not in log
    assert log[-1] == ("timer.stop",)
    assert notifier.messages[-1] == (
        "Watering zone 'Lawn' was stopped manually or by the controller. Moisture level = 20%."
    )


def test_target_reached_takes_priority_over_timeout(zone, log, notifier):
    timer = FakeTimer(log, expire_after_queries=0)
    controller = make_controller(zone, FakeSensorReader([20, 60]), FakeValveActuator(log), timer, notifier)

    outcome = controller.run()

    assert outcome.kind == ZoneOutcomeKind.TARGET_REACHED


def test_timeout_takes_priority_over_external_stop(zone, log, notifier):
    timer = FakeTimer(log, expire_after_queries=0)
    actuator = FakeValveActuator(log, close_after_queries=0)
    controller = make_controller(zone, FakeSensorReader([20]), actuator, timer, notifier)

    outcome = controller.run()

    assert outcome.kind == ZoneOutcomeKind.TIMED_OUT


def test_target_below_threshold_stops_at_first_poll(log, notifier):
    zone = ZoneConfig(name="Odd", valve_ref="v", sensor_ref="s",
                      threshold_pct=50, target_pct=40, max_minutes=5, default_minutes=5)
    timer = FakeTimer(log)
    controller = make_controller(zone, FakeSensorReader([45]), FakeValveActuator(log), timer, notifier)

    outcome = controller.run()

    assert outcome.kind == ZoneOutcomeKind.TARGET_REACHED
    assert log[-1] == ("timer.stop",)


def test_cancellation_closes_valve_and_stops_timer(zone, log, notifier):
    stop_event = threading.Event()
    stop_event.set()
    timer = FakeTimer(log)
    controller = make_controller(zone, FakeSensorReader([20]), FakeValveActuator(log), timer, notifier,
                                 stop_event=stop_event)

    outcome = controller.run()

    assert outcome.kind == ZoneOutcomeKind.STOPPED_EXTERNALLY
    assert outcome.error == "Run cancelled"
    assert log[-2:] == [("valve.close", "switch.lawn", None), ("timer.stop",)]


def test_interrupt_during_monitoring_still_closes_valve(zone, log, notifier):
    class InterruptingSensor:
        calls = 0

        def read_moisture(self, sensor_ref):
            self.calls += 1
            if self.calls > 1:
                raise KeyboardInterrupt
            return 20

    timer = FakeTimer(log)
    controller = make_controller(zone, InterruptingSensor(), FakeValveActuator(log), timer, notifier)

    with pytest.raises(KeyboardInterrupt):
        controller.run()

    assert log[-2:] == [("valve.close", "switch.lawn", None), ("timer.stop",)]


def test_valve_open_failure_raises_after_releasing_timer(zone, log, notifier):
    timer = FakeTimer(log)
    actuator = FakeValveActuator(log, fail_on=ValveCommand.OPEN)
    controller = make_controller(zone, FakeSensorReader([20]), actuator, timer, notifier)

    with pytest.raises(ValveCommandError):
        controller.run()

    assert log == [("timer.start", 20), ("timer.stop",)]
    assert controller.state == ZoneState.STOPPING


def test_valve_close_failure_is_raised_after_timer_stop(zone, log, notifier):
    timer = FakeTimer(log, expire_after_queries=0)
    actuator = FakeValveActuator(log, fail_on=ValveCommand.CLOSE)
    controller = make_controller(zone, FakeSensorReader([20]), actuator, timer, notifier)

    with pytest.raises(ValveCommandError):
        controller.run()

    assert log[-1] == ("timer.stop",)


def test_notification_failure_does_not_change_outcome(zone, log):
    timer = FakeTimer(log, expire_after_queries=1)
    controller = make_controller(zone, FakeSensorReader([20]), FakeValveActuator(log), timer, ExplodingNotifier())

    outcome = controller.run()

    assert outcome.kind == ZoneOutcomeKind.TIMED_OUT
    assert log[-1] == ("timer.stop",)

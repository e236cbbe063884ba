# garden_irrigation/core/zone_controller.py

import threading
from dataclasses import dataclass
from typing import Optional

from garden_irrigation.config.run_config import EngineSettings, ZoneConfig
from garden_irrigation.core.enums import TimerState, ValveState, ZoneState
from garden_irrigation.core.sensor_reading import SensorReading
from garden_irrigation.core.zone_outcome import ZoneOutcome
from garden_irrigation.core.zone_state_machine import is_allowed
from garden_irrigation.interfaces import NotifierLike, SensorReaderLike, TimeoutTimerLike, ZoneValveLike
from garden_irrigation.notifications.notifier import DEFAULT_TITLE, safe_notify

import garden_irrigation.utils.outcome_factory as outcome_factory
from garden_irrigation.utils.logger import get_logger


@dataclass(frozen=True)
class StopConditions:
    """Snapshot of the three stop predicates taken at one poll."""
    reading: SensorReading
    target_reached: bool
    timed_out: bool
    valve_closed: bool

    @property
    def any(self) -> bool:
        return self.target_reached or self.timed_out or self.valve_closed


class ZoneController:
    """
    Decides whether a single zone is watered and supervises the watering session.

    EVALUATING -> SKIPPED -> DONE, or EVALUATING -> WATERING -> STOPPING -> DONE.
    While WATERING, the controller polls three independent stop conditions and leaves on the first one met:
    moisture at or above target, timeout timer back to idle, valve closed by someone else.
    The valve is always closed and the timer stopped on the way out, including on errors and cancellation.
    Actuator errors propagate to the caller after this cleanup.
    """

    def __init__(self, zone: ZoneConfig, zone_index: int,
                 valve: ZoneValveLike, timer: TimeoutTimerLike,
                 sensor_reader: SensorReaderLike, notifier: NotifierLike,
                 settings: EngineSettings, stop_event: threading.Event,
                 preamble: str = DEFAULT_TITLE, title: str = DEFAULT_TITLE):
        self.logger = get_logger(f"ZoneController-{zone_index}")
        self.zone = zone
        self.zone_index = zone_index
        self.valve = valve
        self.timer = timer
        self.sensor_reader = sensor_reader
        self.notifier = notifier
        self.settings = settings
        self.stop_event = stop_event
        self.preamble = preamble
        self.title = title

        self._state: ZoneState = ZoneState.EVALUATING
        self._state_lock = threading.Lock()

        self.last_reading: Optional[SensorReading] = None
        self.effective_minutes: Optional[int] = None


    # ============================================================================================================
    # Public API
    # ============================================================================================================

    @property
    def state(self) -> ZoneState:
        with self._state_lock:
            return self._state

    def run(self) -> ZoneOutcome:
        """Runs the zone from evaluation to a recorded outcome. Blocking."""
        reading = self._read()
        self.logger.debug(
            f"Zone '{self.zone.name}' evaluated: moisture {reading.percent}% "
            f"(threshold {self.zone.threshold_pct}%, target {self.zone.target_pct}%)."
        )

        if reading.percent > self.zone.threshold_pct:
            self._transition_state(ZoneState.SKIPPED, reason="moisture above threshold")
            outcome = outcome_factory.create_skipped(self.zone, self.zone_index, reading.percent)
            self._finish(outcome)
            return outcome

        self.effective_minutes = self.effective_duration(reading)
        self._transition_state(ZoneState.WATERING, reason=f"watering for up to {self.effective_minutes} minutes")
        self._notify(outcome_factory.start_message(self.zone, reading.percent))

        try:
            self._start_watering(self.effective_minutes)
            outcome = self._supervise()
        finally:
            self._transition_state(ZoneState.STOPPING)
            release_error = self._release()

        # Cleanup failures surface only when watering itself succeeded
        if release_error is not None:
            raise release_error

        self._finish(outcome)
        return outcome

    def effective_duration(self, reading: SensorReading) -> int:
        """Maximum time with a working sensor, the default time otherwise."""
        if reading.is_functional:
            return self.zone.max_minutes
        self.logger.warning(
            f"Sensor {self.zone.sensor_ref} reads {reading.percent}%, treating it as not functioning. "
            f"Using default watering time of {self.zone.default_minutes} minutes."
        )
        return self.zone.default_minutes


    # ============================================================================================================
    # Watering session
    # ============================================================================================================

    def _start_watering(self, effective_minutes: int) -> None:
        # Timer first, so the valve is never open without a running timeout
        self.timer.start(effective_minutes)
        self.valve.open(effective_minutes)
        self.logger.info(f"Valve {self.valve.valve_ref} opened, timeout {effective_minutes} minutes.")

    def _supervise(self) -> ZoneOutcome:
        # Let the actuator's reported state catch up with the open command
        if self._suspend(self.settings.settle_delay_seconds):
            return self._cancelled()

        while True:
            conditions = self._poll()
            if conditions.any:
                return self._classify(conditions)
            if self._suspend(self.settings.poll_interval_seconds):
                return self._cancelled()

    def _poll(self) -> StopConditions:
        reading = self._read()
        conditions = StopConditions(
            reading=reading,
            target_reached=reading.percent >= self.zone.target_pct,
            timed_out=self.timer.state == TimerState.IDLE,
            valve_closed=self.valve.state == ValveState.CLOSED
        )
        self.logger.debug(
            f"Poll: moisture {reading.percent}%, target reached: {conditions.target_reached}, "
            f"timed out: {conditions.timed_out}, valve closed: {conditions.valve_closed}."
        )
        return conditions

    def _classify(self, conditions: StopConditions) -> ZoneOutcome:
        """Target reached takes priority over timeout, which takes priority over an external stop."""
        moisture = conditions.reading.percent
        if conditions.target_reached:
            return outcome_factory.create_target_reached(self.zone, self.zone_index, moisture, self.effective_minutes)
        if conditions.timed_out:
            return outcome_factory.create_timed_out(self.zone, self.zone_index, moisture, self.effective_minutes)
        return outcome_factory.create_stopped_externally(self.zone, self.zone_index, moisture, self.effective_minutes)

    def _cancelled(self) -> ZoneOutcome:
        self.logger.warning(f"Watering of zone '{self.zone.name}' cancelled.")
        moisture = self.last_reading.percent if self.last_reading is not None else 0
        return outcome_factory.create_cancelled(self.zone, self.zone_index, moisture, self.effective_minutes)

    def _release(self) -> Optional[Exception]:
        """Closes the valve, then stops the timer. Never raises; returns the first error instead."""
        first_error: Optional[Exception] = None
        try:
            self.valve.close()
        except Exception as e:
            self.logger.critical(f"Failed to close valve {self.valve.valve_ref}: {e}")
            first_error = e
        try:
            self.timer.stop()
        except Exception as e:
            self.logger.error(f"Failed to stop timeout timer: {e}")
            first_error = first_error or e
        return first_error


    # ============================================================================================================
    # Private helpers
    # ============================================================================================================

    def _read(self) -> SensorReading:
        reading = SensorReading(self.sensor_reader.read_moisture(self.zone.sensor_ref))
        self.last_reading = reading
        return reading

    def _suspend(self, seconds: float) -> bool:
        """Non-busy wait. Returns True if the run was cancelled meanwhile."""
        if seconds <= 0:
            return self.stop_event.is_set()
        return self.stop_event.wait(seconds)

    def _finish(self, outcome: ZoneOutcome) -> None:
        self._notify(outcome.message)
        self._transition_state(ZoneState.DONE, reason=outcome.kind.value)

    def _notify(self, body: str) -> None:
        self.logger.info(body)
        safe_notify(self.notifier, self.title, self.preamble, body)

    def _transition_state(self, new_state: ZoneState, reason: Optional[str] = None) -> None:
        """Transitions the zone state if allowed. Validates, logs and updates the state."""
        with self._state_lock:
            old_state = self._state
            if not is_allowed(old_state, new_state):
                raise RuntimeError(f"State transition from {old_state.name} to {new_state.name} not allowed.")
            self._state = new_state

        if reason:
            self.logger.debug(f"State changed: {old_state.name} -> {new_state.name}. Reason: {reason}")
        else:
            self.logger.debug(f"State changed: {old_state.name} -> {new_state.name}.")

# garden_irrigation/core/zone_scheduler.py

import threading

from garden_irrigation.config.run_config import RunConfig
from garden_irrigation.core.enums import TimerState
from garden_irrigation.core.valves import create_valve
from garden_irrigation.core.zone_controller import ZoneController
from garden_irrigation.core.zone_outcome import ZoneOutcome
from garden_irrigation.exceptions import TimerCommandError
from garden_irrigation.interfaces import NotifierLike, SensorReaderLike, TimeoutTimerLike, ValveActuatorLike
from garden_irrigation.notifications.notifier import DEFAULT_TITLE, safe_notify

import garden_irrigation.utils.outcome_factory as outcome_factory
from garden_irrigation.utils.logger import get_logger


class ZoneScheduler:
    """
    Runs the zone controllers one after another, in configuration order.

    Zones share a single timeout timer, so a zone only starts once the previous one has
    released it. A failing zone is reported and the scheduler moves on to the next one.
    """

    def __init__(self, sensor_reader: SensorReaderLike, valve_actuator: ValveActuatorLike,
                 timer: TimeoutTimerLike, notifier: NotifierLike,
                 stop_event: threading.Event | None = None):
        self.logger = get_logger(self.__class__.__name__)
        self.sensor_reader = sensor_reader
        self.valve_actuator = valve_actuator
        self.timer = timer
        self.notifier = notifier
        self.stop_event = stop_event or threading.Event()

    def run_all(self, run_config: RunConfig) -> list[ZoneOutcome]:
        outcomes: list[ZoneOutcome] = []
        for zone_index, zone in enumerate(run_config.zones, start=1):
            if self.stop_event.is_set():
                self.logger.warning(f"Run cancelled, {len(run_config.zones) - zone_index + 1} zone(s) not processed.")
                break

            try:
                self._ensure_timer_idle()
            except Exception as e:
                self.logger.error(f"Zone {zone_index} '{zone.name}' not started, timeout timer unavailable: {e}")
                outcome = outcome_factory.create_failed(zone, zone_index, 0, f"Timeout timer unavailable: {e}")
                safe_notify(self.notifier, DEFAULT_TITLE, run_config.run_name, outcome.message)
                outcomes.append(outcome)
                continue

            controller = ZoneController(
                zone=zone,
                zone_index=zone_index,
                valve=create_valve(run_config.valve_type, zone.valve_ref, self.valve_actuator),
                timer=self.timer,
                sensor_reader=self.sensor_reader,
                notifier=self.notifier,
                settings=run_config.engine,
                stop_event=self.stop_event,
                preamble=run_config.run_name
            )
            self.logger.info(f"Processing zone {zone_index}/{len(run_config.zones)}: '{zone.name}'.")
            try:
                outcome = controller.run()
            except Exception as e:
                self.logger.error(f"Zone {zone_index} '{zone.name}' failed: {e}")
                moisture = controller.last_reading.percent if controller.last_reading is not None else 0
                outcome = outcome_factory.create_failed(zone, zone_index, moisture, str(e),
                                                        effective_minutes=controller.effective_minutes)
                safe_notify(self.notifier, DEFAULT_TITLE, run_config.run_name, outcome.message)

            self.logger.info(f"Zone {zone_index} '{zone.name}' finished with outcome {outcome.kind.name}.")
            outcomes.append(outcome)
        return outcomes

    def _ensure_timer_idle(self) -> None:
        """
        The shared timer must be idle before a zone may start it.

        :raises TimerCommandError: if the timer is still active after being stopped.
        """
        if self.timer.state == TimerState.IDLE:
            return
        self.logger.warning("Timeout timer still active before starting the next zone. Stopping it.")
        self.timer.stop()
        if self.timer.state != TimerState.IDLE:
            raise TimerCommandError("Timeout timer is still active after being stopped.")

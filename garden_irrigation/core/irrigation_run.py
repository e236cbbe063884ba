# garden_irrigation/core/irrigation_run.py

import threading

from garden_irrigation.config.run_config import RunConfig
from garden_irrigation.core.global_gate import GlobalGate
from garden_irrigation.core.zone_outcome import RunResult
from garden_irrigation.core.zone_scheduler import ZoneScheduler
from garden_irrigation.exceptions import ForecastUnavailableError
from garden_irrigation.interfaces import (
    ForecastProviderLike,
    NotifierLike,
    SensorReaderLike,
    TimeoutTimerLike,
    ValveActuatorLike,
)
from garden_irrigation.notifications.notifier import DEFAULT_TITLE, safe_notify

import garden_irrigation.utils.time_utils as time_utils
from garden_irrigation.utils.logger import get_logger


HEADER_LINE = "---------------------------------"
COMPLETE_MESSAGE = "Watering complete."
FORECAST_UNAVAILABLE_MESSAGE = "Garden not watered because the weather forecast for tomorrow is unavailable"


class IrrigationRun:
    """
    One daily irrigation run: header notification, global gate, zones in order, trailing notification.
    """

    def __init__(self, run_config: RunConfig,
                 sensor_reader: SensorReaderLike,
                 valve_actuator: ValveActuatorLike,
                 timer: TimeoutTimerLike,
                 forecast_provider: ForecastProviderLike,
                 notifier: NotifierLike,
                 stop_event: threading.Event | None = None):
        self.logger = get_logger(self.__class__.__name__)
        self.run_config = run_config
        self.notifier = notifier
        self.stop_event = stop_event or threading.Event()

        self.gate = GlobalGate(
            sensor_reader=sensor_reader,
            forecast_provider=forecast_provider,
            location=run_config.location,
            minimum_forecast_precipitation_mm=run_config.minimum_forecast_precipitation_mm
        )
        self.scheduler = ZoneScheduler(
            sensor_reader=sensor_reader,
            valve_actuator=valve_actuator,
            timer=timer,
            notifier=notifier,
            stop_event=self.stop_event
        )

    # ==================================================================================================================
    # Public API
    # ==================================================================================================================

    def run(self) -> RunResult:
        """
        Executes the run. Blocking.

        :raises ForecastUnavailableError: after notifying, if tomorrow's forecast could not be obtained.
        """
        result = RunResult(started_at=time_utils.now())
        self.logger.info(f"Starting irrigation run '{self.run_config.run_name}' with {len(self.run_config.zones)} zone(s).")
        self._notify(HEADER_LINE)

        try:
            decision = self.gate.should_suppress_watering(self.run_config.zones)
        except ForecastUnavailableError as e:
            self.logger.error(f"Forecast unavailable, aborting run: {e}")
            self._notify(FORECAST_UNAVAILABLE_MESSAGE)
            raise

        if decision.suppress:
            self._notify(decision.reason)
            result.suppressed = True
            result.reason = decision.reason
            result.finished_at = time_utils.now()
            return result

        result.outcomes = self.scheduler.run_all(self.run_config)
        result.cancelled = self.stop_event.is_set()
        result.finished_at = time_utils.now()

        if result.cancelled:
            self.logger.warning("Irrigation run cancelled before completion.")
        else:
            self._notify(COMPLETE_MESSAGE)
            self.logger.info(f"Irrigation run finished after {time_utils.elapsed_seconds(result.started_at, result.finished_at)} seconds.")
        return result

    def cancel(self) -> None:
        """Requests the run to stop. The zone currently watering closes its valve and releases the timer."""
        self.logger.info("Cancellation requested.")
        self.stop_event.set()

    # ==================================================================================================================
    # Private methods
    # ==================================================================================================================

    def _notify(self, body: str) -> None:
        safe_notify(self.notifier, DEFAULT_TITLE, self.run_config.run_name, body)

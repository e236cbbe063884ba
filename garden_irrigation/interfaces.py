# garden_irrigation/interfaces.py

from typing import Optional, Protocol

from garden_irrigation.config.run_config import Location
from garden_irrigation.core.enums import TimerState, ValveCommand, ValveState
from garden_irrigation.weather.forecast import DailyForecast


# ==================================================================================================================
# EXTERNAL COLLABORATORS
# ==================================================================================================================

class SensorReaderLike(Protocol):
    """
    Interface for reading soil moisture. Must not raise: an unreachable sensor is reported as None or a low value.
    """

    def read_moisture(self, sensor_ref: str) -> Optional[int]:
        ...


class ValveActuatorLike(Protocol):
    """
    Interface for the physical valve layer shared by all zones.
    """

    def set_valve(self, valve_ref: str, command: ValveCommand, duration_minutes: Optional[int] = None) -> None:
        """Send a command to a valve. `duration_minutes` is only meaningful for timed valves."""

        ...

    def valve_state(self, valve_ref: str) -> ValveState:
        ...


class TimeoutTimerLike(Protocol):
    """
    Interface for the shared timeout timer. Expiry returns the timer to IDLE.
    """

    def start(self, duration_minutes: float) -> None:
        ...

    def stop(self) -> None:
        ...

    @property
    def state(self) -> TimerState:
        ...


class ForecastProviderLike(Protocol):
    """
    Interface for daily forecasts. Index 0 is today, index 1 is tomorrow.
    """

    def get_daily_forecast(self, location: Location) -> list[DailyForecast]:
        ...


class NotifierLike(Protocol):

    def notify(self, title: str, preamble: str, body: str) -> None:
        ...


# ==================================================================================================================
# ZONE VALVE INTERFACE
# ==================================================================================================================

class ZoneValveLike(Protocol):
    """
    Interface for the controller's view of one zone valve, independent of the valve variant.
    """

    valve_ref: str

    def open(self, duration_minutes: int) -> None:
        ...

    def close(self) -> None:
        ...

    @property
    def state(self) -> ValveState:
        ...

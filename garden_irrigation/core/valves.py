import time
from typing import Optional

from garden_irrigation.core.enums import ValveCommand, ValveState, ValveType
from garden_irrigation.exceptions import ValveCommandError
from garden_irrigation.interfaces import ValveActuatorLike, ZoneValveLike
from garden_irrigation.utils.logger import get_logger


MAX_RETRIES = 3             # Maximum number of attempts per valve command
RETRY_DELAY_SECONDS = 1.0   # Wait between attempts
TIMED_VALVE_BACKSTOP_MINUTES = 1    # Timed valves run this much longer than the engine's own timer


class ZoneValve:
    """
    Base class for a zone valve. Subclasses decide what duration, if any, accompanies the open command.
    """

    def __init__(self, valve_ref: str, actuator: ValveActuatorLike):
        self.logger = get_logger(f"{self.__class__.__name__}-{valve_ref}")
        self.valve_ref = valve_ref
        self.actuator = actuator

    @property
    def state(self) -> ValveState:
        """Returns the state reported by the actuator layer."""
        return self.actuator.valve_state(self.valve_ref)

    def open(self, duration_minutes: int) -> None:
        """Opens the valve. `duration_minutes` is the engine's effective watering time."""
        self._send(ValveCommand.OPEN, self._open_duration(duration_minutes))

    def close(self) -> None:
        """Closes the valve. No-op if the actuator already reports it closed."""
        try:
            if self.state == ValveState.CLOSED:
                self.logger.debug(f"Valve {self.valve_ref} is already closed. No action taken.")
                return
        except Exception as e:
            # Unknown state, closing anyway is the safe side
            self.logger.warning(f"Could not read state of valve {self.valve_ref} before closing: {e}")
        self._send(ValveCommand.CLOSE, None)

    def _open_duration(self, duration_minutes: int) -> Optional[int]:
        raise NotImplementedError

    def _send(self, command: ValveCommand, duration_minutes: Optional[int]) -> None:
        """Sends a command to the actuator, retrying up to MAX_RETRIES times."""
        last_error: Optional[Exception] = None
        for attempt in range(1, MAX_RETRIES + 1):
            try:
                self.actuator.set_valve(self.valve_ref, command, duration_minutes)
                if duration_minutes is None:
                    self.logger.debug(f"Valve {self.valve_ref}: {command.name} sent.")
                else:
                    self.logger.debug(f"Valve {self.valve_ref}: {command.name} sent for {duration_minutes} minutes.")
                return
            except Exception as e:
                last_error = e
                self.logger.error(
                    f"Error while sending {command.name} to valve {self.valve_ref}: {e}. Attempt {attempt}/{MAX_RETRIES}."
                )
                if attempt < MAX_RETRIES:
                    time.sleep(RETRY_DELAY_SECONDS)

        # If all retries fail, log a critical error and raise
        self.logger.critical(
            f"Failed to send {command.name} to valve {self.valve_ref} after {MAX_RETRIES} attempts. Please check hardware."
        )
        raise ValveCommandError(
            f"Failed to send {command.name} to valve {self.valve_ref} after {MAX_RETRIES} attempts: {last_error}",
            valve_ref=self.valve_ref,
            command=command
        ) from last_error


class SwitchValve(ZoneValve):
    """Plain on/off switch. Watering time is enforced only by the engine's timeout timer."""

    def _open_duration(self, duration_minutes: int) -> Optional[int]:
        return None


class TimedValve(ZoneValve):
    """
    Valve controller that runs for a duration of its own. It is given one extra minute
    so the engine always closes it first; its own timeout only acts as a backstop.
    """

    def _open_duration(self, duration_minutes: int) -> Optional[int]:
        return int(duration_minutes) + TIMED_VALVE_BACKSTOP_MINUTES


def create_valve(valve_type: ValveType, valve_ref: str, actuator: ValveActuatorLike) -> ZoneValveLike:
    """Factory function creating the zone valve variant for the configured valve type."""
    if valve_type == ValveType.SWITCH:
        return SwitchValve(valve_ref, actuator)
    if valve_type == ValveType.TIMED_VALVE:
        return TimedValve(valve_ref, actuator)
    raise ValueError(f"Unsupported valve type: {valve_type}")

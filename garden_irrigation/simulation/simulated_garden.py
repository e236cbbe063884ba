import random
import threading
import time
from collections.abc import Callable
from typing import Optional

from garden_irrigation.config.run_config import RunConfig
from garden_irrigation.core.enums import SECONDS_IN_MINUTE, ValveCommand, ValveState
from garden_irrigation.utils.logger import get_logger


DEFAULT_RISE_PER_MINUTE = 2.0       # Moisture percentage points gained per minute of watering


class SimulatedGarden:
    """
    In-memory sensors and valves for dry runs and tests.

    Each valve waters the sensor mapped to it; while open, that sensor's moisture rises linearly.
    A valve opened with a duration closes itself once the duration has passed, like a timed controller.
    """

    def __init__(self, moisture: dict[str, float], valve_sensors: dict[str, str],
                 rise_per_minute: float = DEFAULT_RISE_PER_MINUTE,
                 clock: Callable[[], float] = time.monotonic):
        self.logger = get_logger("SimulatedGarden")
        self._moisture: dict[str, float] = dict(moisture)
        self._valve_sensors = dict(valve_sensors)
        self._valve_states: dict[str, ValveState] = {ref: ValveState.CLOSED for ref in valve_sensors}
        self._auto_close_at: dict[str, float] = {}
        self.rise_per_minute = rise_per_minute
        self._clock = clock
        self._last_update = clock()
        self._lock = threading.Lock()
        self.commands: list[tuple[str, ValveCommand, Optional[int]]] = []    # History of received commands

    @classmethod
    def from_run_config(cls, run_config: RunConfig, seed=None,
                        rise_per_minute: float = DEFAULT_RISE_PER_MINUTE) -> "SimulatedGarden":
        """Creates a garden matching the configured zones with random initial moisture."""
        rng = random.Random(seed)
        moisture = {zone.sensor_ref: float(rng.randint(0, 70)) for zone in run_config.zones}
        valve_sensors = {zone.valve_ref: zone.sensor_ref for zone in run_config.zones}
        return cls(moisture=moisture, valve_sensors=valve_sensors, rise_per_minute=rise_per_minute)

    # ============================================================================================================
    # Sensor reader
    # ============================================================================================================

    def read_moisture(self, sensor_ref: str) -> Optional[int]:
        with self._lock:
            self._advance()
            value = self._moisture.get(sensor_ref)
        if value is None:
            self.logger.warning(f"Unknown sensor {sensor_ref}.")
            return None
        return int(round(value))

    def set_moisture(self, sensor_ref: str, value: float) -> None:
        with self._lock:
            self._advance()
            self._moisture[sensor_ref] = value

    # ============================================================================================================
    # Valve actuator
    # ============================================================================================================

    def set_valve(self, valve_ref: str, command: ValveCommand, duration_minutes: Optional[int] = None) -> None:
        with self._lock:
            if valve_ref not in self._valve_states:
                raise KeyError(f"Unknown valve {valve_ref}")
            self._advance()
            self.commands.append((valve_ref, command, duration_minutes))
            if command == ValveCommand.OPEN:
                self._valve_states[valve_ref] = ValveState.OPEN
                if duration_minutes is not None:
                    self._auto_close_at[valve_ref] = self._clock() + duration_minutes * SECONDS_IN_MINUTE
            else:
                self._valve_states[valve_ref] = ValveState.CLOSED
                self._auto_close_at.pop(valve_ref, None)
        self.logger.info(f"Valve {valve_ref}: {command.name}" + (f" for {duration_minutes} minutes" if duration_minutes else ""))

    def valve_state(self, valve_ref: str) -> ValveState:
        with self._lock:
            self._advance()
            return self._valve_states[valve_ref]

    def close_externally(self, valve_ref: str) -> None:
        """Closes a valve behind the engine's back, as a person or the controller itself would."""
        with self._lock:
            self._advance()
            self._valve_states[valve_ref] = ValveState.CLOSED
            self._auto_close_at.pop(valve_ref, None)

    # ============================================================================================================
    # Private helpers
    # ============================================================================================================

    def _advance(self) -> None:
        """Applies watering since the last update. Caller holds the lock."""
        now = self._clock()
        for valve_ref, state in self._valve_states.items():
            if state != ValveState.OPEN:
                continue
            until = min(now, self._auto_close_at.get(valve_ref, now))
            minutes = max(0.0, until - self._last_update) / SECONDS_IN_MINUTE
            sensor_ref = self._valve_sensors[valve_ref]
            current = self._moisture.get(sensor_ref, 0.0)
            self._moisture[sensor_ref] = min(100.0, current + minutes * self.rise_per_minute)
            if valve_ref in self._auto_close_at and now >= self._auto_close_at[valve_ref]:
                self._valve_states[valve_ref] = ValveState.CLOSED
                del self._auto_close_at[valve_ref]
        self._last_update = now

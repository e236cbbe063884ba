import threading
import time
from collections.abc import Callable
from typing import Optional

from garden_irrigation.core.enums import TimerState
from garden_irrigation.exceptions import TimerCommandError
from garden_irrigation.utils import time_utils
from garden_irrigation.utils.logger import get_logger


class ThreadingTimeoutTimer:
    """
    Countdown timer shared by all zones of a run. Once the deadline passes, the timer
    reports IDLE again, the same state it has before being started.
    """

    def __init__(self, timer_ref: str, clock: Callable[[], float] = time.monotonic):
        self.logger = get_logger(f"TimeoutTimer-{timer_ref}")
        self.timer_ref = timer_ref
        self._clock = clock
        self._lock = threading.Lock()
        self._deadline: Optional[float] = None

    @property
    def state(self) -> TimerState:
        with self._lock:
            if self._deadline is None:
                return TimerState.IDLE
            if self._clock() >= self._deadline:
                self._deadline = None
                self.logger.info(f"Timer {self.timer_ref} expired.")
                return TimerState.IDLE
            return TimerState.ACTIVE

    def start(self, duration_minutes: float) -> None:
        if duration_minutes <= 0:
            raise TimerCommandError(f"Timer {self.timer_ref} duration must be positive, got {duration_minutes} minutes.")
        with self._lock:
            if self._deadline is not None:
                self.logger.warning(f"Timer {self.timer_ref} restarted while still running.")
            self._deadline = self._clock() + time_utils.minutes_to_seconds(duration_minutes)
        self.logger.info(f"Timer {self.timer_ref} started for {duration_minutes} minutes.")

    def stop(self) -> None:
        with self._lock:
            was_running = self._deadline is not None
            self._deadline = None
        if was_running:
            self.logger.info(f"Timer {self.timer_ref} stopped.")
        else:
            self.logger.debug(f"Timer {self.timer_ref} already idle.")

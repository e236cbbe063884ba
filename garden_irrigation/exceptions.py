# garden_irrigation/exceptions.py

from typing import Optional

from garden_irrigation.core.enums import ValveCommand


class IrrigationError(Exception):
    """Base class for all errors raised by the irrigation engine."""
    pass

class ConfigurationError(IrrigationError):
    """Raised when the run configuration is missing or inconsistent. Detected before any actuator is touched."""
    pass

class ForecastUnavailableError(IrrigationError):
    """Raised when the daily forecast for tomorrow cannot be obtained."""
    pass

class ActuatorError(IrrigationError):
    """Raised when a valve or the timeout timer cannot be commanded."""
    pass

class ValveCommandError(ActuatorError):
    """
    Exception raised when a valve command cannot be delivered.
    Attributes:
        valve_ref (str): The valve the command was addressed to.
        command (ValveCommand): The command that was attempted.
    """
    def __init__(self, message: str, valve_ref: str, command: Optional[ValveCommand] = None):
        super().__init__(message)
        self.valve_ref = valve_ref
        self.command = command

class TimerCommandError(ActuatorError):
    """Exception raised when the timeout timer cannot be started or stopped."""
    pass

from enum import Enum


class ValveType(Enum):
    SWITCH = "switch"                       # Plain smart switch, duration enforced by the engine's timer only
    TIMED_VALVE = "timed_valve"             # Controller that accepts its own run duration (e.g. B-Hyve)

    @classmethod
    def from_str(cls, value: str) -> "ValveType":
        """Parses a valve type selector, accepting the legacy controller names."""
        normalized = value.strip().lower().replace(" ", "_")
        if normalized in ("b-hyve", "bhyve", "timed", "timedvalve"):
            return cls.TIMED_VALVE
        for member in cls:
            if member.value == normalized:
                return member
        raise ValueError(f"Unsupported valve type: {value}. Supported types are: {[m.value for m in cls]}")


class ValveCommand(Enum):
    OPEN = "open"
    CLOSE = "close"


class ValveState(Enum):
    OPEN = "open"                           # Water is flowing
    CLOSED = "closed"                       # Valve is closed


class TimerState(Enum):
    IDLE = "idle"                           # Not running; also the state reached after expiry
    ACTIVE = "active"                       # Counting down


# Run-time state of a zone inside the controller
class ZoneState(Enum):
    EVALUATING = "evaluating"               # Reading the sensor and deciding
    SKIPPED = "skipped"                     # Moisture above threshold, nothing to do
    WATERING = "watering"                   # Valve open, monitoring stop conditions
    STOPPING = "stopping"                   # Closing valve and releasing the timer
    DONE = "done"                           # Outcome emitted


class ZoneOutcomeKind(Enum):
    """High-level result of one zone in a daily run."""
    SKIPPED = "skipped"                     # Moisture already over threshold
    TARGET_REACHED = "target_reached"       # Moisture reached the target
    TIMED_OUT = "timed_out"                 # Timeout timer expired
    STOPPED_EXTERNALLY = "stopped_externally"   # Valve closed manually, by its controller, or run cancelled
    FAILED = "failed"                       # Actuator error, zone abandoned


SECONDS_IN_MINUTE = 60
NON_FUNCTIONAL_READING_MAX = 3              # Readings at or below this are treated as a dead sensor

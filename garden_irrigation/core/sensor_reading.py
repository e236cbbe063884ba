from dataclasses import dataclass
from typing import Optional

from garden_irrigation.core.enums import NON_FUNCTIONAL_READING_MAX


@dataclass(frozen=True)
class SensorReading:
    """A single moisture reading. A missing value counts as 0%."""
    raw: Optional[int]

    @property
    def percent(self) -> int:
        """Reading clamped to 0-100, or 0 when the sensor returned nothing."""
        if self.raw is None:
            return 0
        return max(0, min(100, int(self.raw)))

    @property
    def is_functional(self) -> bool:
        # Faulty sensors tend to report values close to zero
        return self.percent > NON_FUNCTIONAL_READING_MAX

    @property
    def gate_value(self) -> int:
        """Value used by the all-zones-sufficient check. A dead sensor never counts as sufficient."""
        return self.percent if self.is_functional else 0

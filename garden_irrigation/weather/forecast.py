from dataclasses import dataclass
from datetime import date
from typing import Optional

TOMORROW_INDEX = 1


@dataclass(frozen=True)
class DailyForecast:
    """One day of a daily forecast. Does not validate the data or types."""
    precipitation: float            # mm expected over the whole day
    day: Optional[date] = None

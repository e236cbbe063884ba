import random
from datetime import timedelta
from typing import Optional

from garden_irrigation.config.run_config import Location
from garden_irrigation.utils import time_utils
from garden_irrigation.utils.logger import get_logger
from garden_irrigation.weather.forecast import TOMORROW_INDEX, DailyForecast


FORECAST_DAYS = 2
MAX_SIMULATED_PRECIPITATION_MM = 30.0


class ForecastSimulator:
    """Simulates a daily precipitation forecast for dry runs and tests."""

    def __init__(self, seed=None, tomorrow_precipitation: Optional[float] = None, days: int = FORECAST_DAYS):
        self.logger = get_logger("ForecastSimulator")
        self.rng = random.Random(seed)  # Local random number generator for reproducibility
        self.tomorrow_precipitation = tomorrow_precipitation
        self.days = days
        self.logger.info("ForecastSimulator initialized.")

    def get_daily_forecast(self, location: Location) -> list[DailyForecast]:
        """Returns `days` simulated days. A fixed tomorrow value overrides the random one."""
        today = time_utils.now().date()
        forecast = []
        for offset in range(self.days):
            precipitation = round(self.rng.uniform(0, MAX_SIMULATED_PRECIPITATION_MM), 1)
            if offset == TOMORROW_INDEX and self.tomorrow_precipitation is not None:
                precipitation = self.tomorrow_precipitation
            forecast.append(DailyForecast(precipitation=precipitation, day=today + timedelta(days=offset)))
        self.logger.debug(f"Simulated forecast: {[f.precipitation for f in forecast]} mm.")
        return forecast

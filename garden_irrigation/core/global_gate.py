# garden_irrigation/core/global_gate.py

from dataclasses import dataclass
from typing import Optional, Sequence

from garden_irrigation.config.run_config import Location, ZoneConfig
from garden_irrigation.core.sensor_reading import SensorReading
from garden_irrigation.exceptions import ForecastUnavailableError
from garden_irrigation.interfaces import ForecastProviderLike, SensorReaderLike
from garden_irrigation.utils.logger import get_logger
from garden_irrigation.weather.forecast import TOMORROW_INDEX, DailyForecast


MOISTURE_SUFFICIENT_REASON = "Garden not watered because soil moisture is already at least the threshold for all zones"


@dataclass(frozen=True)
class GateDecision:
    suppress: bool
    reason: Optional[str] = None


def all_zones_sufficient(zones: Sequence[ZoneConfig], readings: Sequence[SensorReading]) -> bool:
    """True if every zone is at or above its threshold. Dead sensors count as 0%."""
    if not zones:
        return False
    return all(reading.gate_value >= zone.threshold_pct for zone, reading in zip(zones, readings))


def tomorrow_precipitation(forecast: Sequence[DailyForecast]) -> float:
    """
    Returns tomorrow's forecast precipitation in mm.

    :raises ForecastUnavailableError: if the forecast has no entry for tomorrow.
    """
    if len(forecast) <= TOMORROW_INDEX:
        raise ForecastUnavailableError(f"Daily forecast has {len(forecast)} entries, no entry for tomorrow.")
    precipitation = forecast[TOMORROW_INDEX].precipitation
    if precipitation is None:
        raise ForecastUnavailableError("Daily forecast for tomorrow has no precipitation value.")
    return float(precipitation)


class GlobalGate:
    """
    Decides whether the whole run should be suppressed before any zone is evaluated.

    Checks run in order and the first one that suppresses wins:
    1. every zone already has at least its threshold moisture,
    2. more rain than the configured minimum is forecast for tomorrow.
    The forecast is only fetched when the first check did not suppress.
    """

    def __init__(self, sensor_reader: SensorReaderLike, forecast_provider: ForecastProviderLike,
                 location: Location, minimum_forecast_precipitation_mm: float):
        self.logger = get_logger(self.__class__.__name__)
        self.sensor_reader = sensor_reader
        self.forecast_provider = forecast_provider
        self.location = location
        self.minimum_forecast_precipitation_mm = minimum_forecast_precipitation_mm

    def should_suppress_watering(self, zones: Sequence[ZoneConfig]) -> GateDecision:
        """
        Evaluates both suppression checks.

        :raises ForecastUnavailableError: if tomorrow's forecast is missing. Not caught here on purpose.
        """
        readings = [SensorReading(self.sensor_reader.read_moisture(zone.sensor_ref)) for zone in zones]
        for zone, reading in zip(zones, readings):
            self.logger.debug(
                f"Zone '{zone.name}': moisture {reading.percent}% (functional: {reading.is_functional}), "
                f"threshold {zone.threshold_pct}%."
            )

        if all_zones_sufficient(zones, readings):
            self.logger.info(MOISTURE_SUFFICIENT_REASON)
            return GateDecision(suppress=True, reason=MOISTURE_SUFFICIENT_REASON)

        forecast = self.forecast_provider.get_daily_forecast(self.location)
        precipitation = tomorrow_precipitation(forecast)
        self.logger.debug(
            f"Tomorrow's forecast precipitation is {precipitation} mm (minimum {self.minimum_forecast_precipitation_mm} mm)."
        )
        if precipitation > self.minimum_forecast_precipitation_mm:
            reason = (f"Garden not watered because {_format_mm(precipitation)} mm rain is forecast for tomorrow, "
                      f"which is more than the set threshold of {_format_mm(self.minimum_forecast_precipitation_mm)} mm")
            self.logger.info(reason)
            return GateDecision(suppress=True, reason=reason)

        return GateDecision(suppress=False)


def _format_mm(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)

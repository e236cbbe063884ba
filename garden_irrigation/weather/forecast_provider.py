import requests

from garden_irrigation.config.run_config import ForecastSettings, Location
from garden_irrigation.exceptions import ForecastUnavailableError
from garden_irrigation.utils.logger import get_logger
from garden_irrigation.weather.forecast import DailyForecast
from garden_irrigation.weather.open_meteo_api import daily_forecast_api_call, parse_daily_forecast


class OpenMeteoForecastProvider:
    """Daily precipitation forecast from the Open-Meteo HTTP API. No API key needed."""

    def __init__(self, settings: ForecastSettings):
        self.logger = get_logger("OpenMeteoForecastProvider")
        self.api_url = settings.api_url
        self.timeout_seconds = settings.timeout_seconds

    def get_daily_forecast(self, location: Location) -> list[DailyForecast]:
        """
        Fetches the daily forecast for the location, index 0 being today.

        :raises ForecastUnavailableError: on connection, HTTP or format errors.
        """
        self.logger.debug(f"Fetching daily forecast from {self.api_url} for {location.latitude}, {location.longitude}.")
        try:
            data = daily_forecast_api_call(self.api_url, location, self.timeout_seconds)
            forecast = parse_daily_forecast(data)
        except requests.exceptions.ConnectionError as e:
            self.logger.error(f"Connection error while fetching forecast: {e}")
            raise ForecastUnavailableError(f"Forecast service unreachable: {e}") from e
        except requests.exceptions.RequestException as e:
            self.logger.error(f"Error while fetching forecast: {e}")
            raise ForecastUnavailableError(f"Forecast request failed: {e}") from e
        except ValueError as e:
            self.logger.error(f"Invalid forecast response: {e}")
            raise ForecastUnavailableError(str(e)) from e

        self.logger.info(f"Forecast fetched: {[f.precipitation for f in forecast]} mm.")
        return forecast

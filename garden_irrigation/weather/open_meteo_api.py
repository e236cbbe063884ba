from datetime import date

import requests

from garden_irrigation.config.run_config import Location
from garden_irrigation.weather.forecast import DailyForecast
from garden_irrigation.weather.weather_config import (
    DAILY_PRECIPITATION_VARIABLE,
    FORECAST_DAYS,
    MM,
    TIMEZONE,
)


def perform_api_call(url: str, params: dict, timeout: float) -> dict:
    """Performs an API call and returns the decoded JSON body."""
    response = requests.get(url, params=params, timeout=timeout)
    if response.status_code != 200:
        raise requests.HTTPError(f"Failed to fetch API data: {response.status_code} - {response.text}", response=response)
    return response.json()


def daily_forecast_api_call(url: str, location: Location, timeout: float) -> dict:
    """Performs an API call to fetch the daily precipitation forecast."""
    params = {
        "latitude": location.latitude,
        "longitude": location.longitude,
        "daily": DAILY_PRECIPITATION_VARIABLE,
        "forecast_days": FORECAST_DAYS,
        "precipitation_unit": MM,
        "timezone": TIMEZONE,
    }
    return perform_api_call(url, params, timeout)


def parse_daily_forecast(data: dict) -> list[DailyForecast]:
    """
    Converts the Open-Meteo daily block into DailyForecast entries, today first.

    :raises ValueError: if the response does not contain the daily precipitation series.
    """
    try:
        daily = data["daily"]
        days = daily["time"]
        precipitation = daily[DAILY_PRECIPITATION_VARIABLE]
    except (KeyError, TypeError) as e:
        raise ValueError(f"Unexpected response format from forecast API: missing {e}") from e

    if len(days) != len(precipitation):
        raise ValueError("Unexpected response format from forecast API: time and precipitation lengths differ")

    return [
        DailyForecast(precipitation=value, day=date.fromisoformat(day))
        for day, value in zip(days, precipitation)
    ]

import pytest
import requests
from datetime import date
from unittest.mock import MagicMock

import garden_irrigation.weather.open_meteo_api as open_meteo_api
from garden_irrigation.config.run_config import ForecastSettings, Location
from garden_irrigation.exceptions import ForecastUnavailableError
from garden_irrigation.weather.forecast_provider import OpenMeteoForecastProvider
from garden_irrigation.weather.open_meteo_api import parse_daily_forecast


# ---------------------- Fixtures ----------------------

@pytest.fixture
def location():
    return Location(latitude=50.08, longitude=14.42)

@pytest.fixture
def provider(location):
    return OpenMeteoForecastProvider(ForecastSettings(location=location, minimum_precipitation_mm=10,
                                                      api_url="https://forecast.test/v1/forecast",
                                                      timeout_seconds=3))

@pytest.fixture
def api_response():
    return {
        "latitude": 50.08,
        "longitude": 14.42,
        "daily_units": {"time": "iso8601", "precipitation_sum": "mm"},
        "daily": {
            "time": ["2025-06-01", "2025-06-02"],
            "precipitation_sum": [0.4, 12.8]
        }
    }


def fake_response(status_code=200, body=None):
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body
    response.text = "error"
    return response


# ---------------------- Tests ----------------------

def test_parse_daily_forecast(api_response):
    forecast = parse_daily_forecast(api_response)

    assert [day.precipitation for day in forecast] == [0.4, 12.8]
    assert forecast[1].day == date(2025, 6, 2)


@pytest.mark.parametrize(
        "data",
        [
            {},
            {"daily": {"time": ["2025-06-01"]}},
            {"daily": {"time": ["2025-06-01", "2025-06-02"], "precipitation_sum": [1.0]}},
            None
        ]
)
def test_parse_rejects_malformed_response(data):
    with pytest.raises(ValueError):
        parse_daily_forecast(data)


def test_provider_requests_daily_precipitation(monkeypatch, provider, location, api_response):
    get = MagicMock(return_value=fake_response(body=api_response))
    monkeypatch.setattr(open_meteo_api.requests, "get", get)

    forecast = provider.get_daily_forecast(location)

    assert forecast[1].precipitation == 12.8
    args, kwargs = get.call_args
    assert args[0] == "https://forecast.test/v1/forecast"
    assert kwargs["params"]["latitude"] == 50.08
    assert kwargs["params"]["daily"] == "precipitation_sum"
    assert kwargs["params"]["forecast_days"] == 2
    assert kwargs["timeout"] == 3


@pytest.mark.parametrize(
        "side_effect, response",
        [
            (requests.exceptions.ConnectionError("unreachable"), None),
            (requests.exceptions.Timeout("slow"), None),
            (None, fake_response(status_code=500)),
            (None, fake_response(body={"error": True, "reason": "bad coordinates"}))
        ]
)
def test_provider_failures_become_forecast_unavailable(monkeypatch, provider, location, side_effect, response):
    get = MagicMock(side_effect=side_effect, return_value=response)
    monkeypatch.setattr(open_meteo_api.requests, "get", get)

    with pytest.raises(ForecastUnavailableError):
        provider.get_daily_forecast(location)

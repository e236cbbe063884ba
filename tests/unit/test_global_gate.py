import pytest
from unittest.mock import MagicMock

from garden_irrigation.config.run_config import Location, ZoneConfig
from garden_irrigation.core.global_gate import (
    MOISTURE_SUFFICIENT_REASON,
    GlobalGate,
    all_zones_sufficient,
    tomorrow_precipitation,
)
from garden_irrigation.core.sensor_reading import SensorReading
from garden_irrigation.exceptions import ForecastUnavailableError
from garden_irrigation.weather.forecast import DailyForecast


# ---------------------- Fixtures ----------------------

@pytest.fixture
def zones():
    return [
        ZoneConfig(name="Lawn", valve_ref="v1", sensor_ref="s1", threshold_pct=30, target_pct=60,
                   max_minutes=20, default_minutes=10),
        ZoneConfig(name="Beds", valve_ref="v2", sensor_ref="s2", threshold_pct=40, target_pct=70,
                   max_minutes=15, default_minutes=10),
    ]


def make_gate(readings, forecast=None, minimum=10.0):
    sensor_reader = MagicMock()
    sensor_reader.read_moisture.side_effect = lambda ref: readings[ref]
    forecast_provider = MagicMock()
    forecast_provider.get_daily_forecast.return_value = forecast or [DailyForecast(0.0), DailyForecast(0.0)]
    gate = GlobalGate(sensor_reader, forecast_provider, Location(50.0, 14.0), minimum)
    return gate, forecast_provider


# ---------------------- Tests ----------------------

def test_all_zones_at_threshold_suppresses_without_forecast(zones):
    gate, forecast_provider = make_gate({"s1": 30, "s2": 45})

    decision = gate.should_suppress_watering(zones)

    assert decision.suppress
    assert decision.reason == MOISTURE_SUFFICIENT_REASON
    forecast_provider.get_daily_forecast.assert_not_called()


def test_one_dry_zone_consults_forecast(zones):
    gate, forecast_provider = make_gate({"s1": 30, "s2": 39})

    decision = gate.should_suppress_watering(zones)

    assert not decision.suppress
    assert decision.reason is None
    forecast_provider.get_daily_forecast.assert_called_once_with(Location(50.0, 14.0))


def test_dead_sensor_is_never_sufficient():
    zone = ZoneConfig(name="Pots", valve_ref="v", sensor_ref="s", threshold_pct=2, target_pct=50,
                      max_minutes=5, default_minutes=5)
    assert not all_zones_sufficient([zone], [SensorReading(3)])
    assert not all_zones_sufficient([zone], [SensorReading(None)])


def test_no_zones_are_not_sufficient():
    assert not all_zones_sufficient([], [])


def test_rain_above_minimum_suppresses(zones):
    gate, _ = make_gate({"s1": 10, "s2": 10}, forecast=[DailyForecast(0.0), DailyForecast(12.5)])

    decision = gate.should_suppress_watering(zones)

    assert decision.suppress
    assert decision.reason == ("Garden not watered because 12.5 mm rain is forecast for tomorrow, "
                               "which is more than the set threshold of 10 mm")


def test_rain_equal_to_minimum_does_not_suppress(zones):
    gate, _ = make_gate({"s1": 10, "s2": 10}, forecast=[DailyForecast(0.0), DailyForecast(10.0)])

    assert not gate.should_suppress_watering(zones).suppress


def test_forecast_without_tomorrow_raises(zones):
    gate, _ = make_gate({"s1": 10, "s2": 10}, forecast=[DailyForecast(30.0)])

    with pytest.raises(ForecastUnavailableError):
        gate.should_suppress_watering(zones)


def test_tomorrow_precipitation_requires_a_value():
    with pytest.raises(ForecastUnavailableError):
        tomorrow_precipitation([DailyForecast(0.0), DailyForecast(None)])
    assert tomorrow_precipitation([DailyForecast(1.0), DailyForecast(4)]) == 4.0


def test_forecast_error_propagates(zones):
    gate, forecast_provider = make_gate({"s1": 10, "s2": 10})
    forecast_provider.get_daily_forecast.side_effect = ForecastUnavailableError("service down")

    with pytest.raises(ForecastUnavailableError, match="service down"):
        gate.should_suppress_watering(zones)

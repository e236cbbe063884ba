from dataclasses import dataclass, field
from typing import Optional

from garden_irrigation.core.enums import ValveType


DEFAULT_RUN_NAME = "Garden Irrigation"
DEFAULT_POLL_INTERVAL_SECONDS = 60
DEFAULT_SETTLE_DELAY_SECONDS = 60
DEFAULT_FORECAST_API_URL = "https://api.open-meteo.com/v1/forecast"
DEFAULT_FORECAST_TIMEOUT_SECONDS = 10


@dataclass(frozen=True)
class ZoneConfig:
    """One irrigation zone. Thresholds are compared independently; target is not assumed above threshold."""
    name: str
    valve_ref: str
    sensor_ref: str
    threshold_pct: int          # Watering starts only at or below this moisture level
    target_pct: int             # Watering stops at or above this moisture level
    max_minutes: int            # Ceiling when the sensor is functioning
    default_minutes: int        # Duration when the sensor is not functioning


@dataclass(frozen=True)
class Location:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class ForecastSettings:
    location: Location
    minimum_precipitation_mm: float     # Tomorrow's rain above this suppresses the whole run
    api_url: str = DEFAULT_FORECAST_API_URL
    timeout_seconds: float = DEFAULT_FORECAST_TIMEOUT_SECONDS


@dataclass(frozen=True)
class EngineSettings:
    poll_interval_seconds: float = DEFAULT_POLL_INTERVAL_SECONDS
    settle_delay_seconds: float = DEFAULT_SETTLE_DELAY_SECONDS


@dataclass(frozen=True)
class MQTTSettings:
    broker_host: str = "localhost"
    broker_port: int = 1883
    base_topic: str = "garden"


@dataclass(frozen=True)
class RunConfig:
    """
    Immutable configuration of a single daily irrigation run.
    """
    zones: tuple[ZoneConfig, ...]
    valve_type: ValveType
    timer_ref: str
    forecast: ForecastSettings
    engine: EngineSettings = field(default_factory=EngineSettings)
    mqtt: MQTTSettings = field(default_factory=MQTTSettings)
    notification_service: Optional[str] = None
    run_name: str = DEFAULT_RUN_NAME
    log_level: str = "INFO"

    @property
    def minimum_forecast_precipitation_mm(self) -> float:
        return self.forecast.minimum_precipitation_mm

    @property
    def location(self) -> Location:
        return self.forecast.location

    @staticmethod
    def from_dict(data: dict, zones: list[ZoneConfig]) -> 'RunConfig':
        """
        Creates a RunConfig instance from an already validated dictionary and the resolved zones.
        """
        forecast = data["forecast"]
        engine = data.get("engine", {})
        mqtt = data.get("mqtt", {})
        service = data.get("notifications", {}).get("service") or None
        return RunConfig(
            zones=tuple(zones),
            valve_type=ValveType.from_str(data.get("valve_type", ValveType.SWITCH.value)),
            timer_ref=data["timer"],
            forecast=ForecastSettings(
                location=Location(
                    latitude=float(forecast["latitude"]),
                    longitude=float(forecast["longitude"])
                ),
                minimum_precipitation_mm=float(forecast["minimum_precipitation_mm"]),
                api_url=forecast.get("api_url", DEFAULT_FORECAST_API_URL),
                timeout_seconds=float(forecast.get("timeout_seconds", DEFAULT_FORECAST_TIMEOUT_SECONDS))
            ),
            engine=EngineSettings(
                poll_interval_seconds=float(engine.get("poll_interval_seconds", DEFAULT_POLL_INTERVAL_SECONDS)),
                settle_delay_seconds=float(engine.get("settle_delay_seconds", DEFAULT_SETTLE_DELAY_SECONDS))
            ),
            mqtt=MQTTSettings(
                broker_host=mqtt.get("broker_host", "localhost"),
                broker_port=int(mqtt.get("broker_port", 1883)),
                base_topic=mqtt.get("base_topic", "garden")
            ),
            notification_service=service,
            run_name=data.get("run_name", DEFAULT_RUN_NAME),
            log_level=data.get("logging", {}).get("log_level", "INFO")
        )

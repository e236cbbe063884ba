import json

from garden_irrigation.config.run_config import RunConfig, ZoneConfig
from garden_irrigation.core.enums import ValveType
from garden_irrigation.exceptions import ConfigurationError
from garden_irrigation.utils.logger import get_logger

# Initialize logger
logger = get_logger("config_loader")

MIN_FORECAST_PRECIPITATION_MM = 10
MAX_FORECAST_PRECIPITATION_MM = 200

# Keys of the parallel-list zone layout, aligned by index
PARALLEL_LIST_KEYS = {
    "zone_switches": "valve_ref",
    "zone_moisture_sensors": "sensor_ref",
    "zone_moisture_thresholds": "threshold_pct",
    "zone_moisture_targets": "target_pct",
    "zone_maximum_watering_times": "max_minutes",
    "zone_default_watering_times": "default_minutes",
}


def load_run_config(filepath: str) -> RunConfig:
    """
    Loads the run configuration from a JSON file. Raises ConfigurationError if anything is missing or inconsistent.
    """
    try:
        with open(filepath, "r") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise ConfigurationError(f"Configuration file not found: {filepath}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Configuration file {filepath} is not valid JSON: {e}") from e

    return run_config_from_dict(data)


def run_config_from_dict(data: dict) -> RunConfig:
    """Validates a configuration dictionary and builds the RunConfig."""
    _is_valid_run_config(data)          # if invalid, raises ConfigurationError

    if "zones" in data:
        zones = [zone_from_config(zone) for zone in data["zones"]]
    else:
        zones = zones_from_parallel_lists(data)

    if not zones:
        raise ConfigurationError("At least one zone must be configured")

    names = [zone.name for zone in zones]
    if len(set(names)) != len(names):
        raise ConfigurationError(f"Zone names must be unique: {names}")

    return RunConfig.from_dict(data, zones)


def zone_from_config(zone: dict) -> ZoneConfig:
    """
    Creates ZoneConfig object from a JSON configuration dictionary (one zone).
    """
    valid, errors = _is_valid_zone(zone)
    if not valid:
        raise ConfigurationError(f"Invalid zone configuration for {zone.get('name', '<unnamed>')}: {', '.join(errors)}")

    config = ZoneConfig(
        name=zone["name"],
        valve_ref=zone["valve"],
        sensor_ref=zone["sensor"],
        threshold_pct=zone["threshold_pct"],
        target_pct=zone["target_pct"],
        max_minutes=zone["max_minutes"],
        default_minutes=zone["default_minutes"]
    )
    _warn_on_inverted_bounds(config)
    return config


def zones_from_parallel_lists(data: dict) -> list[ZoneConfig]:
    """
    Builds zones from the legacy layout where every zone attribute is a separate list aligned by index.
    All lists must have the same length.
    """
    missing = [key for key in PARALLEL_LIST_KEYS if key not in data]
    if missing:
        raise ConfigurationError(f"Missing zone keys: {', '.join(missing)} (or provide a 'zones' list)")

    lengths = {key: len(data[key]) for key in PARALLEL_LIST_KEYS if isinstance(data[key], list)}
    if len(lengths) != len(PARALLEL_LIST_KEYS):
        raise ConfigurationError("All zone attributes must be lists")

    names = data.get("zone_names")
    if names is not None:
        lengths["zone_names"] = len(names)

    if len(set(lengths.values())) != 1:
        details = ", ".join(f"{key}={length}" for key, length in lengths.items())
        raise ConfigurationError(f"Zone attribute lists have mismatched lengths: {details}")

    zones = []
    for index in range(lengths["zone_switches"]):
        zone = {attr: data[key][index] for key, attr in PARALLEL_LIST_KEYS.items()}
        zones.append(zone_from_config({
            "name": names[index] if names is not None else zone["valve_ref"],
            "valve": zone["valve_ref"],
            "sensor": zone["sensor_ref"],
            "threshold_pct": zone["threshold_pct"],
            "target_pct": zone["target_pct"],
            "max_minutes": zone["max_minutes"],
            "default_minutes": zone["default_minutes"],
        }))
    return zones


def _warn_on_inverted_bounds(zone: ZoneConfig) -> None:
    if zone.target_pct <= zone.threshold_pct:
        logger.warning(
            f"Zone '{zone.name}' has target {zone.target_pct}% not above threshold {zone.threshold_pct}%. "
            "Watering will stop as soon as it starts."
        )


def _is_percent(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 100


def _is_positive_minutes(value) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def _is_valid_zone(zone: dict) -> tuple[bool, list[str]]:
    """
    Validates the structure of a zone configuration dictionary.
    """
    errors = []
    required_keys = [
        "name", "valve", "sensor", "threshold_pct", "target_pct",
        "max_minutes", "default_minutes"
    ]

    # Check if all required keys are present
    for key in required_keys:
        if key not in zone:
            errors.append(f"Missing required key: {key}")

    for key in ["name", "valve", "sensor"]:
        if key in zone and (not isinstance(zone[key], str) or not zone[key]):
            errors.append(f"{key} must be a non-empty string")

    for key in ["threshold_pct", "target_pct"]:
        if key in zone and not _is_percent(zone[key]):
            errors.append(f"{key} must be an integer between 0 and 100")

    for key in ["max_minutes", "default_minutes"]:
        if key in zone and not _is_positive_minutes(zone[key]):
            errors.append(f"{key} must be a positive integer")

    return len(errors) == 0, errors


def _is_valid_run_config(data: dict) -> None:
    """
    Validates the structure and types in the run config dictionary.
    Raises ConfigurationError if something is invalid.
    """
    if not isinstance(data, dict):
        raise ConfigurationError("Configuration must be a JSON object")

    for section in ["timer", "forecast"]:
        if section not in data:
            raise ConfigurationError(f"Missing section: {section}")

    if not isinstance(data["timer"], str) or not data["timer"]:
        raise ConfigurationError("timer must be a non-empty string")

    try:
        ValveType.from_str(str(data.get("valve_type", ValveType.SWITCH.value)))
    except ValueError as e:
        raise ConfigurationError(str(e)) from e

    for section in ["forecast", "engine", "mqtt", "logging", "notifications"]:
        if section in data and not isinstance(data[section], dict):
            raise ConfigurationError(f"{section} must be a JSON object")

    # Validate forecast
    fc = data["forecast"]
    for key in ["latitude", "longitude", "minimum_precipitation_mm"]:
        if not isinstance(fc.get(key), (float, int)) or isinstance(fc.get(key), bool):
            raise ConfigurationError(f"forecast.{key} must be a number")
    if not -90 <= fc["latitude"] <= 90 or not -180 <= fc["longitude"] <= 180:
        raise ConfigurationError("forecast.latitude/longitude out of range")
    if fc["minimum_precipitation_mm"] < 0:
        raise ConfigurationError("forecast.minimum_precipitation_mm must not be negative")
    if not MIN_FORECAST_PRECIPITATION_MM <= fc["minimum_precipitation_mm"] <= MAX_FORECAST_PRECIPITATION_MM:
        logger.warning(
            f"forecast.minimum_precipitation_mm={fc['minimum_precipitation_mm']} is outside the usual range "
            f"{MIN_FORECAST_PRECIPITATION_MM}-{MAX_FORECAST_PRECIPITATION_MM} mm."
        )

    # Validate engine
    engine = data.get("engine", {})
    for key in ["poll_interval_seconds", "settle_delay_seconds"]:
        if key in engine and (not isinstance(engine[key], (float, int)) or isinstance(engine[key], bool)):
            raise ConfigurationError(f"engine.{key} must be a number")
    if engine.get("poll_interval_seconds", 1) <= 0:
        raise ConfigurationError("engine.poll_interval_seconds must be positive")
    if engine.get("settle_delay_seconds", 0) < 0:
        raise ConfigurationError("engine.settle_delay_seconds must not be negative")

    # Validate mqtt
    mqtt = data.get("mqtt", {})
    if "broker_port" in mqtt and not isinstance(mqtt["broker_port"], int):
        raise ConfigurationError("mqtt.broker_port must be an int")

    # Validate logging
    log = data.get("logging", {})
    if "log_level" in log and log["log_level"] not in ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        raise ConfigurationError("logging.log_level must be one of: DEBUG, INFO, WARNING, ERROR, CRITICAL")

    if "zones" in data:
        if not isinstance(data["zones"], list):
            raise ConfigurationError("zones must be a list")
        if not all(isinstance(zone, dict) for zone in data["zones"]):
            raise ConfigurationError("Each zone must be a JSON object")

    names = data.get("zone_names")
    if names is not None and (not isinstance(names, list) or not all(isinstance(name, str) for name in names)):
        raise ConfigurationError("zone_names must be a list of strings")

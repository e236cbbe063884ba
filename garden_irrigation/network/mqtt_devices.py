import json
import threading
from typing import Optional

from garden_irrigation.core.enums import ValveCommand, ValveState
from garden_irrigation.exceptions import ValveCommandError
from garden_irrigation.network.mqtt_client import MQTTClient
import garden_irrigation.utils.time_utils as time_utils
from garden_irrigation.utils.logger import get_logger


OPEN_PAYLOADS = {"on", "open", "opened", "watering"}
CLOSED_PAYLOADS = {"off", "close", "closed", "idle"}


def _extract(payload: str, key: str):
    """Accepts either a bare value or a JSON object carrying the value under `key`."""
    try:
        decoded = json.loads(payload)
    except json.JSONDecodeError:
        return payload
    if isinstance(decoded, dict):
        return decoded.get(key)
    return decoded


class MQTTSensorReader:
    """Reads moisture percentages from retained sensor state messages."""

    def __init__(self, client: MQTTClient):
        self.logger = get_logger("MQTTSensorReader")
        self.client = client

    def read_moisture(self, sensor_ref: str) -> Optional[int]:
        payload = self.client.get_state(sensor_ref)
        if payload is None:
            self.logger.warning(f"No state received yet for sensor {sensor_ref}.")
            return None
        value = _extract(payload, "moisture")
        try:
            return int(float(value))
        except (TypeError, ValueError):
            self.logger.warning(f"Sensor {sensor_ref} reported a non-numeric moisture value: {payload!r}")
            return None


class MQTTValveActuator:
    """
    Commands valves over MQTT. Until a valve reports its own state, the last command sent is used as its state.
    """

    def __init__(self, client: MQTTClient):
        self.logger = get_logger("MQTTValveActuator")
        self.client = client
        self._commanded: dict[str, ValveState] = {}
        self._lock = threading.Lock()

    def set_valve(self, valve_ref: str, command: ValveCommand, duration_minutes: Optional[int] = None) -> None:
        payload = {"state": command.value}
        if duration_minutes is not None:
            payload["duration_minutes"] = duration_minutes
        try:
            self.client.publish_json(self.client.command_topic(valve_ref), payload)
        except ConnectionError as e:
            raise ValveCommandError(str(e), valve_ref=valve_ref, command=command) from e

        self.client.clear_state(valve_ref)
        with self._lock:
            self._commanded[valve_ref] = ValveState.OPEN if command == ValveCommand.OPEN else ValveState.CLOSED

    def valve_state(self, valve_ref: str) -> ValveState:
        payload = self.client.get_state(valve_ref)
        if payload is not None:
            value = str(_extract(payload, "state")).strip().lower()
            if value in OPEN_PAYLOADS:
                return ValveState.OPEN
            if value in CLOSED_PAYLOADS:
                return ValveState.CLOSED
            self.logger.warning(f"Valve {valve_ref} reported an unknown state: {payload!r}")
        with self._lock:
            return self._commanded.get(valve_ref, ValveState.CLOSED)


class MQTTNotifier:
    """Publishes notifications to `<base_topic>/notifications/<service>`."""

    def __init__(self, client: MQTTClient, service: str):
        self.client = client
        self.service = service

    def notify(self, title: str, preamble: str, body: str) -> None:
        self.client.publish_json(
            f"{self.client.base_topic}/notifications/{self.service}",
            {"title": title, "preamble": preamble, "body": body, "timestamp": time_utils.now_iso()}
        )

import json
import threading
from typing import Optional

import paho.mqtt.client as mqtt

from garden_irrigation.config.run_config import MQTTSettings
from garden_irrigation.config.secrets import get_secret
from garden_irrigation.utils.logger import get_logger


CONNECT_TIMEOUT_SECONDS = 10


class MQTTClient(threading.Thread):
    """
    Background MQTT connection shared by the sensor, valve and notification adapters.

    Device state is expected on `<base_topic>/<ref>/state` (retained), commands are
    published to `<base_topic>/<ref>/set`.
    """

    def __init__(self, settings: MQTTSettings, client_id: str = "garden_irrigation"):
        super().__init__(daemon=True)
        self.broker_host = settings.broker_host
        self.broker_port = settings.broker_port
        self.base_topic = settings.base_topic.rstrip("/")
        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id)
        self.logger = get_logger("MQTTClient")
        self._stop_event = threading.Event()
        self._connected = threading.Event()
        self._states: dict[str, str] = {}
        self._states_lock = threading.Lock()

        username = get_secret("mqtt_username")
        if username:
            self.client.username_pw_set(username, get_secret("mqtt_password"))

        # Assign MQTT callbacks
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect
        self.client.on_message = self._on_message

        self.logger.info(f"MQTTClient initialized, broker={self.broker_host}:{self.broker_port}, base topic={self.base_topic}")


    # MQTT callbacks
    def _on_connect(self, client, userdata, flags, reason_code, properties):
        if reason_code == 0:
            topic = f"{self.base_topic}/+/state"
            self.logger.info(f"Connected to broker. Subscribing to {topic}")
            client.subscribe(topic)
            self._connected.set()
        else:
            self.logger.error(f"MQTT connection failed with code {reason_code}")

    def _on_disconnect(self, client, userdata, flags, reason_code, properties):
        self._connected.clear()
        if reason_code != 0:
            self.logger.warning(f"Disconnected from broker unexpectedly (code {reason_code}).")

    def _on_message(self, client, userdata, msg):
        payload = msg.payload.decode("utf-8")
        ref = self.ref_from_topic(msg.topic)
        if ref is None:
            return
        self.logger.debug(f"Received state on {msg.topic}: {payload}")
        with self._states_lock:
            self._states[ref] = payload

    # Topic helpers
    def state_topic(self, ref: str) -> str:
        return f"{self.base_topic}/{ref}/state"

    def command_topic(self, ref: str) -> str:
        return f"{self.base_topic}/{ref}/set"

    def ref_from_topic(self, topic: str) -> Optional[str]:
        prefix = f"{self.base_topic}/"
        if not topic.startswith(prefix) or not topic.endswith("/state"):
            return None
        return topic[len(prefix):-len("/state")]

    # State cache
    def clear_state(self, ref: str) -> None:
        """Drops the cached state so a stale retained message does not outlive a new command."""
        with self._states_lock:
            self._states.pop(ref, None)

    def get_state(self, ref: str) -> Optional[str]:
        """Returns the last payload received for the reference, or None if nothing arrived yet."""
        with self._states_lock:
            return self._states.get(ref)

    @property
    def is_connected(self) -> bool:
        return self._connected.is_set()

    def wait_until_connected(self, timeout: float = CONNECT_TIMEOUT_SECONDS) -> bool:
        return self._connected.wait(timeout)

    # Publisher helper
    def publish_json(self, topic: str, payload: dict) -> None:
        """
        Publishes a JSON payload with QoS 1.

        :raises ConnectionError: if the client is not connected or the publish is rejected.
        """
        if not self.is_connected:
            raise ConnectionError(f"Not connected to MQTT broker {self.broker_host}:{self.broker_port}")
        info = self.client.publish(topic, json.dumps(payload), qos=1)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise ConnectionError(f"Publishing to {topic} failed: {mqtt.error_string(info.rc)}")
        self.logger.debug(f"Published to {topic}: {payload}")

    # Thread main loop
    def run(self):
        try:
            self.client.connect(self.broker_host, self.broker_port, keepalive=60)
        except Exception as e:
            self.logger.error(f"Failed to connect to MQTT broker: {e}")
            return

        self.client.loop_start()
        self.logger.info("MQTT loop started.")
        try:
            self._stop_event.wait()
        finally:
            self.client.loop_stop()
            self.client.disconnect()
            self.logger.info("MQTT client stopped.")

    def stop(self):
        self._stop_event.set()

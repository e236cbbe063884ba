import argparse
import json
import signal
import sys
import threading

from garden_irrigation.__version__ import __version__ as version
from garden_irrigation.config.config_loader import load_run_config
from garden_irrigation.config.run_config import RunConfig
from garden_irrigation.core.irrigation_run import IrrigationRun
from garden_irrigation.core.timeout_timer import ThreadingTimeoutTimer
from garden_irrigation.exceptions import ConfigurationError, ForecastUnavailableError
from garden_irrigation.network.mqtt_client import MQTTClient
from garden_irrigation.network.mqtt_devices import MQTTNotifier, MQTTSensorReader, MQTTValveActuator
from garden_irrigation.notifications.notifier import CompositeNotifier, LogfileNotifier
from garden_irrigation.run_report import print_run_result
from garden_irrigation.simulation.simulated_garden import SimulatedGarden
from garden_irrigation.utils.logger import get_logger, set_log_level
from garden_irrigation.weather.forecast_provider import OpenMeteoForecastProvider
from garden_irrigation.weather.forecast_simulator import ForecastSimulator


EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CANCELLED = 130

logger = get_logger("garden_irrigation.main")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="garden_irrigation",
        description="Runs one daily garden irrigation pass: global checks, then each zone in order."
    )
    parser.add_argument("--config", required=True, help="Path to the JSON run configuration")
    parser.add_argument("--simulate", action="store_true",
                        help="Use simulated sensors, valves and forecast instead of MQTT and Open-Meteo")
    parser.add_argument("--seed", type=int, default=None, help="Seed for the simulated garden and forecast")
    parser.add_argument("--json", action="store_true", help="Print the run result as JSON")
    parser.add_argument("--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
                        help="Override the configured log level")
    parser.add_argument("--version", action="version", version=f"%(prog)s {version}")
    return parser.parse_args(argv)


def build_run(run_config: RunConfig, simulate: bool, seed=None, stop_event: threading.Event = None):
    """Wires collaborators for the run. Returns the run and the MQTT client to stop afterwards, if any."""
    timer = ThreadingTimeoutTimer(run_config.timer_ref)
    log_notifier = LogfileNotifier(run_config.notification_service)

    if simulate:
        garden = SimulatedGarden.from_run_config(run_config, seed=seed)
        run = IrrigationRun(
            run_config=run_config,
            sensor_reader=garden,
            valve_actuator=garden,
            timer=timer,
            forecast_provider=ForecastSimulator(seed=seed),
            notifier=log_notifier,
            stop_event=stop_event
        )
        return run, None

    mqtt_client = MQTTClient(run_config.mqtt)
    mqtt_client.start()
    if not mqtt_client.wait_until_connected():
        mqtt_client.stop()
        raise ConnectionError(f"Could not connect to MQTT broker {run_config.mqtt.broker_host}:{run_config.mqtt.broker_port}")

    notifier = log_notifier
    if run_config.notification_service:
        notifier = CompositeNotifier(log_notifier, MQTTNotifier(mqtt_client, run_config.notification_service))

    run = IrrigationRun(
        run_config=run_config,
        sensor_reader=MQTTSensorReader(mqtt_client),
        valve_actuator=MQTTValveActuator(mqtt_client),
        timer=timer,
        forecast_provider=OpenMeteoForecastProvider(run_config.forecast),
        notifier=notifier,
        stop_event=stop_event
    )
    return run, mqtt_client


def _register_signal_handlers(stop_event: threading.Event) -> None:
    def shutdown_handler(signum, frame):
        logger.info(f"Received signal {signum}, stopping the run and closing valves...")
        stop_event.set()

    # Common termination signals
    signal.signal(signal.SIGTERM, shutdown_handler)  # Termination signal
    signal.signal(signal.SIGINT, shutdown_handler)   # Ctrl+C


def main(argv=None) -> int:
    """Main function to run one irrigation pass."""
    args = parse_args(argv)

    try:
        run_config = load_run_config(args.config)
    except ConfigurationError as e:
        logger.error(f"Invalid configuration: {e}")
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    set_log_level(args.log_level or run_config.log_level)
    logger.info(f"Garden irrigation {version}, {len(run_config.zones)} zone(s), valve type {run_config.valve_type.value}.")

    stop_event = threading.Event()
    _register_signal_handlers(stop_event)

    mqtt_client = None
    try:
        run, mqtt_client = build_run(run_config, simulate=args.simulate, seed=args.seed, stop_event=stop_event)
        result = run.run()
    except ForecastUnavailableError as e:
        print(f"Forecast unavailable: {e}", file=sys.stderr)
        return EXIT_FAILURE
    except ConnectionError as e:
        logger.error(f"Failed to initialize network components: {e}")
        print(f"Connection error: {e}", file=sys.stderr)
        return EXIT_FAILURE
    finally:
        if mqtt_client is not None:
            mqtt_client.stop()

    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        print_run_result(result)

    return EXIT_CANCELLED if result.cancelled else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())

import pytest

from garden_irrigation.config.run_config import ForecastSettings, Location, RunConfig, ZoneConfig
from garden_irrigation.core.enums import ValveCommand, ValveState, ValveType
from garden_irrigation.simulation.simulated_garden import SimulatedGarden


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()

@pytest.fixture
def garden(clock):
    return SimulatedGarden({"s1": 20.0}, {"v1": "s1"}, rise_per_minute=2.0, clock=clock)


def test_moisture_rises_only_while_open(garden, clock):
    clock.now += 300
    assert garden.read_moisture("s1") == 20

    garden.set_valve("v1", ValveCommand.OPEN)
    clock.now += 300
    assert garden.read_moisture("s1") == 30

    garden.set_valve("v1", ValveCommand.CLOSE)
    clock.now += 300
    assert garden.read_moisture("s1") == 30


def test_moisture_is_capped(garden, clock):
    garden.set_valve("v1", ValveCommand.OPEN)
    clock.now += 3600
    assert garden.read_moisture("s1") == 100


def test_valve_with_duration_closes_itself(garden, clock):
    garden.set_valve("v1", ValveCommand.OPEN, 2)
    clock.now += 119
    assert garden.valve_state("v1") == ValveState.OPEN
    clock.now += 1
    assert garden.valve_state("v1") == ValveState.CLOSED
    clock.now += 600
    assert garden.read_moisture("s1") == 24


def test_close_externally(garden):
    garden.set_valve("v1", ValveCommand.OPEN)
    garden.close_externally("v1")
    assert garden.valve_state("v1") == ValveState.CLOSED


def test_commands_are_recorded(garden):
    garden.set_valve("v1", ValveCommand.OPEN, 5)
    garden.set_valve("v1", ValveCommand.CLOSE)
    assert garden.commands == [("v1", ValveCommand.OPEN, 5), ("v1", ValveCommand.CLOSE, None)]


def test_unknown_references(garden):
    assert garden.read_moisture("s9") is None
    with pytest.raises(KeyError):
        garden.set_valve("v9", ValveCommand.OPEN)


def test_from_run_config_is_seeded():
    run_config = RunConfig(
        zones=(ZoneConfig("Lawn", "v1", "s1", 30, 60, 20, 10), ZoneConfig("Beds", "v2", "s2", 30, 60, 20, 10)),
        valve_type=ValveType.SWITCH,
        timer_ref="timer",
        forecast=ForecastSettings(location=Location(50.0, 14.0), minimum_precipitation_mm=10)
    )

    garden1 = SimulatedGarden.from_run_config(run_config, seed=7)
    garden2 = SimulatedGarden.from_run_config(run_config, seed=7)

    assert garden1.read_moisture("s1") == garden2.read_moisture("s1")
    assert garden1.read_moisture("s2") == garden2.read_moisture("s2")
    assert garden1.valve_state("v2") == ValveState.CLOSED

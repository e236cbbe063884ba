import pytest

from garden_irrigation.core.sensor_reading import SensorReading


@pytest.mark.parametrize(
        "raw, percent, functional, gate_value",
        [
            (None, 0, False, 0),
            (0, 0, False, 0),
            (3, 3, False, 0),
            (4, 4, True, 4),
            (57, 57, True, 57),
            (130, 100, True, 100),
            (-5, 0, False, 0)
        ]
)
def test_reading_interpretation(raw, percent, functional, gate_value):
    reading = SensorReading(raw)
    assert reading.percent == percent
    assert reading.is_functional is functional
    assert reading.gate_value == gate_value

from datetime import datetime, timedelta

import pytest

from smarthome_quantise.data_processing.registry import SensorRegistry
from smarthome_quantise.data_processing.schemas import SensorCategory, SensorEvent

T0 = datetime(2024, 3, 1, 8, 0, 0)


def make_event(
    sensor,
    category,
    seconds,
    value=1.0,
    bookmark="cooking",
    session_id=1,
    area="Kitchen",
):
    """Reading `seconds` after T0."""
    return SensorEvent(
        sensor_name=sensor,
        category=category,
        area_name=area,
        timestamp=T0 + timedelta(seconds=seconds),
        value=float(value),
        bookmark_name=bookmark,
        session_id=session_id,
    )


@pytest.fixture
def t0():
    return T0


@pytest.fixture
def registry():
    return SensorRegistry(
        [
            ("KitchenTemperature", SensorCategory.TEMPERATURE),
            ("KitchenLight", SensorCategory.LIGHT),
            ("KitchenPresence", SensorCategory.PRESENCE),
            ("FridgeDoor", SensorCategory.TOGGLE),
            ("Stove", SensorCategory.INTERACTION),
            ("Kettle", SensorCategory.INTERACTION),
        ]
    )


@pytest.fixture
def kitchen_events():
    """Two minutes of cooking with a silent stretch in the middle."""
    return [
        make_event("KitchenTemperature", SensorCategory.TEMPERATURE, 0, 21.0),
        make_event("KitchenPresence", SensorCategory.PRESENCE, 5, 1.0),
        make_event("FridgeDoor", SensorCategory.TOGGLE, 10, 1.0),
        make_event("KitchenTemperature", SensorCategory.TEMPERATURE, 20, 23.5),
        make_event("Stove", SensorCategory.INTERACTION, 25, 1.0),
        make_event("FridgeDoor", SensorCategory.TOGGLE, 40, 0.0),
        make_event("KitchenLight", SensorCategory.LIGHT, 95, 3.2),
        make_event("KitchenTemperature", SensorCategory.TEMPERATURE, 100, 24.0),
        make_event("KitchenPresence", SensorCategory.PRESENCE, 115, 0.0),
    ]

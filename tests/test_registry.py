import pytest
from conftest import make_event

from smarthome_quantise.data_processing.registry import SensorRegistry, load_registry
from smarthome_quantise.data_processing.schemas import SensorCategory


class TestSensorRegistry:

    def test_order_and_lookup(self, registry):
        assert len(registry) == 6
        assert registry.names[0] == "KitchenTemperature"
        assert registry.position("Stove") == 4
        assert registry.category_of("FridgeDoor") is SensorCategory.TOGGLE
        assert "Kettle" in registry
        assert "Toaster" not in registry

    def test_duplicate_name_rejected(self):
        with pytest.raises(ValueError, match="Duplicate"):
            SensorRegistry([("Stove", "Interaction"), ("Stove", "Toggle")])

    def test_string_categories_are_parsed(self):
        reg = SensorRegistry([("HallMotion", "Motion")])
        assert reg.category_of("HallMotion") is SensorCategory.PRESENCE

    def test_missing_from(self, registry):
        events = [
            make_event("Stove", SensorCategory.INTERACTION, 0),
            make_event("Toaster", SensorCategory.INTERACTION, 1),
            make_event("Radio", SensorCategory.INTERACTION, 2),
            make_event("Toaster", SensorCategory.INTERACTION, 3),
        ]
        assert registry.missing_from(events) == ["Toaster", "Radio"]

    def test_from_events_keeps_first_seen_order(self, kitchen_events):
        reg = SensorRegistry.from_events(kitchen_events)
        assert reg.names == [
            "KitchenTemperature",
            "KitchenPresence",
            "FridgeDoor",
            "Stove",
            "KitchenLight",
        ]

    def test_from_inline_config(self):
        reg = SensorRegistry.from_config([{"name": "Sink", "category": "Interaction"}])
        assert reg.names == ["Sink"]


class TestLoadRegistry:

    def test_yaml_with_sensors_key(self, tmp_path):
        p = tmp_path / "registry.yaml"
        p.write_text(
            "sensors:\n"
            "  - {name: BedPressure, category: Pressure}\n"
            "  - {name: BedroomLight, category: Light}\n",
            encoding="utf-8",
        )
        reg = load_registry(p)
        assert reg.names == ["BedPressure", "BedroomLight"]
        assert reg.category_of("BedPressure") is SensorCategory.TOGGLE

    def test_yaml_list_at_root(self, tmp_path):
        p = tmp_path / "registry.yaml"
        p.write_text("- {name: Sink, category: Interaction}\n", encoding="utf-8")
        assert SensorRegistry.from_config(str(p)).names == ["Sink"]

    def test_csv(self, tmp_path):
        p = tmp_path / "registry.csv"
        p.write_text("name,category\nKettle,Interaction\nKitchenTemperature,Temperature\n", encoding="utf-8")
        reg = load_registry(p)
        assert reg.names == ["Kettle", "KitchenTemperature"]

    def test_csv_without_required_columns(self, tmp_path):
        p = tmp_path / "registry.csv"
        p.write_text("sensor,type\nKettle,Interaction\n", encoding="utf-8")
        with pytest.raises(ValueError, match="'name' and 'category'"):
            load_registry(p)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_registry(tmp_path / "nope.yaml")

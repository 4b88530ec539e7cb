from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Sequence, Tuple, Union

import pandas as pd
import yaml

from smarthome_quantise.data_processing.schemas import SensorCategory, SensorEvent

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegisteredSensor:
    name: str
    category: SensorCategory


class SensorRegistry:
    """
    Ordered set of (sensor_name, category) pairs.

    The order defines the column order of every output vector, so the
    registry must not change during a quantisation run.
    """

    def __init__(self, sensors: Iterable[Union[RegisteredSensor, Tuple[str, Any]]]):
        self._sensors: List[RegisteredSensor] = []
        self._positions: Dict[str, int] = {}
        for item in sensors:
            if not isinstance(item, RegisteredSensor):
                name, category = item
                if not isinstance(category, SensorCategory):
                    category = SensorCategory.parse(category)
                item = RegisteredSensor(name=str(name), category=category)
            if item.name in self._positions:
                raise ValueError(f"Duplicate sensor in registry: {item.name}")
            self._positions[item.name] = len(self._sensors)
            self._sensors.append(item)

    def __len__(self) -> int:
        return len(self._sensors)

    def __iter__(self) -> Iterator[RegisteredSensor]:
        return iter(self._sensors)

    def __contains__(self, name: object) -> bool:
        return name in self._positions

    @property
    def names(self) -> List[str]:
        return [s.name for s in self._sensors]

    def position(self, name: str) -> int:
        return self._positions[name]

    def category_of(self, name: str) -> SensorCategory:
        return self._sensors[self._positions[name]].category

    def missing_from(self, events: Iterable[SensorEvent]) -> List[str]:
        """Sensor names referenced by events but not registered (first-seen order)."""
        missing: Dict[str, None] = {}
        for ev in events:
            if ev.sensor_name not in self._positions:
                missing.setdefault(ev.sensor_name, None)
        return list(missing)

    @classmethod
    def from_events(cls, events: Iterable[SensorEvent]) -> "SensorRegistry":
        """Registry in first-seen order, for data without a fixed sensor layout."""
        seen: Dict[str, SensorCategory] = {}
        for ev in events:
            seen.setdefault(ev.sensor_name, ev.category)
        return cls(seen.items())

    @classmethod
    def from_config(cls, source: Union[str, Path, Sequence[Mapping[str, Any]]]) -> "SensorRegistry":
        """
        Accepts either an inline list:
          registry:
            - {name: KitchenTemp, category: Temperature}
        or a path to a YAML file holding such a list (under a 'sensors' key
        or at the root), or a CSV file with 'name' and 'category' columns.
        """
        if isinstance(source, (str, Path)):
            return load_registry(source)
        return cls((str(s["name"]), s["category"]) for s in source)


def load_registry(path: Union[str, Path]) -> SensorRegistry:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Sensor registry file not found: {path}")

    if path.suffix.lower() == ".csv":
        df = pd.read_csv(path)
        if not {"name", "category"}.issubset(df.columns):
            raise ValueError(f"Registry CSV must have 'name' and 'category' columns: {path}")
        return SensorRegistry(zip(df["name"].astype(str), df["category"].astype(str)))

    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or []
    if isinstance(data, dict):
        data = data.get("sensors", [])
    if not isinstance(data, list):
        raise ValueError(f"Registry YAML must be a list of sensors: {path}")
    registry = SensorRegistry((str(s["name"]), s["category"]) for s in data)
    log.info("Loaded sensor registry with %d sensors from %s", len(registry), path.as_posix())
    return registry

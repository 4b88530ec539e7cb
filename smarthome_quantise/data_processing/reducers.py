from __future__ import annotations

from typing import Callable, Dict, Mapping, Optional, Sequence

from smarthome_quantise.data_processing.schemas import SensorCategory, SensorEvent

# (events of one sensor inside one window, previous window's value) -> value
Reduction = Callable[[Sequence[SensorEvent], float], float]


def max_value(events: Sequence[SensorEvent], previous: float) -> float:
    if not events:
        return 0.0
    return float(max(ev.value for ev in events))


def min_value(events: Sequence[SensorEvent], previous: float) -> float:
    if not events:
        return 0.0
    return float(min(ev.value for ev in events))


def mean_value(events: Sequence[SensorEvent], previous: float) -> float:
    if not events:
        return 0.0
    return float(sum(ev.value for ev in events) / len(events))


def first_value(events: Sequence[SensorEvent], previous: float) -> float:
    """First reading of the window; carries previous through silent windows."""
    if not events:
        return float(previous)
    return float(events[0].value)


def last_value(events: Sequence[SensorEvent], previous: float) -> float:
    if not events:
        return float(previous)
    return float(events[-1].value)


def on_activation(events: Sequence[SensorEvent], previous: float) -> float:
    return 1.0 if any(ev.value == 1.0 for ev in events) else 0.0


def activation_count(events: Sequence[SensorEvent], previous: float) -> float:
    return float(sum(1 for ev in events if ev.value == 1.0))


def event_count(events: Sequence[SensorEvent], previous: float) -> float:
    return float(len(events))


def at_least_one(events: Sequence[SensorEvent], previous: float) -> float:
    return 1.0 if events else 0.0


def zero(events: Sequence[SensorEvent], previous: float) -> float:
    return 0.0


REDUCTIONS: Dict[str, Reduction] = {
    "max": max_value,
    "min": min_value,
    "mean": mean_value,
    "first": first_value,
    "last": last_value,
    "on_activation": on_activation,
    "activation_count": activation_count,
    "count": event_count,
    "at_least_one": at_least_one,
    "zero": zero,
}

# Peak exposure for environmental sensors, persisted state for
# presence/toggle, occurrence for interactions. PropertyChange has no rule.
DEFAULT_RULES: Dict[SensorCategory, str] = {
    SensorCategory.TEMPERATURE: "max",
    SensorCategory.LIGHT: "max",
    SensorCategory.PRESENCE: "first",
    SensorCategory.TOGGLE: "first",
    SensorCategory.INTERACTION: "at_least_one",
    SensorCategory.PROPERTY_CHANGE: "zero",
}


def build_reducer_table(overrides: Optional[Mapping[str, str]] = None) -> Dict[SensorCategory, Reduction]:
    """
    Category -> reduction function. overrides maps category names
    (e.g. "Temperature") to reduction names (e.g. "mean").
    """
    rules = dict(DEFAULT_RULES)
    for cat_name, rule in (overrides or {}).items():
        category = _strict_category(cat_name)
        if rule not in REDUCTIONS:
            raise ValueError(f"Unknown reduction '{rule}' for {category.value}. Options: {sorted(REDUCTIONS)}")
        rules[category] = rule
    return {cat: REDUCTIONS[rule] for cat, rule in rules.items()}


def _strict_category(name: str) -> SensorCategory:
    for cat in SensorCategory:
        if str(name).strip().lower() in (cat.value.lower(), cat.name.lower()):
            return cat
    raise ValueError(f"Unknown sensor category in reducer config: {name!r}")


def reduce_window(
    category: SensorCategory,
    events: Sequence[SensorEvent],
    previous: float,
    table: Optional[Mapping[SensorCategory, Reduction]] = None,
) -> float:
    table = table if table is not None else DEFAULT_TABLE
    fn = table.get(category, zero)
    return fn(events, previous)


DEFAULT_TABLE: Dict[SensorCategory, Reduction] = build_reducer_table()

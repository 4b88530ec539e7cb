from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Mapping, Optional, Tuple

log = logging.getLogger(__name__)


class SensorCategory(str, Enum):
    TEMPERATURE = "Temperature"
    PRESENCE = "Presence"
    PROPERTY_CHANGE = "PropertyChange"
    LIGHT = "Light"
    INTERACTION = "Interaction"
    TOGGLE = "Toggle"

    @classmethod
    def parse(cls, text: str) -> "SensorCategory":
        """
        Accepts the enum names (any case) and the legacy hardware names
        written by older recorders:
          Motion   -> Presence
          Pressure -> Toggle
        Anything else falls back to Interaction.
        """
        key = str(text).strip()
        lowered = key.lower()
        for member in cls:
            if member.value.lower() == lowered or member.name.lower() == lowered:
                return member
        if lowered == "motion":
            return cls.PRESENCE
        if lowered == "pressure":
            return cls.TOGGLE
        log.debug("Unknown sensor type %r, treating as Interaction", key)
        return cls.INTERACTION


class ActivityLabel(str, Enum):
    DRESSING = "output_dressing"
    COOKING = "output_cooking"
    WASH_DISHES = "output_wash_dishes"
    SLEEPING = "output_sleeping"
    OTHER = "output_other"

    @classmethod
    def from_bookmark(cls, bookmark_name: Optional[str]) -> "ActivityLabel":
        # exact, case-sensitive match; "Cooking" is Other
        return BOOKMARK_TO_LABEL.get(bookmark_name or "", cls.OTHER)


# Fixed output column order for the label block.
LABEL_COLUMNS: Tuple[str, ...] = tuple(lbl.value for lbl in ActivityLabel)

BOOKMARK_TO_LABEL: Dict[str, ActivityLabel] = {
    "dressing": ActivityLabel.DRESSING,
    "cooking": ActivityLabel.COOKING,
    "washdishes": ActivityLabel.WASH_DISHES,
    "sleeping": ActivityLabel.SLEEPING,
}


@dataclass(frozen=True)
class SensorEvent:
    sensor_name: str
    category: SensorCategory
    area_name: str
    timestamp: datetime
    value: float
    bookmark_name: str = ""
    session_id: int = 0


@dataclass
class Bookmark:
    name: str
    start_time: datetime
    end_time: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.end_time is None

    def contains(self, event: SensorEvent) -> bool:
        # Time-range membership, independent of the event's own bookmark tag.
        if self.end_time is None:
            return False
        return self.start_time <= event.timestamp <= self.end_time


@dataclass
class Session:
    session_id: int
    events: List[SensorEvent] = field(default_factory=list)
    bookmarks: List[Bookmark] = field(default_factory=list)

    def __post_init__(self) -> None:
        # sorted() is stable, so same-timestamp events keep arrival order
        self.events = sorted(self.events, key=lambda e: e.timestamp)


def empty_labels() -> Dict[str, int]:
    return {c: 0 for c in LABEL_COLUMNS}


@dataclass
class FeatureVector:
    """One quantised window: values aligned to the registry plus label flags."""

    values: Tuple[float, ...]
    labels: Mapping[str, int] = field(default_factory=empty_labels)

    # window metadata, never exported as columns
    session_id: Optional[int] = None
    bookmark_name: Optional[str] = None
    window_index: int = 0
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    n_events: int = 0

    @property
    def active_labels(self) -> List[str]:
        return [c for c in LABEL_COLUMNS if self.labels.get(c, 0)]

    def label_row(self) -> List[int]:
        return [int(self.labels.get(c, 0)) for c in LABEL_COLUMNS]

from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List, Tuple, Union

from smarthome_quantise.data_processing.schemas import SensorCategory, SensorEvent, Session

log = logging.getLogger(__name__)


class Indexer:
    """
    Lookup structures over a stable set of sensor events.

    build() is NOT additive: every call clears all four maps and recomputes
    them from the events it is given. To index several sessions together,
    concatenate their events and call build() once.

    Lookups for unknown keys return empty results and never raise.
    """

    def __init__(self) -> None:
        self._bookmark_sessions: Dict[str, List[int]] = {}
        self._bookmark_session_events: Dict[str, Dict[int, List[SensorEvent]]] = {}
        self._category_sensors: Dict[SensorCategory, Dict[str, None]] = {}
        self._sensor_events: Dict[str, List[SensorEvent]] = {}
        self._indexed = False
        self._n_events = 0

    def build(self, source: Union[Session, Iterable[SensorEvent]]) -> "Indexer":
        events = source.events if isinstance(source, Session) else source

        self._bookmark_sessions = {}
        self._bookmark_session_events = {}
        self._category_sensors = {}
        self._sensor_events = {}
        n = 0

        for ev in events:
            n += 1
            per_session = self._bookmark_session_events.setdefault(ev.bookmark_name, {})
            if ev.session_id not in per_session:
                per_session[ev.session_id] = []
                self._bookmark_sessions.setdefault(ev.bookmark_name, []).append(ev.session_id)
            per_session[ev.session_id].append(ev)

            # dict keys keep first-seen order with O(1) membership
            self._category_sensors.setdefault(ev.category, {}).setdefault(ev.sensor_name, None)
            self._sensor_events.setdefault(ev.sensor_name, []).append(ev)

        self._indexed = True
        self._n_events = n
        log.info(
            "Indexed %d events: bookmarks=%d sensors=%d",
            n,
            len(self._bookmark_sessions),
            len(self._sensor_events),
        )
        return self

    @property
    def is_indexed(self) -> bool:
        return self._indexed

    @property
    def n_events(self) -> int:
        return self._n_events

    @property
    def bookmark_names(self) -> List[str]:
        return list(self._bookmark_sessions)

    # -------------------------
    # Queries
    # -------------------------
    def sessions_for_bookmark(self, name: str) -> List[int]:
        return list(self._bookmark_sessions.get(name, []))

    def events_for_bookmark_and_session(self, name: str, session_id: int) -> List[SensorEvent]:
        return list(self._bookmark_session_events.get(name, {}).get(session_id, []))

    def sensor_names_for_category(self, category: SensorCategory) -> List[str]:
        return list(self._category_sensors.get(category, {}))

    def events_for_sensor(self, name: str) -> List[SensorEvent]:
        return list(self._sensor_events.get(name, []))

    # -------------------------
    # Statistics
    # -------------------------
    def sensor_count(self, category: SensorCategory) -> int:
        return len(self._category_sensors.get(category, {}))

    def event_count(self, category: SensorCategory) -> int:
        return sum(len(self._sensor_events[n]) for n in self._category_sensors.get(category, {}))

    def category_summary(self) -> Dict[str, Dict[str, int]]:
        return {
            cat.value: {"sensors": self.sensor_count(cat), "events": self.event_count(cat)}
            for cat in SensorCategory
        }

    def iter_bookmark_sessions(self) -> Iterator[Tuple[str, int, List[SensorEvent]]]:
        for name, session_ids in self._bookmark_sessions.items():
            for sid in session_ids:
                yield name, sid, list(self._bookmark_session_events[name][sid])

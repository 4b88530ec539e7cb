from __future__ import annotations

import logging
from typing import Dict, List, Mapping, Optional, Sequence, Set

from smarthome_quantise.data_processing.reducers import DEFAULT_TABLE, Reduction, reduce_window
from smarthome_quantise.data_processing.registry import SensorRegistry
from smarthome_quantise.data_processing.scaling import Scaler
from smarthome_quantise.data_processing.schemas import (
    ActivityLabel,
    FeatureVector,
    SensorCategory,
    SensorEvent,
    empty_labels,
)

log = logging.getLogger(__name__)


def labels_for_window(events: Sequence[SensorEvent]) -> Dict[str, int]:
    """
    One flag per distinct bookmark tag found on the window's events. This is
    per-event tagging, not bookmark time ranges, so a window spanning events
    from two bookmarks gets two flags set.
    """
    labels = empty_labels()
    for ev in events:
        labels[ActivityLabel.from_bookmark(ev.bookmark_name).value] = 1
    return labels


class VectorAssembler:
    """Turns event windows into FeatureVectors ordered like the registry."""

    def __init__(
        self,
        registry: SensorRegistry,
        reducers: Optional[Mapping[SensorCategory, Reduction]] = None,
        scalers: Optional[Mapping[SensorCategory, Scaler]] = None,
    ):
        self.registry = registry
        self.reducers = reducers if reducers is not None else DEFAULT_TABLE
        self.scalers = dict(scalers or {})
        self._warned: Set[str] = set()

    def _group_by_sensor(self, window: Sequence[SensorEvent]) -> Dict[str, List[SensorEvent]]:
        grouped: Dict[str, List[SensorEvent]] = {}
        for ev in window:
            if ev.sensor_name not in self.registry:
                if ev.sensor_name not in self._warned:
                    self._warned.add(ev.sensor_name)
                    log.warning("Sensor '%s' is not in the registry; its readings are dropped", ev.sensor_name)
                continue
            grouped.setdefault(ev.sensor_name, []).append(ev)
        return grouped

    def assemble(
        self,
        windows: Sequence[Sequence[SensorEvent]],
        session_id: Optional[int] = None,
        bookmark_name: Optional[str] = None,
    ) -> List[FeatureVector]:
        """
        Windows must be in chronological order: Presence/Toggle values carry
        over from the previous window, starting from 0.0.
        """
        previous = [0.0] * len(self.registry)
        vectors: List[FeatureVector] = []

        for idx, window in enumerate(windows):
            grouped = self._group_by_sensor(window)
            raw: List[float] = []
            for pos, sensor in enumerate(self.registry):
                value = reduce_window(
                    sensor.category,
                    grouped.get(sensor.name, []),
                    previous[pos],
                    self.reducers,
                )
                raw.append(value)

            values = tuple(
                self.scalers[s.category](v) if s.category in self.scalers else v
                for s, v in zip(self.registry, raw)
            )
            vectors.append(
                FeatureVector(
                    values=values,
                    labels=labels_for_window(window),
                    session_id=session_id,
                    bookmark_name=bookmark_name,
                    window_index=idx,
                    start_time=window[0].timestamp if window else None,
                    end_time=window[-1].timestamp if window else None,
                    n_events=len(window),
                )
            )
            # carry the unscaled values
            previous = raw

        return vectors

from __future__ import annotations

import json
import logging
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from tqdm import tqdm

from smarthome_quantise.data_processing.assembler import VectorAssembler
from smarthome_quantise.data_processing.exporters import vectors_to_frame, write_vectors_csv
from smarthome_quantise.data_processing.indexer import Indexer
from smarthome_quantise.data_processing.reducers import build_reducer_table
from smarthome_quantise.data_processing.registry import SensorRegistry
from smarthome_quantise.data_processing.scaling import build_scalers
from smarthome_quantise.data_processing.schemas import FeatureVector, SensorEvent
from smarthome_quantise.data_processing.sources import load_events
from smarthome_quantise.data_processing.splits import write_splits
from smarthome_quantise.data_processing.windowing import sample_windows, session_bounds, window_duration
from smarthome_quantise.utils.timer import timed

log = logging.getLogger(__name__)


def window_from_config(qcfg: Mapping[str, Any]) -> timedelta:
    w = qcfg.get("window", {}) or {}
    return window_duration(
        hours=int(w.get("hours", 0)),
        minutes=int(w.get("minutes", 0)),
        seconds=int(w.get("seconds", 0)),
    )


def build_assembler(registry: SensorRegistry, qcfg: Optional[Mapping[str, Any]] = None) -> VectorAssembler:
    qcfg = qcfg or {}
    return VectorAssembler(
        registry,
        reducers=build_reducer_table(qcfg.get("reducers")),
        scalers=build_scalers(qcfg.get("scaling")),
    )


def quantise_events(
    events: Sequence[SensorEvent],
    assembler: VectorAssembler,
    duration: timedelta,
    session_id: Optional[int] = None,
    bookmark_name: Optional[str] = None,
) -> List[FeatureVector]:
    """
    Quantise one bookmark/session timeline. Windows are anchored at the
    earliest event. Degenerate input is logged and yields no vectors.
    """
    where = f"bookmark={bookmark_name!r} session={session_id}"
    if not events:
        log.error("No sensor readings to quantise (%s)", where)
        return []
    if duration <= timedelta(0):
        log.error("Window duration must be positive, got %s (%s)", duration, where)
        return []

    ordered = sorted(events, key=lambda e: e.timestamp)
    start, end = session_bounds(ordered)
    windows = sample_windows(ordered, start, duration)
    if not windows:
        log.error("Zero windows were produced for %d readings (%s)", len(ordered), where)
        return []

    log.debug(
        "Quantising %d readings from %s to %s into %d windows (%s)",
        len(ordered),
        start,
        end,
        len(windows),
        where,
    )
    for i, w in enumerate(windows):
        log.debug("Window %d: %d readings, %s .. %s", i, len(w), w[0].timestamp, w[-1].timestamp)

    return assembler.assemble(windows, session_id=session_id, bookmark_name=bookmark_name)


def quantise_selected(
    index: Indexer,
    assembler: VectorAssembler,
    duration: timedelta,
    bookmark_name: str,
    session_id: int,
) -> List[FeatureVector]:
    events = index.events_for_bookmark_and_session(bookmark_name, session_id)
    if not events:
        known = index.sessions_for_bookmark(bookmark_name)
        log.error(
            "No readings for bookmark %r and session %s (sessions recorded for that bookmark: %s)",
            bookmark_name,
            session_id,
            known or "none",
        )
        return []
    return quantise_events(events, assembler, duration, session_id=session_id, bookmark_name=bookmark_name)


def quantise_all(
    index: Indexer,
    assembler: VectorAssembler,
    duration: timedelta,
    progress: bool = True,
) -> List[List[FeatureVector]]:
    """One vector list per (bookmark, session) group, in index order; empty groups are skipped."""
    groups = list(index.iter_bookmark_sessions())
    out: List[List[FeatureVector]] = []
    for name, sid, events in tqdm(groups, desc="Quantising sessions", disable=not progress):
        vectors = quantise_events(events, assembler, duration, session_id=sid, bookmark_name=name)
        if vectors:
            out.append(vectors)

    log.info(
        "Quantisation complete: %d feature vectors from %d bookmark/session groups",
        sum(len(v) for v in out),
        len(groups),
    )
    return out


def resolve_registry(cfg: Mapping[str, Any], events: Sequence[SensorEvent]) -> SensorRegistry:
    entries = cfg.get("registry")
    if entries:
        registry = SensorRegistry.from_config(entries)
    else:
        log.warning("No sensor registry configured; using the sensors found in the data, in first-seen order")
        registry = SensorRegistry.from_events(events)

    missing = registry.missing_from(events)
    if missing:
        log.warning("%d sensors in the data are not registered and will be dropped: %s", len(missing), missing)
    return registry


def run_quantise(
    cfg: Dict,
    mode: Optional[str] = None,
    bookmark_name: Optional[str] = None,
    session_id: Optional[int] = None,
) -> Dict[str, object]:
    """
    Load -> index -> quantise -> export, driven by the 'source', 'registry',
    'quantise' and 'output' sections of cfg. Explicit arguments override cfg.
    """
    qcfg = cfg.get("quantise", {}) or {}
    ocfg = cfg.get("output", {}) or {}
    mode = (mode or qcfg.get("mode", "all")).lower()
    duration = window_from_config(qcfg)

    timings: Dict[str, float] = {}
    with timed("load", timings):
        events = load_events(cfg)

    with timed("index", timings):
        index = Indexer().build(events)
        registry = resolve_registry(cfg, events)
        assembler = build_assembler(registry, qcfg)

    with timed("quantise", timings):
        if mode == "selected":
            bookmark_name = bookmark_name if bookmark_name is not None else qcfg.get("bookmark")
            session_id = session_id if session_id is not None else qcfg.get("session_id")
            if bookmark_name is None or session_id is None:
                raise ValueError("Mode 'selected' needs a bookmark name and a session id.")
            groups = [quantise_selected(index, assembler, duration, str(bookmark_name), int(session_id))]
            groups = [g for g in groups if g]
        elif mode == "all":
            groups = quantise_all(index, assembler, duration)
        else:
            raise ValueError(f"Unknown quantise mode: {mode!r} (expected 'selected' or 'all')")

    vectors = [v for g in groups for v in g]
    out_csv = Path(ocfg.get("vectors_csv", "data/processed/vectors.csv"))
    out_meta = Path(ocfg.get("meta_json", "data/processed/vectors_meta.json"))
    split_paths: Dict[str, str] = {}

    with timed("persist", timings):
        n_rows = write_vectors_csv(
            vectors,
            out_csv,
            registry,
            include_headers=bool(ocfg.get("include_headers", True)),
            append=bool(ocfg.get("append", False)),
        )

        split_cfg = ocfg.get("split", {}) or {}
        if split_cfg.get("enabled") and vectors:
            split_paths = write_splits(
                vectors_to_frame(vectors, registry),
                out_csv,
                train=float(split_cfg.get("train_ratio", 0.7)),
                val=float(split_cfg.get("val_ratio", 0.15)),
                test=float(split_cfg.get("test_ratio", 0.15)),
                seed=int(cfg.get("project", {}).get("seed", 42)),
                include_headers=bool(ocfg.get("include_headers", True)),
            )

        multi_label = sum(1 for v in vectors if len(v.active_labels) > 1)
        if multi_label:
            log.warning("%d of %d windows carry more than one activity label", multi_label, len(vectors))

        meta = {
            "n_events": int(len(events)),
            "n_groups": int(len(groups)),
            "n_vectors": int(n_rows),
            "n_multi_label_windows": int(multi_label),
            "mode": mode,
            "window_seconds": duration.total_seconds(),
            "registry": registry.names,
            "categories": index.category_summary(),
            "splits": split_paths,
            "timings_sec": timings,
        }
        out_meta.parent.mkdir(parents=True, exist_ok=True)
        out_meta.write_text(json.dumps(meta, indent=2), encoding="utf-8")

    log.info("Quantisation written: %s", out_csv.as_posix())
    return {
        "vectors_path": str(out_csv),
        "meta_path": str(out_meta),
        "n_vectors": n_rows,
        "splits": split_paths,
        "timings": timings,
    }

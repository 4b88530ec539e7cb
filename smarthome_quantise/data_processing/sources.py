from __future__ import annotations

import csv
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import pandas as pd
from sqlalchemy import Column, Float, Integer, MetaData, Table, Text, create_engine, func, inspect, select

from smarthome_quantise.data_processing.schemas import SensorCategory, SensorEvent

log = logging.getLogger(__name__)


# Column order of a persisted sensor reading row.
EVENT_COLUMNS: Tuple[str, ...] = (
    "sensor_type",
    "sensor_area",
    "sensor_name",
    "sensor_date_year",
    "sensor_date_month",
    "sensor_date_day",
    "sensor_time_hours",
    "sensor_time_minutes",
    "sensor_time_seconds",
    "sensor_value",
    "sensor_bookmark_name",
    "session_id",
)

# Short names accepted in CSV headers and DataFrames.
SHORT_COLUMNS: Tuple[str, ...] = (
    "sensor_type",
    "sensor_area",
    "sensor_name",
    "year",
    "month",
    "day",
    "hours",
    "minutes",
    "seconds",
    "value",
    "bookmark_name",
    "session_id",
)

DEFAULT_TABLE_NAME = "all_sr"


class MalformedRowError(ValueError):
    """A persisted sensor reading row cannot be turned into an event."""


def parse_event_row(row: Sequence[Any], where: str = "") -> SensorEvent:
    if len(row) != len(EVENT_COLUMNS):
        raise MalformedRowError(
            f"Expected {len(EVENT_COLUMNS)} columns, got {len(row)}{' at ' + where if where else ''}: {list(row)}"
        )
    sensor_type, area, name, year, month, day, hours, minutes, seconds, value, bookmark, session_id = row
    try:
        timestamp = datetime(int(year), int(month), int(day), int(hours), int(minutes), int(seconds))
        return SensorEvent(
            sensor_name=str(name).strip(),
            category=SensorCategory.parse(str(sensor_type)),
            area_name=str(area).strip(),
            timestamp=timestamp,
            value=float(value),
            bookmark_name="" if pd.isna(bookmark) else str(bookmark).strip(),
            session_id=int(session_id),
        )
    except (TypeError, ValueError) as e:
        raise MalformedRowError(f"Unparsable sensor reading{' at ' + where if where else ''}: {e}") from e


def event_to_row(event: SensorEvent) -> Tuple[Any, ...]:
    ts = event.timestamp
    return (
        event.category.value,
        event.area_name,
        event.sensor_name,
        ts.year,
        ts.month,
        ts.day,
        ts.hour,
        ts.minute,
        ts.second,
        float(event.value),
        event.bookmark_name,
        int(event.session_id),
    )


def _is_header_row(row: List[str]) -> bool:
    return bool(row) and row[0].strip().lower() == "sensor_type"


def load_events_csv(path: Union[str, Path]) -> List[SensorEvent]:
    """
    Reads sensor readings from a comma-separated file, one reading per line in
    EVENT_COLUMNS order. A leading header row is optional. Rows are read
    line-by-line so a ragged row fails with its line number.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Sensor reading CSV not found: {path}")

    events: List[SensorEvent] = []
    with path.open("r", encoding="utf-8", newline="") as f:
        reader = csv.reader(f)
        for lineno, row in enumerate(reader, start=1):
            if not row or not any(c.strip() for c in row):
                continue
            if lineno == 1 and _is_header_row(row):
                continue
            events.append(parse_event_row([c.strip() for c in row], where=f"{path.name}:{lineno}"))

    log.info("Loaded %d sensor readings from %s", len(events), path.as_posix())
    return events


def events_from_frame(df: pd.DataFrame) -> List[SensorEvent]:
    """DataFrame with either EVENT_COLUMNS or SHORT_COLUMNS, in any order."""
    if set(EVENT_COLUMNS).issubset(df.columns):
        cols = list(EVENT_COLUMNS)
    elif set(SHORT_COLUMNS).issubset(df.columns):
        cols = list(SHORT_COLUMNS)
    else:
        missing = sorted(set(SHORT_COLUMNS) - set(df.columns))
        raise MalformedRowError(f"Sensor reading frame is missing columns: {missing}")

    return [
        parse_event_row(list(row), where=f"row {i}")
        for i, row in enumerate(df[cols].itertuples(index=False, name=None))
    ]


def events_to_frame(events: Iterable[SensorEvent]) -> pd.DataFrame:
    return pd.DataFrame([event_to_row(ev) for ev in events], columns=list(EVENT_COLUMNS))


def _reading_table(name: str, metadata: MetaData) -> Table:
    return Table(
        name,
        metadata,
        Column("sensor_type", Text, nullable=False),
        Column("sensor_area", Text, nullable=False),
        Column("sensor_name", Text, nullable=False),
        Column("sensor_date_year", Integer, nullable=False),
        Column("sensor_date_month", Integer, nullable=False),
        Column("sensor_date_day", Integer, nullable=False),
        Column("sensor_time_hours", Integer, nullable=False),
        Column("sensor_time_minutes", Integer, nullable=False),
        Column("sensor_time_seconds", Integer, nullable=False),
        Column("sensor_value", Float, nullable=False),
        Column("sensor_bookmark_name", Text, nullable=False),
        Column("session_id", Integer, nullable=False),
    )


class ReadingTable:
    """
    One sensor reading table in a relational store.

    Args:
        db_url: SQLAlchemy connection string, e.g. "sqlite:///data/sensor_readings.db".
        table_name: table holding the readings (default "all_sr").

    Example:
        table = ReadingTable("sqlite:///sensor_readings.db", "cooking_sr")
        table.create()
        table.insert_events(store.tagged_events())
    """

    def __init__(self, db_url: str, table_name: str = DEFAULT_TABLE_NAME, engine=None):
        self.db_url = db_url
        self.table_name = table_name
        self.engine = engine if engine is not None else create_engine(db_url, echo=False, pool_pre_ping=True)
        self.metadata = MetaData()
        self.table = _reading_table(table_name, self.metadata)

    def sibling(self, table_name: str) -> "ReadingTable":
        """Another table on the same engine."""
        return ReadingTable(self.db_url, table_name, engine=self.engine)

    def exists(self) -> bool:
        return inspect(self.engine).has_table(self.table_name)

    def create(self) -> None:
        self.metadata.create_all(self.engine, tables=[self.table], checkfirst=True)

    def drop(self) -> None:
        self.table.drop(self.engine, checkfirst=True)

    def insert_events(self, events: Iterable[SensorEvent]) -> int:
        rows = [dict(zip(EVENT_COLUMNS, event_to_row(ev))) for ev in events]
        if not rows:
            return 0
        with self.engine.begin() as conn:
            conn.execute(self.table.insert(), rows)
        log.info("Inserted %d sensor readings into %s", len(rows), self.table_name)
        return len(rows)

    def load_events(self, session_ids: Optional[Tuple[int, int]] = None) -> List[SensorEvent]:
        if not self.exists():
            raise FileNotFoundError(f"Sensor reading table '{self.table_name}' not found in {self.db_url}")
        stmt = select(*[self.table.c[c] for c in EVENT_COLUMNS])
        if session_ids is not None:
            stmt = stmt.where(self.table.c.session_id.between(session_ids[0], session_ids[1]))
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        events = [parse_event_row(tuple(r), where=f"{self.table_name} row {i}") for i, r in enumerate(rows)]
        log.info("Loaded %d sensor readings from table %s", len(events), self.table_name)
        return events

    def count(self) -> int:
        with self.engine.connect() as conn:
            return int(conn.execute(select(func.count()).select_from(self.table)).scalar() or 0)

    def session_id_range(self) -> Tuple[Optional[int], Optional[int]]:
        stmt = select(func.min(self.table.c.session_id), func.max(self.table.c.session_id))
        with self.engine.connect() as conn:
            lo, hi = conn.execute(stmt).one()
        return lo, hi

    def transfer_sessions(self, target: "ReadingTable", first_session: int, last_session: int) -> int:
        """Copy readings with first_session <= session_id <= last_session into target."""
        if target.engine is not self.engine:
            raise ValueError("transfer_sessions needs both tables on the same engine; use sibling()")
        target.create()
        src = select(*[self.table.c[c] for c in EVENT_COLUMNS]).where(
            self.table.c.session_id.between(first_session, last_session)
        )
        with self.engine.begin() as conn:
            result = conn.execute(target.table.insert().from_select(list(EVENT_COLUMNS), src))
        moved = int(result.rowcount or 0)
        log.info(
            "Transferred %d readings (sessions %d-%d) from %s to %s",
            moved,
            first_session,
            last_session,
            self.table_name,
            target.table_name,
        )
        return moved


def load_events(cfg: Dict) -> List[SensorEvent]:
    """
    Expected config layout:
      source:
        kind: sqlite | csv
        db_url: sqlite:///data/sensor_readings.db
        table: all_sr
        csv_path: data/raw/readings.csv
    """
    src = cfg.get("source", {}) or {}
    kind = str(src.get("kind", "sqlite")).lower().strip()
    if kind == "csv":
        return load_events_csv(src["csv_path"])
    if kind in ("sqlite", "sql", "database"):
        table = ReadingTable(str(src["db_url"]), str(src.get("table", DEFAULT_TABLE_NAME)))
        return table.load_events()
    raise ValueError(f"Unknown source.kind: {kind!r} (expected 'sqlite' or 'csv')")

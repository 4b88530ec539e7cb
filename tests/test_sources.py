import pandas as pd
import pytest
from conftest import make_event

from smarthome_quantise.data_processing.schemas import SensorCategory
from smarthome_quantise.data_processing.sources import (
    EVENT_COLUMNS,
    MalformedRowError,
    ReadingTable,
    event_to_row,
    events_from_frame,
    events_to_frame,
    load_events,
    load_events_csv,
    parse_event_row,
)

ROWS = [
    "Temperature,Kitchen,KitchenTemperature,2024,3,1,8,0,0,21.5,cooking,1",
    "Motion,Kitchen,KitchenPresence,2024,3,1,8,0,5,1,cooking,1",
    "Pressure,Bedroom,BedPressure,2024,3,1,23,10,0,1,sleeping,2",
]


def _write(path, lines):
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


class TestParseRow:

    def test_parse(self):
        ev = parse_event_row(ROWS[1].split(","))
        assert ev.sensor_name == "KitchenPresence"
        assert ev.category is SensorCategory.PRESENCE
        assert ev.timestamp.second == 5
        assert ev.value == 1.0
        assert ev.bookmark_name == "cooking"
        assert ev.session_id == 1

    def test_wrong_column_count(self):
        with pytest.raises(MalformedRowError, match="Expected 12 columns"):
            parse_event_row(ROWS[0].split(",")[:-1])

    def test_unparsable_number(self):
        row = ROWS[0].split(",")
        row[3] = "twenty"
        with pytest.raises(MalformedRowError):
            parse_event_row(row)

    def test_row_round_trip(self):
        ev = make_event("Stove", SensorCategory.INTERACTION, 75, 1.0, bookmark="cooking", session_id=4)
        assert parse_event_row(event_to_row(ev)) == ev


class TestCsv:

    def test_without_header(self, tmp_path):
        events = load_events_csv(_write(tmp_path / "r.csv", ROWS))
        assert [e.sensor_name for e in events] == ["KitchenTemperature", "KitchenPresence", "BedPressure"]
        assert events[2].category is SensorCategory.TOGGLE

    def test_with_header_and_blank_lines(self, tmp_path):
        lines = [",".join(EVENT_COLUMNS), ROWS[0], "", ROWS[1]]
        events = load_events_csv(_write(tmp_path / "r.csv", lines))
        assert len(events) == 2

    def test_ragged_row_reports_line(self, tmp_path):
        path = _write(tmp_path / "r.csv", [ROWS[0], "Temperature,Kitchen,KitchenTemperature"])
        with pytest.raises(MalformedRowError, match="r.csv:2"):
            load_events_csv(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_events_csv(tmp_path / "missing.csv")


class TestFrames:

    def test_frame_round_trip(self, kitchen_events):
        df = events_to_frame(kitchen_events)
        assert list(df.columns) == list(EVENT_COLUMNS)
        assert events_from_frame(df) == kitchen_events

    def test_short_column_names(self):
        df = pd.DataFrame(
            [["Toggle", "Kitchen", "FridgeDoor", 2024, 3, 1, 8, 0, 10, 1.0, None, 1]],
            columns=[
                "sensor_type", "sensor_area", "sensor_name", "year", "month", "day",
                "hours", "minutes", "seconds", "value", "bookmark_name", "session_id",
            ],
        )
        (ev,) = events_from_frame(df)
        assert ev.bookmark_name == ""
        assert ev.category is SensorCategory.TOGGLE

    def test_missing_columns(self):
        with pytest.raises(MalformedRowError, match="missing columns"):
            events_from_frame(pd.DataFrame({"sensor_name": ["Stove"]}))


class TestReadingTable:

    @pytest.fixture
    def table(self, tmp_path):
        return ReadingTable(f"sqlite:///{tmp_path / 'readings.db'}")

    def test_insert_and_load(self, table, kitchen_events):
        assert not table.exists()
        table.create()
        assert table.insert_events(kitchen_events) == len(kitchen_events)
        assert table.count() == len(kitchen_events)
        assert table.load_events() == kitchen_events

    def test_load_missing_table(self, table):
        with pytest.raises(FileNotFoundError):
            table.load_events()

    def test_session_range_and_filter(self, table):
        table.create()
        assert table.session_id_range() == (None, None)
        events = [make_event("Stove", SensorCategory.INTERACTION, s, session_id=s) for s in (3, 4, 5, 9)]
        table.insert_events(events)
        assert table.session_id_range() == (3, 9)
        assert [e.session_id for e in table.load_events(session_ids=(4, 5))] == [4, 5]

    def test_transfer_sessions(self, table):
        table.create()
        table.insert_events([make_event("Stove", SensorCategory.INTERACTION, s, session_id=s) for s in (1, 2, 3)])
        cooking = table.sibling("cooking_sr")
        table.transfer_sessions(cooking, 2, 3)
        assert cooking.count() == 2
        assert table.count() == 3
        assert [e.session_id for e in cooking.load_events()] == [2, 3]

    def test_transfer_needs_same_engine(self, table, tmp_path):
        other = ReadingTable(f"sqlite:///{tmp_path / 'other.db'}", "cooking_sr")
        with pytest.raises(ValueError, match="same engine"):
            table.transfer_sessions(other, 1, 2)

    def test_insert_nothing(self, table):
        table.create()
        assert table.insert_events([]) == 0


class TestLoadEvents:

    def test_csv_source(self, tmp_path):
        path = _write(tmp_path / "r.csv", ROWS)
        events = load_events({"source": {"kind": "csv", "csv_path": str(path)}})
        assert len(events) == 3

    def test_sqlite_source(self, tmp_path, kitchen_events):
        url = f"sqlite:///{tmp_path / 'readings.db'}"
        table = ReadingTable(url, "cooking_sr")
        table.create()
        table.insert_events(kitchen_events)
        events = load_events({"source": {"kind": "sqlite", "db_url": url, "table": "cooking_sr"}})
        assert events == kitchen_events

    def test_unknown_kind(self):
        with pytest.raises(ValueError, match="source.kind"):
            load_events({"source": {"kind": "parquet"}})

import logging

import pytest

from smarthome_quantise.utils.config import ensure_dirs, load_config
from smarthome_quantise.utils.logging import setup_logging
from smarthome_quantise.utils.timer import timed


class TestLoadConfig:

    def test_extends_and_override(self, tmp_path):
        (tmp_path / "base.yaml").write_text(
            "quantise:\n  mode: all\n  window: {seconds: 30}\nregistry: registry.yaml\n",
            encoding="utf-8",
        )
        child = tmp_path / "child.yaml"
        child.write_text("extends: base.yaml\nquantise:\n  window: {seconds: 60}\n", encoding="utf-8")

        cfg = load_config(child)
        assert cfg["quantise"] == {"mode": "all", "window": {"seconds": 60}}
        assert cfg["registry"] == str((tmp_path / "registry.yaml").resolve())
        assert "extends" not in cfg
        assert cfg["_meta"]["config_path"] == str(child.resolve())

    def test_shipped_configs_load(self):
        from pathlib import Path

        cfg = load_config(Path(__file__).resolve().parents[1] / "config" / "csv_source.yaml")
        assert cfg["source"]["kind"] == "csv"
        assert cfg["quantise"]["window"]["seconds"] == 30
        assert Path(cfg["registry"]).name == "registry.yaml"

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_non_mapping_root(self, tmp_path):
        p = tmp_path / "list.yaml"
        p.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError, match="mapping"):
            load_config(p)

    def test_ensure_dirs(self, tmp_path):
        out = tmp_path / "a" / "b" / "vectors.csv"
        ensure_dirs({"output": {"vectors_csv": str(out), "include_headers": True}})
        assert out.parent.is_dir()


class TestLoggingAndTimer:

    def test_setup_logging_rejects_unknown_level(self):
        with pytest.raises(ValueError):
            setup_logging("LOUD")

    def test_setup_logging_keeps_sqlalchemy_quiet(self):
        setup_logging("DEBUG")
        assert logging.getLogger("sqlalchemy").level == logging.WARNING
        setup_logging("INFO")

    def test_timed_accumulates(self):
        timings = {}
        with timed("load", timings):
            pass
        first = timings["load"]
        with timed("load", timings):
            pass
        assert timings["load"] >= first

    def test_timed_records_on_error(self):
        timings = {}
        with pytest.raises(RuntimeError):
            with timed("quantise", timings):
                raise RuntimeError("boom")
        assert "quantise" in timings

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Mapping, Union

import yaml

# Keys under 'output' that name files rather than flags.
OUTPUT_PATH_KEYS = ("vectors_csv", "meta_json")


def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"YAML root must be a mapping/dict: {path}")
    return data


def _deep_merge(base: Dict[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    """
    Recursively merges override into base (override wins).
    """
    out = dict(base)
    for k, v in override.items():
        if k in out and isinstance(out[k], dict) and isinstance(v, Mapping):
            out[k] = _deep_merge(out[k], v)  # type: ignore[arg-type]
        else:
            out[k] = v
    return out


def load_config(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Loads a YAML config file with optional inheritance via:
      extends: "base.yaml"
    or
      extends:
        - "base.yaml"
        - "other.yaml"

    Paths in 'extends' are resolved relative to the current config file.
    A relative 'registry' path is resolved the same way.
    """
    path = Path(path)

    cfg = load_yaml(path)

    extends = cfg.get("extends")
    merged: Dict[str, Any] = {}

    if extends:
        if isinstance(extends, (str, Path)):
            parents = [extends]
        elif isinstance(extends, list):
            parents = extends
        else:
            raise ValueError("Config key 'extends' must be a string or a list of strings.")

        for parent in parents:
            parent_path = Path(parent)
            if not parent_path.is_absolute():
                parent_path = (path.parent / parent_path).resolve()
            parent_cfg = load_config(parent_path)
            merged = _deep_merge(merged, parent_cfg)

    cfg_no_extends = dict(cfg)
    cfg_no_extends.pop("extends", None)

    registry = cfg_no_extends.get("registry")
    if isinstance(registry, str) and not Path(registry).is_absolute():
        cfg_no_extends["registry"] = str((path.parent / registry).resolve())

    merged = _deep_merge(merged, cfg_no_extends)

    merged.setdefault("_meta", {})
    merged["_meta"]["config_path"] = str(path.resolve())

    return merged


def ensure_dirs(cfg: Dict[str, Any]) -> None:
    """
    Creates parent directories for known output paths.
    Safe to call multiple times.

    Expected config layout:
      output:
        vectors_csv: data/processed/vectors.csv
        meta_json: data/processed/vectors_meta.json
    """
    output = cfg.get("output", {}) or {}
    if isinstance(output, dict):
        for key in OUTPUT_PATH_KEYS:
            p = output.get(key)
            if isinstance(p, (str, Path)) and str(p).strip():
                Path(p).parent.mkdir(parents=True, exist_ok=True)

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

import numpy as np
import pandas as pd

from smarthome_quantise.data_processing.registry import SensorRegistry
from smarthome_quantise.data_processing.schemas import LABEL_COLUMNS, FeatureVector

log = logging.getLogger(__name__)


def vectors_to_frame(vectors: Sequence[FeatureVector], registry: SensorRegistry) -> pd.DataFrame:
    """Registry columns followed by the five label columns, one row per window."""
    columns = registry.names + list(LABEL_COLUMNS)
    if not vectors:
        return pd.DataFrame(columns=columns)

    values = np.asarray([v.values for v in vectors], dtype=float).reshape(len(vectors), len(registry))
    labels = np.asarray([v.label_row() for v in vectors], dtype=int)

    df = pd.DataFrame(values, columns=registry.names)
    for i, col in enumerate(LABEL_COLUMNS):
        df[col] = labels[:, i]
    return df[columns]


def write_vectors_csv(
    vectors: Sequence[FeatureVector],
    path: Union[str, Path],
    registry: SensorRegistry,
    include_headers: bool = True,
    append: bool = False,
) -> int:
    """
    Writes vectors as comma-separated rows. When appending to a file that
    already has content the header row is not repeated. With no vectors an
    existing file is emptied (header only) unless appending.
    Returns the number of rows written.
    """
    path = Path(path)
    if not vectors:
        log.warning("No feature vectors to write to %s", path.as_posix())
        if not append and path.exists():
            # overwrite still replaces the previous run's rows
            vectors_to_frame([], registry).to_csv(path, header=include_headers, index=False)
        return 0

    path.parent.mkdir(parents=True, exist_ok=True)
    has_content = append and path.exists() and path.stat().st_size > 0
    df = vectors_to_frame(vectors, registry)
    df.to_csv(
        path,
        mode="a" if append else "w",
        header=include_headers and not has_content,
        index=False,
    )
    log.info("Wrote %d feature vectors to %s", len(df), path.as_posix())
    return int(len(df))


def read_vectors_csv(path: Union[str, Path], registry: Optional[SensorRegistry] = None) -> List[FeatureVector]:
    """
    Parses a file written with include_headers=True, by column name. With a
    registry the values come back in registry order; otherwise in file order.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Feature vector file not found: {path}")

    df = pd.read_csv(path)
    missing_labels = [c for c in LABEL_COLUMNS if c not in df.columns]
    if missing_labels:
        raise ValueError(f"{path.name} has no label columns {missing_labels}; was it written with headers?")

    sensor_cols = registry.names if registry is not None else [c for c in df.columns if c not in LABEL_COLUMNS]
    missing = [c for c in sensor_cols if c not in df.columns]
    if missing:
        raise ValueError(f"{path.name} is missing sensor columns: {missing}")

    values = df[sensor_cols].to_numpy(dtype=float)
    labels = df[list(LABEL_COLUMNS)].to_numpy(dtype=int)
    return [
        FeatureVector(
            values=tuple(float(x) for x in values[i]),
            labels={c: int(labels[i, j]) for j, c in enumerate(LABEL_COLUMNS)},
            window_index=i,
        )
        for i in range(len(df))
    ]

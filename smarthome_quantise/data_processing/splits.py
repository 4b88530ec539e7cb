from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Optional, Tuple, Union

import pandas as pd
from sklearn.model_selection import train_test_split

from smarthome_quantise.data_processing.schemas import LABEL_COLUMNS

log = logging.getLogger(__name__)

STRATUM_COL = "_stratum"
SPLIT_NAMES = ("train", "val", "test")


def label_strata(df: pd.DataFrame) -> pd.Series:
    """One string per row naming its active label flags, e.g. 'output_cooking+output_other'."""
    flags = df[list(LABEL_COLUMNS)].astype(int)
    return flags.apply(lambda row: "+".join(c for c in LABEL_COLUMNS if row[c]) or "none", axis=1)


def _stratify_on(df: pd.DataFrame, col: Optional[str]) -> Optional[pd.Series]:
    # sklearn needs two or more strata with at least two rows each
    if not col or col not in df.columns:
        return None
    counts = df[col].value_counts(dropna=False)
    if len(counts) < 2 or counts.min() < 2:
        return None
    return df[col]


def _cut(df: pd.DataFrame, n_second: int, seed: int, col: Optional[str]) -> Tuple[pd.DataFrame, pd.DataFrame]:
    first, second = train_test_split(df, test_size=n_second, random_state=seed, stratify=_stratify_on(df, col))
    return first.reset_index(drop=True), second.reset_index(drop=True)


def split_vectors(
    frame: pd.DataFrame,
    train: float = 0.7,
    val: float = 0.15,
    test: float = 0.15,
    seed: int = 42,
    stratify_col: Optional[str] = None,
) -> Dict[str, pd.DataFrame]:
    """
    Row-level train/val/test split of a vector frame. Ratios are normalised
    to sum to one. Train is never empty; with fewer than three rows every
    row goes to train.
    """
    if frame is None or frame.empty:
        raise ValueError("Cannot split an empty vector frame.")
    if min(train, val, test) < 0 or train + val + test <= 0:
        raise ValueError(f"Split ratios must be non-negative with a positive sum, got {(train, val, test)}")

    total = train + val + test
    train, val, test = train / total, val / total, test / total
    empty = frame.iloc[0:0].copy()

    n = len(frame)
    if n < 3:
        log.warning("Only %d vectors; putting all of them in the train split", n)
        return {"train": frame.reset_index(drop=True), "val": empty, "test": empty.copy()}

    n_holdout = min(max(1, int(round((1.0 - train) * n))), n - 1)
    df_train, holdout = _cut(frame, n_holdout, seed, stratify_col)

    if len(holdout) < 2 or val + test == 0:
        return {"train": df_train, "val": empty, "test": holdout}

    n_val = min(max(1, int(round(val / (val + test) * len(holdout)))), len(holdout) - 1)
    df_val, df_test = _cut(holdout, len(holdout) - n_val, seed, stratify_col)
    return {"train": df_train, "val": df_val, "test": df_test}


def write_splits(
    frame: pd.DataFrame,
    out_path: Union[str, Path],
    train: float = 0.7,
    val: float = 0.15,
    test: float = 0.15,
    seed: int = 42,
    include_headers: bool = True,
) -> Dict[str, str]:
    """Split a vector frame stratified on its label flags and write <stem>_<split>.csv files."""
    out_path = Path(out_path)
    df = frame.copy()
    df[STRATUM_COL] = label_strata(df)
    splits = split_vectors(df, train=train, val=val, test=test, seed=seed, stratify_col=STRATUM_COL)

    written: Dict[str, str] = {}
    for name in SPLIT_NAMES:
        sdf = splits[name]
        p = out_path.with_name(f"{out_path.stem}_{name}{out_path.suffix or '.csv'}")
        p.parent.mkdir(parents=True, exist_ok=True)
        sdf.drop(columns=[STRATUM_COL]).to_csv(p, index=False, header=include_headers)
        written[name] = str(p)
        log.info("Wrote %s split (%d rows) to %s", name, len(sdf), p.as_posix())
    return written

# data/loader.py
from __future__ import annotations

import os

import pandas as pd

from core.validation import InvalidInput


def _read_frame(path: str) -> pd.DataFrame:
    """
    CSV via pandas; Parquet via pandas (pyarrow engine when installed).
    """
    ext = os.path.splitext(path)[1].lower()
    if ext in {".parquet", ".pq"}:
        return pd.read_parquet(path)
    return pd.read_csv(path)


def load_series(
    path: str | os.PathLike,
    time_col: str = "t",
    price_col: str = "actual",
    regular_col: str | None = None,
) -> pd.DataFrame:
    """
    Load one price series from CSV or Parquet.

    Returns a frame sorted by time with canonical columns:
      t       int time index (week/day number)
      actual  float observed price, NaN where missing
      regular float known regular price (only when `regular_col` is present)
    """
    p = os.fspath(path)
    if not os.path.isfile(p):
        raise FileNotFoundError(f"data file not found: {p}")

    df = _read_frame(p)
    cols = list(df.columns)
    if time_col not in cols or price_col not in cols:
        raise KeyError(f"Missing required columns '{time_col}'/'{price_col}' in {p}")

    out = pd.DataFrame(
        {
            "t": pd.to_numeric(df[time_col], errors="raise").astype("int64"),
            "actual": pd.to_numeric(df[price_col], errors="coerce").astype("float64"),
        }
    )
    if regular_col is not None and regular_col in cols:
        out["regular"] = pd.to_numeric(df[regular_col], errors="coerce").astype("float64")

    out = out.sort_values("t", kind="stable").reset_index(drop=True)
    dup = out["t"].duplicated()
    if dup.any():
        raise InvalidInput(f"duplicate time values in {p}: {out.loc[dup, 't'].tolist()[:5]}")
    return out

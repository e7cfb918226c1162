# core/regular.py
from __future__ import annotations

from collections.abc import Sequence

import numpy as np
import pandas as pd

from core.types import PartitionSummary


def _price_lookup(time_index: Sequence[int], prices: Sequence[float | None]) -> pd.Series:
    t = np.asarray(time_index)
    p = np.asarray(prices, dtype="float64")
    if len(t) != len(p):
        raise ValueError(f"time_index and prices differ in length: {len(t)} != {len(p)}")
    return pd.Series(p, index=t)


def _observed_max(values: np.ndarray) -> float:
    obs = values[~np.isnan(values)]
    return float(obs.max()) if obs.size else float("nan")


def regular_prices(
    partitions: Sequence[Sequence[int]],
    time_index: Sequence[int],
    prices: Sequence[float | None],
) -> list[float]:
    """Max observed price per partition (NaN for a partition with no observations)."""
    s = _price_lookup(time_index, prices)
    return [_observed_max(s.loc[list(part)].to_numpy()) for part in partitions]


def regular_price_series(
    partitions: Sequence[Sequence[int]],
    time_index: Sequence[int],
    prices: Sequence[float | None],
) -> pd.Series:
    """Regular price for every observation, indexed by time index."""
    levels = regular_prices(partitions, time_index, prices)
    out = pd.Series(np.nan, index=np.asarray(time_index), dtype="float64", name="regular_hat")
    for part, level in zip(partitions, levels, strict=True):
        out.loc[list(part)] = level
    return out


def discount_flags(
    regular: Sequence[float] | pd.Series,
    actual: Sequence[float | None] | pd.Series,
    tol: float = 1e-9,
) -> list[bool]:
    """
    True where the observed price sits below the regular price.
    Missing observations are never flagged.
    """
    r = np.asarray(regular, dtype="float64")
    a = np.asarray(actual, dtype="float64")
    with np.errstate(invalid="ignore"):
        flags = a < (r - tol)
    return [bool(f) for f in flags]


def summarize_partitions(
    partitions: Sequence[Sequence[int]],
    time_index: Sequence[int],
    prices: Sequence[float | None],
) -> list[PartitionSummary]:
    s = _price_lookup(time_index, prices)
    out: list[PartitionSummary] = []
    for part in partitions:
        vals = s.loc[list(part)].to_numpy()
        obs = vals[~np.isnan(vals)]
        out.append(
            {
                "start": int(part[0]),
                "end": int(part[-1]),
                "n_obs": int(len(vals)),
                "n_missing": int(len(vals) - obs.size),
                "regular_price": float(obs.max()) if obs.size else float("nan"),
                "min_price": float(obs.min()) if obs.size else float("nan"),
            }
        )
    return out

# core/segment/finder.py
from __future__ import annotations

from collections.abc import Sequence

import numpy as np

from core.segment.refine import observed_mean, refine_split


def rss(values: np.ndarray) -> float:
    """
    Residual sum of squares about the mean of the observed (non-NaN) values.
    An all-missing slice carries no information and contributes 0.0.
    """
    obs = values[~np.isnan(values)]
    if obs.size == 0:
        return 0.0
    resid = obs - observed_mean(obs)
    return float(np.sum(resid * resid))


def delta_rss(prices: Sequence[float] | np.ndarray) -> np.ndarray:
    """
    RSS reduction for every cut of `prices`: entry i splits into [0..i] / [i+1..].
    Returns an array of len(prices) - 1 entries.
    """
    p = np.asarray(prices, dtype="float64")
    n = len(p)
    if n < 2:
        return np.empty(0, dtype="float64")
    prior = rss(p)
    out = np.empty(n - 1, dtype="float64")
    for i in range(n - 1):
        out[i] = prior - (rss(p[: i + 1]) + rss(p[i + 1 :]))
    return out


def find_split(
    indices: Sequence[int] | np.ndarray,
    prices: Sequence[float] | np.ndarray,
    min_leaf_size: int,
) -> int | None:
    """Best admissible split of one partition (a time-index value), or None."""
    idx = np.asarray(indices)
    p = np.asarray(prices, dtype="float64")
    if len(idx) < 2:
        return None
    d = delta_rss(p)
    return refine_split(d, idx, p, min_leaf_size, min_leaf_size)

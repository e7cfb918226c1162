# core/validation.py
from __future__ import annotations

import math
from collections.abc import Sequence
from typing import Any

import numpy as np


class InvalidInput(ValueError):
    """Raised when a series or a segmentation parameter breaks a precondition."""


def _is_int(v: Any) -> bool:
    return isinstance(v, (int, np.integer)) and not isinstance(v, bool)


def check_min_leaf_size(min_leaf_size: Any) -> int:
    if not _is_int(min_leaf_size) or int(min_leaf_size) < 1:
        raise InvalidInput(f"min_leaf_size must be a positive integer, got {min_leaf_size!r}")
    return int(min_leaf_size)


def check_max_splits(max_splits: Any) -> float:
    """
    Normalize the split cap. None and +inf both mean "unbounded" and come back as math.inf.
    """
    if max_splits is None:
        return math.inf
    if isinstance(max_splits, float) and math.isinf(max_splits) and max_splits > 0:
        return math.inf
    if not _is_int(max_splits) or int(max_splits) < 1:
        raise InvalidInput(f"max_splits must be a positive integer or unbounded, got {max_splits!r}")
    return int(max_splits)


def check_series(
    time_index: Sequence[int] | np.ndarray,
    price_series: Sequence[float | None] | np.ndarray,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Coerce (time_index, price_series) to aligned numpy arrays.

    Rules:
      - same length, at least 2 observations
      - time index integral and strictly increasing (gaps are fine)
      - prices numeric; None becomes NaN (a missing observation keeps its slot)
    """
    try:
        t_raw = np.asarray(time_index)
        p = np.asarray(price_series, dtype="float64")
    except (TypeError, ValueError) as e:
        raise InvalidInput(f"series must be numeric: {e}") from e

    if t_raw.ndim != 1 or p.ndim != 1:
        raise InvalidInput("time_index and price_series must be one-dimensional")
    if len(t_raw) != len(p):
        raise InvalidInput(
            f"time_index and price_series differ in length: {len(t_raw)} != {len(p)}"
        )
    if len(t_raw) < 2:
        raise InvalidInput(f"need at least 2 observations, got {len(t_raw)}")

    if t_raw.dtype.kind in "iu":
        t = t_raw.astype("int64")
    else:
        try:
            tf = t_raw.astype("float64")
        except (TypeError, ValueError) as e:
            raise InvalidInput(f"time_index must be integers: {e}") from e
        if not np.all(np.isfinite(tf)) or not np.all(tf == np.floor(tf)):
            raise InvalidInput("time_index must contain integers only")
        t = tf.astype("int64")

    if np.any(np.diff(t) <= 0):
        raise InvalidInput("time_index must be strictly increasing")
    if np.any(np.isinf(p)):
        raise InvalidInput("price_series contains infinite values")
    return t, p

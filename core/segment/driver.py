# core/segment/driver.py
from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Any

import numpy as np

from core.config import load_config
from core.segment.finder import find_split
from core.types import Segmentation
from core.validation import (
    InvalidInput,
    check_max_splits,
    check_min_leaf_size,
    check_series,
)

logger = logging.getLogger(__name__)

Bounds = list[tuple[int, int]]  # [start, stop) positions per partition


def _bounds_from_splits(t: np.ndarray, splits: Sequence[int]) -> Bounds:
    """Cut the full index right after every split value."""
    cuts = [int(np.searchsorted(t, s)) + 1 for s in splits]
    edges = [0, *cuts, len(t)]
    return [(edges[i], edges[i + 1]) for i in range(len(edges) - 1)]


def _scan(
    bounds: Bounds,
    t: np.ndarray,
    p: np.ndarray,
    min_leaf_size: int,
    mapper: Callable[..., Iterable[Any]],
) -> Iterator[int | None]:
    def _one(b: tuple[int, int]) -> int | None:
        lo, hi = b
        return find_split(t[lo:hi], p[lo:hi], min_leaf_size)

    # results come back in partition order for both map() and Executor.map()
    yield from mapper(_one, bounds)


def segment(
    time_index: Sequence[int] | np.ndarray,
    price_series: Sequence[float | None] | np.ndarray,
    min_leaf_size: int,
    max_splits: int | float | None = None,
    *,
    workers: int = 1,
) -> tuple[list[list[int]], list[int]]:
    """
    Recursive binary segmentation into regular-price partitions.

    Every round asks each current partition for one split, then rebuilds the
    partition set from all splits accepted so far. Stops when a round adds
    nothing, or as soon as `max_splits` splits are held (None / inf = no cap).

    Returns (partitions, splits): partitions as lists of time-index values in
    order, splits as the sorted list of accepted split points.
    """
    t, p = check_series(time_index, price_series)
    leaf = check_min_leaf_size(min_leaf_size)
    cap = check_max_splits(max_splits)
    if not isinstance(workers, int) or workers < 1:
        raise InvalidInput(f"workers must be a positive integer, got {workers!r}")

    bounds: Bounds = [(0, len(t))]
    splits: list[int] = []

    ex = ThreadPoolExecutor(max_workers=workers) if workers > 1 else None
    mapper = ex.map if ex is not None else map
    try:
        rounds = 0
        while True:
            rounds += 1
            n_part = len(bounds)
            capped = False
            for s in _scan(bounds, t, p, leaf, mapper):
                if s is not None and s not in splits:
                    splits.append(s)
                if len(splits) >= cap:
                    capped = True
                    break

            if len(splits) == n_part - 1:
                break

            splits = sorted(set(splits))
            bounds = _bounds_from_splits(t, splits)
            logger.debug("round %d: %d splits -> %d partitions", rounds, len(splits), len(bounds))
            if capped:
                logger.debug("split cap %s reached", cap)
                break
    finally:
        if ex is not None:
            ex.shutdown(wait=True)

    partitions = [t[lo:hi].tolist() for lo, hi in bounds]
    return partitions, splits


def segment_frame(
    df,
    min_leaf_size: int | None = None,
    max_splits: int | float | None = None,
    *,
    time_col: str | None = None,
    price_col: str | None = None,
    workers: int | None = None,
    cfg: dict[str, Any] | None = None,
) -> Segmentation:
    """
    Run `segment` on a DataFrame. Explicit arguments win; otherwise values come
    from config (min_leaf_size, max_splits, workers, time_col, price_col).
    """
    cfg = cfg if cfg is not None else load_config()
    tcol = time_col or str(cfg.get("time_col", "t"))
    pcol = price_col or str(cfg.get("price_col", "actual"))
    for c in (tcol, pcol):
        if c not in df.columns:
            raise KeyError(f"missing column '{c}', got columns: {list(df.columns)}")

    leaf = min_leaf_size if min_leaf_size is not None else int(cfg.get("min_leaf_size", 28))
    cap = max_splits if max_splits is not None else cfg.get("max_splits")
    n_workers = workers if workers is not None else int(cfg.get("workers", 1))

    try:
        prices = df[pcol].to_numpy(dtype="float64", na_value=np.nan)
    except (TypeError, ValueError) as e:
        raise InvalidInput(f"column '{pcol}' must be numeric: {e}") from e

    partitions, splits = segment(
        df[tcol].to_numpy(),
        prices,
        leaf,
        cap,
        workers=n_workers,
    )
    return {"partitions": partitions, "splits": splits}

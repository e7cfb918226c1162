from __future__ import annotations

import argparse
import itertools
import json
import math
import os
import sys
from collections.abc import Iterable
from concurrent.futures import ProcessPoolExecutor, as_completed
from pathlib import Path
from typing import Any

import pandas as pd

from backtest.runner import SegmentationRunner
from data.loader import load_series

# -------- metrics to emit --------
METRIC_KEYS: tuple[str, ...] = (
    "n_splits",
    "n_partitions",
    "mae",
    "rmse",
    "exact_match_rate",
    "split_precision",
    "split_recall",
    "split_offset_mean_abs",
    "elapsed_ms",
)

# -------- per-process cache --------
_FRAME_CACHE: pd.DataFrame | None = None


def _to_json_safe_float(v: Any) -> float | None:
    try:
        f = float(v)
    except (TypeError, ValueError):
        return None
    return f if math.isfinite(f) else None


def _resolve_data_path(p: str) -> str:
    cand = Path(p)
    if cand.exists():
        return str(cand)
    base = Path(p).name
    guess = Path("data") / base
    if guess.exists():
        return str(guess)
    raise FileNotFoundError(f"Data file not found: '{p}' (also tried 'data/{base}')")


def _get_frame_cached(data_path: str) -> pd.DataFrame:
    # Read once per worker and reuse for all combos
    global _FRAME_CACHE
    if _FRAME_CACHE is None:
        _FRAME_CACHE = load_series(data_path, regular_col="regular")
    return _FRAME_CACHE


def combo_iter(
    leaf_sizes: Iterable[int], max_splits: Iterable[int | None]
) -> Iterable[dict[str, Any]]:
    for leaf, cap in itertools.product(leaf_sizes, max_splits):
        yield {"min_leaf_size": int(leaf), "max_splits": cap}


def run_one(data_path: str, split_tol: int, combo: dict[str, Any]) -> str:
    df = _get_frame_cached(data_path)
    runner = SegmentationRunner(
        min_leaf_size=int(combo["min_leaf_size"]),
        max_splits=combo["max_splits"],
        split_tol=split_tol,
    )
    metrics, _ = runner.run(df)

    rec: dict[str, Any] = dict(combo)
    for k in METRIC_KEYS:
        rec[k] = _to_json_safe_float(metrics.get(k))
    return json.dumps(rec, separators=(",", ":"))


def _int_list(v: str) -> list[int]:
    return [int(x) for x in v.split(",") if x.strip()]


def _cap_list(v: str) -> list[int | None]:
    out: list[int | None] = []
    for x in v.split(","):
        s = x.strip().lower()
        if not s:
            continue
        out.append(None if s in {"inf", "none"} else int(s))
    return out


def main() -> None:
    ap = argparse.ArgumentParser(description="Sweep min_leaf_size x max_splits over one series.")
    ap.add_argument("--data", required=True)
    ap.add_argument("--leaf", type=_int_list, default=[7, 14, 21, 28, 35, 42],
                    help="Comma-separated min_leaf_size values")
    ap.add_argument("--caps", type=_cap_list, default=[1, 2, 4, 8, None],
                    help="Comma-separated max_splits values ('inf' = unbounded)")
    ap.add_argument("--split_tol", type=int, default=7)
    ap.add_argument("--jobs", type=int, default=os.cpu_count() or 1, help="Parallel workers")
    ap.add_argument("--out", type=str, default="-", help="NDJSON path or '-' for stdout")
    ap.add_argument("--no-progress", dest="progress", action="store_false")
    ap.set_defaults(progress=True)
    args = ap.parse_args()

    data_path = _resolve_data_path(args.data)
    combos = list(combo_iter(args.leaf, args.caps))
    total = len(combos)

    if args.out == "-" or not args.out:
        fh = sys.stdout
        close_fh = False
    else:
        fh = open(args.out, "w", buffering=1, encoding="utf-8")
        close_fh = True

    pbar = None
    if args.progress:
        from tqdm import tqdm

        pbar = tqdm(total=total, unit="combo", smoothing=0.05, file=sys.stderr)

    try:
        with ProcessPoolExecutor(max_workers=max(1, args.jobs)) as ex:
            futs = [ex.submit(run_one, data_path, args.split_tol, c) for c in combos]
            for fut in as_completed(futs):
                try:
                    fh.write(fut.result() + "\n")
                except Exception as e:
                    sys.stderr.write(f"\n[sweep] combo failed: {e}\n")
                    sys.stderr.flush()
                finally:
                    if pbar is not None:
                        pbar.update(1)
    finally:
        if pbar is not None:
            pbar.close()
        if close_fh:
            fh.close()


if __name__ == "__main__":
    main()

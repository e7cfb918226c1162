#!/usr/bin/env python3
from __future__ import annotations

import argparse
import json
import math

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt  # noqa: E402
import pandas as pd  # noqa: E402

from backtest.runner import SegmentationRunner  # noqa: E402
from core.config import load_config  # noqa: E402
from data.loader import load_series  # noqa: E402


def _discount_ranges(mask: pd.Series) -> list[tuple[int, int]]:
    """Return (start,end) time ranges where mask==True (contiguous)."""
    if mask.empty or mask.sum() == 0:
        return []
    ranges: list[tuple[int, int]] = []
    run_start = None
    prev_idx = None
    for idx, val in mask.items():
        if val and run_start is None:
            run_start = idx
        if not val and run_start is not None:
            ranges.append((run_start, prev_idx if prev_idx is not None else idx))
            run_start = None
        prev_idx = idx
    if run_start is not None:
        ranges.append((run_start, prev_idx if prev_idx is not None else mask.index[-1]))
    return ranges


def main() -> None:
    ap = argparse.ArgumentParser(
        description="Plot actual prices vs recovered regular prices with split marks."
    )
    ap.add_argument("--data", required=True, help="CSV/Parquet with t,actual[,regular]")
    ap.add_argument("--profile", choices=["weekly", "daily"], default=None)
    ap.add_argument("--config", default=None, help="Path to YAML config (overrides default/profile)")
    ap.add_argument("--min-leaf-size", dest="min_leaf_size", type=int, default=None)
    ap.add_argument("--out", default="partitions.png", help="Output image path (PNG)")
    args = ap.parse_args()

    cfg = load_config(args.config, args.profile) or {}
    df = load_series(
        args.data,
        time_col=str(cfg.get("time_col", "t")),
        price_col=str(cfg.get("price_col", "actual")),
        regular_col=cfg.get("regular_col", "regular"),
    )
    leaf = args.min_leaf_size if args.min_leaf_size is not None else int(cfg.get("min_leaf_size", 28))
    runner = SegmentationRunner(
        min_leaf_size=leaf,
        max_splits=cfg.get("max_splits"),
        split_tol=int(cfg.get("split_tol", 7)),
    )
    metrics, log = runner.run(df)
    lf = pd.DataFrame(log).set_index("t")

    fig, ax = plt.subplots(figsize=(12, 5))
    ax.plot(lf.index, lf["actual"], label="actual", linewidth=1)
    ax.step(lf.index, lf["regular_hat"], where="mid", label="regular (recovered)", linewidth=2)
    if "regular" in lf.columns:
        ax.step(lf.index, lf["regular"], where="mid", label="regular (known)", linestyle="--")

    # split marks at the last index of every partition but the final one
    ends = lf.index[lf["partition"].ne(lf["partition"].shift(-1))][:-1]
    for x in ends:
        ax.axvline(x, linewidth=0.8, alpha=0.6)

    for start, end in _discount_ranges(lf["discount"].astype(bool)):
        ax.axvspan(start - 0.5, end + 0.5, alpha=0.08)

    mae = metrics.get("mae", math.nan)
    ax.set_title(
        f"{len(ends)} splits | min_leaf_size={leaf} | regular-price MAE={mae:.4g}"
    )
    ax.set_xlabel("t")
    ax.set_ylabel("price")
    ax.legend(loc="best")
    ax.grid(True)

    fig.tight_layout()
    fig.savefig(args.out, dpi=150)
    print(json.dumps({"out": args.out, "splits": [int(x) for x in ends], "metrics": metrics}, indent=2))


if __name__ == "__main__":
    main()

# backtest/cli.py
from __future__ import annotations

import argparse
import json
import math
import sys
from typing import Any

from backtest.runner import SegmentationRunner
from core.config import load_config
from core.validation import InvalidInput
from data.loader import load_series


def _max_splits_arg(v: str) -> float | int:
    s = v.strip().lower()
    if s in {"inf", "infinity", "none", "unbounded"}:
        return math.inf
    return int(s)


def _json_safe(v: Any) -> Any:
    if isinstance(v, float) and not math.isfinite(v):
        return None
    return v


def _summarize_log(log: list[dict[str, Any]]) -> tuple[list[int], list[float | None]]:
    """Split points and per-partition regular prices from a runner log."""
    splits: list[int] = []
    levels: list[float | None] = []
    for i, row in enumerate(log):
        if i == 0 or row["partition"] != log[i - 1]["partition"]:
            levels.append(_json_safe(row["regular_hat"]))
        if i + 1 < len(log) and log[i + 1]["partition"] != row["partition"]:
            splits.append(int(row["t"]))
    return splits, levels


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="Partition a price series into regular-price regimes.")
    ap.add_argument("--data", required=True, help="CSV/Parquet file with a time and a price column.")
    ap.add_argument("--min-leaf-size", "--min_leaf_size", dest="min_leaf_size", type=int, default=None,
                    help="Minimum regime span in time units (default from config).")
    ap.add_argument("--max-splits", "--max_splits", dest="max_splits", type=_max_splits_arg, default=None,
                    help="Cap on accepted splits; 'inf' for unbounded (default from config).")
    ap.add_argument("--time-col", dest="time_col", default=None)
    ap.add_argument("--price-col", dest="price_col", default=None)
    ap.add_argument("--regular-col", dest="regular_col", default=None,
                    help="Optional known regular price column for scoring.")
    ap.add_argument("--split-tol", "--split_tol", dest="split_tol", type=int, default=None,
                    help="Matching tolerance (time units) for split precision/recall.")
    ap.add_argument("--workers", type=int, default=None)
    ap.add_argument("--profile", choices=["weekly", "daily"], help="Config profile to load.")
    ap.add_argument("--config", help="Path to a YAML config file.")
    ap.add_argument("--log", action="store_true", help="Include the per-observation log in the output.")
    args = ap.parse_args(argv)

    try:
        # Resolve configuration (explicit path > env > profile > default)
        cfg = load_config(args.config, args.profile) or {}

        df = load_series(
            args.data,
            time_col=args.time_col or str(cfg.get("time_col", "t")),
            price_col=args.price_col or str(cfg.get("price_col", "actual")),
            regular_col=args.regular_col or cfg.get("regular_col"),
        )
        runner = SegmentationRunner(
            min_leaf_size=args.min_leaf_size if args.min_leaf_size is not None else int(cfg.get("min_leaf_size", 28)),
            max_splits=args.max_splits if args.max_splits is not None else cfg.get("max_splits"),
            split_tol=args.split_tol if args.split_tol is not None else int(cfg.get("split_tol", 7)),
            workers=args.workers if args.workers is not None else int(cfg.get("workers", 1)),
        )
        metrics, log = runner.run(df)
    except (FileNotFoundError, KeyError, InvalidInput) as e:
        sys.stderr.write(f"error: {e}\n")
        return 2

    splits, levels = _summarize_log(log)
    out: dict[str, Any] = {
        "splits": splits,
        "regular_prices": levels,
        "metrics": {k: _json_safe(v) for k, v in metrics.items()},
    }
    if args.log:
        out["log"] = log
    print(json.dumps(out, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())

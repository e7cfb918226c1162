from __future__ import annotations

import math
import time
from typing import Any

import pandas as pd

from core.regular import discount_flags, regular_price_series
from core.segment.driver import segment

from .metrics import exact_match_rate, mae, rmse, split_event_metrics


def _true_splits(df: pd.DataFrame) -> list[int] | None:
    """Known regime ends: from a cp/is_cp flag column, else from changes in `regular`."""
    cp_col = "cp" if "cp" in df.columns else ("is_cp" if "is_cp" in df.columns else None)
    if cp_col is not None:
        flags = pd.to_numeric(df[cp_col], errors="coerce").fillna(0).astype(int)
        return [int(t) for t in df.loc[flags == 1, "t"]]
    if "regular" in df.columns:
        reg = df["regular"].to_numpy(dtype="float64")
        ts = df["t"].to_numpy()
        return [int(ts[i]) for i in range(len(reg) - 1) if reg[i] != reg[i + 1]]
    return None


class SegmentationRunner:
    def __init__(
        self,
        min_leaf_size: int = 28,
        max_splits: int | float | None = None,
        split_tol: int = 7,
        *,
        workers: int = 1,
    ) -> None:
        self.min_leaf_size = int(min_leaf_size)
        self.max_splits = max_splits
        self.split_tol = int(split_tol)
        self.workers = int(workers)

    def run(self, df: pd.DataFrame) -> tuple[dict[str, float], list[dict[str, Any]]]:
        """
        Segment one loaded series (columns t, actual[, regular][, cp]) and score it.
        Ground-truth metrics are only emitted when the frame carries them.
        """
        t0 = time.perf_counter()
        partitions, splits = segment(
            df["t"].to_numpy(),
            df["actual"].to_numpy(dtype="float64"),
            self.min_leaf_size,
            self.max_splits,
            workers=self.workers,
        )
        elapsed_ms = (time.perf_counter() - t0) * 1000.0

        reg_hat = regular_price_series(partitions, df["t"].to_numpy(), df["actual"].to_numpy())
        flags = discount_flags(reg_hat.to_numpy(), df["actual"].to_numpy())
        part_id = {t: k for k, part in enumerate(partitions) for t in part}

        has_truth = "regular" in df.columns
        log: list[dict[str, Any]] = []
        for i, t in enumerate(df["t"].tolist()):
            actual = float(df["actual"].iat[i])
            row: dict[str, Any] = {
                "t": int(t),
                "actual": actual if math.isfinite(actual) else None,
                "regular_hat": float(reg_hat.iat[i]),
                "partition": part_id[int(t)],
                "discount": flags[i],
            }
            if has_truth:
                row["regular"] = float(df["regular"].iat[i])
            log.append(row)

        m: dict[str, float] = {
            "n_points": float(len(df)),
            "n_splits": float(len(splits)),
            "n_partitions": float(len(partitions)),
            "discount_share": float(sum(flags) / len(flags)) if flags else 0.0,
            "elapsed_ms": float(elapsed_ms),
        }
        if has_truth:
            y_true = df["regular"].to_numpy(dtype="float64")
            y_hat = reg_hat.to_numpy()
            m["mae"] = mae(y_true, y_hat)
            m["rmse"] = rmse(y_true, y_hat)
            m["exact_match_rate"] = exact_match_rate(y_true, y_hat)

        truth = _true_splits(df)
        if truth is not None:
            m.update(split_event_metrics(truth, splits, tol=self.split_tol))

        return m, log

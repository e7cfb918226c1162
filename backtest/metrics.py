from __future__ import annotations

import math
from collections.abc import Sequence


def _pairs(y_true: Sequence[float], y_pred: Sequence[float]) -> list[tuple[float, float]]:
    """Elementwise pairs where both sides are finite (missing truth/prediction skipped)."""
    out: list[tuple[float, float]] = []
    for a, b in zip(y_true, y_pred, strict=False):
        fa, fb = float(a), float(b)
        if math.isfinite(fa) and math.isfinite(fb):
            out.append((fa, fb))
    return out


def mae(y_true: Sequence[float], y_pred: Sequence[float]) -> float:
    """
    Mean Absolute Error over available pairs. Returns NaN if no pairs.
    """
    pairs = _pairs(y_true, y_pred)
    if not pairs:
        return float("nan")
    return sum(abs(a - b) for a, b in pairs) / len(pairs)


def rmse(y_true: Sequence[float], y_pred: Sequence[float]) -> float:
    """
    Root Mean Squared Error over available pairs. Returns NaN if no pairs.
    """
    pairs = _pairs(y_true, y_pred)
    if not pairs:
        return float("nan")
    ss = 0.0
    for a, b in pairs:
        d = a - b
        ss += d * d
    return math.sqrt(ss / len(pairs))


def exact_match_rate(
    y_true: Sequence[float], y_pred: Sequence[float], tol: float = 1e-6
) -> float:
    """
    Share of observations whose recovered regular price equals the truth within tol.
    Returns NaN if no pairs.
    """
    pairs = _pairs(y_true, y_pred)
    if not pairs:
        return float("nan")
    hit = sum(1 for a, b in pairs if abs(a - b) <= tol)
    return hit / len(pairs)


def _match_events(
    true_idx: list[int], pred_idx: list[int], tol: int
) -> tuple[int, int, int, list[int]]:
    """
    Greedy bipartite matching with ±tol window.
    Returns (tp, fp, fn, offsets_of_tp) where offset = pred - true (can be negative).
    """
    used_true: set[int] = set()
    tp = 0
    fp = 0
    offsets: list[int] = []

    for p in pred_idx:
        cand: tuple[int, int] | None = None
        best_abs = tol + 1
        for t in true_idx:
            if t in used_true:
                continue
            d = p - t
            if -tol <= d <= tol and abs(d) < best_abs:
                best_abs = abs(d)
                cand = (t, d)
        if cand is None:
            fp += 1
        else:
            used_true.add(cand[0])
            tp += 1
            offsets.append(cand[1])

    fn = len(true_idx) - len(used_true)
    return tp, fp, fn, offsets


def split_event_metrics(
    true_splits: Sequence[int], pred_splits: Sequence[int], tol: int
) -> dict[str, float]:
    """
    Precision / recall of predicted split points against known regime ends,
    matched within ±tol time units. NaN precision/recall when there is nothing to score.
    """
    true_idx = sorted(int(s) for s in true_splits)
    pred_idx = sorted(int(s) for s in pred_splits)
    out: dict[str, float] = {
        "split_pred_count": float(len(pred_idx)),
        "split_true_count": float(len(true_idx)),
    }

    if not true_idx and not pred_idx:
        out.update(
            {
                "split_precision": float("nan"),
                "split_recall": float("nan"),
                "split_offset_mean_abs": float("nan"),
            }
        )
        return out

    tp, fp, fn, offsets = _match_events(true_idx, pred_idx, tol)
    out.update(
        {
            "split_precision": float(tp / (tp + fp)) if (tp + fp) else float("nan"),
            "split_recall": float(tp / (tp + fn)) if (tp + fn) else float("nan"),
            "split_offset_mean_abs": (
                float(sum(abs(o) for o in offsets) / len(offsets)) if offsets else float("nan")
            ),
        }
    )
    return out

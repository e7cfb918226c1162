# core/segment/refine.py
from __future__ import annotations

import logging
from collections.abc import Sequence

import numpy as np

from core.validation import InvalidInput

logger = logging.getLogger(__name__)

# below this an RSS reduction is treated as numerical noise
MIN_DELTA_RSS = 1e-6
# candidates within this relative distance of the best one count as tied
TIE_RTOL = 1e-12


def observed_mean(values: np.ndarray) -> float:
    """
    Mean over non-missing values; NaN when nothing was observed.
    Second pass corrects the rounding of the first, so a constant run
    averages back to exactly its own value.
    """
    obs = values[~np.isnan(values)]
    if obs.size == 0:
        return float("nan")
    m = obs.mean()
    m += (obs - m).mean()
    return float(m)


def first_max(window: np.ndarray) -> int:
    """Position of the earliest entry tied with the maximum; NaN is skipped."""
    m = float(np.nanmax(window))
    with np.errstate(invalid="ignore"):
        tied = window >= m - TIE_RTOL * max(1.0, abs(m))
    return int(np.flatnonzero(tied)[0])


def refine_split(
    delta_rss: Sequence[float] | np.ndarray,
    indices: Sequence[int] | np.ndarray,
    prices: Sequence[float] | np.ndarray,
    front_min: int,
    back_min: int,
) -> int | None:
    """
    Two-stage admissibility rule: pick the time index to split at, or None.

    delta_rss[k] is the RSS reduction of cutting right after position k, so it
    has one entry less than `indices`. Spans are measured in time-index units:
      left  = indices[k] - indices[first] + 1
      right = indices[last] - indices[k] + 1

    Cases, first match wins:
      I    both spans long enough                          -> split
      II-a right short, left mean <  right mean            -> split (a short trailing
                                                              rise is a real change)
      II-b right short, left mean >= right mean            -> retry without the last
                                                              back_min observations, back_min=1
      III-a left short, left mean >  right mean            -> split
      III-b left short, left mean <= right mean            -> retry starting at position
                                                              front_min, front_min=1
      otherwise                                            -> None

    Each retry works on a strictly smaller window of the same arrays, so the
    loop below runs at most len(indices) times.
    """
    d = np.asarray(delta_rss, dtype="float64")
    idx = np.asarray(indices)
    p = np.asarray(prices, dtype="float64")
    if len(idx) != len(p):
        raise InvalidInput(f"indices and prices differ in length: {len(idx)} != {len(p)}")
    if len(d) != max(len(idx) - 1, 0):
        raise InvalidInput(
            f"delta_rss must have len(indices) - 1 = {max(len(idx) - 1, 0)} entries, got {len(d)}"
        )

    front = int(front_min)
    back = int(back_min)
    lo, hi = 0, len(idx)  # current window is positions [lo, hi)

    while True:
        window = d[lo : hi - 1]
        if window.size == 0 or np.all(np.isnan(window)):
            return None

        k = lo + first_max(window)
        if not float(d[k]) > MIN_DELTA_RSS:
            return None

        n = hi - lo
        left_span = int(idx[k]) - int(idx[lo]) + 1
        right_span = int(idx[hi - 1]) - int(idx[k]) + 1
        left_ok = left_span >= front
        right_ok = right_span >= back

        if left_ok and right_ok:
            logger.debug("refine: case I at %s (spans %d/%d)", idx[k], left_span, right_span)
            return int(idx[k])

        mean_left = observed_mean(p[lo : k + 1])
        mean_right = observed_mean(p[k + 1 : hi])

        if left_ok:
            if mean_left < mean_right:
                logger.debug("refine: case II-a at %s", idx[k])
                return int(idx[k])
            if mean_left >= mean_right and n - back - 1 >= 1:
                logger.debug("refine: case II-b, dropping last %d observations", back)
                hi -= back
                back = 1
                continue
            return None

        if right_ok:
            if mean_left > mean_right:
                logger.debug("refine: case III-a at %s", idx[k])
                return int(idx[k])
            if mean_left <= mean_right and front <= n - 1:
                logger.debug("refine: case III-b, dropping first %d observations", front - 1)
                lo += front - 1
                front = 1
                continue
            return None

        # both sides too short
        return None

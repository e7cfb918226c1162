import math

import numpy as np
import pandas as pd
import pytest

from core.regular import regular_prices
from core.segment.driver import segment, segment_frame
from core.validation import InvalidInput
from data.sim_discount import simulate

T15 = list(range(1, 16))
P15 = [1, 1, 1, 0.8, 0.8, 1, 1, 1, 1, 1, 1.2, 1.2, 1.2, 1.2, 1.2]


def _dip_series() -> tuple[list[int], list[float]]:
    # 77 days at a regular price of 1.39 with a four-day promotion on days 20-23
    t = list(range(1, 78))
    p = [1.39] * 77
    for d in range(20, 24):
        p[d - 1] = 1.19
    return t, p


def test_short_weekly_example():
    partitions, splits = segment(T15, P15, 4, math.inf)
    assert splits == [5, 10]
    assert partitions == [[1, 2, 3, 4, 5], [6, 7, 8, 9, 10], [11, 12, 13, 14, 15]]
    assert regular_prices(partitions, T15, P15) == pytest.approx([1.0, 1.0, 1.2])


def test_unbounded_sentinels_agree():
    assert segment(T15, P15, 4, None) == segment(T15, P15, 4, math.inf)
    assert segment(T15, P15, 4) == segment(T15, P15, 4, 10_000)


def test_discount_episode_is_absorbed():
    t, p = _dip_series()
    partitions, splits = segment(t, p, 28)
    assert splits == [28]
    assert partitions == [list(range(1, 29)), list(range(29, 78))]
    assert regular_prices(partitions, t, p) == pytest.approx([1.39, 1.39])


def test_constant_series_is_one_partition():
    t = list(range(1, 31))
    partitions, splits = segment(t, [1.39] * 30, 4)
    assert splits == []
    assert partitions == [t]


def test_variation_below_tolerance_never_splits():
    t = list(range(1, 11))
    p = [1.0 if i % 2 else 1.0001 for i in t]
    assert segment(t, p, 1) == ([t], [])


def test_split_cap():
    partitions, splits = segment(T15, P15, 4, 1)
    assert splits == [10]
    assert partitions == [list(range(1, 11)), list(range(11, 16))]

    _, splits2 = segment(T15, P15, 4, 2)
    assert splits2 == [5, 10]


def test_time_index_gaps_and_offset():
    _, shifted = segment([100 + i for i in T15], P15, 4)
    assert shifted == [105, 110]

    doubled = [2 * i for i in T15]
    partitions, splits = segment(doubled, P15, 8)
    assert splits == [10, 20]
    assert [len(part) for part in partitions] == [5, 5, 5]


def test_missing_observations_keep_their_slot():
    t = [1, 2, 3, 4, 5]
    partitions, splits = segment(t, [1.0, 1.0, None, 2.0, 2.0], 1)
    assert splits == [2]
    assert partitions == [[1, 2], [3, 4, 5]]

    nan_p = np.array([1.0, 1.0, np.nan, 2.0, 2.0])
    assert segment(t, nan_p, 1) == (partitions, splits)


def test_larger_min_leaf_size_gives_fewer_splits():
    counts = [len(segment(T15, P15, leaf)[1]) for leaf in (4, 6, 11)]
    assert counts == [2, 1, 0]


@pytest.mark.parametrize("seed", [1, 7, 42])
def test_partitions_cover_index_and_are_fixed_points(seed):
    df = simulate(400, seg_len_min=30, seg_len_max=120, p_discount=0.06, p_missing=0.02, seed=seed)
    t = df["t"].tolist()
    p = df["actual"].to_numpy(dtype="float64")
    partitions, splits = segment(t, p, 14)

    flat = [x for part in partitions for x in part]
    assert flat == t
    assert all(len(part) >= 1 for part in partitions)
    assert splits == sorted(set(splits))
    assert splits == [part[-1] for part in partitions[:-1]]

    pos = {v: i for i, v in enumerate(t)}
    for part in partitions:
        if len(part) < 2:
            continue
        sl = slice(pos[part[0]], pos[part[-1]] + 1)
        assert segment(part, p[sl], 14) == ([part], [])


def test_deterministic_and_worker_pool_matches_sequential():
    df = simulate(300, seed=3)
    t = df["t"].tolist()
    p = df["actual"].tolist()
    first = segment(t, p, 21)
    assert segment(t, p, 21) == first
    assert segment(t, p, 21, workers=4) == first


@pytest.mark.parametrize(
    "t, p, leaf, cap",
    [
        ([1, 2, 3], [1.0, 1.0], 1, None),  # length mismatch
        ([1], [1.0], 1, None),  # too short
        ([1, 3, 2], [1.0, 1.0, 1.0], 1, None),  # not increasing
        ([1, 1, 2], [1.0, 1.0, 1.0], 1, None),  # not strictly increasing
        ([1.5, 2.5], [1.0, 1.0], 1, None),  # non-integer time
        ([1, 2], [1.0, 1.0], 0, None),
        ([1, 2], [1.0, 1.0], 1.5, None),
        ([1, 2], [1.0, 1.0], 1, 0),
        ([1, 2], [1.0, 1.0], 1, -3),
        ([1, 2], [1.0, "x"], 1, None),
    ],
)
def test_invalid_input(t, p, leaf, cap):
    with pytest.raises(InvalidInput):
        segment(t, p, leaf, cap)


def test_invalid_workers():
    with pytest.raises(InvalidInput):
        segment(T15, P15, 4, workers=0)


def test_segment_frame_uses_columns_and_config():
    df = pd.DataFrame({"week": T15, "price": P15})
    out = segment_frame(df, time_col="week", price_col="price", cfg={"min_leaf_size": 4})
    assert out["splits"] == [5, 10]
    assert len(out["partitions"]) == 3

    with pytest.raises(KeyError):
        segment_frame(df, cfg={})


def test_short_lead_in_discount_then_flat_price():
    t = list(range(1, 15))
    assert segment(t, [0.64] + [0.8] * 13, 11) == ([t], [])


def test_segment_frame_price_column_types():
    with pytest.raises(InvalidInput):
        segment_frame(pd.DataFrame({"t": [1, 2], "actual": ["a", "b"]}), cfg={})

    df = pd.DataFrame({"t": T15, "actual": pd.array(P15, dtype="Float64")})
    assert segment_frame(df, cfg={"min_leaf_size": 4})["splits"] == [5, 10]

import math

import pytest

from core.regular import discount_flags, regular_price_series, regular_prices, summarize_partitions

T = [1, 2, 3, 4, 5, 6]
P = [1.0, 0.8, 1.0, 1.5, None, 1.5]
PARTS = [[1, 2, 3], [4, 5, 6]]


def test_regular_prices_take_max_per_partition():
    assert regular_prices(PARTS, T, P) == pytest.approx([1.0, 1.5])


def test_all_missing_partition_is_nan():
    levels = regular_prices([[1], [2, 3]], [1, 2, 3], [2.0, None, None])
    assert levels[0] == 2.0
    assert math.isnan(levels[1])


def test_regular_price_series_expands_per_observation():
    s = regular_price_series(PARTS, T, P)
    assert s.index.tolist() == T
    assert s.tolist() == pytest.approx([1.0, 1.0, 1.0, 1.5, 1.5, 1.5])


def test_discount_flags():
    s = regular_price_series(PARTS, T, P)
    assert discount_flags(s, P) == [False, True, False, False, False, False]


def test_summarize_partitions():
    out = summarize_partitions(PARTS, T, P)
    assert out[0] == {
        "start": 1,
        "end": 3,
        "n_obs": 3,
        "n_missing": 0,
        "regular_price": 1.0,
        "min_price": 0.8,
    }
    assert out[1]["n_missing"] == 1
    assert out[1]["regular_price"] == 1.5


def test_length_mismatch():
    with pytest.raises(ValueError):
        regular_prices(PARTS, T, P[:-1])

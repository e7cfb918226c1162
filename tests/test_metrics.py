import math

import pytest

from backtest.metrics import exact_match_rate, mae, rmse, split_event_metrics


def test_error_metrics_skip_missing_pairs():
    y = [1.0, 2.0, float("nan"), 4.0]
    yh = [1.0, 1.0, 3.0, 2.0]
    assert mae(y, yh) == pytest.approx(1.0)
    assert rmse(y, yh) == pytest.approx(math.sqrt(5.0 / 3.0))
    assert exact_match_rate(y, yh) == pytest.approx(1.0 / 3.0)
    assert math.isnan(mae([], []))


def test_split_event_matching():
    m = split_event_metrics([10, 50], [12, 80], tol=5)
    assert m["split_precision"] == pytest.approx(0.5)
    assert m["split_recall"] == pytest.approx(0.5)
    assert m["split_offset_mean_abs"] == pytest.approx(2.0)
    assert m["split_pred_count"] == 2.0


def test_split_event_nothing_to_score():
    m = split_event_metrics([], [], tol=3)
    assert math.isnan(m["split_precision"])
    assert math.isnan(m["split_recall"])

    m2 = split_event_metrics([], [5], tol=3)
    assert m2["split_precision"] == 0.0
    assert math.isnan(m2["split_recall"])

import math

import pandas as pd
import pytest

from factor_lab.apps.research.metrics.aggregator import aggregate_error, summarize_records
from factor_lab.domain.dto.prediction import PredictionRecord
from factor_lab.domain.errors import ModelFitFailure

T1 = pd.Timestamp("2024-01-31")
T2 = pd.Timestamp("2024-02-29")


def test_rmse_within_single_timestamp_group():
    results = [(T1, 1.0, 1.0), (T1, 2.0, 4.0)]
    assert aggregate_error(results, "rmse") == pytest.approx(math.sqrt(2.0))


def test_singleton_group_rmse_is_absolute_error():
    assert aggregate_error([(T1, 3.0, 1.0)], "rmse") == pytest.approx(2.0)
    assert aggregate_error([(T1, -1.5, 1.0)]) == pytest.approx(2.5)


def test_average_is_taken_across_groups():
    results = [
        PredictionRecord(T1, 1.0, 1.0, "Slice01"),
        PredictionRecord(T1, 2.0, 4.0, "Slice02"),
        PredictionRecord(T2, 3.0, 1.0, "Slice02"),
    ]
    # 日付ごと: sqrt(2), 2 → 平均
    assert aggregate_error(results) == pytest.approx((math.sqrt(2.0) + 2.0) / 2.0)
    assert aggregate_error(results, "mae") == pytest.approx((1.0 + 2.0) / 2.0)
    assert aggregate_error(results, "MSE") == pytest.approx((2.0 + 4.0) / 2.0)


def test_custom_metric_callable():
    results = [(T1, 1.0, 3.0), (T2, 5.0, 4.0)]
    worst = aggregate_error(results, lambda p, a: float(abs(p - a).max()))
    assert worst == pytest.approx(1.5)


def test_invalid_inputs():
    with pytest.raises(ValueError):
        aggregate_error([], "rmse")
    with pytest.raises(ValueError, match="unknown metric"):
        aggregate_error([(T1, 1.0, 1.0)], "r2")


def test_summarize_records_builds_split_table():
    records = [
        PredictionRecord(T1, 1.0, 1.0, "Slice01"),
        PredictionRecord(T2, 2.0, 4.0, "Slice01"),
        PredictionRecord(T2, 3.0, 3.0, "Slice02"),
    ]
    failure = ModelFitFailure("Slice03", "degenerate")
    table, summary = summarize_records(records, [failure])
    assert list(table["split_id"]) == ["Slice01", "Slice02"]
    assert {"assess_start", "assess_end", "n", "rmse", "mae"} <= set(table.columns)
    first = table.iloc[0]
    assert first["n"] == 2
    assert first["assess_start"] == T1 and first["assess_end"] == T2
    assert first["rmse"] == pytest.approx(math.sqrt(2.0))
    assert summary["folds"] == 2
    assert summary["skipped"] == ["Slice03"]
    assert "rmse" in summary["mean"]
    assert isinstance(summary["rmse_by_date"], float)


def test_summarize_empty_records():
    table, summary = summarize_records([])
    assert table.empty
    assert summary["folds"] == 0

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from typing import Any

import numpy as np
import pandas as pd

from factor_lab.domain.dto.prediction import PredictionRecord, records_to_frame
from factor_lab.domain.errors import ModelFitFailure

MetricFn = Callable[[np.ndarray, np.ndarray], float]


def _rmse(pred: np.ndarray, actual: np.ndarray) -> float:
    # 1要素なら |pred - actual| に一致
    return float(np.sqrt(np.mean((pred - actual) ** 2)))


def _mae(pred: np.ndarray, actual: np.ndarray) -> float:
    return float(np.mean(np.abs(pred - actual)))


def _mse(pred: np.ndarray, actual: np.ndarray) -> float:
    return float(np.mean((pred - actual) ** 2))


METRICS: Mapping[str, MetricFn] = {"rmse": _rmse, "mae": _mae, "mse": _mse}


def resolve_metric(metric: str | MetricFn) -> MetricFn:
    if callable(metric):
        return metric
    try:
        return METRICS[metric.lower()]
    except KeyError:
        raise ValueError(f"unknown metric '{metric}' (choose from {sorted(METRICS)})") from None


def aggregate_error(
    results: Sequence[PredictionRecord | tuple[Any, float, float]],
    metric: str | MetricFn = "rmse",
) -> float:
    """
    予測レコードを timestamp ごとにまとめて metric を計算し、グループ間で平均する。
    - 固定窓かつ assess_size > 1 では同じ日付に複数 split の予測が入る
    - (timestamp, predicted, actual) のタプルも受け付ける
    """
    if not results:
        raise ValueError("results must not be empty")
    fn = resolve_metric(metric)
    buckets: dict[Any, tuple[list[float], list[float]]] = {}
    for r in results:
        ts, pred, actual = r.as_tuple() if isinstance(r, PredictionRecord) else r
        preds, actuals = buckets.setdefault(ts, ([], []))
        preds.append(float(pred))
        actuals.append(float(actual))
    per_group = [
        fn(np.asarray(p, dtype=float), np.asarray(a, dtype=float)) for p, a in buckets.values()
    ]
    return float(np.mean(per_group))


def summarize_records(
    records: Sequence[PredictionRecord],
    failures: Sequence[ModelFitFailure] = (),
) -> tuple[pd.DataFrame, Mapping[str, Any]]:
    """
    予測レコード -> split 毎の誤差テーブル + サマリdict を返す。
    """
    if not records:
        return pd.DataFrame(), {"folds": 0, "skipped": [f.split_id for f in failures]}
    df = records_to_frame(records)
    err = df["predicted"] - df["actual"]
    df = df.assign(sq_err=err**2, abs_err=err.abs())
    table = (
        df.groupby("split_id", sort=False)
        .agg(
            assess_start=("timestamp", "min"),
            assess_end=("timestamp", "max"),
            n=("timestamp", "size"),
            mse=("sq_err", "mean"),
            mae=("abs_err", "mean"),
        )
        .reset_index()
    )
    table["rmse"] = np.sqrt(table["mse"])
    table = table.drop(columns="mse")

    summary: dict[str, Any] = {
        "folds": len(table),
        "mean": table[["rmse", "mae"]].mean().to_dict(),
        "median": table[["rmse", "mae"]].median().to_dict(),
        "rmse_by_date": aggregate_error(records, "rmse"),
        "skipped": [f.split_id for f in failures],
    }
    return table, summary

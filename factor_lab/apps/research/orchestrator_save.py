from __future__ import annotations

from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import pandas as pd

from factor_lab.apps.research.metrics.aggregator import aggregate_error, summarize_records
from factor_lab.apps.research.orchestrator import run_walk_forward
from factor_lab.domain.dto.experiment import FitErrorPolicy
from factor_lab.domain.dto.prediction import WalkForwardReport, records_to_frame
from factor_lab.domain.dto.split_plan import SplitPlan
from factor_lab.domain.ports.model import FitFn, PredictFn
from factor_lab.domain.ports.results_sink import ResultsSinkPort


def run_walk_forward_and_save(
    *,
    series: pd.DataFrame,
    split_plan: SplitPlan,
    fit_fn: FitFn,
    predict_fn: PredictFn,
    feature_cols: Sequence[str],
    target_col: str,
    sink: ResultsSinkPort,
    base_dir: Path,
    experiment_name: str,
    date_col: str = "date",
    on_fit_error: FitErrorPolicy | str = FitErrorPolicy.abort,
    seed: int | None = None,
    max_workers: int | None = None,
    fmt: str = "parquet",
) -> Mapping[str, Any]:
    """WFA実行→split毎の誤差集約→保存。保存パスも返す。"""
    report = run_walk_forward(
        series,
        split_plan,
        fit_fn,
        predict_fn,
        feature_cols,
        target_col,
        date_col=date_col,
        on_fit_error=on_fit_error,
        seed=seed,
        max_workers=max_workers,
    )
    table, summary = summarize_records(report.records, report.failures)
    predictions = records_to_frame(report.records)
    paths = sink.write(
        predictions, table, summary, base_dir=base_dir, experiment_name=experiment_name, fmt=fmt
    )
    return {"report": report, "table": table, "summary": summary, "paths": paths}


def save_grouped_reports(
    reports: Mapping[Any, WalkForwardReport],
    *,
    group_col: str,
    sink: ResultsSinkPort,
    base_dir: Path,
    experiment_name: str,
    metric: str = "rmse",
    fmt: str = "parquet",
) -> Mapping[str, Any]:
    """グループ別レポートを group_col 付きで縦に結合して保存。サマリはグループキー別。"""
    preds: list[pd.DataFrame] = []
    tables: list[pd.DataFrame] = []
    summary: dict[str, Any] = {"metric": metric, "groups": {}}
    for key, report in reports.items():
        table, s = summarize_records(report.records, report.failures)
        if report.records:
            s = {**s, metric: aggregate_error(report.records, metric)}
        summary["groups"][str(key)] = s
        preds.append(records_to_frame(report.records).assign(**{group_col: key}))
        tables.append(table.assign(**{group_col: key}))
    predictions = pd.concat(preds, ignore_index=True) if preds else pd.DataFrame()
    table = pd.concat(tables, ignore_index=True) if tables else pd.DataFrame()
    paths = sink.write(
        predictions, table, summary, base_dir=base_dir, experiment_name=experiment_name, fmt=fmt
    )
    return {"table": table, "summary": summary, "paths": paths}

from __future__ import annotations

from collections.abc import Hashable, Sequence
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any

import numpy as np
import pandas as pd

from factor_lab.domain.dto.experiment import FitErrorPolicy
from factor_lab.domain.dto.prediction import PredictionRecord, WalkForwardReport
from factor_lab.domain.dto.series_frame import SeriesFrameDTO
from factor_lab.domain.dto.split_plan import Split, SplitPlan
from factor_lab.domain.errors import InsufficientDataError, ModelFitFailure
from factor_lab.domain.ports.model import FitFn, PredictFn
from factor_lab.domain.ports.split_strategy import SplitStrategyPort
from factor_lab.domain.services.series_validation import require_columns, validate_ordered_dates
from factor_lab.shared.logging import get_logger
from factor_lab.utils.timing import TimingLogger, build_logger, time_phase

MIN_DISTINCT_FEATURE_ROWS = 2


def _check_plan_fits(plan: SplitPlan, n_rows: int) -> None:
    last_end = max((s.assessment.end for s in plan), default=0)
    if last_end > n_rows:
        raise InsufficientDataError(
            f"split plan needs {last_end} rows but series has only {n_rows}"
        )
    if plan.n_rows != n_rows:
        raise ValueError(f"split plan was generated for {plan.n_rows} rows, series has {n_rows}")


def _evaluate_split(
    split: Split,
    *,
    frame: pd.DataFrame,
    fit_fn: FitFn,
    predict_fn: PredictFn,
    feature_cols: list[str],
    target_col: str,
    date_col: str,
    seed: int | None,
    timer: TimingLogger,
    group: str | None,
) -> list[PredictionRecord]:
    cols = [*feature_cols, target_col]
    analysis = frame.iloc[split.analysis.as_slice()][cols]
    assessment = frame.iloc[split.assessment.as_slice()][cols]

    # 特徴量の組合せが1通りしかない学習窓はランク落ちで推定不能
    if len(analysis[feature_cols].drop_duplicates()) < MIN_DISTINCT_FEATURE_ROWS:
        raise ModelFitFailure(
            split.split_id, "analysis window has fewer than 2 distinct feature combinations"
        )

    try:
        with time_phase(timer, "fit", group=group, split_id=split.split_id):
            model = fit_fn(analysis) if seed is None else fit_fn(analysis, seed=seed)
    except ModelFitFailure:
        raise
    except Exception as e:
        raise ModelFitFailure(split.split_id, f"{type(e).__name__}: {e}") from e

    try:
        with time_phase(timer, "predict", group=group, split_id=split.split_id):
            predicted = np.asarray(predict_fn(model, assessment), dtype=float).ravel()
    except Exception as e:
        raise ModelFitFailure(split.split_id, f"predict failed: {type(e).__name__}: {e}") from e
    if len(predicted) != len(assessment):
        raise ModelFitFailure(
            split.split_id,
            f"predict returned {len(predicted)} values for {len(assessment)} assessment rows",
        )

    timestamps = frame[date_col].iloc[split.assessment.as_slice()]
    actual = assessment[target_col].astype(float).to_numpy()
    return [
        PredictionRecord(timestamp=ts, predicted=float(p), actual=float(a), split_id=split.split_id)
        for ts, p, a in zip(timestamps, predicted, actual, strict=True)
    ]


def run_walk_forward(
    series: pd.DataFrame | SeriesFrameDTO,
    split_plan: SplitPlan,
    fit_fn: FitFn,
    predict_fn: PredictFn,
    feature_cols: Sequence[str],
    target_col: str,
    *,
    date_col: str = "date",
    on_fit_error: FitErrorPolicy | str = FitErrorPolicy.abort,
    seed: int | None = None,
    max_workers: int | None = None,
    group: str | None = None,
) -> WalkForwardReport:
    """
    split_plan の各 Split について fit→predict を行い、assessment 各行の
    (timestamp, predicted, actual) を生成順に返す。
    - 入力の並び/重複は分割前に検証（MisalignedInputError）
    - fit/predict 失敗は ModelFitFailure。on_fit_error=skip のときだけ記録して継続
    - max_workers > 1 でスレッド並列（結果順は直列実行と同一）
    """
    policy = FitErrorPolicy(on_fit_error)
    if isinstance(series, SeriesFrameDTO):
        frame, date_col = series.frame, series.date_col
    else:
        frame = series
    feats = list(feature_cols)
    require_columns(frame, [date_col, *feats, target_col])
    validate_ordered_dates(frame, date_col)
    _check_plan_fits(split_plan, len(frame))

    log = get_logger(__name__)
    timer = build_logger()
    log.info(
        "walk_forward_started",
        group=group,
        splits=len(split_plan),
        rows=len(frame),
        cumulative=split_plan.cumulative,
        policy=policy.value,
    )

    def _one(split: Split) -> list[PredictionRecord]:
        return _evaluate_split(
            split,
            frame=frame,
            fit_fn=fit_fn,
            predict_fn=predict_fn,
            feature_cols=feats,
            target_col=target_col,
            date_col=date_col,
            seed=seed,
            timer=timer,
            group=group,
        )

    report = WalkForwardReport()

    def _collect(split: Split, outcome: Any) -> None:
        if isinstance(outcome, ModelFitFailure):
            if policy == FitErrorPolicy.abort:
                log.error(
                    "split_failed", group=group, split_id=split.split_id, reason=outcome.reason
                )
                raise outcome
            log.warning(
                "split_skipped", group=group, split_id=split.split_id, reason=outcome.reason
            )
            report.failures.append(outcome)
            return
        report.records.extend(outcome)

    with time_phase(timer, "evaluate", group=group):
        if (max_workers or 0) > 1:
            with ThreadPoolExecutor(max_workers=max_workers) as ex:
                futures: list[tuple[Split, Future]] = [
                    (s, ex.submit(_one, s)) for s in split_plan
                ]
                try:
                    for split, fut in futures:
                        try:
                            outcome: Any = fut.result()
                        except ModelFitFailure as e:
                            outcome = e
                        _collect(split, outcome)
                except ModelFitFailure:
                    for _, fut in futures:
                        fut.cancel()
                    raise
        else:
            for split in split_plan:
                try:
                    outcome = _one(split)
                except ModelFitFailure as e:
                    outcome = e
                _collect(split, outcome)

    log.info(
        "walk_forward_finished",
        group=group,
        records=len(report.records),
        skipped=len(report.failures),
    )
    return report


def evaluate(
    series: pd.DataFrame | SeriesFrameDTO,
    split_plan: SplitPlan,
    fit_fn: FitFn,
    predict_fn: PredictFn,
    feature_cols: Sequence[str],
    target_col: str,
    **kwargs: Any,
) -> list[PredictionRecord]:
    """run_walk_forward の records のみを返す簡易版"""
    return run_walk_forward(
        series, split_plan, fit_fn, predict_fn, feature_cols, target_col, **kwargs
    ).records


def run_grouped_walk_forward(
    table: pd.DataFrame,
    *,
    group_col: str,
    splitter: SplitStrategyPort,
    fit_fn: FitFn,
    predict_fn: PredictFn,
    feature_cols: Sequence[str],
    target_col: str,
    date_col: str = "date",
    on_fit_error: FitErrorPolicy | str = FitErrorPolicy.abort,
    seed: int | None = None,
    max_workers: int | None = None,
) -> dict[Hashable, WalkForwardReport]:
    """
    縦持ちテーブルを group_col で明示的に分け、グループごとに分割計画を作って評価。
    グループ内の並び/重複は各グループで検証される。
    """
    require_columns(table, [group_col])
    out: dict[Hashable, WalkForwardReport] = {}
    for key, sub in table.groupby(group_col, sort=True):
        frame = sub.reset_index(drop=True)
        plan = splitter.plan(len(frame))
        out[key] = run_walk_forward(
            frame,
            plan,
            fit_fn,
            predict_fn,
            feature_cols,
            target_col,
            date_col=date_col,
            on_fit_error=on_fit_error,
            seed=seed,
            max_workers=max_workers,
            group=str(key),
        )
    return out

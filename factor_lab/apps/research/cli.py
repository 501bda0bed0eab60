from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import pandas as pd
import typer
import yaml
from dotenv import load_dotenv

from factor_lab.adapters.results.file_results_sink import FileResultsSinkAdapter
from factor_lab.adapters.yaml.config_loader_yaml import YamlConfigLoader
from factor_lab.apps.research.metrics.aggregator import aggregate_error
from factor_lab.apps.research.models.sklearn_models import build_model
from factor_lab.apps.research.orchestrator import run_grouped_walk_forward
from factor_lab.apps.research.orchestrator_save import (
    run_walk_forward_and_save,
    save_grouped_reports,
)
from factor_lab.apps.research.sector_regression import fit_sector_regressions
from factor_lab.apps.research.splitters.rolling_origin import (
    RollingOriginSplitter,
    generate_splits,
)
from factor_lab.domain.dto.experiment import ExperimentConfig
from factor_lab.domain.errors import FactorLabError
from factor_lab.domain.services.series_transformer import normalize_series
from factor_lab.shared.logging import get_logger, setup_logging
from factor_lab.shared.settings import FactorLabSettings

app = typer.Typer(help="Walk-forward factor research CLI", no_args_is_help=True)

# 設定・入力ファイル起因の失敗もまとめて exit 1 にする
CLI_ERRORS = (FactorLabError, KeyError, ValueError, OSError, yaml.YAMLError)


def _init() -> FactorLabSettings:
    load_dotenv()
    env = FactorLabSettings()
    setup_logging(reset_handlers=True, json_format=env.LOG_JSON, level=env.LOG_LEVEL)
    return env


def _fail(e: Exception) -> typer.Exit:
    get_logger(__name__).error("research_failed", error=str(e), kind=type(e).__name__)
    typer.secho(f"❌ エラー: {e}", fg=typer.colors.RED)
    return typer.Exit(code=1)


def _load_table(path: Path, cfg: ExperimentConfig) -> pd.DataFrame:
    """CSV を読み、型変換を1回だけ行って正準テーブルにする（グループ指定時はグループ毎）"""
    raw = pd.read_csv(path)
    value_cols = [*cfg.feature_cols, cfg.target_col]
    if cfg.group_col is None:
        return normalize_series(raw, date_col=cfg.date_col, value_cols=value_cols)
    if cfg.group_col not in raw.columns:
        raise KeyError(f"group column '{cfg.group_col}' not found")
    parts = [
        normalize_series(sub, date_col=cfg.date_col, value_cols=value_cols).assign(
            **{cfg.group_col: key}
        )
        for key, sub in raw.groupby(cfg.group_col, sort=True)
    ]
    return pd.concat(parts, ignore_index=True)


@app.command("plan", help="分割計画（analysis/assessment 区間）を表示")
def plan_cmd(
    n_rows: Annotated[int, typer.Option("--n-rows", help="系列の行数")],
    initial: Annotated[int, typer.Option("--initial", help="最初の analysis 本数")],
    assess: Annotated[int, typer.Option("--assess", help="assessment 本数")] = 1,
    cumulative: Annotated[
        bool, typer.Option("--cumulative/--fixed", help="累積窓 / 固定窓")
    ] = False,
    skip: Annotated[int, typer.Option("--skip", help="原点を skip+1 本ずつ進める")] = 0,
    json_out: Annotated[bool, typer.Option("--json", help="JSONで出力")] = False,
) -> None:
    try:
        plan = generate_splits(n_rows, initial, assess, cumulative, skip=skip)
    except (FactorLabError, ValueError) as e:
        raise _fail(e) from None
    if json_out:
        typer.echo(json.dumps(plan.to_records(), ensure_ascii=False, indent=2))
        return
    for s in plan:
        typer.echo(f"{s.split_id}: analysis={s.analysis} assessment={s.assessment}")


@app.command("run", help="YAML 設定と CSV で walk-forward 評価を実行し結果を保存")
def run_cmd(
    config: Annotated[Path, typer.Argument(help="実験設定 YAML")],
    data: Annotated[Path, typer.Option("--data", help="正準テーブル CSV（date列＋数値列）")],
    out_dir: Annotated[
        Path | None, typer.Option("--out-dir", help="結果出力先（既定: FACTOR_LAB__OUT_DIR）")
    ] = None,
    fmt: Annotated[str, typer.Option("--fmt", help="parquet | csv | both")] = "parquet",
) -> None:
    env = _init()
    log = get_logger(__name__)
    try:
        cfg = YamlConfigLoader().load(config)
        table = _load_table(data, cfg)
        model = build_model(cfg.model.kind, cfg.feature_cols, cfg.target_col, **cfg.model.params)
        splitter = RollingOriginSplitter(
            initial_size=cfg.split.initial_size,
            assess_size=cfg.split.assess_size,
            cumulative=cfg.split.cumulative,
            skip=cfg.split.skip,
        )
        base_dir = out_dir or env.OUT_DIR
        log.info("research_run", experiment=cfg.name, rows=len(table), group_col=cfg.group_col)

        if cfg.group_col is None:
            out = run_walk_forward_and_save(
                series=table,
                split_plan=splitter.plan(len(table)),
                fit_fn=model.fit,
                predict_fn=model.predict,
                feature_cols=cfg.feature_cols,
                target_col=cfg.target_col,
                sink=FileResultsSinkAdapter(),
                base_dir=base_dir,
                experiment_name=cfg.name,
                date_col=cfg.date_col,
                on_fit_error=cfg.on_fit_error,
                seed=cfg.seed,
                max_workers=cfg.max_workers,
                fmt=fmt,
            )
            records = out["report"].records
            score = aggregate_error(records, cfg.metric) if records else float("nan")
            typer.echo(f"{cfg.metric}: {score:.6f} ({len(records)} predictions)")
        else:
            reports = run_grouped_walk_forward(
                table,
                group_col=cfg.group_col,
                splitter=splitter,
                fit_fn=model.fit,
                predict_fn=model.predict,
                feature_cols=cfg.feature_cols,
                target_col=cfg.target_col,
                date_col=cfg.date_col,
                on_fit_error=cfg.on_fit_error,
                seed=cfg.seed,
                max_workers=cfg.max_workers,
            )
            out = save_grouped_reports(
                reports,
                group_col=cfg.group_col,
                sink=FileResultsSinkAdapter(),
                base_dir=base_dir,
                experiment_name=cfg.name,
                metric=cfg.metric,
                fmt=fmt,
            )
            for key, s in out["summary"]["groups"].items():
                score = s.get(cfg.metric, float("nan"))
                typer.echo(f"{key}: {cfg.metric}={score:.6f} folds={s['folds']}")
    except CLI_ERRORS as e:
        raise _fail(e) from None

    for name, p in out["paths"].items():
        typer.echo(f"{name}: {p}")


@app.command("coefficients", help="グループ毎の全期間 OLS 係数を表示")
def coefficients_cmd(
    data: Annotated[Path, typer.Option("--data", help="縦持ち CSV（date/group/特徴量/目的変数）")],
    group_col: Annotated[str, typer.Option("--group-col", help="グループ列")] = "sector",
    features: Annotated[str, typer.Option("--features", help="カンマ区切りの特徴量列")] = "",
    target: Annotated[str, typer.Option("--target", help="目的変数列")] = "return",
    json_out: Annotated[bool, typer.Option("--json", help="JSONで出力")] = False,
) -> None:
    _init()
    feature_cols = [c.strip() for c in features.split(",") if c.strip()]
    try:
        if not feature_cols:
            raise ValueError("--features に1つ以上の列を指定してください")
        table = pd.read_csv(data)
        coefs = fit_sector_regressions(
            table, group_col=group_col, feature_cols=feature_cols, target_col=target
        )
    except CLI_ERRORS as e:
        raise _fail(e) from None
    if json_out:
        typer.echo(coefs.to_json(orient="records", force_ascii=False, indent=2))
        return
    wide = coefs.pivot(index=group_col, columns="term", values="estimate")
    typer.echo(wide[["intercept", *feature_cols]].to_string(float_format=lambda v: f"{v:.6f}"))


if __name__ == "__main__":  # pragma: no cover
    app()

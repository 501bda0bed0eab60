from pathlib import Path

import numpy as np
import pandas as pd

from factor_lab.adapters.results.file_results_sink import FileResultsSinkAdapter
from factor_lab.apps.research.models.sklearn_models import LinearFactorModel
from factor_lab.apps.research.orchestrator import run_grouped_walk_forward
from factor_lab.apps.research.orchestrator_save import (
    run_walk_forward_and_save,
    save_grouped_reports,
)
from factor_lab.apps.research.splitters.rolling_origin import (
    RollingOriginSplitter,
    generate_splits,
)


def _frame(n: int) -> pd.DataFrame:
    x = np.arange(n, dtype=float)
    return pd.DataFrame(
        {
            "date": pd.date_range("2020-01-31", periods=n, freq="ME"),
            "mkt": x,
            "ret": 1.5 * x - 0.5,
        }
    )


def test_run_and_save_returns_table_summary_paths(tmp_path: Path):
    df = _frame(10)
    model = LinearFactorModel(["mkt"], "ret")
    out = run_walk_forward_and_save(
        series=df,
        split_plan=generate_splits(10, 6, 1, False),
        fit_fn=model.fit,
        predict_fn=model.predict,
        feature_cols=["mkt"],
        target_col="ret",
        sink=FileResultsSinkAdapter(),
        base_dir=tmp_path,
        experiment_name="wf",
        fmt="csv",
    )
    assert len(out["report"].records) == 4
    assert out["summary"]["folds"] == 4
    assert out["summary"]["rmse_by_date"] < 1e-9
    assert out["paths"]["predictions_csv"].exists()
    assert out["paths"]["summary_json"].exists()


def test_save_grouped_reports_tags_group(tmp_path: Path):
    table = pd.concat(
        [_frame(9).assign(sector="XLE"), _frame(8).assign(sector="XLV")], ignore_index=True
    )
    model = LinearFactorModel(["mkt"], "ret")
    reports = run_grouped_walk_forward(
        table,
        group_col="sector",
        splitter=RollingOriginSplitter(initial_size=6),
        fit_fn=model.fit,
        predict_fn=model.predict,
        feature_cols=["mkt"],
        target_col="ret",
    )
    out = save_grouped_reports(
        reports,
        group_col="sector",
        sink=FileResultsSinkAdapter(),
        base_dir=tmp_path,
        experiment_name="grouped",
        metric="mae",
        fmt="csv",
    )
    assert set(out["summary"]["groups"]) == {"XLE", "XLV"}
    assert out["summary"]["groups"]["XLV"]["folds"] == 2
    assert "mae" in out["summary"]["groups"]["XLE"]
    assert sorted(out["table"]["sector"].unique()) == ["XLE", "XLV"]

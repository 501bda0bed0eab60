import json
from pathlib import Path

import pandas as pd
import pytest

from factor_lab.adapters.results.file_results_sink import FileResultsSinkAdapter


def _payload():
    preds = pd.DataFrame(
        {
            "timestamp": pd.to_datetime(["2024-01-31", "2024-02-29"]),
            "predicted": [0.1, 0.2],
            "actual": [0.1, 0.3],
            "split_id": ["Slice01", "Slice02"],
        }
    )
    table = pd.DataFrame({"split_id": ["Slice01", "Slice02"], "rmse": [0.0, 0.1]})
    summary = {"folds": 2, "mean": {"rmse": 0.05}, "first": pd.Timestamp("2024-01-31")}
    return preds, table, summary


def test_file_results_sink_writes_csv_and_json(tmp_path: Path):
    preds, table, summary = _payload()
    paths = FileResultsSinkAdapter().write(
        preds,
        table,
        summary,
        base_dir=tmp_path,
        experiment_name="exp1",
        fmt="csv",
        with_timestamp_dir=False,
    )
    assert paths["predictions_csv"] == tmp_path / "exp1" / "predictions.csv"
    assert paths["splits_csv"].exists()
    assert "predictions_parquet" not in paths
    saved = json.loads(paths["summary_json"].read_text(encoding="utf-8"))
    assert saved["folds"] == 2
    assert saved["first"].startswith("2024-01-31")
    assert len(pd.read_csv(paths["predictions_csv"])) == 2


def test_file_results_sink_writes_parquet(tmp_path: Path):
    pytest.importorskip("pyarrow")  # pyarrowがなければskip
    preds, table, summary = _payload()
    paths = FileResultsSinkAdapter().write(
        preds, table, summary, base_dir=tmp_path, experiment_name="exp2", fmt="both"
    )
    assert paths["predictions_parquet"].exists()
    assert paths["splits_parquet"].exists()
    assert paths["predictions_csv"].exists()
    saved = pd.read_parquet(paths["predictions_parquet"])
    assert saved["split_id"].tolist() == ["Slice01", "Slice02"]


def test_file_results_sink_rejects_unknown_format(tmp_path: Path):
    preds, table, summary = _payload()
    with pytest.raises(ValueError):
        FileResultsSinkAdapter().write(preds, table, summary, tmp_path, "exp3", fmt="xlsx")

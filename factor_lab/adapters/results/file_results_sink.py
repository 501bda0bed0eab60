from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, ClassVar

import pandas as pd

from factor_lab.domain.ports.results_sink import ResultsSinkPort
from factor_lab.shared.logging import get_logger


class FileResultsSinkAdapter(ResultsSinkPort):
    """予測列/split表を Parquet/CSV に、サマリを JSON に保存。戻り値は生成パス辞書。"""

    __responsibility__: ClassVar[str] = "評価結果のローカルファイル保存"

    def write(
        self,
        predictions: pd.DataFrame,
        table: pd.DataFrame,
        summary: Mapping[str, Any],
        base_dir: Path,
        experiment_name: str,
        *,
        fmt: str = "parquet",
        with_timestamp_dir: bool = True,
    ) -> Mapping[str, Path]:
        if fmt not in {"parquet", "csv", "both"}:
            raise ValueError("fmt must be 'parquet' | 'csv' | 'both'")

        ts = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
        root = base_dir / experiment_name / ts if with_timestamp_dir else base_dir / experiment_name
        root.mkdir(parents=True, exist_ok=True)

        paths: dict[str, Path] = {}
        for name, frame in (("predictions", predictions), ("splits", table)):
            if fmt in {"parquet", "both"}:
                p = root / f"{name}.parquet"
                frame.to_parquet(p, engine="pyarrow", index=False)
                paths[f"{name}_parquet"] = p
            if fmt in {"csv", "both"}:
                p = root / f"{name}.csv"
                frame.to_csv(p, index=False)
                paths[f"{name}_csv"] = p
        # サマリ（Timestamp 等は文字列化）
        sp = root / "summary.json"
        text = json.dumps(summary, ensure_ascii=False, indent=2, default=str)
        sp.write_text(text, encoding="utf-8")
        paths["summary_json"] = sp

        get_logger(__name__).info("results_written", root=str(root), files=len(paths))
        return paths

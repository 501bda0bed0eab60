from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

import pandas as pd

from factor_lab.domain.errors import ModelFitFailure

RECORD_COLUMNS = ["timestamp", "predicted", "actual", "split_id"]


@dataclass(frozen=True, slots=True)
class PredictionRecord:
    """assessment 1行分の (timestamp, predicted, actual)。split_id は追跡用。"""

    timestamp: pd.Timestamp
    predicted: float
    actual: float
    split_id: str = ""

    def as_tuple(self) -> tuple[pd.Timestamp, float, float]:
        return (self.timestamp, self.predicted, self.actual)


@dataclass
class WalkForwardReport:
    """評価結果（生成順）と、skip ポリシー時に記録された失敗"""

    records: list[PredictionRecord] = field(default_factory=list)
    failures: list[ModelFitFailure] = field(default_factory=list)

    @property
    def skipped_splits(self) -> list[str]:
        return [f.split_id for f in self.failures]

    def to_frame(self) -> pd.DataFrame:
        return records_to_frame(self.records)


def records_to_frame(records: Sequence[PredictionRecord]) -> pd.DataFrame:
    if not records:
        return pd.DataFrame(columns=RECORD_COLUMNS)
    return pd.DataFrame(
        {
            "timestamp": [r.timestamp for r in records],
            "predicted": [r.predicted for r in records],
            "actual": [r.actual for r in records],
            "split_id": [r.split_id for r in records],
        }
    )

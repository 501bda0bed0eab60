from __future__ import annotations

from dataclasses import dataclass

import pandas as pd

from factor_lab.domain.dto.split_plan import IndexRange, Split, SplitPlan
from factor_lab.domain.errors import InsufficientDataError
from factor_lab.domain.ports.split_strategy import SplitStrategyPort


def _slice_id(k: int, total: int) -> str:
    # Slice01, Slice02, ... 100分割以上なら桁を増やす
    width = max(2, len(str(total)))
    return f"Slice{k:0{width}d}"


def generate_splits(
    n_rows: int,
    initial_size: int,
    assess_size: int,
    cumulative: bool,
    *,
    skip: int = 0,
) -> SplitPlan:
    """
    ローリング原点（walk-forward）分割を生成する純関数。
    - 固定窓: analysis=[o, o+initial), assessment=[o+initial, o+initial+assess)
    - 累積窓: analysis=[0, initial+o)、assessment は直後の assess 本
    - 原点 o は 1 分割ごとに skip+1 進む（skip=0 で 1 本ずつ）
    - assessment.end > n_rows となった時点で打ち切り
    assess_size > 1 のとき隣接 split の assessment は重なる（walk-forward の仕様どおり）。
    """
    if n_rows < 1 or initial_size < 1 or assess_size < 1:
        raise ValueError("n_rows/initial_size/assess_size は正の整数が必要")
    if skip < 0:
        raise ValueError("skip must be >= 0")
    if initial_size + assess_size > n_rows:
        raise InsufficientDataError(
            f"insufficient data: initial_size({initial_size}) + assess_size({assess_size}) "
            f"> n_rows({n_rows})"
        )

    step = skip + 1
    origins: list[int] = []
    o = 0
    while o + initial_size + assess_size <= n_rows:
        origins.append(o)
        o += step

    splits: list[Split] = []
    for k, o in enumerate(origins, start=1):
        a_start = 0 if cumulative else o
        a_end = o + initial_size
        splits.append(
            Split(
                split_id=_slice_id(k, len(origins)),
                analysis=IndexRange(start=a_start, end=a_end),
                assessment=IndexRange(start=a_end, end=a_end + assess_size),
            )
        )
    return SplitPlan(
        n_rows=n_rows,
        initial_size=initial_size,
        assess_size=assess_size,
        cumulative=cumulative,
        skip=skip,
        splits=tuple(splits),
    )


@dataclass(frozen=True)
class RollingOriginSplitter(SplitStrategyPort):
    """ロール型WFA: initial_size 本の直後 assess_size 本を assessment として 1 本ずつ前進"""

    initial_size: int
    assess_size: int = 1
    cumulative: bool = False
    skip: int = 0

    def __post_init__(self) -> None:
        if self.initial_size <= 0 or self.assess_size <= 0:
            raise ValueError("initial_size/assess_size は正の整数が必要")
        if self.skip < 0:
            raise ValueError("skip must be >= 0")

    def plan(self, n_rows: int) -> SplitPlan:
        return generate_splits(
            n_rows,
            self.initial_size,
            self.assess_size,
            self.cumulative,
            skip=self.skip,
        )

    def split(
        self, frame: pd.DataFrame, date_col: str = "date"
    ) -> list[tuple[pd.Timestamp, pd.Timestamp]]:
        """assessment の (開始日, 終了日) を返す（境界日付の確認用）"""
        dates = frame[date_col]
        return [
            (dates.iloc[s.assessment.start], dates.iloc[s.assessment.end - 1])
            for s in self.plan(len(frame))
        ]

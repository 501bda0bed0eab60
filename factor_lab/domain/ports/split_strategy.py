from __future__ import annotations

from typing import Protocol

from factor_lab.domain.dto.split_plan import SplitPlan


class SplitStrategyPort(Protocol):
    """時系列の学習/検証分割（rolling origin 等）の抽象I/F"""

    __responsibility__ = "行数に対して analysis/assessment の位置区間を返す"

    def plan(self, n_rows: int) -> SplitPlan:
        """n_rows 行の順序付きテーブルに対する分割計画を返す"""
        ...

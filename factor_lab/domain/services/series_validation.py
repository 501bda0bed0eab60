from __future__ import annotations

from collections.abc import Iterable

import pandas as pd

from factor_lab.domain.errors import MisalignedInputError

__all__ = ["require_columns", "validate_ordered_dates"]


def require_columns(frame: pd.DataFrame, columns: Iterable[str]) -> None:
    missing = [c for c in columns if c not in frame.columns]
    if missing:
        raise KeyError(f"required columns missing: {missing}")


def validate_ordered_dates(frame: pd.DataFrame, date_col: str = "date") -> None:
    """
    日付列が厳密に昇順（重複なし）であることを検証する。並べ替えはしない。
    - 欠損/変換不能な日付も MisalignedInputError とする
    """
    require_columns(frame, [date_col])
    dates = frame[date_col]
    if dates.isna().any():
        raise MisalignedInputError(f"'{date_col}' contains missing timestamps")
    dup = dates.duplicated(keep=False)
    if dup.any():
        first = dates[dup].iloc[0]
        raise MisalignedInputError(f"duplicate timestamp in '{date_col}': {first}")
    if not dates.is_monotonic_increasing:
        diffs = dates.reset_index(drop=True)
        pos = next(i for i in range(1, len(diffs)) if diffs.iloc[i] < diffs.iloc[i - 1])
        raise MisalignedInputError(
            f"'{date_col}' is not sorted ascending at row {pos}: "
            f"{diffs.iloc[pos - 1]} -> {diffs.iloc[pos]}"
        )

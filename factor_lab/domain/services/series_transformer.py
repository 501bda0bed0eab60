from __future__ import annotations

from collections.abc import Sequence

import pandas as pd

__all__ = ["align_on_date", "normalize_series", "to_long", "to_monthly_returns"]


def _as_text(s: pd.Series) -> pd.Series:
    vals = s.dropna()
    if pd.api.types.is_float_dtype(vals) and (vals % 1 == 0).all():
        # 空欄混じりの列は float 化される（199001.0）ので整数表記に戻す
        vals = vals.astype("int64")
    return vals.astype(str).str.strip().reindex(s.index)


def _parse_dates(s: pd.Series, date_format: str | None) -> pd.Series:
    if date_format is not None:
        return pd.to_datetime(_as_text(s), format=date_format, errors="coerce")
    if pd.api.types.is_datetime64_any_dtype(s):
        return s
    # Fama-French 形式（199001 のような YYYYMM 整数）を先に判定
    text = _as_text(s)
    sample = text.dropna()
    if len(sample) > 0 and sample.str.fullmatch(r"\d{6}").all():
        return pd.to_datetime(text, format="%Y%m", errors="coerce")
    return pd.to_datetime(s, errors="coerce")


def normalize_series(
    raw: pd.DataFrame,
    *,
    date_col: str = "date",
    value_cols: Sequence[str] | None = None,
    date_format: str | None = None,
) -> pd.DataFrame:
    """
    生テーブル→正準テーブル（型変換はここで1回だけ行う）:
      - date列を datetime64 に変換（YYYYMM 整数/文字列にも対応）。変換不能行はdrop
      - 値列は float に揃える（未指定なら date 以外すべて）
      - 日付昇順・重複drop（先勝ち）、RangeIndex に振り直す
    """
    if date_col not in raw.columns:
        raise KeyError(f"date column '{date_col}' not found")
    cols = list(value_cols) if value_cols is not None else [c for c in raw.columns if c != date_col]
    missing = [c for c in cols if c not in raw.columns]
    if missing:
        raise KeyError(f"value columns missing: {missing}")

    df = raw[[date_col, *cols]].copy()
    df[date_col] = _parse_dates(df[date_col], date_format)
    df = df[df[date_col].notna()]
    for c in cols:
        df[c] = pd.to_numeric(df[c], errors="coerce").astype(float)

    df = df.sort_values(date_col, kind="mergesort")
    df = df[~df[date_col].duplicated(keep="first")]
    return df.reset_index(drop=True)


def to_monthly_returns(
    prices: pd.DataFrame,
    *,
    price_cols: Sequence[str],
    date_col: str = "date",
) -> pd.DataFrame:
    """日次などの価格を月末終値でリサンプルし、単純リターンに変換（初月は落とす）。"""
    px = prices.set_index(date_col)[list(price_cols)].astype(float)
    month_end = px.resample("ME").last()
    rets = month_end.pct_change().iloc[1:]
    rets.index = rets.index.to_period("M").to_timestamp()
    rets.index.name = date_col
    return rets.reset_index()


def align_on_date(
    left: pd.DataFrame,
    right: pd.DataFrame,
    *,
    date_col: str = "date",
    how: str = "inner",
    by: str | None = "month",
) -> pd.DataFrame:
    """
    2つの正準テーブルを日付で結合。
    - by="month" のときは両側の日付を月初に丸めてから結合（月末/月初表記の差を吸収）
    - 列名が衝突した場合は pandas 既定の suffix ではなくエラーにする
    """
    overlap = (set(left.columns) & set(right.columns)) - {date_col}
    if overlap:
        raise ValueError(f"overlapping columns between tables: {sorted(overlap)}")
    lhs, rhs = left.copy(), right.copy()
    if by == "month":
        lhs[date_col] = lhs[date_col].dt.to_period("M").dt.to_timestamp()
        rhs[date_col] = rhs[date_col].dt.to_period("M").dt.to_timestamp()
    elif by is not None:
        raise ValueError("by must be 'month' or None")
    out = lhs.merge(rhs, on=date_col, how=how)
    return out.sort_values(date_col, kind="mergesort").reset_index(drop=True)


def to_long(
    frame: pd.DataFrame,
    *,
    value_cols: Sequence[str],
    date_col: str = "date",
    group_col: str = "sector",
    value_name: str = "return",
    id_cols: Sequence[str] = (),
) -> pd.DataFrame:
    """
    横持ち（セクター列ごと）→縦持ち（group_col 明示）に変換。
    id_cols（ファクター列など）は各行に複製される。並びは group → date 昇順。
    """
    long = frame.melt(
        id_vars=[date_col, *id_cols],
        value_vars=list(value_cols),
        var_name=group_col,
        value_name=value_name,
    )
    long = long.sort_values([group_col, date_col], kind="mergesort")
    return long.reset_index(drop=True)

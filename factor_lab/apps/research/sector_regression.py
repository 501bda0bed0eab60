from __future__ import annotations

from collections.abc import Sequence

import pandas as pd

from factor_lab.apps.research.models.sklearn_models import LinearFactorModel
from factor_lab.domain.errors import InsufficientDataError
from factor_lab.domain.services.series_validation import require_columns


def fit_sector_regressions(
    table: pd.DataFrame,
    *,
    group_col: str,
    feature_cols: Sequence[str],
    target_col: str,
) -> pd.DataFrame:
    """
    グループ（セクター）ごとに全期間 OLS を当て、係数を縦持ちで返す。
    列: [group_col, term, estimate]。term は intercept → feature_cols の順。
    """
    feats = list(feature_cols)
    require_columns(table, [group_col, *feats, target_col])
    model = LinearFactorModel(feats, target_col)
    min_rows = len(feats) + 2

    rows: list[dict[str, object]] = []
    for key, sub in table.groupby(group_col, sort=True):
        sub = sub.dropna(subset=[*feats, target_col])
        if len(sub) < min_rows:
            raise InsufficientDataError(
                f"group '{key}' has {len(sub)} complete rows, need at least {min_rows}"
            )
        est = model.fit(sub)
        for term, value in model.coefficients(est).items():
            rows.append({group_col: key, "term": term, "estimate": value})
    return pd.DataFrame(rows, columns=[group_col, "term", "estimate"])

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, ClassVar

import numpy as np
import pandas as pd
from sklearn.ensemble import RandomForestRegressor
from sklearn.linear_model import LinearRegression

from factor_lab.domain.dto.experiment import ModelKind


class _SklearnFactorModel:
    """fit(analysis, seed=None) / predict(model, assessment) を harness に渡す共通部"""

    __responsibility__: ClassVar[str] = "scikit-learn 推定器を fit_fn/predict_fn 形式に包む"

    def __init__(self, feature_cols: Sequence[str], target_col: str) -> None:
        if not feature_cols:
            raise ValueError("feature_cols must not be empty")
        self.feature_cols = list(feature_cols)
        self.target_col = target_col

    def _build(self, seed: int | None) -> Any:
        raise NotImplementedError

    def fit(self, analysis: pd.DataFrame, seed: int | None = None) -> Any:
        est = self._build(seed)
        est.fit(analysis[self.feature_cols].to_numpy(dtype=float), analysis[self.target_col])
        return est

    def predict(self, model: Any, assessment: pd.DataFrame) -> np.ndarray:
        return model.predict(assessment[self.feature_cols].to_numpy(dtype=float))


class LinearFactorModel(_SklearnFactorModel):
    """リターン〜ファクターの OLS"""

    def __init__(
        self, feature_cols: Sequence[str], target_col: str, fit_intercept: bool = True
    ) -> None:
        super().__init__(feature_cols, target_col)
        self.fit_intercept = fit_intercept

    def _build(self, seed: int | None) -> LinearRegression:
        # OLS は決定的なので seed は使わない
        return LinearRegression(fit_intercept=self.fit_intercept)

    def coefficients(self, model: LinearRegression) -> dict[str, float]:
        out = {"intercept": float(model.intercept_)} if self.fit_intercept else {}
        out.update({c: float(b) for c, b in zip(self.feature_cols, model.coef_, strict=True)})
        return out


class RandomForestFactorModel(_SklearnFactorModel):
    """ランダムフォレスト。乱数は seed→random_state でのみ制御（グローバルRNGは使わない）"""

    def __init__(
        self,
        feature_cols: Sequence[str],
        target_col: str,
        n_estimators: int = 500,
        max_depth: int | None = None,
        min_samples_leaf: int = 1,
        n_jobs: int | None = None,
    ) -> None:
        super().__init__(feature_cols, target_col)
        self.n_estimators = n_estimators
        self.max_depth = max_depth
        self.min_samples_leaf = min_samples_leaf
        self.n_jobs = n_jobs

    def _build(self, seed: int | None) -> RandomForestRegressor:
        return RandomForestRegressor(
            n_estimators=self.n_estimators,
            max_depth=self.max_depth,
            min_samples_leaf=self.min_samples_leaf,
            n_jobs=self.n_jobs,
            random_state=seed,
        )


def build_model(
    kind: ModelKind | str,
    feature_cols: Sequence[str],
    target_col: str,
    **params: Any,
) -> _SklearnFactorModel:
    kind = ModelKind(kind)
    if kind == ModelKind.linear:
        return LinearFactorModel(feature_cols, target_col, **params)
    return RandomForestFactorModel(feature_cols, target_col, **params)

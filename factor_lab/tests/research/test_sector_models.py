import numpy as np
import pandas as pd
import pytest

from factor_lab.apps.research.models.sklearn_models import (
    LinearFactorModel,
    RandomForestFactorModel,
    build_model,
)
from factor_lab.apps.research.sector_regression import fit_sector_regressions
from factor_lab.domain.errors import InsufficientDataError


def _long_table() -> pd.DataFrame:
    rng = np.random.default_rng(0)
    dates = pd.date_range("2019-01-01", periods=24, freq="MS")
    parts = []
    for sector, (alpha, beta, smb) in {"XLF": (0.01, 1.2, 0.3), "XLU": (-0.02, 0.6, -0.1)}.items():
        mkt = rng.normal(0.0, 0.04, len(dates))
        size = rng.normal(0.0, 0.02, len(dates))
        parts.append(
            pd.DataFrame(
                {
                    "date": dates,
                    "sector": sector,
                    "mkt_rf": mkt,
                    "smb": size,
                    "ret": alpha + beta * mkt + smb * size,
                }
            )
        )
    return pd.concat(parts, ignore_index=True)


def test_fit_sector_regressions_recovers_coefficients():
    coefs = fit_sector_regressions(
        _long_table(), group_col="sector", feature_cols=["mkt_rf", "smb"], target_col="ret"
    )
    assert list(coefs.columns) == ["sector", "term", "estimate"]
    assert coefs["term"].tolist()[:3] == ["intercept", "mkt_rf", "smb"]
    wide = coefs.pivot(index="sector", columns="term", values="estimate")
    assert wide.loc["XLF", "mkt_rf"] == pytest.approx(1.2)
    assert wide.loc["XLU", "intercept"] == pytest.approx(-0.02)
    assert wide.loc["XLU", "smb"] == pytest.approx(-0.1)


def test_fit_sector_regressions_insufficient_group():
    table = _long_table().groupby("sector").head(3)
    with pytest.raises(InsufficientDataError):
        fit_sector_regressions(
            table, group_col="sector", feature_cols=["mkt_rf", "smb"], target_col="ret"
        )


def test_linear_model_without_intercept():
    df = pd.DataFrame({"x": [1.0, 2.0, 3.0], "y": [2.0, 4.0, 6.0]})
    m = LinearFactorModel(["x"], "y", fit_intercept=False)
    est = m.fit(df)
    assert m.coefficients(est) == {"x": pytest.approx(2.0)}
    assert m.predict(est, pd.DataFrame({"x": [4.0], "y": [0.0]})).tolist() == pytest.approx([8.0])


def test_random_forest_seed_controls_randomness():
    df = _long_table()
    m = RandomForestFactorModel(["mkt_rf", "smb"], "ret", n_estimators=5)
    a = m.predict(m.fit(df, seed=1), df)
    b = m.predict(m.fit(df, seed=1), df)
    assert np.array_equal(a, b)


def test_build_model_factory():
    assert isinstance(build_model("linear", ["x"], "y"), LinearFactorModel)
    rf = build_model("random_forest", ["x"], "y", n_estimators=3, max_depth=2)
    assert isinstance(rf, RandomForestFactorModel)
    assert rf.n_estimators == 3
    with pytest.raises(ValueError):
        build_model("xgboost", ["x"], "y")
    with pytest.raises(ValueError):
        LinearFactorModel([], "y")

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, Protocol

import pandas as pd


class FitFn(Protocol):
    """analysis 部分集合から predict 可能なモデルを返す。seed は明示時のみ渡される。"""

    def __call__(self, analysis: pd.DataFrame, /, **kwargs: Any) -> Any: ...


class PredictFn(Protocol):
    """assessment の各行に1つずつ予測値を返す"""

    def __call__(self, model: Any, assessment: pd.DataFrame, /) -> Sequence[float]: ...

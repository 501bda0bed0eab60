from __future__ import annotations


class FactorLabError(Exception):
    """ドメイン例外の基底。ValueError ではないため pydantic の検証でラップされない。"""

    __responsibility__ = "前提条件違反・呼び出し側関数の失敗をドメイン例外として表現"


class InsufficientDataError(FactorLabError):
    """要求された窓サイズに対して行数が足りない（1分割も作れない）。"""


class MisalignedInputError(FactorLabError):
    """入力テーブルの日付が昇順でない、または重複している。"""


class ModelFitFailure(FactorLabError):
    """特定 split の fit/predict が失敗した。原因は __cause__ に連鎖する。"""

    def __init__(self, split_id: str, reason: str) -> None:
        super().__init__(f"model fit failed for split {split_id}: {reason}")
        self.split_id = split_id
        self.reason = reason

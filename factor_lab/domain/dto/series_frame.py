from __future__ import annotations

from typing import ClassVar

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field, model_validator

from factor_lab.domain.services.series_validation import validate_ordered_dates


class SeriesFrameDTO(BaseModel):
    """日付昇順・重複なしのテーブルを契約として保持"""

    __responsibility__: ClassVar[str] = "分割/評価に渡す正準テーブル（date列＋数値列）"

    # Pydantic v2: pandas.DataFrame を任意型として許可
    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)
    frame: pd.DataFrame = Field(...)
    date_col: str = Field(default="date")

    @model_validator(mode="after")
    def _validate_frame(self) -> SeriesFrameDTO:
        if not isinstance(self.frame, pd.DataFrame):
            raise TypeError("frame must be pandas.DataFrame")
        # MisalignedInputError は ValueError ではないのでそのまま伝播する
        validate_ordered_dates(self.frame, self.date_col)
        return self

    def __len__(self) -> int:
        return len(self.frame)

    @property
    def dates(self) -> pd.Series:
        return self.frame[self.date_col]

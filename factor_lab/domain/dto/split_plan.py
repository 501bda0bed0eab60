from __future__ import annotations

from collections.abc import Iterator
from typing import ClassVar

from pydantic import BaseModel, ConfigDict, Field, model_validator


class IndexRange(BaseModel):
    """行位置の半開区間 [start, end)。Series のコピーではなくビュー定義。"""

    model_config = ConfigDict(frozen=True)

    start: int = Field(..., ge=0)
    end: int = Field(..., ge=1)

    @model_validator(mode="after")
    def _check_order(self) -> IndexRange:
        if self.end <= self.start:
            raise ValueError(f"end must be > start (start={self.start}, end={self.end})")
        return self

    def __len__(self) -> int:
        return self.end - self.start

    def as_slice(self) -> slice:
        return slice(self.start, self.end)

    def __str__(self) -> str:
        return f"[{self.start},{self.end})"


class Split(BaseModel):
    """analysis（学習）と直後に隙間なく続く assessment（検証）の組"""

    __responsibility__: ClassVar[str] = "1分割分の学習/検証区間（位置インデックス）"
    model_config = ConfigDict(frozen=True)

    split_id: str = Field(...)
    analysis: IndexRange = Field(...)
    assessment: IndexRange = Field(...)

    @model_validator(mode="after")
    def _check_contiguous(self) -> Split:
        if self.analysis.end != self.assessment.start:
            raise ValueError(
                f"{self.split_id}: assessment must start where analysis ends "
                f"({self.analysis} / {self.assessment})"
            )
        return self


class SplitPlan(BaseModel):
    """生成順を保った Split の不変列と、それを生んだパラメータ"""

    __responsibility__: ClassVar[str] = "ローリング原点分割の計画（生成後は不変）"
    model_config = ConfigDict(frozen=True)

    n_rows: int = Field(..., ge=1)
    initial_size: int = Field(..., ge=1)
    assess_size: int = Field(..., ge=1)
    cumulative: bool = Field(default=False)
    skip: int = Field(default=0, ge=0)
    splits: tuple[Split, ...] = Field(default=())

    def __len__(self) -> int:
        return len(self.splits)

    def __iter__(self) -> Iterator[Split]:  # type: ignore[override]
        return iter(self.splits)

    def __getitem__(self, i: int) -> Split:
        return self.splits[i]

    def to_records(self) -> list[dict[str, int | str]]:
        """表示/保存用のフラットな dict 列"""
        return [
            {
                "split_id": s.split_id,
                "analysis_start": s.analysis.start,
                "analysis_end": s.analysis.end,
                "assess_start": s.assessment.start,
                "assess_end": s.assessment.end,
            }
            for s in self.splits
        ]

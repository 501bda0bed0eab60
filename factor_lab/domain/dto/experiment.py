from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class FitErrorPolicy(str, Enum):
    abort = "abort"
    skip = "skip"


class ModelKind(str, Enum):
    linear = "linear"
    random_forest = "random_forest"


class SplitConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    initial_size: int = Field(..., ge=1)
    assess_size: int = Field(default=1, ge=1)
    cumulative: bool = Field(default=False)
    skip: int = Field(default=0, ge=0)


class ModelConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    kind: ModelKind = Field(default=ModelKind.linear)
    params: dict[str, Any] = Field(default_factory=dict)


class ExperimentConfig(BaseModel):
    """YAML から読む実験定義（列・分割・モデル・失敗ポリシー）"""

    __responsibility__: ClassVar[str] = "walk-forward 実験の型付き設定"
    model_config = ConfigDict(extra="forbid")

    name: str = Field(default="experiment")
    date_col: str = Field(default="date")
    group_col: str | None = Field(default=None)
    feature_cols: list[str] = Field(..., min_length=1)
    target_col: str = Field(...)
    split: SplitConfig = Field(...)
    model: ModelConfig = Field(default_factory=ModelConfig)
    seed: int | None = Field(default=None)
    on_fit_error: FitErrorPolicy = Field(default=FitErrorPolicy.abort)
    max_workers: int | None = Field(default=None, ge=1)
    metric: Literal["rmse", "mae", "mse"] = Field(default="rmse")

    @field_validator("feature_cols", mode="before")
    @classmethod
    def _split_csv(cls, v: Any) -> Any:
        # "mkt_rf,smb,hml" 形式も許容
        if isinstance(v, str):
            return [s.strip() for s in v.split(",") if s.strip()]
        return v

    @field_validator("metric", mode="before")
    @classmethod
    def _lower_metric(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v

    @model_validator(mode="after")
    def _target_not_feature(self) -> ExperimentConfig:
        if self.target_col in self.feature_cols:
            raise ValueError(f"target_col '{self.target_col}' must not be in feature_cols")
        return self

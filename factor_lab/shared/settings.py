from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class FactorLabSettings(BaseSettings):
    """環境変数から実行時設定を取得（.env対応）"""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="FACTOR_LAB__", extra="ignore")

    LOG_JSON: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")
    OUT_DIR: Path = Field(default=Path("./runs"))


class TimingSettings(BaseSettings):
    """フェーズ計測の設定（FACTOR_LAB_TIMINGS / FACTOR_LAB_TIMINGS_CSV、既定 OFF）"""

    model_config = SettingsConfigDict(env_file=".env", env_prefix="FACTOR_LAB_", extra="ignore")

    TIMINGS: bool = Field(default=False)
    TIMINGS_CSV: Path = Field(default=Path("runs/timings.csv"))

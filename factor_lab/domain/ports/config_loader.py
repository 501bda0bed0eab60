from __future__ import annotations

from pathlib import Path
from typing import Protocol

from factor_lab.domain.dto.experiment import ExperimentConfig


class ConfigLoaderPort(Protocol):
    """実験設定を外部ファイル（YAML等）から取得する抽象"""

    __responsibility__ = "設定ロードの抽象I/F"

    def load(self, path: Path) -> ExperimentConfig: ...

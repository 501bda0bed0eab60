from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from factor_lab.domain.dto.experiment import ExperimentConfig
from factor_lab.domain.ports.config_loader import ConfigLoaderPort


class YamlConfigLoader(ConfigLoaderPort):
    """YAMLから実験設定を読み込む。トップレベル key: experiment（無ければ全体を設定とみなす）"""

    def load(self, path: Path) -> ExperimentConfig:
        with path.open("r", encoding="utf-8") as f:
            data: dict[str, Any] = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ValueError("YAML top level must be a mapping")
        body = data.get("experiment", data)
        if not isinstance(body, dict):
            raise ValueError("YAML 'experiment' must be a mapping")
        return ExperimentConfig.model_validate(body)

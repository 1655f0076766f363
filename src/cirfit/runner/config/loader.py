from __future__ import annotations

import json
from pathlib import Path

import yaml
from pydantic import ValidationError

from cirfit.errors import ConfigError
from cirfit.runner.config.models import CalibrationConfig


def load_config(path: str | Path) -> CalibrationConfig:
    """
    Load a CalibrationConfig from YAML or JSON.

    Automatically validates using Pydantic v2.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file does not exist: {path}")

    text = path.read_text()

    suffix = path.suffix.lower()
    if suffix not in {".yaml", ".yml", ".json"}:
        raise ConfigError("Config path must be YAML or JSON.")

    try:
        if suffix == ".json":
            raw = json.loads(text)
        else:
            raw = yaml.safe_load(text)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigError(f"Failed to parse config: {e}") from e

    try:
        return CalibrationConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid CalibrationConfig: {e}") from e

import logging
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from hlsladder.config.models import AppConfig

logger = logging.getLogger(__name__)


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Loads AppConfig from a YAML file.

    A missing file yields the built-in defaults. A file that cannot be parsed
    or fails validation raises ValueError.
    """
    if config_path is None or not Path(config_path).exists():
        if config_path is not None:
            logger.debug(f"Config file {config_path} not found, using defaults")
        return AppConfig()

    try:
        with open(config_path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Failed to parse config file {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping at the top level")

    try:
        return AppConfig(**data)
    except ValidationError as e:
        raise ValueError(f"Invalid config file {config_path}: {e}") from e

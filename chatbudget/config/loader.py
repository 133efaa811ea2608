"""Configuration loading and saving.

The config file stores camelCase keys; the schema uses snake_case.
"""

import json
import re
from pathlib import Path
from typing import Any

from loguru import logger

from chatbudget.config.schema import Config
from chatbudget.utils.helpers import get_data_path


def get_data_dir() -> Path:
    """Return the chatbudget data directory."""
    return get_data_path()


def get_config_path() -> Path:
    """Return the default config file path."""
    return get_data_dir() / "config.json"


def camel_to_snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def snake_to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(word.capitalize() for word in rest)


def convert_keys(data: Any, converter) -> Any:
    """Recursively convert dict keys with *converter*."""
    if isinstance(data, dict):
        return {converter(k): convert_keys(v, converter) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_keys(item, converter) for item in data]
    return data


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from file, falling back to defaults.

    Environment variables (``CHATBUDGET_...``) apply on top of defaults when
    no file exists.
    """
    path = config_path or get_config_path()

    if path.exists():
        try:
            data = json.loads(path.read_text())
            return Config.model_validate(convert_keys(data, camel_to_snake))
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning(f"Failed to load config from {path}: {e}")

    return Config()


def save_config(config: Config, config_path: Path | None = None) -> None:
    """Write configuration to file with camelCase keys."""
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = convert_keys(config.model_dump(), snake_to_camel)
    path.write_text(json.dumps(data, indent=2))

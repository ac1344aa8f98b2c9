"""Configuration loading utilities."""

import json
import re
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import ValidationError

from gsearch.config.schema import Config


def get_config_path() -> Path:
    """Get the default configuration file path."""
    return Path.home() / ".gsearch" / "config.json"


def load_config(config_path: Path | None = None) -> Config:
    """
    Load configuration from file or create default.

    Args:
        config_path: Optional path to config file. Uses default if not provided.

    Returns:
        Loaded configuration object.
    """
    path = config_path or get_config_path()

    if path.exists():
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            data = _migrate_config(data)
            return Config.model_validate(convert_keys(data))
        except (json.JSONDecodeError, ValidationError, ValueError, TypeError) as e:
            logger.warning("Failed to load config from {}: {}", path, e)
            logger.warning("Using default configuration.")

    return Config()


def save_config(config: Config, config_path: Path | None = None) -> None:
    """
    Save configuration to file.

    Args:
        config: Configuration to save.
        config_path: Optional path to save to. Uses default if not provided.
    """
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    data = config.model_dump(by_alias=True)

    with open(path, "w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def convert_keys(data: Any) -> Any:
    """Convert camelCase keys to snake_case recursively."""
    if isinstance(data, dict):
        return {camel_to_snake(k): convert_keys(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_keys(item) for item in data]
    return data


def convert_to_camel(data: Any) -> Any:
    """Convert snake_case keys to camelCase recursively."""
    if isinstance(data, dict):
        return {snake_to_camel(k): convert_to_camel(v) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_to_camel(item) for item in data]
    return data


def camel_to_snake(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


def snake_to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part[:1].upper() + part[1:] for part in rest)


def _migrate_config(data: dict) -> dict:
    """Migrate old flat config formats to current."""
    # Move legacy top-level timeout -> timeoutMs
    if "timeout" in data and "timeoutMs" not in data:
        data["timeoutMs"] = data.pop("timeout")

    # Move legacy top-level stateFile / noSaveState -> state.*
    state_cfg = data.setdefault("state", {})
    legacy_state_file = data.pop("stateFile", None)
    if legacy_state_file and "stateFile" not in state_cfg:
        state_cfg["stateFile"] = legacy_state_file

    legacy_no_save = data.pop("noSaveState", None)
    if legacy_no_save is not None and "saveState" not in state_cfg:
        state_cfg["saveState"] = not legacy_no_save

    # Move legacy googleDomains -> engine.domains
    legacy_domains = data.pop("googleDomains", None)
    engine_cfg = data.setdefault("engine", {})
    if legacy_domains and "domains" not in engine_cfg:
        engine_cfg["domains"] = legacy_domains

    return data

"""
Configuration management for dotedit.

Settings control how edits are written back to DOT text:
- indent, terminator: layout of synthesized statements
- position_mode, position_attribute, position_precision: whether and how
  node positions are mirrored into an attribute
- max_history: undo depth of an edit session

Priority:
1. Environment variables DOTEDIT_<KEY> (a .env file is loaded first)
2. The JSON config file (DOTEDIT_CONFIG, or dotedit.json in the working directory)
3. Built-in defaults
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "dotedit.json"
ENV_PREFIX = "DOTEDIT_"
POSITION_MODES = ("attribute", "ignore")

DEFAULTS: Dict[str, Any] = {
    "indent": "    ",
    "terminator": ";",
    "position_mode": "attribute",
    "position_attribute": "pos",
    "position_precision": 2,
    "max_history": 100,
}

_INTEGER_KEYS = ("position_precision", "max_history")


def get_config_path() -> Path:
    env_path = os.environ.get("DOTEDIT_CONFIG")
    if env_path:
        return Path(env_path)
    return Path.cwd() / CONFIG_FILENAME


def load_config(path: Optional[Path] = None) -> dict:
    """Load configuration from the JSON config file."""
    config_path = Path(path) if path is not None else get_config_path()
    if config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Ignoring unreadable config file {config_path}: {e}")
            return {}
    return {}


def save_config(config: dict, path: Optional[Path] = None) -> None:
    """Save configuration to the JSON config file."""
    config_path = Path(path) if path is not None else get_config_path()
    with open(config_path, 'w', encoding='utf-8') as f:
        json.dump(config, f, indent=2)


@dataclass(frozen=True)
class Settings:
    indent: str = DEFAULTS["indent"]
    terminator: str = DEFAULTS["terminator"]
    position_mode: str = DEFAULTS["position_mode"]
    position_attribute: str = DEFAULTS["position_attribute"]
    position_precision: int = DEFAULTS["position_precision"]
    max_history: int = DEFAULTS["max_history"]

    @property
    def mirrored_position_attribute(self) -> Optional[str]:
        """Attribute positions are written to, or None when positions stay out of the text."""
        if self.position_mode == "attribute":
            return self.position_attribute
        return None


def _coerce(key: str, value: Any) -> Any:
    if key in _INTEGER_KEYS:
        try:
            number = int(value)
        except (TypeError, ValueError):
            logger.warning(f"Invalid value {value!r} for {key}, using {DEFAULTS[key]}")
            return DEFAULTS[key]
        if number < 0:
            logger.warning(f"Negative value {number} for {key}, using {DEFAULTS[key]}")
            return DEFAULTS[key]
        return number
    return str(value)


def load_settings(path: Optional[Path] = None, use_env: bool = True) -> Settings:
    """Build Settings from defaults, the config file and the environment."""
    if use_env:
        load_dotenv()

    values = dict(DEFAULTS)
    config = load_config(path)
    for key in DEFAULTS:
        if key in config:
            values[key] = config[key]

    if use_env:
        for key in DEFAULTS:
            env_value = os.environ.get(ENV_PREFIX + key.upper())
            if env_value is not None:
                values[key] = env_value

    values = {key: _coerce(key, value) for key, value in values.items()}
    if values["position_mode"] not in POSITION_MODES:
        logger.warning(f"Unknown position_mode {values['position_mode']!r}, using 'attribute'")
        values["position_mode"] = "attribute"
    return Settings(**values)

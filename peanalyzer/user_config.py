"""
User preference lookup.

Reads preferences from ~/.peanalyzer/config.json. Environment variables
always take priority.
"""
import os
import json
import logging

from pathlib import Path
from typing import Optional, Dict, Any

logger = logging.getLogger("PeAnalyzer")

CONFIG_DIR = Path.home() / ".peanalyzer"
CONFIG_FILE = CONFIG_DIR / "config.json"

# Maps config keys to their corresponding environment variable names
_ENV_VAR_MAP = {
    "log_level": "PEANALYZER_LOG_LEVEL",
    "pixel_size": "PEANALYZER_PIXEL_SIZE",
    "byteplot_pixel_size": "PEANALYZER_BYTEPLOT_PIXEL_SIZE",
    "columns": "PEANALYZER_COLUMNS",
    "image_height": "PEANALYZER_IMAGE_HEIGHT",
    "filetype_db": "PEANALYZER_FILETYPE_DB",
}


def load_user_config() -> Dict[str, Any]:
    """Read ~/.peanalyzer/config.json and return its contents as a dict."""
    if not CONFIG_FILE.exists():
        return {}
    try:
        with open(CONFIG_FILE, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            logger.warning(f"User config at {CONFIG_FILE} is not a JSON object, ignoring.")
            return {}
        return data
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Failed to read user config from {CONFIG_FILE}: {e}")
        return {}


def get_config_value(key: str) -> Optional[str]:
    """
    Retrieve a config value with environment variable priority.

    Resolution order:
      1. Environment variable (e.g. PEANALYZER_PIXEL_SIZE)
      2. ~/.peanalyzer/config.json
      3. None
    """
    env_var = _ENV_VAR_MAP.get(key)
    if env_var:
        env_val = os.getenv(env_var)
        if env_val:
            return env_val

    config = load_user_config()
    val = config.get(key)
    return str(val) if val is not None else None


def get_int_config_value(key: str, default: int) -> int:
    """Like get_config_value, but for positive integers. Falls back to *default*."""
    raw = get_config_value(key)
    if raw is None:
        return default
    try:
        val = int(raw, 0)
    except ValueError:
        logger.warning(f"Config key '{key}' has non-integer value '{raw}', using {default}.")
        return default
    if val <= 0:
        logger.warning(f"Config key '{key}' must be positive (got {val}), using {default}.")
        return default
    return val

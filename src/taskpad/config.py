"""Configuration file support for taskpad."""

import logging
import os
import re
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

logger = logging.getLogger(__name__)

CONFIG_FILE = Path.home() / ".config" / "taskpad" / "taskpad.toml"
DATA_DIR = Path.home() / ".taskpad"

DEFAULT_THEME = "textual-dark"
DEFAULT_DATE_FORMAT = "%b %d, %Y"
DEFAULT_TAG = "work"
DEFAULT_COMPLETED_DAYS = 30
DEFAULT_LOG_LEVEL = "WARNING"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


@dataclass
class Config:
    """Application configuration."""

    database: Path | None = None
    theme: str = DEFAULT_THEME
    date_format: str = DEFAULT_DATE_FORMAT
    default_tag: str = DEFAULT_TAG
    completed_days: int = DEFAULT_COMPLETED_DAYS
    log_level: str = DEFAULT_LOG_LEVEL

    @property
    def db_path(self) -> Path:
        """Resolve the database path for this configuration."""
        return resolve_db_path(self.database)


def resolve_db_path(configured: Path | None = None) -> Path:
    """Pick the database file.

    Precedence: the TASKPAD_DB environment variable, then the configured
    path, then ~/.taskpad/tasks.db (tasks-test.db when TASKPAD_ENV=test).
    """
    env_path = os.environ.get("TASKPAD_DB")
    if env_path:
        return Path(env_path).expanduser()
    if configured is not None:
        return configured
    if os.environ.get("TASKPAD_ENV") == "test":
        return DATA_DIR / "tasks-test.db"
    return DATA_DIR / "tasks.db"


def load_config(path: Path | None = None) -> Config:
    """Load configuration from the config file.

    Returns the default configuration if:
    - The config file doesn't exist
    - The config file has invalid TOML syntax or can't be read

    Args:
        path: Config file to read, defaults to CONFIG_FILE.

    Returns:
        Config object with loaded or default values.
    """
    config_file = path or CONFIG_FILE
    if not config_file.exists():
        return Config()

    try:
        with open(config_file, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        logger.warning("Ignoring unreadable config %s: %s", config_file, e)
        return Config()

    return _parse_config(data)


def _parse_config(data: dict[str, Any]) -> Config:
    """Parse configuration from a dictionary.

    Args:
        data: Dictionary from parsed TOML file.

    Returns:
        Config object with parsed values. Values of the wrong type are ignored.
    """
    config = Config()

    if isinstance(data.get("database"), str) and data["database"]:
        config.database = Path(data["database"]).expanduser()

    if isinstance(data.get("theme"), str):
        config.theme = data["theme"]

    if isinstance(data.get("date_format"), str):
        config.date_format = data["date_format"]

    # A default tag is stored without its leading '#'
    if isinstance(data.get("default_tag"), str):
        tag = data["default_tag"].lstrip("#").strip().lower()
        if re.fullmatch(r"\w+", tag, re.ASCII):
            config.default_tag = tag

    days = data.get("completed_days")
    if isinstance(days, int) and not isinstance(days, bool) and days > 0:
        config.completed_days = days

    level = data.get("log_level")
    if isinstance(level, str) and level.upper() in LOG_LEVELS:
        config.log_level = level.upper()

    return config

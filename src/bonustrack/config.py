"""Configuration for bonustrack.

Settings live in a JSON file, looked up in the working directory first and
then under the XDG config directory:

    {
      "database": "~/.local/share/bonustrack/bonustrack.db",
      "user_id": "local",
      "deadlines": {"urgent_days": 7, "warning_days": 30},
      "dashboard": {"base_url": "https://finance.example.com", "api_token": null}
    }
"""

import json
import os
from pathlib import Path
from typing import Any

from bonustrack.progress import URGENT_DAYS, WARNING_DAYS

APP_NAME = "bonustrack"
CONFIG_FILENAME = "config.json"
DATABASE_FILENAME = "bonustrack.db"
DEFAULT_USER_ID = "local"
TOKEN_ENV_VAR = "BONUSTRACK_API_TOKEN"


def _xdg_dir(env_var: str, fallback: Path) -> Path:
    return Path(os.getenv(env_var) or fallback) / APP_NAME


def get_config_dir() -> Path:
    """Directory holding config.json ($XDG_CONFIG_HOME/bonustrack)."""
    return _xdg_dir("XDG_CONFIG_HOME", Path.home() / ".config")


def get_config_path() -> Path:
    """Default location of config.json."""
    return get_config_dir() / CONFIG_FILENAME


def get_data_dir() -> Path:
    """Directory holding the database ($XDG_DATA_HOME/bonustrack)."""
    return _xdg_dir("XDG_DATA_HOME", Path.home() / ".local" / "share")


def find_config_file() -> Path | None:
    """Return the first existing config file: ./config.json, then the XDG one."""
    for candidate in (Path(CONFIG_FILENAME), get_config_path()):
        if candidate.is_file():
            return candidate
    return None


def load_json_config(config_path: Path) -> dict[str, Any]:
    """
    Read a JSON config file.

    Raises:
        OSError: If the file can't be opened
        ValueError: If the file is not a JSON object
    """
    with open(config_path, encoding="utf-8") as f:
        config = json.load(f)
    if not isinstance(config, dict):
        raise ValueError(f"{config_path} must contain a JSON object")
    return config


def save_json_config(config: dict[str, Any], config_path: Path | None = None) -> Path:
    """Write config as indented JSON, creating the parent directory.

    Args:
        config: Settings to write
        config_path: Destination (defaults to get_config_path())

    Returns:
        Path that was written
    """
    path = config_path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config, indent=2) + "\n", encoding="utf-8")
    return path


def load_config(config_path: Path | None = None) -> dict[str, Any] | None:
    """Load the explicit config file, or the first one found; None if there is none."""
    path = config_path or find_config_file()
    return load_json_config(path) if path else None


def get_database_path(
    config: dict[str, Any] | None = None,
    override: str | Path | None = None,
) -> Path:
    """Get the SQLite database path.

    Args:
        config: Loaded JSON config
        override: Optional path to use instead of config

    Returns:
        Database path (XDG data dir if not configured)
    """
    if override:
        return Path(override).expanduser()

    if config and (database := config.get("database")):
        return Path(database).expanduser()

    return get_data_dir() / DATABASE_FILENAME


def get_user_id(config: dict[str, Any] | None = None, override: str | None = None) -> str:
    """Get the user whose bonuses are tracked."""
    if override:
        return override

    if config and (user_id := config.get("user_id")):
        return str(user_id)

    return DEFAULT_USER_ID


def get_deadline_thresholds(config: dict[str, Any] | None = None) -> tuple[int, int]:
    """Get (urgent_days, warning_days) deadline thresholds.

    Raises:
        ValueError: If the configured thresholds are not ordered
    """
    deadlines = (config or {}).get("deadlines", {})
    urgent_days = int(deadlines.get("urgent_days", URGENT_DAYS))
    warning_days = int(deadlines.get("warning_days", WARNING_DAYS))

    if not 0 <= urgent_days <= warning_days:
        raise ValueError(
            f"Invalid deadline thresholds: urgent_days={urgent_days}, "
            f"warning_days={warning_days}"
        )

    return urgent_days, warning_days


def get_dashboard_settings(
    config: dict[str, Any] | None = None,
    base_url: str | None = None,
    api_token: str | None = None,
) -> tuple[str | None, str | None]:
    """Get dashboard API (base_url, api_token), with optional overrides.

    The token may also come from the BONUSTRACK_API_TOKEN environment variable.
    """
    dashboard = (config or {}).get("dashboard", {})
    url = base_url or dashboard.get("base_url")
    token = api_token or dashboard.get("api_token") or os.getenv(TOKEN_ENV_VAR)
    return url, token


def create_default_config() -> dict[str, Any]:
    """Create a default configuration."""
    return {
        "database": str(get_data_dir() / DATABASE_FILENAME),
        "user_id": DEFAULT_USER_ID,
        "deadlines": {
            "urgent_days": URGENT_DAYS,
            "warning_days": WARNING_DAYS,
        },
        "dashboard": {
            "base_url": None,
            "api_token": None,
        },
    }

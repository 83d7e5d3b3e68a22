"""Configuration file management for habbit.

Reads and writes ~/.habbit/config.json for settings that don't belong in the DB
(week start, retry policy, database location).
"""
from __future__ import annotations

import json
from dataclasses import dataclass, fields
from pathlib import Path

DEFAULT_CONFIG_PATH: Path = Path.home() / ".habbit" / "config.json"
DEFAULT_DB_PATH: Path = Path.home() / ".habbit" / "data.db"


@dataclass
class Settings:
    first_day_of_week: int = 1  # 0 = Sunday, 1 = Monday
    max_retries: int = 3
    retry_backoff_seconds: float = 0.05
    db_path: str = str(DEFAULT_DB_PATH)


def load_config(config_path: Path | None = None) -> dict:
    """Load config from JSON file. Returns {} if file missing or invalid."""
    path = config_path or DEFAULT_CONFIG_PATH
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError):
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict, config_path: Path | None = None) -> None:
    """Write config dict to JSON file. Creates parent dirs if needed."""
    path = config_path or DEFAULT_CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")


def _coerce(name: str, raw: object) -> object:
    default = getattr(Settings, name)
    if isinstance(default, bool) or not isinstance(default, (int, float)):
        return str(raw)
    return type(default)(raw)


def get_settings(config_path: Path | None = None) -> Settings:
    """Return typed settings, falling back to defaults for missing or bad values."""
    config = load_config(config_path)
    settings = Settings()
    for f in fields(Settings):
        if f.name not in config:
            continue
        try:
            setattr(settings, f.name, _coerce(f.name, config[f.name]))
        except (TypeError, ValueError):
            continue
    if not 0 <= settings.first_day_of_week <= 6:
        settings.first_day_of_week = Settings.first_day_of_week
    settings.max_retries = max(0, settings.max_retries)
    settings.retry_backoff_seconds = max(0.0, settings.retry_backoff_seconds)
    return settings


def set_setting(key: str, value: object, config_path: Path | None = None) -> None:
    """Persist one setting. Raises KeyError for unknown keys, ValueError for bad values."""
    names = {f.name for f in fields(Settings)}
    if key not in names:
        raise KeyError(key)
    coerced = _coerce(key, value)
    if key == "first_day_of_week" and not 0 <= coerced <= 6:
        raise ValueError(f"first_day_of_week must be 0-6, got {coerced}")
    config = load_config(config_path)
    config[key] = coerced
    save_config(config, config_path)

"""Persistent per-user JSON preferences.

Stores the default log level, whether restores fetch afterwards, and the
watcher debounce window. All access is defensive: malformed or missing config
falls back to defaults.
"""

from __future__ import annotations

import json
from pathlib import Path

from platformdirs import user_config_dir

from .log import normalize_level_name
from .watch import DEFAULT_DEBOUNCE_SECONDS

APP_NAME = "workset"
CONFIG_FILENAME = "config.json"
CONFIG_PATH = Path(user_config_dir(APP_NAME, appauthor=False)) / CONFIG_FILENAME

MAX_DEBOUNCE_SECONDS = 60.0


def load_config() -> dict[str, object]:
    """Load the persisted JSON object; ``{}`` when missing, unreadable, or not an object."""
    try:
        data = json.loads(CONFIG_PATH.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return {}
    return data if isinstance(data, dict) else {}


def save_config(data: dict[str, object]) -> None:
    """Persist config data as pretty-printed JSON, ignoring write failures."""
    try:
        CONFIG_PATH.parent.mkdir(parents=True, exist_ok=True)
        CONFIG_PATH.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
    except (OSError, TypeError, ValueError):
        pass


def load_log_level() -> str | None:
    """Return the persisted log level name, or ``None`` when unset/invalid."""
    return normalize_level_name(load_config().get("log_level"))


def save_log_level(level: str) -> None:
    normalized = normalize_level_name(level)
    if normalized is None:
        return
    config = load_config()
    config["log_level"] = normalized
    save_config(config)


def load_fetch_on_restore() -> bool:
    """Only explicit booleans are honored; anything else means ``True``."""
    value = load_config().get("fetch_on_restore")
    return value if isinstance(value, bool) else True


def save_fetch_on_restore(enabled: bool) -> None:
    config = load_config()
    config["fetch_on_restore"] = bool(enabled)
    save_config(config)


def load_watch_debounce_seconds() -> float:
    """Read the debounce window constrained to ``(0, 60]`` seconds."""
    value = load_config().get("watch_debounce_seconds")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return DEFAULT_DEBOUNCE_SECONDS
    if value <= 0 or value > MAX_DEBOUNCE_SECONDS:
        return DEFAULT_DEBOUNCE_SECONDS
    return float(value)


def save_watch_debounce_seconds(seconds: float) -> None:
    if seconds <= 0 or seconds > MAX_DEBOUNCE_SECONDS:
        return
    config = load_config()
    config["watch_debounce_seconds"] = round(float(seconds), 3)
    save_config(config)

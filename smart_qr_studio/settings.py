"""Studio settings loader.

Settings come from a JSON file deep-merged over built-in defaults, then from
environment variables (``SMART_QR_HOME``, ``GEMINI_API_KEY``).
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

# Defaults: used for any key missing from the settings file
_DEFAULTS = {
    "history": {
        "path": "history.json",
    },
    "export": {
        "directory": "exports",
        "format": "png",
    },
    "suggestion": {
        "api_key": "",
        "model": "gemini-2.5-flash",
        "timeout_sec": 20,
        "max_retries": 2,
    },
    "fonts": {
        "directory": "",
    },
    "background": {
        "timeout_sec": 15,
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Merge ``override`` into a copy of ``base``, recursing into nested dicts."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _valid_sections(loaded: dict, source: Path) -> dict:
    """Drop top-level sections that are not objects, logging each one."""
    valid = {}
    for key, value in loaded.items():
        if key in _DEFAULTS and not isinstance(value, dict):
            logger.error("Ignoring section %r in %s: expected an object, got %r", key, source, value)
            continue
        valid[key] = value
    return valid


def default_home() -> Path:
    return Path(os.environ.get("SMART_QR_HOME") or Path.home() / ".smart_qr_studio")


@dataclass(frozen=True)
class Settings:
    home: Path
    history_path: Path
    export_dir: Path
    export_format: str
    suggestion_api_key: str
    suggestion_model: str
    suggestion_timeout: float
    suggestion_max_retries: int
    font_dir: Path | None
    background_timeout: float


def load_settings(path: Path | None = None) -> Settings:
    """Read settings from ``path`` (default ``<home>/settings.json``).

    A missing file means defaults; a malformed file is logged and ignored.
    Relative paths in the file are resolved against the studio home.
    """
    home = default_home()
    settings_path = path or home / "settings.json"

    raw = _DEFAULTS
    if settings_path.exists():
        try:
            with open(settings_path, encoding="utf-8") as f:
                loaded = json.load(f)
        except (OSError, ValueError) as e:
            logger.error("Ignoring unreadable settings file %s: %s", settings_path, e)
        else:
            if isinstance(loaded, dict):
                raw = _deep_merge(_DEFAULTS, _valid_sections(loaded, settings_path))
            else:
                logger.error("Ignoring settings file %s: top level is not a JSON object", settings_path)

    api_key = os.environ.get("GEMINI_API_KEY") or raw["suggestion"]["api_key"] or ""
    font_dir = raw["fonts"]["directory"]

    return Settings(
        home=home,
        history_path=home / raw["history"]["path"],
        export_dir=home / raw["export"]["directory"],
        export_format=raw["export"]["format"],
        suggestion_api_key=api_key,
        suggestion_model=raw["suggestion"]["model"],
        suggestion_timeout=float(raw["suggestion"]["timeout_sec"]),
        suggestion_max_retries=int(raw["suggestion"]["max_retries"]),
        font_dir=home / font_dir if font_dir else None,
        background_timeout=float(raw["background"]["timeout_sec"]),
    )

"""Prompt input options, optionally read from ~/.promptline/settings.json."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any

from promptline.render import CURSOR_CHAR

logger = logging.getLogger(__name__)

CONFIG_DIR_NAME = ".promptline"
SETTINGS_FILE_NAME = "settings.json"


@dataclass(frozen=True)
class PromptInputOptions:
    """Presentation options for a :class:`~promptline.components.PromptInput`.

    Delays are in seconds.
    """

    placeholder: str = ""
    min_height: int = 1
    max_height: int = 5
    padding_x: int = 1
    should_blink_cursor: bool = True
    blink_delay: float = 0.5
    blink_interval: float = 0.5
    cursor_char: str = CURSOR_CHAR


# settings.json key -> (field name, expected type, scale)
_SETTINGS_KEYS: dict[str, tuple[str, type, float]] = {
    "placeholder": ("placeholder", str, 1),
    "minHeight": ("min_height", int, 1),
    "maxHeight": ("max_height", int, 1),
    "paddingX": ("padding_x", int, 1),
    "blinkCursor": ("should_blink_cursor", bool, 1),
    "blinkDelayMs": ("blink_delay", float, 0.001),
    "blinkIntervalMs": ("blink_interval", float, 0.001),
    "cursorChar": ("cursor_char", str, 1),
}


def get_config_dir() -> Path:
    return Path(os.environ.get("PROMPTLINE_CONFIG_DIR", Path.home() / CONFIG_DIR_NAME))


def get_settings_path() -> Path:
    return get_config_dir() / SETTINGS_FILE_NAME


def _coerce(key: str, value: Any, expected: type, scale: float) -> Any:
    # bool is an int subclass; keep the two apart
    if expected is bool:
        ok = isinstance(value, bool)
    elif expected in (int, float):
        ok = isinstance(value, (int, float)) and not isinstance(value, bool)
    else:
        ok = isinstance(value, expected)
    if not ok:
        raise TypeError(f"{key} must be {expected.__name__}, got {type(value).__name__}")
    if expected is float:
        return float(value) * scale
    if expected is int:
        return int(value)
    return value


def options_from_dict(data: dict[str, Any]) -> PromptInputOptions:
    """Build options from settings.json content.

    Unknown keys are ignored. A value of the wrong type is skipped with a
    warning and the default kept.
    """
    values: dict[str, Any] = {}
    for key, raw in data.items():
        entry = _SETTINGS_KEYS.get(key)
        if entry is None:
            continue
        name, expected, scale = entry
        try:
            values[name] = _coerce(key, raw, expected, scale)
        except TypeError as e:
            logger.warning("Ignoring setting: %s", e)
    return PromptInputOptions(**values)


def load_options(path: str | Path | None = None, **overrides: Any) -> PromptInputOptions:
    """Read options from *path* (default: the user settings file).

    Keyword *overrides* use field names and win over the file. A missing,
    unreadable, or malformed file yields the defaults.
    """
    settings_path = Path(path) if path is not None else get_settings_path()
    options = PromptInputOptions()

    if settings_path.exists():
        try:
            data = json.loads(settings_path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning("Error reading settings %s: %s", settings_path, e)
        else:
            if isinstance(data, dict):
                options = options_from_dict(data)
            else:
                logger.warning("Settings %s is not a JSON object", settings_path)

    known = {f.name for f in fields(PromptInputOptions)}
    unknown = set(overrides) - known
    if unknown:
        raise TypeError(f"Unknown option(s): {', '.join(sorted(unknown))}")

    applied = {k: v for k, v in overrides.items() if v is not None}
    return replace(options, **applied) if applied else options

from __future__ import annotations

import json
from copy import deepcopy
from pathlib import Path
from typing import Any, Mapping

from colossus.settings_models import SettingsPaths, default_settings


def deep_merge_defaults(data: Mapping[str, Any], defaults: Mapping[str, Any]) -> dict[str, Any]:
    """Fill keys missing from ``data`` with defaults, recursing into sections."""
    merged = deepcopy(dict(data))
    for key, fallback in defaults.items():
        if key not in merged:
            merged[key] = deepcopy(fallback)
        elif isinstance(merged[key], dict) and isinstance(fallback, dict):
            merged[key] = deep_merge_defaults(merged[key], fallback)
    return merged


def dot_get(data: Mapping[str, Any], key: str, default: Any = None) -> Any:
    if not key:
        return data
    current: Any = data
    for part in key.split("."):
        if not isinstance(current, Mapping) or part not in current:
            return default
        current = current[part]
    return current


class UserSettings:
    """Read-only view of settings.json layered over the built-in defaults.

    The terminal never writes this file; a broken file is reported through
    ``last_error`` and the defaults are used instead.
    """

    def __init__(self, path: Path, defaults: Mapping[str, Any]) -> None:
        self.path = Path(path)
        self.defaults: dict[str, Any] = deepcopy(dict(defaults))
        self.data: dict[str, Any] = deepcopy(self.defaults)
        self.last_error: str | None = None

    @property
    def exists(self) -> bool:
        return self.path.is_file()

    def read(self) -> dict[str, Any]:
        self.last_error = None
        user_values: dict[str, Any] = {}
        if self.exists:
            try:
                raw = json.loads(self.path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                self.last_error = str(exc)
                raw = {}
            if isinstance(raw, dict):
                user_values = raw
            else:
                self.last_error = (
                    f"Settings root in '{self.path}' must be a JSON object, "
                    f"found {type(raw).__name__}."
                )
        self.data = deep_merge_defaults(user_values, self.defaults)
        return self.data

    def get(self, key: str, default: Any = None) -> Any:
        return dot_get(self.data, key, default)

    def get_int(self, key: str, default: int) -> int:
        try:
            return int(self.get(key, default))
        except (TypeError, ValueError):
            return int(default)


def load_settings(paths: SettingsPaths) -> UserSettings:
    settings = UserSettings(paths.settings_file, default_settings())
    settings.read()
    return settings

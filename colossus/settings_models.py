from __future__ import annotations

import os
from copy import deepcopy
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, TypedDict

import platformdirs

APP_NAME = "COLOSSUS"
APP_SLUG = "colossus-terminal"
CONFIG_DIR_ENV = "COLOSSUS_CONFIG_DIR"
LOG_FILE_ENV = "COLOSSUS_LOG_FILE"
SETTINGS_FILENAME = "settings.json"
LOG_FILENAME = "colossus-terminal.log"


class FontSettings(TypedDict, total=False):
    family: str
    size: int


class WindowSettings(TypedDict, total=False):
    width: int
    height: int


class TerminalSettings(TypedDict, total=False):
    history_lines: int


class PaletteSettings(TypedDict, total=False):
    foreground: str
    background: str
    ansi: list[str]


class LogSettings(TypedDict, total=False):
    path: str
    truncate_on_start: bool


class ColossusSettings(TypedDict, total=False):
    font: FontSettings
    window: WindowSettings
    terminal: TerminalSettings
    palette: PaletteSettings
    log: LogSettings


# Monochrome: every ANSI slot is a shade of gray.
GRAYSCALE_ANSI: tuple[str, ...] = (
    "#000000", "#202020", "#404040", "#606060",
    "#808080", "#9a9a9a", "#bcbcbc", "#dcdcdc",
    "#101010", "#303030", "#505050", "#707070",
    "#909090", "#b0b0b0", "#d0d0d0", "#ffffff",
)

DEFAULT_SETTINGS: ColossusSettings = {
    "font": {
        "family": "Monospace",
        "size": 11,
    },
    "window": {
        "width": 1100,
        "height": 700,
    },
    "terminal": {
        "history_lines": 5000,
    },
    "palette": {
        "foreground": "#d0d0d0",
        "background": "#050505",
        "ansi": list(GRAYSCALE_ANSI),
    },
    "log": {
        # Empty means the platform log directory.
        "path": "",
        "truncate_on_start": True,
    },
}


def default_settings() -> dict[str, Any]:
    return deepcopy(dict(DEFAULT_SETTINGS))


@dataclass(frozen=True, slots=True)
class SettingsPaths:
    config_dir: Path
    log_dir: Path

    @property
    def settings_file(self) -> Path:
        return self.config_dir / SETTINGS_FILENAME

    @property
    def default_log_file(self) -> Path:
        return self.log_dir / LOG_FILENAME

    @classmethod
    def from_environment(cls, environ: Mapping[str, str] | None = None) -> "SettingsPaths":
        env = os.environ if environ is None else environ
        override = str(env.get(CONFIG_DIR_ENV) or "").strip()
        if override:
            config_dir = Path(override).expanduser()
        else:
            config_dir = Path(platformdirs.user_config_dir(APP_SLUG))
        return cls(config_dir=config_dir, log_dir=Path(platformdirs.user_log_dir(APP_SLUG)))


def resolve_log_path(
    configured: object,
    paths: SettingsPaths,
    environ: Mapping[str, str] | None = None,
) -> Path:
    env = os.environ if environ is None else environ
    override = str(env.get(LOG_FILE_ENV) or "").strip()
    if override:
        return Path(override).expanduser()
    text = str(configured or "").strip()
    if text:
        return Path(text).expanduser()
    return paths.default_log_file

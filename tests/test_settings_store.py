"""Tests for reading settings.json and resolving settings paths."""

import json
from pathlib import Path

from colossus.settings_models import (
    CONFIG_DIR_ENV,
    GRAYSCALE_ANSI,
    LOG_FILE_ENV,
    SettingsPaths,
    default_settings,
    resolve_log_path,
)
from colossus.settings_store import UserSettings, deep_merge_defaults, dot_get, load_settings


def test_defaults_are_monochrome():
    defaults = default_settings()
    assert defaults["palette"]["ansi"] == list(GRAYSCALE_ANSI)
    assert len(defaults["palette"]["ansi"]) == 16
    assert defaults["window"] == {"width": 1100, "height": 700}


def test_deep_merge_keeps_explicit_values():
    merged = deep_merge_defaults({"font": {"size": 14}}, {"font": {"size": 11, "family": "Mono"}, "x": 1})
    assert merged == {"font": {"size": 14, "family": "Mono"}, "x": 1}


def test_dot_get():
    data = {"log": {"path": "/tmp/x.log"}}
    assert dot_get(data, "log.path") == "/tmp/x.log"
    assert dot_get(data, "log.missing", "fallback") == "fallback"
    assert dot_get(data, "log.path.deeper", "fallback") == "fallback"


def test_missing_file_reads_defaults_without_writing(tmp_path):
    settings = UserSettings(tmp_path / "settings.json", default_settings())
    data = settings.read()
    assert data["font"]["size"] == 11
    assert not settings.exists
    assert settings.last_error is None
    assert not (tmp_path / "settings.json").exists()


def test_user_values_override_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"font": {"size": 16}, "palette": {"background": "#000000"}}), encoding="utf-8")
    settings = UserSettings(path, default_settings())
    settings.read()
    assert settings.get("font.size") == 16
    assert settings.get("font.family") == "Monospace"
    assert settings.get("palette.background") == "#000000"
    assert settings.get("palette.foreground") == "#d0d0d0"
    assert settings.last_error is None


def test_malformed_file_falls_back_to_defaults(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("{not json", encoding="utf-8")
    settings = UserSettings(path, default_settings())
    settings.read()
    assert settings.get("window.width") == 1100
    assert settings.last_error
    assert path.read_text(encoding="utf-8") == "{not json"


def test_non_object_root_is_reported(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text("[1, 2]", encoding="utf-8")
    settings = UserSettings(path, default_settings())
    settings.read()
    assert "must be a JSON object" in settings.last_error
    assert settings.get("terminal.history_lines") == 5000


def test_get_int_tolerates_bad_values(tmp_path):
    path = tmp_path / "settings.json"
    path.write_text(json.dumps({"window": {"width": "wide"}}), encoding="utf-8")
    settings = UserSettings(path, default_settings())
    settings.read()
    assert settings.get_int("window.width", 1100) == 1100


def test_paths_from_environment_override(tmp_path):
    paths = SettingsPaths.from_environment({CONFIG_DIR_ENV: str(tmp_path)})
    assert paths.settings_file == tmp_path / "settings.json"
    assert paths.default_log_file.name == "colossus-terminal.log"


def test_load_settings_reads_config_dir(tmp_path):
    (tmp_path / "settings.json").write_text(json.dumps({"log": {"truncate_on_start": False}}), encoding="utf-8")
    settings = load_settings(SettingsPaths(config_dir=tmp_path, log_dir=tmp_path))
    assert settings.get("log.truncate_on_start") is False


def test_log_path_precedence(tmp_path):
    paths = SettingsPaths(config_dir=tmp_path, log_dir=tmp_path / "logs")
    assert resolve_log_path("", paths, {}) == tmp_path / "logs" / "colossus-terminal.log"
    assert resolve_log_path("/var/tmp/c.log", paths, {}) == Path("/var/tmp/c.log")
    env = {LOG_FILE_ENV: str(tmp_path / "env.log")}
    assert resolve_log_path("/var/tmp/c.log", paths, env) == tmp_path / "env.log"

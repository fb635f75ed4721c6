"""Tests for YAML config loading and settings precedence."""

from pathlib import Path

import pytest

from plugdeck.config import (
    CONFIG_KEYS,
    Settings,
    get_config_path,
    load_yaml_config,
    save_yaml_config,
)


class TestYamlConfig:
    def test_load_empty_home(self, home):
        assert load_yaml_config(home) == {}

    def test_save_and_load_roundtrip(self, home):
        save_yaml_config(home, {"default_tool": "Codex", "git_timeout": 30})
        loaded = load_yaml_config(home)
        assert loaded["default_tool"] == "Codex"
        assert loaded["git_timeout"] == 30

    def test_config_file_location(self, home):
        assert get_config_path(home) == home / ".plugdeck" / "config.yaml"

    def test_save_creates_parent_dirs(self, tmp_path):
        home = tmp_path / "deep" / "home"
        save_yaml_config(home, {"skill_scope": "claude"})
        assert (home / ".plugdeck" / "config.yaml").exists()

    def test_load_invalid_yaml_returns_empty(self, home):
        get_config_path(home).write_text("[ invalid yaml {{{")
        assert load_yaml_config(home) == {}

    def test_load_non_dict_yaml_returns_empty(self, home):
        get_config_path(home).write_text("- just\n- a\n- list\n")
        assert load_yaml_config(home) == {}


class TestSettingsPrecedence:
    def test_defaults(self, home):
        settings = Settings(home_dir=home)
        assert settings.default_tool == "Claude"
        assert settings.skill_scope == "agents"
        assert settings.git_timeout == 60

    def test_yaml_values_apply(self, home):
        save_yaml_config(home, {"default_tool": "Gemini", "git_timeout": 15})
        settings = Settings(home_dir=home)
        assert settings.default_tool == "Gemini"
        assert settings.git_timeout == 15

    def test_env_beats_yaml(self, home, monkeypatch):
        save_yaml_config(home, {"default_tool": "Gemini"})
        monkeypatch.setenv("PLUGDECK_DEFAULT_TOOL", "Copilot")
        assert Settings(home_dir=home).default_tool == "Copilot"

    def test_home_dir_from_env(self, home, monkeypatch):
        save_yaml_config(home, {"skill_scope": "codex"})
        monkeypatch.setenv("PLUGDECK_HOME_DIR", str(home))
        settings = Settings()
        assert settings.home_dir == home
        assert settings.skill_scope == "codex"

    def test_store_dir(self, home, tmp_path):
        assert Settings(home_dir=home).store_dir == home / ".plugdeck"
        data_dir = tmp_path / "data"
        assert Settings(home_dir=home, data_dir=data_dir).store_dir == data_dir

    def test_unknown_yaml_keys_ignored(self, home):
        save_yaml_config(home, {"not_a_setting": True})
        assert not hasattr(Settings(home_dir=home), "not_a_setting")


def test_config_keys_are_settings_fields():
    for key in CONFIG_KEYS:
        assert key in Settings.model_fields

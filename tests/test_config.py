"""Tests for ollama_cli/config.py — layered settings."""

import logging

import pytest
import yaml

from ollama_cli import get_data_dir, ensure_data_dir
from ollama_cli.config import (
    DEFAULT_BASE_URL,
    DEFAULT_MODEL,
    Settings,
    get_config_path,
    load_config,
    load_settings,
    save_settings,
)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "settings.yaml"

    def write(data):
        path.write_text(yaml.safe_dump(data))
        return path

    return write


# ──────────────────────────────────────────────
# Settings
# ──────────────────────────────────────────────

class TestSettings:

    def test_defaults(self):
        s = Settings()
        assert s.base_url == DEFAULT_BASE_URL
        assert s.model == DEFAULT_MODEL
        assert s.max_rounds == 25
        assert s.request_timeout == 120.0
        assert s.shell_timeout == 60.0
        assert s.system_prompt is None
        assert s.confirm_shell is False

    def test_trailing_slash_stripped(self):
        assert Settings(base_url="http://gpu-box:11434/").base_url == "http://gpu-box:11434"

    def test_negative_max_rounds_rejected(self):
        with pytest.raises(ValueError):
            Settings(max_rounds=-1)

    def test_types_coerced(self):
        s = Settings(max_rounds="3", request_timeout="7")
        assert s.max_rounds == 3
        assert s.request_timeout == 7.0


# ──────────────────────────────────────────────
# Layering
# ──────────────────────────────────────────────

class TestLoadSettings:

    def test_missing_file_gives_defaults(self, tmp_path):
        s = load_settings(config_path=tmp_path / "absent.yaml", env={})
        assert s == Settings()

    def test_yaml_values(self, config_file):
        path = config_file({"model": "qwen2.5", "max_rounds": 5, "confirm_shell": True})
        s = load_settings(config_path=path, env={})
        assert s.model == "qwen2.5"
        assert s.max_rounds == 5
        assert s.confirm_shell is True

    def test_env_overrides_yaml(self, config_file):
        path = config_file({"model": "qwen2.5", "base_url": "http://from-yaml:1"})
        env = {"OLLAMA_MODEL": "mistral", "OLLAMA_CLI_SHELL_TIMEOUT": "15"}
        s = load_settings(config_path=path, env=env)
        assert s.model == "mistral"
        assert s.base_url == "http://from-yaml:1"
        assert s.shell_timeout == 15.0

    def test_base_url_from_env(self, tmp_path):
        env = {"OLLAMA_API_BASE_URL": "http://remote:11434/"}
        s = load_settings(config_path=tmp_path / "none.yaml", env=env)
        assert s.base_url == "http://remote:11434"

    def test_empty_env_value_ignored(self, tmp_path):
        s = load_settings(config_path=tmp_path / "none.yaml", env={"OLLAMA_MODEL": ""})
        assert s.model == DEFAULT_MODEL

    def test_overrides_win(self, config_file):
        path = config_file({"max_rounds": 5})
        s = load_settings(config_path=path, env={"OLLAMA_CLI_MAX_ROUNDS": "7"}, max_rounds=0, model=None)
        assert s.max_rounds == 0
        assert s.model == DEFAULT_MODEL

    def test_unknown_override_raises(self, tmp_path):
        with pytest.raises(TypeError):
            load_settings(config_path=tmp_path / "none.yaml", env={}, colour="blue")

    def test_unknown_yaml_key_warns(self, config_file, caplog):
        path = config_file({"temperature": 0.2})
        with caplog.at_level(logging.WARNING, logger="ollama_cli.config"):
            s = load_settings(config_path=path, env={})
        assert "temperature" in caplog.text
        assert s == Settings()

    def test_null_yaml_value_ignored(self, config_file):
        path = config_file({"base_url": None})
        assert load_settings(config_path=path, env={}).base_url == DEFAULT_BASE_URL

    def test_non_mapping_yaml_rejected(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ValueError, match="expected a mapping"):
            load_config(path)


# ──────────────────────────────────────────────
# Persistence & data dir
# ──────────────────────────────────────────────

class TestPersistence:

    def test_save_then_load(self, tmp_path):
        path = tmp_path / "nested" / "settings.yaml"
        saved = Settings(model="phi3", max_rounds=4, system_prompt="Be terse.")
        save_settings(saved, path)
        assert load_settings(config_path=path, env={}) == saved

    def test_data_dir_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("OLLAMA_CLI_DATA_DIR", str(tmp_path))
        assert get_data_dir() == tmp_path
        assert get_config_path() == tmp_path / "config" / "settings.yaml"

    def test_default_data_dir(self, monkeypatch):
        monkeypatch.delenv("OLLAMA_CLI_DATA_DIR", raising=False)
        assert get_data_dir().name == ".ollama-cli"

    def test_ensure_data_dir(self, tmp_path, monkeypatch):
        monkeypatch.setenv("OLLAMA_CLI_DATA_DIR", str(tmp_path / "data"))
        ensure_data_dir()
        assert (tmp_path / "data" / "config").is_dir()

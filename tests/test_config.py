import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from novyx_memory.config import loader as loader_module
from novyx_memory.config.loader import ConfigError, load_config
from novyx_memory.config.schema import DEFAULT_API_URL, MemoryConfig, _resolve_env


class TestMemoryConfig:
    def test_defaults(self):
        cfg = MemoryConfig()
        assert cfg.api_key == ""
        assert cfg.api_url == DEFAULT_API_URL
        assert cfg.auto_save is True
        assert cfg.auto_recall is True
        assert cfg.recall_limit == 5
        assert cfg.undo_max_per_call == 10
        assert cfg.excerpt_chars == 80
        assert cfg.is_configured is False

    def test_camel_case_aliases(self):
        cfg = MemoryConfig.model_validate({"apiKey": "nvx_k", "autoSave": False, "recallLimit": 2})
        assert cfg.api_key == "nvx_k"
        assert cfg.auto_save is False
        assert cfg.recall_limit == 2

    def test_is_frozen(self):
        cfg = MemoryConfig(api_key="nvx_k")
        with pytest.raises(ValidationError):
            cfg.api_key = "other"

    def test_trailing_slash_stripped(self):
        assert MemoryConfig(api_url="https://mem.test/").api_url == "https://mem.test"

    def test_recall_limit_must_be_positive(self):
        with pytest.raises(ValidationError):
            MemoryConfig(recall_limit=0)


class TestResolveEnv:
    def test_dollar_var(self):
        with patch.dict(os.environ, {"MY_KEY": "resolved_value"}):
            assert _resolve_env("$MY_KEY") == "resolved_value"
            assert _resolve_env("${MY_KEY}") == "resolved_value"

    def test_unset_var_returns_original_or_default(self):
        env = os.environ.copy()
        env.pop("NONEXISTENT_VAR_XYZ", None)
        with patch.dict(os.environ, env, clear=True):
            assert _resolve_env("$NONEXISTENT_VAR_XYZ") == "$NONEXISTENT_VAR_XYZ"
            assert _resolve_env("$NONEXISTENT_VAR_XYZ", default="") == ""

    def test_plain_string_unchanged(self):
        assert _resolve_env("nvx_plainkey123") == "nvx_plainkey123"

    def test_unresolved_key_reference_is_not_configured(self):
        env = os.environ.copy()
        env.pop("MISSING_KEY_XYZ", None)
        with patch.dict(os.environ, env, clear=True):
            cfg = MemoryConfig(api_key="$MISSING_KEY_XYZ")
            assert cfg.resolved_api_key == ""
            assert cfg.is_configured is False

    def test_resolved_key_reference(self):
        with patch.dict(os.environ, {"NOVYX_KEY_REF": "nvx_from_env"}):
            cfg = MemoryConfig(api_key="${NOVYX_KEY_REF}")
            assert cfg.resolved_api_key == "nvx_from_env"
            assert cfg.is_configured is True


class TestLoadConfig:
    @pytest.fixture(autouse=True)
    def _no_home_config(self, tmp_path: Path, monkeypatch):
        monkeypatch.setattr(loader_module, "DEFAULT_CONFIG_PATH", tmp_path / "absent.json")

    def test_environment_only(self):
        cfg = load_config(environ={"NOVYX_API_KEY": "nvx_env", "NOVYX_AUTO_RECALL": "false"})
        assert cfg.api_key == "nvx_env"
        assert cfg.auto_recall is False

    def test_missing_key_does_not_raise(self):
        cfg = load_config(environ={})
        assert cfg.is_configured is False

    def test_json_file_with_env_overlay(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"apiKey": "nvx_file", "recallLimit": 8, "autoSave": False}), encoding="utf-8")

        cfg = load_config(config_path=path, environ={"NOVYX_API_KEY": "nvx_env"})

        assert cfg.api_key == "nvx_env"
        assert cfg.recall_limit == 8
        assert cfg.auto_save is False

    def test_invalid_json_raises_config_error(self, tmp_path: Path):
        path = tmp_path / "config.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ConfigError):
            load_config(config_path=path, environ={})

    def test_invalid_value_raises_config_error(self):
        with pytest.raises(ConfigError):
            load_config(environ={"NOVYX_RECALL_LIMIT": "lots"})

    def test_env_file_is_loaded(self, tmp_path: Path):
        env_file = tmp_path / ".env"
        env_file.write_text("NOVYX_API_KEY=nvx_dotenv_key\n", encoding="utf-8")

        with patch.dict(os.environ, {}):
            os.environ.pop("NOVYX_API_KEY", None)
            cfg = load_config(env_file=env_file)

        assert cfg.api_key == "nvx_dotenv_key"

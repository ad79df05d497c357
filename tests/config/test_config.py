import json
import os
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from config.config import (
    DEFAULT_CONFIG_FILE,
    NakadiSettings,
    _cli_main,
    _deep_merge,
    _expand_env_vars,
    get_config,
    load_config,
    load_yaml,
    reset_config,
    set_config,
)
from core.errors.exceptions import TokenError

# =========================================================================
# load_yaml
# =========================================================================


class TestLoadYaml:
    def test_returns_empty_dict_for_nonexistent_file(self):
        result = load_yaml(Path("/nonexistent/path/config.yaml"))
        assert result == {}

    def test_loads_yaml_file(self, tmp_path):
        config_file = tmp_path / "test.yaml"
        config_file.write_text("key: value\nnested:\n  a: 1\n")
        result = load_yaml(config_file)
        assert result == {"key": "value", "nested": {"a": 1}}

    def test_returns_empty_dict_for_empty_file(self, tmp_path):
        config_file = tmp_path / "empty.yaml"
        config_file.write_text("")
        assert load_yaml(config_file) == {}


# =========================================================================
# _expand_env_vars
# =========================================================================


class TestExpandEnvVars:
    def test_expands_simple_variable(self):
        with patch.dict(os.environ, {"MY_VAR": "hello"}):
            result = _expand_env_vars("prefix-${MY_VAR}-suffix")
            assert result == "prefix-hello-suffix"

    def test_expands_variable_with_default(self):
        with patch.dict(os.environ, {}, clear=True):
            result = _expand_env_vars("${MISSING_VAR:-fallback}")
            assert result == "fallback"

    def test_uses_env_value_over_default(self):
        with patch.dict(os.environ, {"MY_VAR": "real_value"}):
            result = _expand_env_vars("${MY_VAR:-fallback}")
            assert result == "real_value"

    def test_expands_in_nested_structures(self):
        with patch.dict(os.environ, {"HOST": "broker"}):
            result = _expand_env_vars({"a": {"url": "http://${HOST}"}, "list": ["${HOST}", 1]})
            assert result == {"a": {"url": "http://broker"}, "list": ["broker", 1]}

    def test_returns_non_string_unchanged(self):
        assert _expand_env_vars(42) == 42
        assert _expand_env_vars(None) is None

    def test_keeps_literal_when_no_env_var(self):
        with patch.dict(os.environ, {}, clear=True):
            # Without default, the ${VAR} stays as-is
            assert _expand_env_vars("${UNDEFINED_VAR}") == "${UNDEFINED_VAR}"

    def test_empty_default_value(self):
        with patch.dict(os.environ, {}, clear=True):
            assert _expand_env_vars("${MISSING:-}") == ""


# =========================================================================
# _deep_merge
# =========================================================================


class TestDeepMerge:
    def test_merges_nested_dicts(self):
        result = _deep_merge({"a": {"x": 1, "y": 2}}, {"a": {"y": 3}})
        assert result == {"a": {"x": 1, "y": 3}}

    def test_does_not_modify_original(self):
        base = {"a": 1}
        _deep_merge(base, {"a": 2})
        assert base == {"a": 1}


# =========================================================================
# NakadiSettings
# =========================================================================


class TestNakadiSettings:
    def test_default_values(self):
        settings = NakadiSettings()
        assert settings.url == "http://localhost:8080"
        assert settings.timeout_seconds == 30.0
        assert settings.stream_read_timeout_seconds is None
        assert settings.token_provider() is None

    def test_validate_accepts_defaults(self):
        NakadiSettings().validate()

    def test_validate_rejects_non_http_url(self):
        with pytest.raises(ValueError, match="http"):
            NakadiSettings(url="ftp://broker").validate()

    def test_validate_rejects_url_without_host(self):
        with pytest.raises(ValueError, match="nakadi.url"):
            NakadiSettings(url="http://").validate()

    def test_validate_rejects_non_positive_timeout(self):
        with pytest.raises(ValueError, match="timeout_seconds"):
            NakadiSettings(timeout_seconds=0).validate()

    def test_validate_rejects_non_positive_stream_read_timeout(self):
        with pytest.raises(ValueError, match="stream_read_timeout_seconds"):
            NakadiSettings(stream_read_timeout_seconds=-1).validate()

    def test_literal_token_wins(self, tmp_path):
        token_file = tmp_path / "token"
        token_file.write_text("from-file")
        settings = NakadiSettings(token="literal", token_file=str(token_file), token_env="NAKADI_TOKEN")
        assert settings.token_provider()() == "literal"

    def test_token_file_before_env(self, tmp_path):
        token_file = tmp_path / "token"
        token_file.write_text("from-file\n")
        settings = NakadiSettings(token_file=str(token_file), token_env="NAKADI_TOKEN")
        with patch.dict(os.environ, {"NAKADI_TOKEN": "from-env"}):
            assert settings.token_provider()() == "from-file"

    def test_token_env(self):
        settings = NakadiSettings(token_env="NAKADI_TOKEN")
        provider = settings.token_provider()
        with patch.dict(os.environ, {"NAKADI_TOKEN": "from-env"}):
            assert provider() == "from-env"
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(TokenError):
                provider()

    def test_to_dict_masks_token(self):
        assert NakadiSettings(token="secret").to_dict()["token"] == "***"
        assert NakadiSettings().to_dict()["token"] == ""


# =========================================================================
# load_config
# =========================================================================


class TestLoadConfig:
    def _write_config(self, tmp_path, data):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.dump(data))
        return config_file

    def test_raises_for_missing_file(self):
        with pytest.raises(FileNotFoundError):
            load_config(Path("/nonexistent/config.yaml"))

    def test_raises_for_missing_nakadi_section(self, tmp_path):
        config_file = self._write_config(tmp_path, {"broker": {}})
        with pytest.raises(ValueError, match="missing 'nakadi:'"):
            load_config(config_file)

    def test_loads_minimal_config(self, tmp_path):
        config_file = self._write_config(tmp_path, {"nakadi": {}})
        config = load_config(config_file)
        assert isinstance(config, NakadiSettings)
        assert config.url == "http://localhost:8080"
        assert config.timeout_seconds == 30.0

    def test_loads_all_fields(self, tmp_path):
        data = {
            "nakadi": {
                "url": "https://nakadi.example.org/",
                "timeout_seconds": 5,
                "stream_read_timeout_seconds": 90,
                "token_env": "NAKADI_TOKEN",
            }
        }
        config = load_config(self._write_config(tmp_path, data))
        assert config.url == "https://nakadi.example.org"
        assert config.timeout_seconds == 5.0
        assert config.stream_read_timeout_seconds == 90.0
        assert config.token_env == "NAKADI_TOKEN"

    def test_expands_env_vars_in_file(self, tmp_path):
        data = {"nakadi": {"url": "http://${BROKER_HOST:-localhost}:8080"}}
        config_file = self._write_config(tmp_path, data)
        with patch.dict(os.environ, {"BROKER_HOST": "nakadi.internal"}):
            config = load_config(config_file)
        assert config.url == "http://nakadi.internal:8080"

    def test_env_overrides_file(self, tmp_path):
        data = {"nakadi": {"url": "http://from-file:8080", "timeout_seconds": 5}}
        config_file = self._write_config(tmp_path, data)
        with patch.dict(os.environ, {"NAKADI_URL": "http://from-env:8080", "NAKADI_TIMEOUT_SECONDS": "12.5"}):
            config = load_config(config_file)
        assert config.url == "http://from-env:8080"
        assert config.timeout_seconds == 12.5

    def test_invalid_timeout_raises(self, tmp_path):
        config_file = self._write_config(tmp_path, {"nakadi": {"timeout_seconds": "soon"}})
        with pytest.raises(ValueError, match="must be a number"):
            load_config(config_file)

    def test_validation_runs(self, tmp_path):
        config_file = self._write_config(tmp_path, {"nakadi": {"timeout_seconds": -5}})
        with pytest.raises(ValueError, match="must be > 0"):
            load_config(config_file)

    def test_applies_overrides(self, tmp_path):
        config_file = self._write_config(tmp_path, {"nakadi": {"timeout_seconds": 5}})
        config = load_config(config_file, overrides={"timeout_seconds": 7})
        assert config.timeout_seconds == 7.0

    def test_default_config_file_loads(self):
        config = load_config(DEFAULT_CONFIG_FILE)
        assert config.url == "http://localhost:8080"
        assert config.stream_read_timeout_seconds == 60.0
        assert config.token_provider() is None


# =========================================================================
# Singleton helpers
# =========================================================================


class TestConfigSingleton:
    def test_set_and_get(self):
        settings = NakadiSettings(url="http://broker:8080")
        set_config(settings)
        assert get_config() is settings

    def test_reset_forces_reload(self):
        set_config(NakadiSettings(url="http://broker:8080"))
        reset_config()
        assert get_config().url == "http://localhost:8080"


# =========================================================================
# Validation tool (python -m config.config)
# =========================================================================


class TestConfigTool:
    def _run(self, monkeypatch, *argv):
        monkeypatch.setattr("sys.argv", ["config.config", *argv])
        return _cli_main()

    def _write_config(self, tmp_path, section):
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.dump({"nakadi": section}))
        return config_file

    def test_no_action_prints_help(self, monkeypatch, capsys):
        assert self._run(monkeypatch) == 0
        assert "usage:" in capsys.readouterr().out

    def test_validate_passes(self, monkeypatch, capsys, tmp_path):
        config_file = self._write_config(tmp_path, {"url": "http://broker:8080"})

        assert self._run(monkeypatch, "--config", str(config_file), "--validate") == 0
        assert "validation passed" in capsys.readouterr().out

    def test_show_json_masks_token(self, monkeypatch, capsys, tmp_path):
        config_file = self._write_config(tmp_path, {"url": "http://broker:8080", "token": "secret"})

        assert self._run(monkeypatch, "--config", str(config_file), "--validate", "--show", "--json") == 0

        output = json.loads(capsys.readouterr().out)
        assert output["validation"] == {"passed": True, "errors": []}
        assert output["config"]["url"] == "http://broker:8080"
        assert output["config"]["token"] == "***"

    def test_invalid_config_exits_with_error(self, monkeypatch, capsys, tmp_path):
        config_file = self._write_config(tmp_path, {"url": "ftp://broker", "timeout_seconds": 5})

        assert self._run(monkeypatch, "--config", str(config_file), "--validate", "--json") == 1
        assert "http(s) URL" in json.loads(capsys.readouterr().out)["error"]

    def test_missing_file_exits_with_error(self, monkeypatch, capsys, tmp_path):
        assert self._run(monkeypatch, "--config", str(tmp_path / "missing.yaml"), "--validate") == 1
        assert "Configuration file not found" in capsys.readouterr().err

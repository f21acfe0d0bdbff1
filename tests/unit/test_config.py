import json
import stat

import pytest

from claude_langfuse.utils.config import (
    Settings,
    default_config_file,
    load_config_file,
    save_config,
)


def test_defaults():
    settings = Settings()

    assert settings.host == "http://localhost:3001"
    assert settings.model == "claude-code"
    assert settings.source == "claude_code_monitor"
    assert settings.user_trace_name == "claude_code_user"
    assert settings.assistant_trace_name == "claude_response"
    assert settings.user_id
    assert settings.batch_size == 10
    assert settings.debounce_seconds == 0.5
    assert settings.flush_interval_seconds == 5.0
    assert settings.request_timeout_seconds == 30.0
    assert settings.has_credentials() is False


def test_config_file_overrides_defaults(isolated_config):
    isolated_config.mkdir()
    (isolated_config / "config.json").write_text(
        json.dumps({"host": "https://cloud.langfuse.com", "publicKey": "pk", "model": ""})
    )

    settings = Settings()

    assert settings.host == "https://cloud.langfuse.com"
    assert settings.public_key == "pk"
    assert settings.model == "claude-code"


def test_env_overrides_config_file(isolated_config, monkeypatch):
    isolated_config.mkdir()
    (isolated_config / "config.json").write_text(
        json.dumps({"host": "https://from-file", "secretKey": "file-secret"})
    )
    monkeypatch.setenv("LANGFUSE_HOST", "https://from-env")
    monkeypatch.setenv("LANGFUSE_PUBLIC_KEY", "env-public")
    monkeypatch.setenv("CLAUDE_LANGFUSE_MODEL", "env-model")
    monkeypatch.setenv("CLAUDE_LANGFUSE_SOURCE", "")

    settings = Settings()

    assert settings.host == "https://from-env"
    assert settings.public_key == "env-public"
    assert settings.secret_key == "file-secret"
    assert settings.model == "env-model"
    assert settings.source == "claude_code_monitor"
    assert settings.has_credentials() is True


def test_malformed_config_file_is_ignored(isolated_config):
    isolated_config.mkdir()
    (isolated_config / "config.json").write_text("{not json")

    assert Settings().host == "http://localhost:3001"


def test_save_config_merges_non_empty_values(isolated_config):
    path = save_config({"host": "https://a", "publicKey": "pk"})
    save_config({"host": "", "secretKey": "sk"})

    assert path == default_config_file()
    assert load_config_file() == {"host": "https://a", "publicKey": "pk", "secretKey": "sk"}
    assert stat.S_IMODE(path.stat().st_mode) == 0o600


def test_save_config_rejects_unknown_keys():
    with pytest.raises(KeyError):
        save_config({"colour": "blue"})


def test_load_config_file_missing():
    assert load_config_file() == {}


def test_save_config_creates_file_owner_only(isolated_config, monkeypatch):
    # File must be 0600 from creation, not only after a later chmod
    monkeypatch.setattr(type(isolated_config), "chmod", lambda self, mode: None)

    path = save_config({"secretKey": "sk"})

    assert stat.S_IMODE(path.stat().st_mode) == 0o600

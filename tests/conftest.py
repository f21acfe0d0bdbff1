import pytest

from claude_langfuse.utils.config import get_settings

MONITOR_ENV_VARS = [
    "LANGFUSE_HOST",
    "LANGFUSE_PUBLIC_KEY",
    "LANGFUSE_SECRET_KEY",
    "CLAUDE_LANGFUSE_USER_ID",
    "CLAUDE_LANGFUSE_MODEL",
    "CLAUDE_LANGFUSE_SOURCE",
    "CLAUDE_LANGFUSE_USER_TRACE_NAME",
    "CLAUDE_LANGFUSE_ASSISTANT_TRACE_NAME",
    "CLAUDE_LANGFUSE_CLAUDE_PROJECTS_DIR",
    "CLAUDE_LANGFUSE_BATCH_SIZE",
]


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep the user's config file and environment out of the tests."""
    for name in MONITOR_ENV_VARS:
        monkeypatch.delenv(name, raising=False)

    config_dir = tmp_path / "config-home"
    monkeypatch.setenv("CLAUDE_LANGFUSE_CONFIG_DIR", str(config_dir))
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield config_dir
    get_settings.cache_clear()

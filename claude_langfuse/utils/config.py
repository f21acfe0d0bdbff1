"""
Configuration management for the Claude Langfuse monitor.

Uses pydantic-settings to load configuration from, in order of precedence:
explicit arguments, environment variables, the JSON config file in
``~/.claude-langfuse/config.json`` and built-in defaults.
"""

import getpass
import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Type

from loguru import logger
from pydantic import Field
from pydantic.fields import FieldInfo
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)

# camelCase keys used in the config file -> Settings field names
FILE_KEYS: Dict[str, str] = {
    "host": "host",
    "publicKey": "public_key",
    "secretKey": "secret_key",
    "userId": "user_id",
    "model": "model",
    "source": "source",
    "userTraceName": "user_trace_name",
    "assistantTraceName": "assistant_trace_name",
}


def default_config_dir() -> Path:
    """Directory holding the config file (override with CLAUDE_LANGFUSE_CONFIG_DIR)."""
    override = os.environ.get("CLAUDE_LANGFUSE_CONFIG_DIR")
    if override:
        return Path(override).expanduser()
    return Path.home() / ".claude-langfuse"


def default_config_file() -> Path:
    """Path of the JSON config file."""
    return default_config_dir() / "config.json"


def load_config_file(path: Optional[Path] = None) -> Dict[str, Any]:
    """
    Read the raw config file.

    Returns an empty mapping when the file is missing. Raises ValueError when
    the file exists but does not hold a JSON object.
    """
    path = path or default_config_file()
    if not path.exists():
        return {}

    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError(f"Config file {path} must contain a JSON object")
    return data


def save_config(values: Dict[str, Any], path: Optional[Path] = None) -> Path:
    """
    Merge non-empty ``values`` (camelCase keys) into the config file.

    Args:
        values: Mapping of config file keys to new values
        path: Target file, defaults to the standard location

    Returns:
        Path of the written file
    """
    path = path or default_config_file()

    try:
        current = load_config_file(path)
    except (OSError, ValueError) as e:
        logger.warning(f"Ignoring unreadable config file {path}: {e}")
        current = {}

    for key, value in values.items():
        if key not in FILE_KEYS:
            raise KeyError(f"Unknown config key: {key}")
        if value:
            current[key] = value

    path.parent.mkdir(parents=True, exist_ok=True)
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(json.dumps(current, indent=2))
    # O_CREAT mode does not apply to a file that already exists
    path.chmod(0o600)
    return path


def _current_username() -> str:
    try:
        return getpass.getuser()
    except Exception:
        return "unknown"


class ConfigFileSettingsSource(PydanticBaseSettingsSource):
    """Settings source backed by the camelCase JSON config file."""

    def __init__(self, settings_cls: Type[BaseSettings], path: Optional[Path] = None):
        super().__init__(settings_cls)
        self.path = path or default_config_file()

        try:
            self._data = load_config_file(self.path)
        except (OSError, ValueError) as e:
            logger.debug(f"Config file {self.path} ignored: {e}")
            self._data = {}

    def get_field_value(self, field: FieldInfo, field_name: str) -> Tuple[Any, str, bool]:
        for file_key, name in FILE_KEYS.items():
            if name == field_name:
                return self._data.get(file_key), file_key, False
        return None, field_name, False

    def __call__(self) -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        for field_name, field in self.settings_cls.model_fields.items():
            value, _, _ = self.get_field_value(field, field_name)
            # Empty values never override defaults
            if value not in (None, ""):
                # Same key as the env source so precedence merges cleanly
                key = field.validation_alias if isinstance(field.validation_alias, str) else field_name
                values[key] = value
        return values


class Settings(BaseSettings):
    """Monitor settings loaded from environment and config file."""

    # Langfuse connection
    host: str = Field(default="http://localhost:3001", validation_alias="LANGFUSE_HOST")
    public_key: str = Field(default="", validation_alias="LANGFUSE_PUBLIC_KEY")
    secret_key: str = Field(default="", validation_alias="LANGFUSE_SECRET_KEY")

    # Trace metadata
    user_id: str = Field(default_factory=_current_username)
    model: str = "claude-code"
    source: str = "claude_code_monitor"
    user_trace_name: str = "claude_code_user"
    assistant_trace_name: str = "claude_response"

    # Conversation source
    claude_projects_dir: Path = Path.home() / ".claude" / "projects"
    history_hours: int = 24

    # Watcher tuning
    debounce_seconds: float = 0.5
    debounce_tick_seconds: float = 0.1
    max_dispatch_workers: int = 8

    # Delivery tuning
    batch_size: int = 10
    flush_interval_seconds: float = 5.0
    request_timeout_seconds: float = 30.0

    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="CLAUDE_LANGFUSE_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore"
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            ConfigFileSettingsSource(settings_cls),
            file_secret_settings,
        )

    def has_credentials(self) -> bool:
        """Whether both Langfuse keys are configured."""
        return bool(self.public_key and self.secret_key)

    def get_projects_dir(self) -> Path:
        """Expanded Claude projects directory."""
        return Path(self.claude_projects_dir).expanduser()


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()

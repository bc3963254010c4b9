"""Configuration management for the marine workflow engine."""

from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

_config_logger = logging.getLogger(__name__)


class LoggingSettings(BaseModel):
    level: str = Field(default="INFO", description="Python logging level name")
    file: str | None = Field(default=None, description="Optional log file path")


class StorageSettings(BaseModel):
    backend: Literal["sqlite", "memory"] = Field(default="sqlite")
    sqlite_path: str = Field(default="./data/marine_workflow.sqlite")
    sqlite_wal: bool = Field(default=True)


class PolicySettings(BaseModel):
    path: str | None = Field(
        default=None,
        description="Path to an access policy YAML file; the bundled policy is used when unset",
    )


class ServerSettings(BaseModel):
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000, ge=1024, le=65535)
    identity_id_header: str = Field(default="x-caller-id")
    identity_role_header: str = Field(default="x-caller-role")

    @field_validator("identity_id_header", "identity_role_header")
    @classmethod
    def _normalize_header(cls, value: str) -> str:
        value = value.strip().lower()
        if not value:
            raise ValueError("Identity header names must not be empty")
        return value


class Settings(BaseModel):
    server: ServerSettings = Field(default_factory=ServerSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    policy: PolicySettings = Field(default_factory=PolicySettings)


ENV_KEYS = {
    "host": "HTTP_HOST",
    "port": "HTTP_PORT",
    "identity_id_header": "IDENTITY_ID_HEADER",
    "identity_role_header": "IDENTITY_ROLE_HEADER",
    "log_level": "LOG_LEVEL",
    "log_file": "LOG_FILE",
    "storage_backend": "STORAGE_BACKEND",
    "sqlite_path": "SQLITE_PATH",
    "sqlite_wal": "SQLITE_WAL",
    "policy_path": "POLICY_PATH",
}

_TRUE_VALUES = frozenset({"1", "true", "yes"})


def _project_root() -> Path:
    return Path(__file__).resolve().parents[2]


def _resolve_path(path: str) -> str:
    candidate = Path(path)
    root = _project_root().resolve()
    if candidate.is_absolute():
        resolved = candidate.resolve()
    else:
        resolved = (root / candidate).resolve()
    if not resolved.is_relative_to(root):
        raise ValueError(f"Path traversal detected: '{path}' resolves outside project root")
    return str(resolved)


def _env_bool(key: str, default: bool) -> bool:
    value = os.getenv(key)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_int(key: str, default: int) -> int:
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        _config_logger.warning(
            "Invalid integer value for %s: %r, using default %d", key, value, default
        )
        return default


def load_settings() -> Settings:
    """Load configuration and cache the result."""

    return _load_settings_cached()


@lru_cache(maxsize=1)
def _load_settings_cached() -> Settings:
    load_dotenv(dotenv_path=_project_root() / ".env")
    log_file_env = os.getenv(ENV_KEYS["log_file"])
    policy_path_env = os.getenv(ENV_KEYS["policy_path"], "").strip()

    settings_data: dict[str, object] = {
        "server": {
            "host": os.getenv(ENV_KEYS["host"], ServerSettings().host),
            "port": _env_int(ENV_KEYS["port"], ServerSettings().port),
            "identity_id_header": os.getenv(
                ENV_KEYS["identity_id_header"], ServerSettings().identity_id_header
            ),
            "identity_role_header": os.getenv(
                ENV_KEYS["identity_role_header"], ServerSettings().identity_role_header
            ),
        },
        "logging": {
            "level": os.getenv(ENV_KEYS["log_level"], LoggingSettings().level),
            "file": _resolve_path(log_file_env) if log_file_env else None,
        },
        "storage": {
            "backend": os.getenv(ENV_KEYS["storage_backend"], StorageSettings().backend)
            .strip()
            .lower(),
            "sqlite_path": _resolve_path(
                os.getenv(ENV_KEYS["sqlite_path"], StorageSettings().sqlite_path)
            ),
            "sqlite_wal": _env_bool(ENV_KEYS["sqlite_wal"], StorageSettings().sqlite_wal),
        },
        "policy": {
            "path": _resolve_path(policy_path_env) if policy_path_env else None,
        },
    }

    try:
        settings = Settings.model_validate(settings_data)
    except ValidationError as exc:
        raise RuntimeError(f"Invalid configuration: {exc}") from exc

    if settings.server.identity_id_header == settings.server.identity_role_header:
        raise RuntimeError(
            "Invalid configuration: IDENTITY_ID_HEADER and IDENTITY_ROLE_HEADER "
            "must name different headers"
        )

    if settings.storage.backend == "sqlite":
        Path(settings.storage.sqlite_path).parent.mkdir(parents=True, exist_ok=True)

    return settings

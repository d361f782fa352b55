"""Configuration utilities for the Plan Service.

Each setting is resolved from the first source that provides it:
1. environment variables,
2. optional text files under `config/`,
3. `plan_service_config.json` at the project root,
4. built-in defaults.
Pydantic models then enforce value constraints.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator


CONFIG_DIR = Path("config")
ROOT_CONFIG_FILE = Path("plan_service_config.json")
DEFAULT_STORE_URL = "sqlite:///./plan_store.db"
DEFAULT_PORT = 3000
logger = logging.getLogger(__name__)


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        # Recoverable: an unreadable override falls through to the next source
        logger.warning("Failed to read override %s: %s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


def _as_bool(text: Optional[str]) -> bool:
    return str(text or "").strip().lower() in {"1", "true", "yes", "on"}


class StoreConfig(BaseModel):
    url: str
    pool_pre_ping: bool = Field(default=True)

    @field_validator("url")
    @classmethod
    def url_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("store.url must be a non-empty string")
        return v


class ServerConfig(BaseModel):
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=DEFAULT_PORT, gt=0, lt=65536)


class PlanConfig(BaseModel):
    schema_path: Optional[str] = None
    strict_create: bool = Field(default=False)


class AppConfig(BaseModel):
    store: StoreConfig
    server: ServerConfig = Field(default_factory=ServerConfig)
    plans: PlanConfig = Field(default_factory=PlanConfig)
    log_level: str = Field(default="INFO")

    @field_validator("log_level")
    @classmethod
    def log_level_must_be_known(cls, v: str) -> str:
        allowed = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        level = str(v).strip().upper()
        if level not in allowed:
            raise ValueError(f"log_level must be one of {sorted(allowed)}")
        return level


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def load_config() -> AppConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in `config/` (optional)
    3) plan_service_config.json at project root (primary base)
    4) Safe defaults for development
    """

    base = _read_json_file(ROOT_CONFIG_FILE)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        return str(cur) if cur is not None else default

    # Store
    store_url = (
        _env("STORE_URL")
        or _env("DATABASE_URL")
        or _read_config_file("store.url")
        or _base("store.url")
        or DEFAULT_STORE_URL
    )
    pre_ping_text = _env("STORE_POOL_PRE_PING") or _read_config_file("store.pool_pre_ping") or _base("store.pool_pre_ping", "true")

    # Server
    host = _env("HOST") or _read_config_file("server.host") or _base("server.host", "0.0.0.0")
    port_text = _env("PORT") or _read_config_file("server.port") or _base("server.port", str(DEFAULT_PORT))

    # Plans
    schema_path = _env("PLAN_SCHEMA_PATH") or _read_config_file("plans.schema_path") or _base("plans.schema_path")
    strict_text = _env("PLAN_STRICT_CREATE") or _read_config_file("plans.strict_create") or _base("plans.strict_create", "false")

    log_level = _env("LOG_LEVEL") or _read_config_file("log.level") or _base("log_level", "INFO")

    try:
        port = int(str(port_text).strip())
    except ValueError as e:
        logger.error("Invalid server port %r: %s", port_text, e)
        raise ValueError(f"server.port must be an integer, got {port_text!r}") from e

    try:
        cfg = AppConfig(
            store=StoreConfig(url=store_url, pool_pre_ping=_as_bool(pre_ping_text)),
            server=ServerConfig(host=str(host).strip(), port=port),
            plans=PlanConfig(schema_path=schema_path, strict_create=_as_bool(strict_text)),
            log_level=str(log_level),
        )
        return cfg
    except PydanticValidationError as e:
        logger.error("Invalid application configuration: %s", e)
        raise


__all__ = [
    "AppConfig",
    "StoreConfig",
    "ServerConfig",
    "PlanConfig",
    "load_config",
]

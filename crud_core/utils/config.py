"""Settings loader with .env support plus the YAML/TOML database config file."""

from __future__ import annotations

import logging
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional, Set

import yaml
from pydantic import BaseModel, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from crud_core.errors import ConfigError
from crud_core.utils.env import load_env

load_env()

logger = logging.getLogger(__name__)

YAML_SUFFIXES = {".yaml", ".yml"}
TOML_SUFFIXES = {".toml"}


class Settings(BaseSettings):
    """Gateway configuration."""

    # --- 数据库 ---
    database_url: Optional[str] = Field(default=None, validation_alias="DATABASE_URL")
    database_type: Optional[str] = Field(default=None, validation_alias="DATABASE_TYPE")
    database_schema: Optional[str] = Field(default=None, validation_alias="DATABASE_SCHEMA")
    database_echo: bool = Field(default=False, validation_alias="DATABASE_ECHO")
    config_file: Optional[str] = Field(default=None, validation_alias="CRUD_CONFIG_FILE")

    # --- 浏览/编辑 ---
    default_page_size: int = Field(default=20, ge=1, validation_alias="CRUD_DEFAULT_PAGE_SIZE")
    max_page_size: int = Field(default=200, ge=1, validation_alias="CRUD_MAX_PAGE_SIZE")
    read_only: bool = Field(default=False, validation_alias="CRUD_READ_ONLY")
    table_allowlist: Optional[str] = Field(default=None, validation_alias="CRUD_TABLE_ALLOWLIST")
    api_token: Optional[str] = Field(default=None, validation_alias="CRUD_API_TOKEN")

    # --- HTTP / 日志 ---
    admin_portal_origins: str = Field(default="", validation_alias="ADMIN_PORTAL_ORIGINS")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file_path: Optional[str] = Field(default=None, validation_alias="LOG_FILE_PATH")

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="allow",
    )

    @property
    def allowed_tables(self) -> Optional[Set[str]]:
        """None means every table is visible."""
        if not self.table_allowlist:
            return None
        names = {item.strip() for item in self.table_allowlist.split(",") if item.strip()}
        return names or None


class DatabaseConfig(BaseModel):
    """The ``database`` section of the config file after env overrides."""

    type: Optional[str] = None
    connection_string: str
    schema_name: Optional[str] = Field(default=None, alias="schema")
    echo: bool = False

    model_config = {"populate_by_name": True}


def load_config_file(path: str | Path) -> Dict[str, Any]:
    """Parse a YAML or TOML config file into a plain dict."""

    file_path = Path(path).expanduser()
    if not file_path.is_file():
        raise ConfigError(f"Config file not found: {file_path}")

    suffix = file_path.suffix.lower()
    try:
        if suffix in YAML_SUFFIXES:
            data = yaml.safe_load(file_path.read_text(encoding="utf-8"))
        elif suffix in TOML_SUFFIXES:
            with file_path.open("rb") as fp:
                data = tomllib.load(fp)
        else:
            raise ConfigError(f"Unsupported config file format: {file_path.name}")
    except yaml.YAMLError as exc:
        raise ConfigError(f"Invalid YAML in {file_path}: {exc}") from exc
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Invalid TOML in {file_path}: {exc}") from exc

    if data is None:
        logger.warning("Empty config file at %s", file_path)
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {file_path} must contain a mapping at the top level")
    return data


def get_database_config(settings: Optional[Settings] = None) -> DatabaseConfig:
    """Merge the config file's ``database`` section with environment overrides.

    ``DATABASE_URL``/``DATABASE_TYPE``/``DATABASE_SCHEMA`` win over the file.
    """

    settings = settings or get_settings()
    section: Dict[str, Any] = {}
    if settings.config_file:
        raw = load_config_file(settings.config_file)
        section = dict(raw.get("database") or {})

    if settings.database_url:
        section["connection_string"] = settings.database_url
    if settings.database_type:
        section["type"] = settings.database_type
    if settings.database_schema:
        section["schema"] = settings.database_schema
    if settings.database_echo:
        section["echo"] = True

    if not section.get("connection_string"):
        raise ConfigError("缺少数据库连接配置：设置 DATABASE_URL 或 CRUD_CONFIG_FILE")
    try:
        return DatabaseConfig.model_validate(section)
    except ValidationError as exc:
        raise ConfigError(f"Invalid database configuration: {exc}") from exc


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()

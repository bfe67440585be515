from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

from core.exceptions import ConfigurationError

# Load .env file from project root
_env_path = Path(__file__).parent.parent / ".env"
if _env_path.exists():
    load_dotenv(_env_path)


LOG_LEVELS = {
    "debug": "DEBUG",
    "info": "INFO",
    "warn": "WARNING",
    "warning": "WARNING",
    "error": "ERROR",
}


class ServerSettings(BaseModel):
    port: int = Field(8080, ge=1, le=65535)
    mode: Literal["debug", "release"] = "release"
    domain: str = ""
    cors_origins: list[str] = Field(default_factory=lambda: ["*"])


class LogFileSettings(BaseModel):
    path: Path = Path("logs/media-transfer.log")
    max_size: int = Field(100, ge=1)  # MB
    max_age: int = Field(30, ge=0)  # days
    max_backups: int = Field(10, ge=0)
    compress: bool = True


class LoggerSettings(BaseModel):
    level: str = "INFO"
    output: Literal["console", "file", "both"] = "console"
    file: LogFileSettings = Field(default_factory=LogFileSettings)

    @field_validator("level", mode="before")
    @classmethod
    def _normalize_level(cls, value: object) -> str:
        # Unknown levels fall back to info rather than failing startup.
        return LOG_LEVELS.get(str(value or "").strip().lower(), "INFO")


class StorageSettings(BaseModel):
    endpoint: str
    bucket: str
    region: str | None = None
    access_key_id: str | None = None
    access_key_secret: str | None = None
    access_key_id_env: str = "OSS_ACCESS_KEY_ID"
    access_key_secret_env: str = "OSS_ACCESS_KEY_SECRET"
    key_prefix: str = "outputs"

    @field_validator("endpoint")
    @classmethod
    def _strip_scheme(cls, value: str) -> str:
        value = value.strip()
        for scheme in ("https://", "http://"):
            if value.startswith(scheme):
                value = value[len(scheme):]
        return value.rstrip("/")

    @field_validator("key_prefix")
    @classmethod
    def _strip_slashes(cls, value: str) -> str:
        value = value.strip().strip("/")
        if not value:
            raise ValueError("key_prefix must not be empty")
        return value

    @property
    def credentials(self) -> tuple[str | None, str | None]:
        key_id = self.access_key_id or os.getenv(self.access_key_id_env)
        secret = self.access_key_secret or os.getenv(self.access_key_secret_env)
        return key_id, secret


class MediaTransferSettings(BaseModel):
    # download_timeout, retry_count and allowed_domains are accepted for
    # compatibility with existing config files; the transfer path ignores them.
    download_timeout: int = 0
    retry_count: int = 0
    allowed_domains: list[str] = Field(default_factory=list)
    chunk_size: int = Field(64 * 1024, ge=1024)


class Settings(BaseModel):
    server: ServerSettings = Field(default_factory=ServerSettings)
    logger: LoggerSettings = Field(default_factory=LoggerSettings)
    storage: StorageSettings
    media_transfer: MediaTransferSettings = Field(default_factory=MediaTransferSettings)

    @classmethod
    def load(cls, path: Path | None = None) -> "Settings":
        """Load settings from YAML configuration file.

        Args:
            path: Optional path to configuration file. If not provided, uses
                ``config/<TRANSFER_CONFIG>`` where the environment variable
                defaults to ``local.yaml``.

        Returns:
            Settings instance with loaded configuration.

        Raises:
            ConfigurationError: If the file is missing or its content is invalid.
        """
        config_path = path or Path("config") / os.getenv("TRANSFER_CONFIG", "local.yaml")
        if not config_path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {config_path}",
                {"path": str(config_path)},
            )
        with config_path.open("r", encoding="utf-8") as fp:
            try:
                payload = yaml.safe_load(fp) or {}
            except yaml.YAMLError as exc:
                raise ConfigurationError(f"Malformed configuration: {exc}", {"path": str(config_path)}) from exc
        try:
            return cls(**payload)
        except Exception as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}", {"path": str(config_path)}) from exc


@lru_cache(maxsize=1)
def get_settings(path: str | None = None) -> Settings:
    return Settings.load(Path(path) if path else None)


__all__ = [
    "Settings",
    "ServerSettings",
    "LoggerSettings",
    "LogFileSettings",
    "StorageSettings",
    "MediaTransferSettings",
    "get_settings",
]

"""
Configuration settings for kvindex.

Uses Pydantic Settings to load environment variables for store selection,
PostgreSQL connectivity and logging.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Store
    store_backend: Literal["memory", "postgres"] = Field("postgres", alias="STORE_BACKEND")
    store_ready_attempts: int = Field(3, ge=1, alias="STORE_READY_ATTEMPTS")

    # Database (postgres backend)
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("kvindex", alias="DB_NAME")
    db_connect_timeout: int = Field(5, ge=1, alias="DB_CONNECT_TIMEOUT")
    pool_min_size: int = Field(1, ge=0, alias="POOL_MIN_SIZE")
    pool_max_size: int = Field(10, ge=1, alias="POOL_MAX_SIZE")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]

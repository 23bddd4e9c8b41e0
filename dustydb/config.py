"""
Configuration settings for DustyDB.

Uses Pydantic Settings to load environment variables for store selection,
PostgreSQL connections, logging and the unknown-attribute policy.
"""
from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

StoreBackend = Literal["memory", "file", "postgres"]
UnknownAttributePolicy = Literal["ignore", "reject"]


class Settings(BaseSettings):
    # Store
    store_backend: StoreBackend = Field("file", alias="DUSTYDB_STORE")
    store_path: str = Field("dusty.db", alias="DUSTYDB_PATH")
    retry_attempts: int = Field(3, alias="DUSTYDB_RETRY_ATTEMPTS", ge=1)

    # Records
    unknown_attributes: UnknownAttributePolicy = Field(
        "ignore", alias="DUSTYDB_UNKNOWN_ATTRIBUTES"
    )

    # PostgreSQL store
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("dustydb", alias="DB_NAME")
    db_table: str = Field("dustydb_records", alias="DB_TABLE")
    db_pool_min_size: int = Field(1, alias="DB_POOL_MIN_SIZE", ge=0)
    db_pool_max_size: int = Field(10, alias="DB_POOL_MAX_SIZE", ge=1)

    # Logging
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    json_logs: bool = Field(False, alias="LOG_JSON")

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


__all__ = ["Settings", "StoreBackend", "UnknownAttributePolicy", "get_settings"]

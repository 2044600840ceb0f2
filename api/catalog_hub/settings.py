# catalog_hub/settings.py
"""
Catalog Hub Settings - PostgreSQL connection, logging and merge defaults.
"""
from __future__ import annotations
from pathlib import Path
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, AliasChoices

class Settings(BaseSettings):
    # =========================================================================
    # File Storage (logs)
    # =========================================================================
    CATALOG_DATA_ROOT: Path = Field(
        default=(Path(__file__).resolve().parents[2] / "catalog-data"),
        validation_alias=AliasChoices("CATALOG_DATA_ROOT", "catalog_data_root"),
    )
    LOG_LEVEL: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    LOG_TO_CONSOLE: bool = Field(default=False, validation_alias="LOG_TO_CONSOLE")

    # =========================================================================
    # PostgreSQL Database
    # =========================================================================
    DB_HOST: str = Field(default="localhost", validation_alias="DB_HOST")
    DB_PORT: int = Field(default=5432, validation_alias="DB_PORT")
    DB_NAME: str = Field(default="catalog_hub", validation_alias="DB_NAME")
    DB_USER: str = Field(default="postgres", validation_alias="DB_USER")
    DB_PASSWORD: str = Field(default="postgres", validation_alias="DB_PASSWORD")

    # Connection pool settings
    DB_POOL_SIZE: int = Field(default=5, validation_alias="DB_POOL_SIZE")
    DB_MAX_OVERFLOW: int = Field(default=10, validation_alias="DB_MAX_OVERFLOW")
    DB_ECHO: bool = Field(default=False, validation_alias="DB_ECHO")
    DB_CREATE_ALL: bool = Field(
        default=False,
        validation_alias="DB_CREATE_ALL",
        description="Create missing tables at startup (local/dev databases)",
    )

    # Full URL override (e.g. sqlite+aiosqlite:///./catalog.db for local runs)
    DATABASE_URL: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("DATABASE_URL", "catalog_database_url"),
    )

    # =========================================================================
    # Business defaults
    # =========================================================================
    MERGED_SKU_PREFIX: str = Field(
        default="MERGED-",
        description="Prefix of the generated SKU for merged products",
    )

    # =========================================================================
    # HTTP
    # =========================================================================
    CORS_ORIGINS: List[str] = Field(
        default=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
            "http://localhost:5173",
        ],
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="",
        case_sensitive=False,
        extra="ignore",
    )

settings = Settings()

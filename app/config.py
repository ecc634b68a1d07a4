# app/config.py
from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Runtime settings for the catalog store.

    Every field can be overridden with a CATALOG_ prefixed environment
    variable, e.g. CATALOG_DB_PATH or CATALOG_DEBUG_ENDPOINTS=true.
    List fields take JSON: CATALOG_ALLOWED_FETCH_HOSTS='["example.com"]'.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="CATALOG_",
        extra="ignore",
    )

    # Storage
    db_path: str = "catalog.db"
    reset_on_startup: bool = True

    # Diagnostics (/debug/*)
    debug_endpoints: bool = False
    allowed_commands: List[str] = ["date", "uptime", "whoami"]
    command_timeout: float = 5.0
    allowed_fetch_hosts: List[str] = []
    fetch_timeout: float = 5.0
    max_output_bytes: int = 64 * 1024

    # Server
    host: str = "127.0.0.1"
    port: int = 3000
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()

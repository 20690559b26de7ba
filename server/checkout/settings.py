"""
Checkout Server Settings

Configuration management using pydantic settings.
Loads from environment variables with CHECKOUT_ prefix.
"""

import logging
import os
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Literal


class Settings(BaseSettings):
    """
    Server configuration settings.

    Environment variables:
    - CHECKOUT_ENV: 'development' (proxy the asset dev server) or 'production' (serve built assets)
    - CHECKOUT_HOST / CHECKOUT_PORT: Listen address (default: 0.0.0.0:5000)
    - CHECKOUT_CEP_SERVICE_URL: Base URL of the postal code lookup service
    - CHECKOUT_CEP_TIMEOUT: Lookup timeout in seconds (default: 10)
    - CHECKOUT_DEV_SERVER_URL: Asset dev server used in development mode
    - CHECKOUT_STATIC_DIR: Built client assets served in production mode
    - CHECKOUT_CREATE_TABLES: Create missing tables on startup (default: true)
    - DATABASE_URL: PostgreSQL connection string (required)
    """

    model_config = SettingsConfigDict(
        env_prefix="CHECKOUT_",
        env_file=".env",
        extra="ignore",
    )

    env: Literal["development", "production"] = "development"

    host: str = "0.0.0.0"
    port: int = 5000

    # Postal code lookup
    cep_service_url: str = "https://viacep.com.br/ws"
    cep_timeout: float = 10.0

    # Front-end serving
    dev_server_url: str = "http://localhost:5173"
    static_dir: str = "dist/public"

    # Connection pool
    db_pool_min_size: int = 2
    db_pool_max_size: int = 10
    create_tables: bool = True

    log_level: str = "INFO"


# Database URL (read separately since it doesn't have the CHECKOUT_ prefix)
DATABASE_URL = os.environ.get("DATABASE_URL", "")


def require_database_url() -> str:
    """Return DATABASE_URL or fail fast when it is not configured."""
    if not DATABASE_URL:
        raise RuntimeError(
            "DATABASE_URL must be set. Did you forget to provision a database?"
        )
    return DATABASE_URL


def configure_logging(level: str = "INFO") -> None:
    """Install the console log format: '3:04:05 PM [checkout.main] message'."""
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter("%(asctime)s [%(name)s] %(message)s", datefmt="%I:%M:%S %p")
    )
    package_logger = logging.getLogger("checkout")
    package_logger.handlers = [handler]
    package_logger.setLevel(level.upper())


# Global settings instance
settings = Settings()

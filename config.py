# ============================================================================
# CLAUDE CONTEXT - APPLICATION CONFIGURATION
# ============================================================================
# STATUS: Core Infrastructure - Configuration Management
# PURPOSE: PostgreSQL connection settings for the ATES database, with managed identity support
# LAST_REVIEWED: 17 OCT 2026
# EXPORTS: AppConfig, get_app_config, get_postgres_connection_string, validate_configuration
# DEPENDENCIES: pydantic-settings, azure-identity
# SOURCE: Environment variables, Azure managed identity
# PATTERNS: Singleton pattern for config, lazy initialization for credentials
# ============================================================================

"""
Application Configuration Module

Connection settings for the ATES PostGIS database.

Connection Modes:
    1. Connection string:
       - ATES_CONNECTION_STRING (libpq URI or key/value string)
       - Takes precedence over everything below

    2. Password-based (local development):
       - Requires: POSTGIS_HOST, POSTGIS_DATABASE, POSTGIS_USER, POSTGIS_PASSWORD

    3. Managed Identity (Azure production):
       - Requires: POSTGIS_HOST, POSTGIS_DATABASE, POSTGIS_USER
       - Use when: USE_MANAGED_IDENTITY=true

Usage:
    from config import get_postgres_connection_string

    conn_string = get_postgres_connection_string()
    conn = psycopg.connect(conn_string)
"""

import logging
from functools import lru_cache
from typing import Optional
from urllib.parse import quote_plus

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

POSTGRES_TOKEN_SCOPE = "https://ossrdbms-aad.database.windows.net/.default"

# ============================================================================
# Application Configuration
# ============================================================================

class AppConfig(BaseSettings):
    """
    Database configuration loaded from environment variables.

    Attributes:
        ates_connection_string: Full connection string (overrides the fields below)
        postgis_host: PostgreSQL server hostname
        postgis_port: PostgreSQL server port
        postgis_database: Database name
        postgis_user: Database username
        postgis_password: Database password (optional with managed identity)
        postgis_sslmode: libpq sslmode
        use_managed_identity: Enable Azure managed identity authentication
    """
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    ates_connection_string: Optional[str] = Field(default=None, description="Full PostgreSQL connection string")

    postgis_host: Optional[str] = Field(default=None, description="PostgreSQL hostname")
    postgis_port: int = Field(default=5432, description="PostgreSQL port")
    postgis_database: Optional[str] = Field(default=None, description="Database name")
    postgis_user: Optional[str] = Field(default=None, description="Database username")
    postgis_password: Optional[str] = Field(default=None, description="Database password")
    postgis_sslmode: str = Field(default="require", description="libpq sslmode")

    use_managed_identity: bool = Field(
        default=False,
        description="Use Azure managed identity for authentication"
    )

    @model_validator(mode="after")
    def validate_connection_settings(self) -> "AppConfig":
        """Either a connection string, or host/database/user plus a password or managed identity."""
        if self.ates_connection_string:
            return self

        missing = [
            name for name in ("postgis_host", "postgis_database", "postgis_user")
            if not getattr(self, name)
        ]
        if missing:
            raise ValueError(
                f"Set ATES_CONNECTION_STRING or {', '.join(m.upper() for m in missing)}"
            )
        if not self.use_managed_identity and not self.postgis_password:
            raise ValueError("POSTGIS_PASSWORD is required when USE_MANAGED_IDENTITY=false")
        return self


@lru_cache(maxsize=1)
def get_app_config() -> AppConfig:
    """
    Get singleton application configuration instance.

    Raises:
        ValidationError: If required environment variables are missing
    """
    return AppConfig()


# ============================================================================
# PostgreSQL Connection String Generation
# ============================================================================

def get_postgres_connection_string(config: Optional[AppConfig] = None) -> str:
    """
    Build the PostgreSQL connection string for the configured mode.

    Returns:
        str: Connection string (psycopg format)

    Raises:
        ValueError: If managed identity is requested without azure-identity
    """
    config = config or get_app_config()

    if config.ates_connection_string:
        return config.ates_connection_string

    if config.use_managed_identity:
        password = _acquire_managed_identity_token()
    else:
        password = config.postgis_password

    return _build_connection_string(config, password)


def _build_connection_string(config: AppConfig, password: str) -> str:
    """Password is URL-encoded to handle special characters like @ symbols."""
    logger.info(f"Building connection string for {config.postgis_host}")

    return (
        f"postgresql://{config.postgis_user}:{quote_plus(password)}"
        f"@{config.postgis_host}:{config.postgis_port}"
        f"/{config.postgis_database}"
        f"?sslmode={config.postgis_sslmode}"
    )


def _acquire_managed_identity_token() -> str:
    """
    Acquire an Azure AD token for Azure Database for PostgreSQL.

    Note:
        Tokens live about an hour; every export builds a fresh connection
        string, so no refresh logic is needed here.
    """
    try:
        from azure.identity import DefaultAzureCredential
    except ImportError:
        logger.error("azure-identity package not installed")
        raise ValueError(
            "Managed identity requires azure-identity package. "
            "Install with: pip install azure-identity"
        )

    token = DefaultAzureCredential().get_token(POSTGRES_TOKEN_SCOPE)
    logger.info("✅ Acquired managed identity token")
    return token.token


# ============================================================================
# Configuration Validation
# ============================================================================

def validate_configuration() -> bool:
    """
    Validate configuration on application startup.

    Raises:
        Exception: If configuration validation fails
    """
    try:
        config = get_app_config()
        logger.info("Configuration validation:")
        if config.ates_connection_string:
            logger.info("  Using ATES_CONNECTION_STRING")
        else:
            logger.info(f"  PostgreSQL Host: {config.postgis_host}")
            logger.info(f"  PostgreSQL Port: {config.postgis_port}")
            logger.info(f"  Database: {config.postgis_database}")
            logger.info(f"  User: {config.postgis_user}")
            logger.info(f"  Managed Identity: {config.use_managed_identity}")
        return True

    except Exception as e:
        logger.error(f"❌ Configuration validation failed: {e}")
        raise


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    validate_configuration()

"""
Centralized configuration management for the requirement sync integration.

This module provides a unified configuration system with support for:
- Environment variables
- Feature flags
- Remote endpoint settings
- Validation using Pydantic
"""

import os
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator

from .constants import Defaults, EnvironmentVariable, LogLevel, Provenance


def _env(name: EnvironmentVariable, default: Optional[str] = None) -> Optional[str]:
    return os.getenv(name.value, default)


class DatabaseConfig(BaseModel):
    """Secret store database connection configuration."""

    connection_string: str = Field(
        default_factory=lambda: _env(
            EnvironmentVariable.DATABASE_URL, "sqlite:///./requirement_sync.db"
        ),
        description="Database connection string",
    )
    pool_size: int = Field(default=5, description="Connection pool size")
    max_overflow: int = Field(default=10, description="Maximum overflow connections")
    pool_timeout: int = Field(default=30, description="Pool timeout in seconds")
    echo: bool = Field(default=False, description="Echo SQL statements")


class QueueConfig(BaseModel):
    """Queue configuration for the Azure Storage logs queue."""

    connection_string: str = Field(
        default_factory=lambda: _env(EnvironmentVariable.AZURE_STORAGE_CONNECTION, ""),
        description="Azure Storage connection string",
    )
    logs_queue_name: str = Field(default="logs-queue", description="Logs queue name")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default_factory=lambda: _env(EnvironmentVariable.LOG_LEVEL, LogLevel.INFO.value),
        description="Logging level",
        validate_default=True,
    )

    @field_validator("level")
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {level.value for level in LogLevel}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class FeatureFlags(BaseModel):
    """Feature flags for controlling integration behavior."""

    enable_logs_queue: bool = Field(
        default_factory=lambda: _env(EnvironmentVariable.ENABLE_LOGS_QUEUE, "false").lower()
        == "true",
        description="Ship structured logs to the Azure logs queue",
    )
    enable_issue_enrichment: bool = Field(
        default=True, description="Resolve issue browse URLs for fetched requirements"
    )


class SecurityConfig(BaseModel):
    """Security-related configuration."""

    encryption_key: Optional[str] = Field(
        default_factory=lambda: _env(EnvironmentVariable.ENCRYPTION_KEY),
        description="Symmetric key used by pgcrypto for secret values",
    )


class OAuthConfig(BaseModel):
    """Client-credentials grant settings."""

    token_url: str = Field(
        default_factory=lambda: _env(EnvironmentVariable.OAUTH_TOKEN_URL, Defaults.OAUTH_TOKEN_URL),
        description="Authorization server token endpoint",
    )
    audience: str = Field(
        default_factory=lambda: _env(EnvironmentVariable.OAUTH_AUDIENCE, Defaults.OAUTH_AUDIENCE),
        description="Audience requested for the access token",
    )
    fallback_client_id: Optional[str] = Field(
        default_factory=lambda: _env(
            EnvironmentVariable.CLIENT_ID, Defaults.OAUTH_FALLBACK_CLIENT_ID
        ),
        description="Client id used when no connection has been stored",
    )
    fallback_client_secret: Optional[str] = Field(
        default_factory=lambda: _env(EnvironmentVariable.CLIENT_SECRET),
        description="Confidential client secret supplied out-of-band",
    )
    timeout: int = Field(default=Defaults.HTTP_TIMEOUT_SECONDS, description="Request timeout")


class RequirementApiConfig(BaseModel):
    """Remote requirement API settings."""

    base_url: str = Field(
        default_factory=lambda: _env(
            EnvironmentVariable.VITAREQ_BASE_URL, Defaults.VITAREQ_BASE_URL
        ),
        description="Requirement API base URL",
        validate_default=True,
    )
    requirements_path: str = Field(
        default=Defaults.REQUIREMENTS_PATH, description="Requirements collection path"
    )
    timeout: int = Field(default=Defaults.HTTP_TIMEOUT_SECONDS, description="Request timeout")

    @field_validator("base_url")
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class GraphStoreConfig(BaseModel):
    """Target object graph store settings."""

    base_url: str = Field(
        default_factory=lambda: _env(EnvironmentVariable.GRAPH_BASE_URL, ""),
        description="Graph store API base URL",
        validate_default=True,
    )
    api_token: Optional[str] = Field(
        default_factory=lambda: _env(EnvironmentVariable.GRAPH_API_TOKEN),
        description="Bearer token for the graph store",
    )
    provenance_source: str = Field(
        default=Provenance.DEFAULT_SOURCE, description="Value of the provenance tag"
    )
    schema_version: str = Field(default=Defaults.GRAPH_SCHEMA_VERSION)
    timeout: int = Field(default=Defaults.HTTP_TIMEOUT_SECONDS, description="Request timeout")

    @field_validator("base_url")
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


class IssueTrackerConfig(BaseModel):
    """Issue tracker site used to resolve browse URLs."""

    site_url: str = Field(
        default_factory=lambda: _env(EnvironmentVariable.JIRA_SITE_URL, ""),
        description="Issue tracker site URL",
    )
    user: Optional[str] = Field(default_factory=lambda: _env(EnvironmentVariable.JIRA_USER))
    api_token: Optional[str] = Field(
        default_factory=lambda: _env(EnvironmentVariable.JIRA_API_TOKEN)
    )
    timeout: int = Field(default=10, description="Request timeout")

    @property
    def enabled(self) -> bool:
        return bool(self.site_url)


class PrincipalConfig(BaseModel):
    """The named principal used for restricted-visibility syncs."""

    external_id: str = Field(
        default_factory=lambda: _env(EnvironmentVariable.PRINCIPAL_EXTERNAL_ID, "vitareq-user-1")
    )
    email: str = Field(
        default_factory=lambda: _env(EnvironmentVariable.PRINCIPAL_EMAIL, "owner@example.com")
    )
    display_name: str = Field(default="Vitareq Owner")
    user_name: str = Field(default="vitareq.owner")
    given_name: str = Field(default="Vitareq")
    family_name: str = Field(default="Owner")


class AppConfig(BaseModel):
    """Main application configuration."""

    environment: str = Field(
        default_factory=lambda: _env(EnvironmentVariable.APP_ENV, "development"),
        description="Application environment",
    )

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    features: FeatureFlags = Field(default_factory=FeatureFlags)
    security: SecurityConfig = Field(default_factory=SecurityConfig)
    oauth: OAuthConfig = Field(default_factory=OAuthConfig)
    requirement_api: RequirementApiConfig = Field(default_factory=RequirementApiConfig)
    graph: GraphStoreConfig = Field(default_factory=GraphStoreConfig)
    issue_tracker: IssueTrackerConfig = Field(default_factory=IssueTrackerConfig)
    principal: PrincipalConfig = Field(default_factory=PrincipalConfig)

    custom: Dict[str, Any] = Field(default_factory=dict, description="Custom configuration values")

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create configuration from environment variables."""
        return cls()

    def get_custom(self, key: str, default: Any = None) -> Any:
        """Get a custom configuration value."""
        return self.custom.get(key, default)


# Global configuration instance
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def set_config(config: AppConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global configuration instance."""
    global _config
    _config = None

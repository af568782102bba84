"""
Constants and enums for the requirement sync integration.

This module centralizes all magic strings used throughout the package:
environment variable names, secret store key layout, graph object
categories and the provenance tag.
"""

from enum import Enum


class LogLevel(str, Enum):
    """Standard logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EnvironmentVariable(str, Enum):
    """Standard environment variable names."""

    AZURE_STORAGE_CONNECTION = "AzureWebJobsStorage"
    DATABASE_URL = "DATABASE_URL"
    APP_ENV = "APP_ENV"
    LOG_LEVEL = "LOG_LEVEL"
    ENABLE_LOGS_QUEUE = "ENABLE_LOGS_QUEUE"
    ENCRYPTION_KEY = "SECRET_ENCRYPTION_KEY"

    # OAuth client-credentials fallback
    CLIENT_ID = "CLIENT_ID"
    CLIENT_SECRET = "CLIENT_SECRET"
    OAUTH_TOKEN_URL = "OAUTH_TOKEN_URL"
    OAUTH_AUDIENCE = "OAUTH_AUDIENCE"

    # Remote services
    VITAREQ_BASE_URL = "VITAREQ_BASE_URL"
    GRAPH_BASE_URL = "GRAPH_BASE_URL"
    GRAPH_API_TOKEN = "GRAPH_API_TOKEN"
    JIRA_SITE_URL = "JIRA_SITE_URL"
    JIRA_USER = "JIRA_USER"
    JIRA_API_TOKEN = "JIRA_API_TOKEN"

    # Synced principal
    PRINCIPAL_EXTERNAL_ID = "PRINCIPAL_EXTERNAL_ID"
    PRINCIPAL_EMAIL = "PRINCIPAL_EMAIL"


class ConnectionAction(str, Enum):
    """Lifecycle actions carried by a connection-changed event."""

    CREATED = "CREATED"
    UPDATED = "UPDATED"
    DELETED = "DELETED"


class CredentialField(str, Enum):
    """Fields stored for a connection and mirrored by the active pointer."""

    CLIENT_ID = "clientId"
    CLIENT_SECRET = "clientSecret"
    CONNECTION_ID = "connectionId"


class ObjectCategory(str, Enum):
    """Graph object categories written by the sync engine."""

    WORK_ITEM = "atlassian:work-item"
    DOCUMENT = "atlassian:document"


class SecretKeys:
    """Secret store key layout."""

    CONNECTION_PREFIX = "connection"
    ACTIVE_PREFIX = "active"
    USER_TOKEN_PREFIX = "user-token"
    DEFAULT_CONNECTION_ID = "default"
    DEFAULT_TENANT = "default"

    # Letters, digits, ":._-#" and whitespace; at least one character
    ALLOWED_PATTERN = r"^[A-Za-z0-9:._\-#\s]+$"


class Provenance:
    """Property tag written onto every synced object and user."""

    PROPERTY = "source"
    DEFAULT_SOURCE = "vitareq-sync"
    SYNCED_AT_PROPERTY = "syncedAt"


class Defaults:
    """Default endpoints and limits."""

    OAUTH_TOKEN_URL = "https://dev-yfve51b1ewip55b8.us.auth0.com/oauth/token"
    OAUTH_AUDIENCE = "https://vitareq.api"
    OAUTH_FALLBACK_CLIENT_ID = "FGMiI81z8Sobv06TMZ4QsrSCUDTLO6gz"
    VITAREQ_BASE_URL = "https://vitareq.vercel.app"
    REQUIREMENTS_PATH = "/api/requirements"
    GRAPH_SCHEMA_VERSION = "1.0"
    MASK_TOKEN = "****"
    HTTP_TIMEOUT_SECONDS = 30

"""
Pydantic schemas for connection credentials.

Defines the connection-changed event delivered by the webhook, the
configuration properties it carries, and the credential views returned to
callers.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..constants import ConnectionAction


class CamelModel(BaseModel):
    """Base schema using camelCase wire names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_response(self) -> Dict[str, Any]:
        """Serialize with wire names, dropping unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


class ConnectionProperties(CamelModel):
    """OAuth client configuration entered for a connection."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    client_id: Optional[str] = Field(None, description="OAuth client id")
    client_secret: Optional[str] = Field(None, description="OAuth client secret")

    @field_validator("client_id", "client_secret", mode="before")
    @classmethod
    def coerce_to_string(cls, v):
        """Webhook payloads occasionally carry numbers; keep secrets as strings."""
        if v is None:
            return None
        return str(v)

    def present_fields(self) -> Dict[str, str]:
        """Fields carried by this update, keyed by wire name."""
        return {
            alias: value
            for alias, value in (
                ("clientId", self.client_id),
                ("clientSecret", self.client_secret),
            )
            if value is not None
        }


class ConnectionChangedEvent(CamelModel):
    """Connection lifecycle event delivered by the webhook."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    action: Optional[ConnectionAction] = Field(None, description="CREATED, UPDATED or DELETED")
    connection_id: Optional[str] = Field(None, description="Connection id issued by the platform")
    datasource_id: Optional[str] = Field(None, description="Legacy connection id field")
    name: Optional[str] = Field(None, description="Connection display name")
    config_properties: ConnectionProperties = Field(default_factory=ConnectionProperties)

    @field_validator("action", mode="before")
    @classmethod
    def normalize_action(cls, v):
        if isinstance(v, str):
            v = v.strip().upper()
            if v not in ConnectionAction.__members__:
                return None
        return v

    @field_validator("config_properties", mode="before")
    @classmethod
    def default_properties(cls, v):
        return v or {}

    @classmethod
    def from_event(cls, event: Optional[Dict[str, Any]]) -> "ConnectionChangedEvent":
        """Build from a raw webhook event, which may wrap its body in ``payload``."""
        event = event or {}
        body = event.get("payload") if isinstance(event.get("payload"), dict) else event
        return cls.model_validate(body)

    def effective_connection_id(self) -> Optional[str]:
        return self.connection_id or self.datasource_id


class ActiveCredentials(BaseModel):
    """Raw active credential set. Never returned to callers."""

    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    connection_id: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.client_id) and bool(self.client_secret)


class ActiveCredentialsView(CamelModel):
    """Active credentials as shown to the admin UI, secret masked."""

    success: bool = True
    client_id: Optional[str] = None
    client_secret_masked: Optional[str] = None
    connection_id: Optional[str] = None
    error: Optional[str] = None

    def to_response(self) -> Dict[str, Any]:
        # Absent credentials are reported as explicit nulls
        data = self.model_dump(by_alias=True)
        if data.get("error") is None:
            data.pop("error")
        return data

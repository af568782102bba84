"""
Credential manager for Vitareq connections.

Owns the per-connection credential keys and the active credential pointer.
Connection lifecycle events write and delete them; the token exchange reads
the active pointer.

Key layout in the secret store::

    connection:<connectionId>:clientId
    connection:<connectionId>:clientSecret
    connection:<connectionId>:connectionId
    active:<tenant>:clientId
    active:<tenant>:clientSecret
    active:<tenant>:connectionId

The active pointer is a single shared location per tenant. Concurrent events
for different connections race on it and the last write wins; callers that
need more than one live connection per tenant are not supported.
"""

from typing import Any, Dict, Mapping, Optional, Union

from ..constants import ConnectionAction, CredentialField, SecretKeys
from ..context.operation_context import operation
from ..context.tenant_context import TenantContext
from ..exceptions import ErrorCode, ValidationError
from ..schemas.credential_schemas import (
    ActiveCredentials,
    ActiveCredentialsView,
    ConnectionProperties,
)
from ..utils.logger import get_logger
from ..utils.masking import mask_secret
from .secret_store import SecretStore


def connection_key(connection_id: str, field: CredentialField) -> str:
    return f"{SecretKeys.CONNECTION_PREFIX}:{connection_id}:{field.value}"


def active_key(tenant_id: str, field: CredentialField) -> str:
    return f"{SecretKeys.ACTIVE_PREFIX}:{tenant_id}:{field.value}"


def derive_connection_id(connection_id: Optional[str], name: Optional[str]) -> str:
    """Prefer the explicit connection id, then the name, then the default id."""
    for candidate in (connection_id, name):
        if candidate and candidate.strip():
            return candidate.strip()
    return SecretKeys.DEFAULT_CONNECTION_ID


class ActiveCredentialStore:
    """
    The currently active credential set, addressed by tenant key.
    """

    def __init__(self, secret_store: SecretStore):
        self.secret_store = secret_store

    def write(self, tenant_id: str, fields: Mapping[CredentialField, str]) -> None:
        """Overwrite the given fields of the tenant's active pointer; others are left alone."""
        for field, value in fields.items():
            self.secret_store.set(active_key(tenant_id, field), value)

    def read(self, tenant_id: str) -> ActiveCredentials:
        return ActiveCredentials(
            client_id=self.secret_store.get(active_key(tenant_id, CredentialField.CLIENT_ID)),
            client_secret=self.secret_store.get(
                active_key(tenant_id, CredentialField.CLIENT_SECRET)
            ),
            connection_id=self.secret_store.get(
                active_key(tenant_id, CredentialField.CONNECTION_ID)
            ),
        )

    def clear(self, tenant_id: str) -> None:
        for field in CredentialField:
            self.secret_store.delete(active_key(tenant_id, field))


class CredentialService:
    """
    Service for managing connection credentials.

    This service provides:
    - Connection lifecycle handling (create, update, delete)
    - Local-only validation of connection configuration
    - Masked read of the active credentials for the admin UI
    """

    def __init__(
        self,
        secret_store: Optional[SecretStore] = None,
        active_store: Optional[ActiveCredentialStore] = None,
    ):
        self.secret_store = secret_store or SecretStore()
        self.active_store = active_store or ActiveCredentialStore(self.secret_store)
        self.logger = get_logger()

    @operation()
    def on_connection_changed(
        self,
        action: Union[ConnectionAction, str, None],
        connection_id: Optional[str] = None,
        name: Optional[str] = None,
        properties: Union[ConnectionProperties, Dict[str, Any], None] = None,
    ) -> Dict[str, bool]:
        """
        React to a connection lifecycle event.

        Store failures are logged and swallowed: the event is always
        acknowledged, since its delivery is never retried.

        Args:
            action: CREATED, UPDATED or DELETED
            connection_id: Connection id issued by the platform
            name: Connection name, used when no id is given
            properties: Client id and/or secret carried by the event

        Returns:
            ``{"ok": True}``
        """
        tenant_id = TenantContext.get_effective_tenant_id()
        resolved_id = derive_connection_id(connection_id, name)
        if not isinstance(properties, ConnectionProperties):
            properties = ConnectionProperties.model_validate(properties or {})

        try:
            action = ConnectionAction(action.upper() if isinstance(action, str) else action)
        except ValueError:
            self.logger.warning(
                "Ignoring connection event with unknown action",
                extra={"action": action, "connection_id": resolved_id},
            )
            return {"ok": True}

        self.logger.info(
            "Connection changed",
            extra={
                "action": action.value,
                "connection_id": resolved_id,
                "tenant_id": tenant_id,
                "fields": sorted(properties.present_fields()),
            },
        )

        try:
            if action == ConnectionAction.DELETED:
                self._delete_connection(tenant_id, resolved_id)
            else:
                self._store_connection(tenant_id, resolved_id, properties)
        except Exception as e:
            self.logger.error(
                "Failed to update stored credentials; acknowledging event anyway",
                extra={
                    "action": action.value,
                    "connection_id": resolved_id,
                    "error": str(e),
                    "error_type": type(e).__name__,
                },
            )

        return {"ok": True}

    def _store_connection(
        self, tenant_id: str, connection_id: str, properties: ConnectionProperties
    ) -> None:
        fields: Dict[CredentialField, str] = {CredentialField.CONNECTION_ID: connection_id}
        if properties.client_id is not None:
            fields[CredentialField.CLIENT_ID] = properties.client_id
        if properties.client_secret is not None:
            fields[CredentialField.CLIENT_SECRET] = properties.client_secret

        for field, value in fields.items():
            self.secret_store.set(connection_key(connection_id, field), value)
        self.active_store.write(tenant_id, fields)

        self.logger.info(
            "Connection credentials stored",
            extra={
                "connection_id": connection_id,
                "tenant_id": tenant_id,
                "fields": sorted(field.value for field in fields),
            },
        )

    def _delete_connection(self, tenant_id: str, connection_id: str) -> None:
        for field in CredentialField:
            self.secret_store.delete(connection_key(connection_id, field))
        self.active_store.clear(tenant_id)

        self.logger.info(
            "Connection credentials deleted",
            extra={"connection_id": connection_id, "tenant_id": tenant_id},
        )

    def validate_connection(
        self, properties: Union[ConnectionProperties, Dict[str, Any], None]
    ) -> Dict[str, bool]:
        """
        Validate connection configuration before it is saved.

        Validation is local only; the token endpoint is never called here.

        Raises:
            ValidationError: If the client id or secret is missing or blank
        """
        if not isinstance(properties, ConnectionProperties):
            properties = ConnectionProperties.model_validate(properties or {})

        if not (properties.client_id or "").strip():
            raise ValidationError(
                "Client ID is required",
                field=CredentialField.CLIENT_ID.value,
                error_code=ErrorCode.MISSING_REQUIRED,
            )
        if not (properties.client_secret or "").strip():
            raise ValidationError(
                "Client Secret is required",
                field=CredentialField.CLIENT_SECRET.value,
                error_code=ErrorCode.MISSING_REQUIRED,
            )

        return {"ok": True}

    def get_active_credentials(self) -> ActiveCredentialsView:
        """Active client id, masked secret and connection id. The raw secret never leaves."""
        tenant_id = TenantContext.get_effective_tenant_id()
        try:
            credentials = self.active_store.read(tenant_id)
        except Exception as e:
            self.logger.error(
                "Failed to read active credentials",
                extra={"tenant_id": tenant_id, "error": str(e)},
            )
            return ActiveCredentialsView(success=False, error=str(e))

        return ActiveCredentialsView(
            success=True,
            client_id=credentials.client_id,
            client_secret_masked=mask_secret(credentials.client_secret),
            connection_id=credentials.connection_id,
        )

    def read_active_credentials(self) -> ActiveCredentials:
        """Raw active credentials for the token exchange."""
        return self.active_store.read(TenantContext.get_effective_tenant_id())

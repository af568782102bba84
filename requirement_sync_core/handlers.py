"""
Inbound surface of the integration.

Each handler takes the raw event or payload dict delivered by the platform and
returns a plain dict with camelCase keys. Handlers share one set of services,
created on first use; tests install their own with ``set_handlers``.
"""

from contextlib import nullcontext
from typing import Any, Dict, List, Mapping, Optional

from pydantic import ValidationError as SchemaValidationError

from .context.tenant_context import tenant_context
from .schemas.credential_schemas import ConnectionChangedEvent
from .services.action_service import ActionService, resolve_account_id
from .services.credential_service import CredentialService
from .services.lookup_service import LookupService
from .services.sync_service import SyncService
from .utils.logger import get_logger


def _body(event: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    """Event body, unwrapped from ``payload`` when present."""
    event = dict(event or {})
    payload = event.get("payload")
    return dict(payload) if isinstance(payload, Mapping) else event


class IntegrationHandlers:
    """Routes inbound events to the services."""

    def __init__(
        self,
        credential_service: Optional[CredentialService] = None,
        sync_service: Optional[SyncService] = None,
        lookup_service: Optional[LookupService] = None,
        action_service: Optional[ActionService] = None,
    ):
        self._credential_service = credential_service
        self._sync_service = sync_service
        self._lookup_service = lookup_service
        self._action_service = action_service
        self.logger = get_logger()

    @property
    def credential_service(self) -> CredentialService:
        if self._credential_service is None:
            self._credential_service = CredentialService()
        return self._credential_service

    @property
    def sync_service(self) -> SyncService:
        if self._sync_service is None:
            self._sync_service = SyncService()
        return self._sync_service

    @property
    def lookup_service(self) -> LookupService:
        if self._lookup_service is None:
            self._lookup_service = LookupService()
        return self._lookup_service

    @property
    def action_service(self) -> ActionService:
        if self._action_service is None:
            self._action_service = ActionService(lookup_service=self._lookup_service)
        return self._action_service

    # Connection lifecycle

    def connection_changed(self, event: Optional[Mapping[str, Any]]) -> Dict[str, bool]:
        """Never raises; the event is acknowledged even when it cannot be read."""
        try:
            parsed = ConnectionChangedEvent.from_event(dict(event or {}))
        except SchemaValidationError as e:
            self.logger.error("Malformed connection event", extra={"error": str(e)})
            return {"ok": False}

        tenant_id = (event or {}).get("tenantId")
        with tenant_context(tenant_id) if tenant_id else nullcontext():
            return self.credential_service.on_connection_changed(
                parsed.action,
                connection_id=parsed.effective_connection_id(),
                name=parsed.name,
                properties=parsed.config_properties,
            )

    def validate_connection(self, event: Optional[Mapping[str, Any]]) -> Dict[str, bool]:
        """Raises ValidationError naming the missing field."""
        body = _body(event)
        return self.credential_service.validate_connection(body.get("configProperties") or {})

    def get_active_credentials(self) -> Dict[str, Any]:
        return self.credential_service.get_active_credentials().to_response()

    # Synchronization

    def import_requirements(self, payload: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
        scope = _body(payload).get("scope")
        return self.sync_service.import_requirements(scope).to_response()

    def delete_by_properties(self) -> Dict[str, Any]:
        return self.sync_service.delete_by_properties().to_response()

    # Lookups

    def get_object_by_external_id(self, payload: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        body = _body(payload)
        return self.lookup_service.get_object_by_external_id(
            body.get("objectType"), body.get("externalId")
        ).to_response()

    def get_user_by_external_id(self, payload: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        body = _body(payload)
        return self.lookup_service.get_user_by_external_id(body.get("externalId")).to_response()

    # Agent actions and smart links

    def fetch_requirements(self, payload: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        return self.action_service.fetch_requirements_action(payload).to_response()

    def fetch_requirements_cc(
        self, payload: Optional[Mapping[str, Any]] = None
    ) -> Dict[str, Any]:
        """Admin bulk fetch; always uses the client-credentials token."""
        return self.action_service.fetch_requirements_cc().to_response()

    def authorize_user(self, payload: Optional[Mapping[str, Any]]) -> Dict[str, bool]:
        """Raises ValidationError when no account id is given."""
        body = _body(payload)
        account_id = resolve_account_id(body) or resolve_account_id(payload)
        return self.action_service.authorize_user(account_id, body.get("accessToken"))

    def create_requirement(self, payload: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        return self.action_service.create_requirement_action(payload).to_response()

    def update_requirement(self, payload: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        return self.action_service.update_requirement_action(payload).to_response()

    def resolve_smart_links(self, request: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        body = _body(request)
        urls: List[str] = body.get("urls") or []
        account_id = resolve_account_id(body) or resolve_account_id(request)
        return self.action_service.resolve_smart_links(urls, account_id=account_id)


_handlers: Optional[IntegrationHandlers] = None


def get_handlers() -> IntegrationHandlers:
    global _handlers
    if _handlers is None:
        _handlers = IntegrationHandlers()
    return _handlers


def set_handlers(handlers: Optional[IntegrationHandlers]) -> None:
    global _handlers
    _handlers = handlers


def connection_changed(event):
    return get_handlers().connection_changed(event)


def validate_connection(event):
    return get_handlers().validate_connection(event)


def get_active_credentials(event=None):
    return get_handlers().get_active_credentials()


def import_requirements(payload=None):
    return get_handlers().import_requirements(payload)


def delete_by_properties(payload=None):
    return get_handlers().delete_by_properties()


def get_object_by_external_id(payload):
    return get_handlers().get_object_by_external_id(payload)


def get_user_by_external_id(payload):
    return get_handlers().get_user_by_external_id(payload)


def fetch_requirements(payload):
    return get_handlers().fetch_requirements(payload)


def fetch_requirements_cc(payload=None):
    return get_handlers().fetch_requirements_cc(payload)


def authorize_user(payload):
    return get_handlers().authorize_user(payload)


def create_requirement(payload):
    return get_handlers().create_requirement(payload)


def update_requirement(payload):
    return get_handlers().update_requirement(payload)


def resolve_smart_links(request):
    return get_handlers().resolve_smart_links(request)

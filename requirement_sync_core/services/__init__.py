"""Services for credentials, token exchange, requirement sync and lookups."""

from .action_service import ActionService
from .credential_service import ActiveCredentialStore, CredentialService
from .graph_client import GraphStore, GraphStoreClient
from .lookup_service import IssueTrackerClient, LookupService
from .mapping import RequirementMapper, build_principal_identity, build_principal_mapping
from .requirement_client import DelegatedSession, RequirementClient, StoredUserSession
from .secret_store import SecretStore, validate_key
from .sync_service import SyncService
from .token_service import TokenService

__all__ = [
    "ActionService",
    "ActiveCredentialStore",
    "CredentialService",
    "DelegatedSession",
    "GraphStore",
    "GraphStoreClient",
    "IssueTrackerClient",
    "LookupService",
    "RequirementClient",
    "RequirementMapper",
    "SecretStore",
    "StoredUserSession",
    "SyncService",
    "TokenService",
    "build_principal_identity",
    "build_principal_mapping",
    "validate_key",
]

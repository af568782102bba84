"""Pydantic schemas for credentials, requirements, graph objects and results."""

from .credential_schemas import (
    ActiveCredentials,
    ActiveCredentialsView,
    ConnectionChangedEvent,
    ConnectionProperties,
)
from .graph_schemas import (
    ContainerKey,
    DocumentContent,
    DocumentPayload,
    GraphObject,
    Permissions,
    UserEmail,
    UserIdentity,
    UserMapping,
    UserName,
    WorkItemPayload,
)
from .requirement_schemas import ImportScope, RequirementRecord
from .result_schemas import (
    AcceptedItem,
    ActionResult,
    BulkWriteResults,
    CallOutcome,
    DeleteResult,
    ImportResult,
    ObjectLookupResult,
    RejectedItem,
    RequirementListResult,
    UserLookupResult,
)

__all__ = [
    "AcceptedItem",
    "ActionResult",
    "ActiveCredentials",
    "ActiveCredentialsView",
    "BulkWriteResults",
    "CallOutcome",
    "ConnectionChangedEvent",
    "ConnectionProperties",
    "ContainerKey",
    "DeleteResult",
    "DocumentContent",
    "DocumentPayload",
    "GraphObject",
    "ImportResult",
    "ImportScope",
    "ObjectLookupResult",
    "Permissions",
    "RejectedItem",
    "RequirementListResult",
    "RequirementRecord",
    "UserEmail",
    "UserIdentity",
    "UserLookupResult",
    "UserMapping",
    "UserName",
    "WorkItemPayload",
]

"""
Mapping from requirement records to graph objects and principal identities.
"""

from datetime import UTC, datetime
from typing import Callable, Optional

from ..config import GraphStoreConfig, PrincipalConfig, get_config
from ..schemas.graph_schemas import (
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
from ..schemas.requirement_schemas import RequirementRecord

DEFAULT_DISPLAY_NAME = "Requirement"


def isoformat_utc(moment: datetime) -> str:
    """Millisecond-precision UTC timestamp with a ``Z`` suffix."""
    return moment.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def object_id(record: RequirementRecord, sequence_number: int) -> str:
    """Record id, then requirement number, then issue key, then the sequence number."""
    return record.id or record.requirement_number or record.jira_key or str(sequence_number)


class RequirementMapper:
    """
    Maps requirement records of one sync run to graph objects.

    All objects of a run share a base timestamp; the update sequence number of
    each object is that base in milliseconds plus the record's index.
    """

    def __init__(
        self,
        permissions: Permissions,
        config: Optional[GraphStoreConfig] = None,
        issue_url_resolver: Optional[Callable[[str], Optional[str]]] = None,
        now: Optional[datetime] = None,
    ):
        self.permissions = permissions
        self.config = config or get_config().graph
        self.issue_url_resolver = issue_url_resolver
        self.run_started_at = now or datetime.now(UTC)
        self.run_base_ms = int(self.run_started_at.timestamp() * 1000)

    @property
    def run_timestamp(self) -> str:
        return isoformat_utc(self.run_started_at)

    def _resolve_url(self, record: RequirementRecord) -> Optional[str]:
        url = record.web_url or record.url
        if url or not record.jira_key or self.issue_url_resolver is None:
            return url
        return self.issue_url_resolver(record.jira_key)

    def map(self, record: RequirementRecord, index: int) -> GraphObject:
        sequence_number = self.run_base_ms + index
        created_at = record.created_at or self.run_timestamp

        fields = dict(
            schema_version=self.config.schema_version,
            id=object_id(record, sequence_number),
            update_sequence_number=sequence_number,
            display_name=record.title or record.requirement_number or DEFAULT_DISPLAY_NAME,
            url=self._resolve_url(record),
            created_at=created_at,
            last_updated_at=record.updated_at or created_at,
            description=record.description or "",
            permissions=self.permissions,
        )

        if record.jira_key:
            fields["container_key"] = ContainerKey(value={"issueKey": record.jira_key})

        if record.is_document:
            fields["document"] = DocumentPayload(content=DocumentContent(text=record.content))
        else:
            fields["work_item"] = WorkItemPayload(status=record.status, due_date=record.due_date)

        return GraphObject(**fields)


def build_principal_identity(principal: Optional[PrincipalConfig] = None) -> UserIdentity:
    principal = principal or get_config().principal
    return UserIdentity(
        external_id=principal.external_id,
        display_name=principal.display_name,
        user_name=principal.user_name,
        name=UserName(given_name=principal.given_name, family_name=principal.family_name),
        emails=[UserEmail(value=principal.email, primary=True)],
    )


def build_principal_mapping(identity: UserIdentity) -> UserMapping:
    return UserMapping(external_id=identity.external_id, email=identity.primary_email)

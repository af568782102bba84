"""
Pydantic schemas for the target object graph store.

A graph object carries exactly one category payload, keyed on the wire by
its category name (``atlassian:work-item`` or ``atlassian:document``).
Users are written as identities and then mapped to platform accounts by
external id and email.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from ..constants import ObjectCategory


class GraphModel(BaseModel):
    """Base schema using camelCase wire names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class PrincipalRef(GraphModel):
    """A principal an access control grants to."""

    type: str = Field(..., description="EVERYONE or USER")
    id: Optional[str] = None


class AccessControl(GraphModel):
    principals: List[PrincipalRef] = Field(default_factory=list)


class Permissions(GraphModel):
    """Access-control descriptor of a graph object."""

    access_controls: List[AccessControl] = Field(default_factory=list)

    @classmethod
    def workspace(cls) -> "Permissions":
        """Visible to everyone in the workspace."""
        return cls(access_controls=[AccessControl(principals=[PrincipalRef(type="EVERYONE")])])

    @classmethod
    def restricted_to(cls, external_id: str) -> "Permissions":
        """Visible only to the named principal."""
        return cls(
            access_controls=[AccessControl(principals=[PrincipalRef(type="USER", id=external_id)])]
        )


class WorkItemPayload(GraphModel):
    subtype: str = "TASK"
    status: Optional[str] = None
    due_date: Optional[str] = None


class DocumentContent(GraphModel):
    mime_type: str = "text/plain"
    text: str = ""


class DocumentPayload(GraphModel):
    type: Dict[str, str] = Field(default_factory=lambda: {"category": "document"})
    content: DocumentContent = Field(default_factory=DocumentContent)


class ContainerKey(GraphModel):
    """Points a graph object at the issue it belongs to."""

    type: str = "atlassian:issue"
    value: Dict[str, str] = Field(default_factory=dict)


class GraphObject(GraphModel):
    """Generic linked object written to the graph store."""

    schema_version: str = "1.0"
    id: str
    update_sequence_number: int
    display_name: str
    url: Optional[str] = None
    created_at: str
    last_updated_at: str
    description: str = ""
    permissions: Permissions
    container_key: Optional[ContainerKey] = None
    work_item: Optional[WorkItemPayload] = Field(None, alias=ObjectCategory.WORK_ITEM.value)
    document: Optional[DocumentPayload] = Field(None, alias=ObjectCategory.DOCUMENT.value)

    @model_validator(mode="after")
    def exactly_one_payload(self) -> "GraphObject":
        if (self.work_item is None) == (self.document is None):
            raise ValueError("A graph object carries exactly one category payload")
        return self

    @property
    def category(self) -> ObjectCategory:
        return ObjectCategory.WORK_ITEM if self.work_item is not None else ObjectCategory.DOCUMENT


class UserName(GraphModel):
    given_name: Optional[str] = None
    family_name: Optional[str] = None


class UserEmail(GraphModel):
    value: str
    primary: bool = True


class UserIdentity(GraphModel):
    """A principal ingested into the graph store."""

    external_id: str
    display_name: str
    user_name: str
    name: UserName = Field(default_factory=UserName)
    emails: List[UserEmail] = Field(default_factory=list)

    @property
    def primary_email(self) -> Optional[str]:
        for email in self.emails:
            if email.primary:
                return email.value
        return self.emails[0].value if self.emails else None


class UserMapping(GraphModel):
    """Links an ingested identity to a platform account."""

    external_id: str
    email: str

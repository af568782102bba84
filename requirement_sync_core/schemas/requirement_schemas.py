"""
Pydantic schema for requirement records read from the Vitareq API.

Records are read-only from this integration's point of view. Fields the
schema does not name are kept so they can be passed back to callers.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

TEXT_FIELDS = ("title", "description", "status", "due_date", "jira_key", "content")


class RequirementRecord(BaseModel):
    """A remote requirement."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: Optional[str] = Field(None, description="Remote identifier")
    requirement_number: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("requirementNumber", "requirement_number"),
        serialization_alias="requirementNumber",
        description="Human-facing tracking key, e.g. REQ-12",
    )
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = Field(None, description="Free-form lifecycle status")
    due_date: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("dueDate", "due_date"),
        serialization_alias="dueDate",
    )
    url: Optional[str] = None
    web_url: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("web_url", "webUrl"),
        serialization_alias="webUrl",
    )
    jira_key: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("jiraKey", "jira_key", "issueKey"),
        serialization_alias="jiraKey",
        description="Linked issue-tracker key",
    )
    content: Optional[str] = Field(None, description="Document body, when the record is a document")
    created_at: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("createdAt", "created_at"),
        serialization_alias="createdAt",
    )
    updated_at: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("updatedAt", "updated_at"),
        serialization_alias="updatedAt",
    )
    issue_url: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("issueUrl", "issue_url"),
        serialization_alias="issueUrl",
        description="Issue browse URL added by enrichment",
    )

    @field_validator("id", "requirement_number", mode="before")
    @classmethod
    def coerce_identifier(cls, v):
        """Identifiers arrive as numbers from some endpoints."""
        if v is None or isinstance(v, str):
            return v
        if isinstance(v, (int, float)):
            return str(v)
        return v

    @field_validator(*TEXT_FIELDS, mode="before")
    @classmethod
    def coerce_text(cls, v):
        """Numbers in free-text fields are kept as their string form."""
        if isinstance(v, (int, float)):
            return str(v)
        return v

    @field_validator("created_at", "updated_at", mode="before")
    @classmethod
    def coerce_timestamp(cls, v):
        """Numeric timestamps are epoch milliseconds."""
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            moment = datetime.fromtimestamp(v / 1000, tz=timezone.utc)
            return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")
        return v

    @property
    def is_document(self) -> bool:
        return bool(self.content)

    @property
    def link(self) -> Optional[str]:
        return self.web_url or self.url or self.issue_url

    def summary(self, default: str = "requirement") -> str:
        """Short label used in action output."""
        return self.requirement_number or self.id or self.title or default

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ImportScope(BaseModel):
    """Visibility of an import run."""

    model_config = ConfigDict(extra="ignore")

    workspace: bool = Field(
        True, description="Visible to the whole workspace rather than to the configured principal"
    )

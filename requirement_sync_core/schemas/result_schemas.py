"""
Structured results returned by the integration operations.

Operations never collapse partial failures into a boolean: bulk writes keep
the accepted and rejected items, and composite operations report each
sub-call on its own.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ResultModel(BaseModel):
    """Base schema using camelCase wire names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class AcceptedItem(ResultModel):
    """An item the graph store accepted."""

    entity_id: Optional[str] = None
    key: Dict[str, Any] = Field(default_factory=dict)


class RejectedItem(ResultModel):
    """An item the graph store rejected, with one message per failing field."""

    key: Dict[str, Any] = Field(default_factory=dict)
    errors: List[str] = Field(default_factory=list)


class BulkWriteResults(ResultModel):
    """Per-item breakdown of a bulk call."""

    accepted: List[AcceptedItem] = Field(default_factory=list)
    rejected: List[RejectedItem] = Field(default_factory=list)

    @property
    def is_partial(self) -> bool:
        return bool(self.accepted) and bool(self.rejected)


class CallOutcome(ResultModel):
    """Outcome of one upstream call."""

    success: bool
    error: Optional[str] = None
    status_code: Optional[int] = None
    results: Optional[BulkWriteResults] = None

    @classmethod
    def ok(cls, results: Optional[BulkWriteResults] = None, **kwargs) -> "CallOutcome":
        return cls(success=True, results=results, **kwargs)

    @classmethod
    def failed(cls, error: str, status_code: Optional[int] = None) -> "CallOutcome":
        return cls(success=False, error=error, status_code=status_code)


class ImportResult(ResultModel):
    """Result of importing requirements into the graph store."""

    success: bool
    results: BulkWriteResults = Field(default_factory=BulkWriteResults)
    objects: List[Dict[str, Any]] = Field(default_factory=list)
    user_results: Optional[CallOutcome] = None
    user_mapping_results: Optional[CallOutcome] = None
    user_mapping_success: Optional[bool] = None
    error: Optional[str] = None
    status_code: Optional[int] = None


class DeleteResult(ResultModel):
    """Result of deleting everything carrying the provenance tag."""

    success: bool
    work_item_delete: CallOutcome
    document_delete: CallOutcome
    user_delete: CallOutcome


class ObjectLookupResult(ResultModel):
    success: bool
    object: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    status_code: Optional[int] = None

    def to_response(self) -> Dict[str, Any]:
        # An absent object is an explicit null on success
        return self.model_dump(by_alias=True, exclude_unset=True)


class UserLookupResult(ResultModel):
    success: bool
    user: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    status_code: Optional[int] = None

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_unset=True)


class ActionResult(ResultModel):
    """Agent action response: a human-readable line plus data."""

    output: str
    data: List[Dict[str, Any]] = Field(default_factory=list)


class RequirementListResult(ResultModel):
    """Bulk requirement fetch for the admin page."""

    success: bool
    requirements: List[Dict[str, Any]] = Field(default_factory=list)
    count: int = 0
    error: Optional[str] = None
    status_code: Optional[int] = None

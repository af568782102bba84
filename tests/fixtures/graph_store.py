"""
In-memory graph store used by the sync and lookup tests.

Bulk responses are built in the store's wire shape and read back through
``parse_bulk_response``, so the tests exercise the same normalization as the
HTTP client.
"""

import re
from typing import Any, Dict, List, Optional, Sequence

from requirement_sync_core.constants import ObjectCategory
from requirement_sync_core.exceptions import UpstreamError
from requirement_sync_core.schemas.graph_schemas import GraphObject, UserIdentity, UserMapping
from requirement_sync_core.schemas.result_schemas import BulkWriteResults
from requirement_sync_core.services.graph_client import GraphStore, parse_bulk_response

ISSUE_KEY_PATTERN = re.compile(r"^[A-Z][A-Z0-9]+-\d+$")


class InMemoryGraphStore(GraphStore):
    def __init__(self):
        self.objects: Dict[str, Dict[str, Any]] = {}
        self.users: Dict[str, Dict[str, Any]] = {}
        self.mappings: Dict[str, str] = {}
        self.calls: List[str] = []
        self._failures: Dict[str, int] = {}

    def fail(self, method: str, status: int = 500) -> None:
        """Make every later call of ``method`` fail with ``status``."""
        self._failures[method] = status

    def _record(self, method: str) -> None:
        self.calls.append(method)
        if method in self._failures:
            status = self._failures[method]
            raise UpstreamError(
                f"Graph store returned {status}", service_name="graph", upstream_status=status
            )

    @staticmethod
    def _matches(stored: Dict[str, str], properties: Dict[str, str]) -> bool:
        return all(stored.get(key) == value for key, value in properties.items())

    def bulk_upsert_objects(
        self, objects: Sequence[GraphObject], properties: Dict[str, str]
    ) -> BulkWriteResults:
        self._record("bulk_upsert_objects")
        body: Dict[str, List[Dict[str, Any]]] = {"accepted": [], "rejected": []}
        for obj in objects:
            key = {"id": obj.id, "category": obj.category.value}
            issue_key = obj.container_key.value.get("issueKey") if obj.container_key else None
            if obj.container_key and not ISSUE_KEY_PATTERN.match(issue_key or ""):
                body["rejected"].append(
                    {
                        "key": key,
                        "errors": [{"key": "containerKey", "message": "Invalid issue key"}],
                    }
                )
                continue

            self.objects[obj.id] = {
                "category": obj.category.value,
                "payload": obj.to_payload(),
                "properties": dict(properties),
            }
            body["accepted"].append({"entityId": {"id": obj.id}, "key": key})
        return parse_bulk_response(body)

    def delete_objects_by_properties(
        self, category: ObjectCategory, properties: Dict[str, str]
    ) -> None:
        self._record(f"delete_objects_by_properties:{category.value}")
        self.objects = {
            object_id: stored
            for object_id, stored in self.objects.items()
            if not (
                stored["category"] == category.value
                and self._matches(stored["properties"], properties)
            )
        }

    def get_object(self, object_type: str, external_id: str) -> Optional[Dict[str, Any]]:
        self._record("get_object")
        stored = self.objects.get(external_id)
        if stored is None or stored["category"] != object_type:
            return None
        return stored["payload"]

    def bulk_upsert_users(
        self, users: Sequence[UserIdentity], properties: Dict[str, str]
    ) -> BulkWriteResults:
        self._record("bulk_upsert_users")
        body = {"accepted": [], "rejected": []}
        for user in users:
            self.users[user.external_id] = {**user.to_payload(), "properties": dict(properties)}
            body["accepted"].append({"entityId": user.external_id})
        return parse_bulk_response(body)

    def map_users(self, mappings: Sequence[UserMapping]) -> BulkWriteResults:
        self._record("map_users")
        body = {"accepted": [], "rejected": []}
        for mapping in mappings:
            if mapping.external_id not in self.users:
                body["rejected"].append(
                    {
                        "key": {"externalId": mapping.external_id},
                        "errors": [{"key": "externalId", "message": "Unknown user"}],
                    }
                )
                continue
            self.mappings[mapping.external_id] = mapping.email
            body["accepted"].append({"key": {"entityId": mapping.external_id}})
        return parse_bulk_response(body)

    def delete_user(self, external_id: str) -> bool:
        self._record("delete_user")
        self.mappings.pop(external_id, None)
        return self.users.pop(external_id, None) is not None

    def get_user(self, external_id: str) -> Optional[Dict[str, Any]]:
        self._record("get_user")
        return self.users.get(external_id)

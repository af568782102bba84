"""
Client for the target object graph store.

The store accepts bulk writes of objects and users, answers bulk writes with
a per-item accepted/rejected breakdown, deletes objects by property tag one
category at a time, and looks objects and users up by external id.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

import requests

from ..config import GraphStoreConfig, get_config
from ..constants import ObjectCategory
from ..exceptions import UpstreamError
from ..schemas.graph_schemas import GraphObject, UserIdentity, UserMapping
from ..schemas.result_schemas import AcceptedItem, BulkWriteResults, RejectedItem
from ..utils.envelope import extract_entity_id
from ..utils.logger import get_logger

SERVICE_NAME = "graph"


def _error_messages(raw_errors: Any) -> List[str]:
    """Flatten field-level errors into ``"<field>: <message>"`` strings."""
    if not isinstance(raw_errors, list):
        raw_errors = [raw_errors] if raw_errors else []

    messages = []
    for error in raw_errors:
        if isinstance(error, dict):
            field = error.get("key") or error.get("field")
            message = error.get("message") or error.get("error") or "invalid"
            messages.append(f"{field}: {message}" if field else str(message))
        else:
            messages.append(str(error))
    return messages


def parse_bulk_response(body: Any) -> BulkWriteResults:
    """Read the accepted/rejected breakdown of a bulk write response."""
    logger = get_logger()
    body = body if isinstance(body, dict) else {}

    accepted = []
    for item in body.get("accepted") or []:
        match = extract_entity_id(item)
        if not match.matched:
            logger.warning(
                "Accepted item has no recognizable entity id",
                extra={"item_keys": sorted(item) if isinstance(item, dict) else type(item).__name__},
            )
        key = item.get("key") if isinstance(item, dict) else None
        accepted.append(
            AcceptedItem(entity_id=match.value, key=key if isinstance(key, dict) else {})
        )

    rejected = []
    for item in body.get("rejected") or []:
        if not isinstance(item, dict):
            rejected.append(RejectedItem(errors=[str(item)]))
            continue
        key = item.get("key")
        rejected.append(
            RejectedItem(
                key=key if isinstance(key, dict) else {"value": key},
                errors=_error_messages(item.get("errors")),
            )
        )

    return BulkWriteResults(accepted=accepted, rejected=rejected)


class GraphStore(ABC):
    """Operations the sync engine and lookup service need from the graph store."""

    @abstractmethod
    def bulk_upsert_objects(
        self, objects: Sequence[GraphObject], properties: Dict[str, str]
    ) -> BulkWriteResults:
        """Idempotently upsert objects, tagging each with ``properties``."""

    @abstractmethod
    def delete_objects_by_properties(
        self, category: ObjectCategory, properties: Dict[str, str]
    ) -> None:
        """Delete every object of one category carrying ``properties``."""

    @abstractmethod
    def get_object(self, object_type: str, external_id: str) -> Optional[Dict[str, Any]]:
        """Object payload, or None when absent."""

    @abstractmethod
    def bulk_upsert_users(
        self, users: Sequence[UserIdentity], properties: Dict[str, str]
    ) -> BulkWriteResults:
        """Idempotently upsert user identities by external id."""

    @abstractmethod
    def map_users(self, mappings: Sequence[UserMapping]) -> BulkWriteResults:
        """Map ingested identities to platform accounts by external id and email."""

    @abstractmethod
    def delete_user(self, external_id: str) -> bool:
        """Delete a user identity. Returns False when it did not exist."""

    @abstractmethod
    def get_user(self, external_id: str) -> Optional[Dict[str, Any]]:
        """User payload, or None when absent."""


class GraphStoreClient(GraphStore):
    """HTTP implementation of the graph store operations."""

    def __init__(
        self,
        config: Optional[GraphStoreConfig] = None,
        http: Optional[requests.Session] = None,
    ):
        self.config = config or get_config().graph
        self.http = http or requests.Session()
        self.logger = get_logger()

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        headers = {"Accept": "application/json"}
        if self.config.api_token:
            headers["Authorization"] = f"Bearer {self.config.api_token}"
        try:
            return self.http.request(
                method,
                f"{self.config.base_url}{path}",
                headers=headers,
                timeout=self.config.timeout,
                **kwargs,
            )
        except requests.RequestException as e:
            raise UpstreamError(
                f"Graph store request failed: {e}",
                service_name=SERVICE_NAME,
                cause=e,
                path=path,
            ) from e

    def _check(self, response: requests.Response, path: str, allow_not_found: bool = False) -> None:
        if response.ok or (allow_not_found and response.status_code == 404):
            return
        raise UpstreamError(
            f"Graph store returned {response.status_code} for {path}",
            service_name=SERVICE_NAME,
            upstream_status=response.status_code,
            path=path,
            body=response.text[:500],
        )

    @staticmethod
    def _json(response: requests.Response) -> Any:
        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError:
            return {}

    @classmethod
    def _member(cls, response: requests.Response, name: str) -> Optional[Dict[str, Any]]:
        """``body[name]`` when the body is an object; None for any other shape."""
        body = cls._json(response)
        if not isinstance(body, dict):
            return None
        return body.get(name)

    def bulk_upsert_objects(
        self, objects: Sequence[GraphObject], properties: Dict[str, str]
    ) -> BulkWriteResults:
        path = "/objects/bulk"
        response = self._request(
            "POST",
            path,
            json={
                "objects": [obj.to_payload() for obj in objects],
                "properties": properties,
            },
        )
        self._check(response, path)
        return parse_bulk_response(self._json(response))

    def delete_objects_by_properties(
        self, category: ObjectCategory, properties: Dict[str, str]
    ) -> None:
        path = "/objects/delete-by-properties"
        response = self._request(
            "POST", path, json={"objectType": category.value, "properties": properties}
        )
        self._check(response, path)

    def get_object(self, object_type: str, external_id: str) -> Optional[Dict[str, Any]]:
        path = "/objects"
        response = self._request(
            "GET", path, params={"objectType": object_type, "externalId": external_id}
        )
        self._check(response, path, allow_not_found=True)
        if response.status_code == 404:
            return None
        return self._member(response, "object")

    def bulk_upsert_users(
        self, users: Sequence[UserIdentity], properties: Dict[str, str]
    ) -> BulkWriteResults:
        path = "/users/bulk"
        response = self._request(
            "POST",
            path,
            json={"users": [user.to_payload() for user in users], "properties": properties},
        )
        self._check(response, path)
        return parse_bulk_response(self._json(response))

    def map_users(self, mappings: Sequence[UserMapping]) -> BulkWriteResults:
        path = "/users/mappings"
        response = self._request(
            "POST", path, json={"mappings": [mapping.to_payload() for mapping in mappings]}
        )
        self._check(response, path)
        return parse_bulk_response(self._json(response))

    def delete_user(self, external_id: str) -> bool:
        path = "/users"
        response = self._request("DELETE", path, params={"externalId": external_id})
        self._check(response, path, allow_not_found=True)
        return response.status_code != 404

    def get_user(self, external_id: str) -> Optional[Dict[str, Any]]:
        path = "/users"
        response = self._request("GET", path, params={"externalId": external_id})
        self._check(response, path, allow_not_found=True)
        if response.status_code == 404:
            return None
        return self._member(response, "user")

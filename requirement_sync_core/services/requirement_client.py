"""
Client for the Vitareq requirement API.

Requests go through a delegated per-user session when one is authorized and
otherwise fall back to a client-credentials bearer token. When neither is
available the client raises AuthenticationRequiredError, which callers
surface as "connect your account" rather than as an upstream failure.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import requests
from pydantic import ValidationError as SchemaValidationError

from ..config import RequirementApiConfig, get_config
from ..constants import SecretKeys
from ..exceptions import AuthenticationRequiredError, UpstreamError
from ..schemas.requirement_schemas import RequirementRecord
from ..utils.envelope import first_record, normalize_records
from ..utils.logger import get_logger
from .secret_store import SecretStore
from .token_service import TokenService

SERVICE_NAME = "vitareq"


class DelegatedSession(ABC):
    """A per-user authorization already established with the requirement API."""

    @abstractmethod
    def is_authorized(self) -> bool:
        """Whether requests can be made on the user's behalf right now."""

    @abstractmethod
    def request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        """Issue a request relative to the API base URL."""


class StoredUserSession(DelegatedSession):
    """Delegated session backed by a user access token kept in the secret store."""

    def __init__(
        self,
        account_id: str,
        secret_store: Optional[SecretStore] = None,
        config: Optional[RequirementApiConfig] = None,
        http: Optional[requests.Session] = None,
    ):
        self.account_id = account_id
        self.secret_store = secret_store or SecretStore()
        self.config = config or get_config().requirement_api
        self.http = http or requests.Session()

    @property
    def token_key(self) -> str:
        return f"{SecretKeys.USER_TOKEN_PREFIX}:{self.account_id}"

    def is_authorized(self) -> bool:
        return bool(self.secret_store.get(self.token_key))

    def authorize(self, access_token: str) -> None:
        """Store the user's access token so later requests act on their behalf."""
        self.secret_store.set(self.token_key, access_token)

    def revoke(self) -> None:
        self.secret_store.delete(self.token_key)

    def request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        headers = dict(kwargs.pop("headers", None) or {})
        headers["Authorization"] = f"Bearer {self.secret_store.get(self.token_key)}"
        kwargs.setdefault("timeout", self.config.timeout)
        return self.http.request(method, f"{self.config.base_url}{path}", headers=headers, **kwargs)


class RequirementClient:
    """Reads and writes requirement records."""

    def __init__(
        self,
        token_service: Optional[TokenService] = None,
        delegated_session: Optional[DelegatedSession] = None,
        config: Optional[RequirementApiConfig] = None,
        http: Optional[requests.Session] = None,
    ):
        self.token_service = token_service or TokenService()
        self.delegated_session = delegated_session
        self.config = config or get_config().requirement_api
        self.http = http or requests.Session()
        self.logger = get_logger()

    def with_delegated_session(self, session: Optional[DelegatedSession]) -> "RequirementClient":
        """Copy sharing the token service and HTTP session, acting through ``session``."""
        return RequirementClient(
            token_service=self.token_service,
            delegated_session=session,
            config=self.config,
            http=self.http,
        )

    # ------------------------------------------------------------------ transport

    def _send(
        self,
        method: str,
        path: str,
        token: Optional[str] = None,
        **kwargs: Any,
    ) -> requests.Response:
        headers = {"Accept": "application/json"}
        if "json" in kwargs:
            headers["Content-Type"] = "application/json"

        try:
            if token is None and self.delegated_session and self.delegated_session.is_authorized():
                self.logger.debug("Using delegated session", extra={"method": method, "path": path})
                return self.delegated_session.request(method, path, headers=headers, **kwargs)

            if token is None:
                self.logger.info("No delegated session; using client-credentials fallback")
                token = self.token_service.get_access_token()
                if not token:
                    raise AuthenticationRequiredError(path=path)

            headers["Authorization"] = f"Bearer {token}"
            return self.http.request(
                method,
                f"{self.config.base_url}{path}",
                headers=headers,
                timeout=self.config.timeout,
                **kwargs,
            )
        except requests.RequestException as e:
            raise UpstreamError(
                f"Requirement API request failed: {e}",
                service_name=SERVICE_NAME,
                cause=e,
                path=path,
            ) from e

    def _decode(self, response: requests.Response, path: str) -> Any:
        if not response.ok:
            raise UpstreamError(
                f"Error fetching requirements ({response.status_code})",
                service_name=SERVICE_NAME,
                upstream_status=response.status_code,
                path=path,
                body=response.text[:500],
            )

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            raise UpstreamError(
                "Unexpected non-JSON response",
                service_name=SERVICE_NAME,
                upstream_status=response.status_code,
                path=path,
                content_type=content_type,
            )
        try:
            return response.json()
        except ValueError as e:
            raise UpstreamError(
                "Unexpected non-JSON response",
                service_name=SERVICE_NAME,
                upstream_status=response.status_code,
                path=path,
                cause=e,
            ) from e

    @property
    def collection_path(self) -> str:
        return self.config.requirements_path

    def _item_path(self, requirement_id: str) -> str:
        return f"{self.collection_path}/{quote(str(requirement_id), safe='')}"

    def _parse_record(self, record: Dict[str, Any], path: str) -> RequirementRecord:
        try:
            return RequirementRecord.model_validate(record)
        except SchemaValidationError as e:
            raise UpstreamError(
                "Malformed requirement record",
                service_name=SERVICE_NAME,
                path=path,
                cause=e,
            ) from e

    # ------------------------------------------------------------------ reads

    def fetch_requirements(self, query: Optional[Dict[str, Any]] = None) -> List[RequirementRecord]:
        """
        Fetch requirement records as a flat list.

        Raises:
            AuthenticationRequiredError: If no auth path is usable
            UpstreamError: On a non-success status or non-JSON body
        """
        return self._fetch_list(query=query, token=None)

    def fetch_requirements_with_token(
        self, token: str, query: Optional[Dict[str, Any]] = None
    ) -> List[RequirementRecord]:
        """Bulk fetch with an already-acquired bearer token, bypassing the delegated session."""
        return self._fetch_list(query=query, token=token)

    def _fetch_list(
        self, query: Optional[Dict[str, Any]], token: Optional[str]
    ) -> List[RequirementRecord]:
        path = self.collection_path
        response = self._send("GET", path, token=token, params=query or None)
        raw_records = normalize_records(self._decode(response, path))

        records: List[RequirementRecord] = []
        for index, raw in enumerate(raw_records):
            try:
                records.append(RequirementRecord.model_validate(raw))
            except SchemaValidationError as e:
                self.logger.warning(
                    "Skipping malformed requirement record",
                    extra={"index": index, "record_id": raw.get("id"), "error": str(e)},
                )

        self.logger.info(
            "Requirements fetched",
            extra={
                "count": len(records),
                "skipped": len(raw_records) - len(records),
                "query": query or {},
            },
        )
        return records

    def fetch_requirement(
        self,
        jira_key: Optional[str] = None,
        requirement_id: Optional[str] = None,
    ) -> Optional[RequirementRecord]:
        """
        Fetch a single requirement by id, or the first one linked to an issue key.

        Returns:
            The record, or None on a 404 or an empty response
        """
        if requirement_id:
            path = self._item_path(requirement_id)
            response = self._send("GET", path)
        else:
            path = self.collection_path
            response = self._send("GET", path, params={"jiraKey": jira_key})

        if response.status_code == 404:
            self.logger.info(
                "No requirement found",
                extra={"jira_key": jira_key, "requirement_id": requirement_id},
            )
            return None

        record = first_record(self._decode(response, path))
        if record is None:
            self.logger.info(
                "No requirement object found in response",
                extra={"jira_key": jira_key, "requirement_id": requirement_id},
            )
            return None
        return self._parse_record(record, path)

    # ------------------------------------------------------------------ writes

    def create_requirement(self, fields: Dict[str, Any]) -> Optional[RequirementRecord]:
        """Create a requirement from ``title`` and optional ``description``/``status``."""
        path = self.collection_path
        response = self._send("POST", path, json=fields)
        record = first_record(self._decode(response, path))
        return self._parse_record(record, path) if record else None

    def update_requirement(
        self, requirement_id: str, fields: Dict[str, Any]
    ) -> Optional[RequirementRecord]:
        """Update the given fields of a requirement."""
        path = self._item_path(requirement_id)
        response = self._send("PUT", path, json=fields)
        record = first_record(self._decode(response, path))
        return self._parse_record(record, path) if record else None

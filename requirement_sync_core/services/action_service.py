"""
Agent actions and smart-link resolution over the requirement API.

Actions answer with a one-line ``output`` meant for a person and the
records involved in ``data``; they never raise. Requests run as the calling
account when a delegated token is stored for it.
"""

import re
from typing import Any, Callable, Dict, List, Mapping, Optional

from ..config import AppConfig, get_config
from ..exceptions import AuthenticationRequiredError, MissingParameterError, UpstreamError
from ..schemas.graph_schemas import Permissions
from ..schemas.result_schemas import ActionResult, RequirementListResult
from ..utils.logger import get_logger
from .lookup_service import LookupService
from .mapping import RequirementMapper
from .requirement_client import RequirementClient, StoredUserSession

REQUIREMENT_URL_PATTERN = re.compile(r"/requirements/([A-Za-z0-9_-]+)")

UPDATABLE_FIELDS = ("title", "description", "status")


def resolve_issue_key(payload: Optional[Mapping[str, Any]]) -> Optional[str]:
    """Issue key from ``inputs.jiraKey``, ``jiraKey``, ``context.jira.issueKey`` or ``context.issueKey``."""
    payload = payload or {}
    inputs = payload.get("inputs") or {}
    context = payload.get("context") or {}
    jira = context.get("jira") or {}

    for candidate in (
        inputs.get("jiraKey"),
        payload.get("jiraKey"),
        jira.get("issueKey"),
        context.get("issueKey"),
    ):
        if candidate:
            return str(candidate)
    return None


def resolve_account_id(payload: Optional[Mapping[str, Any]]) -> Optional[str]:
    """Calling user's account id from ``accountId`` or ``context.accountId``."""
    payload = payload or {}
    context = payload.get("context") or {}
    account_id = payload.get("accountId") or context.get("accountId")
    return str(account_id) if account_id else None


def parse_requirement_id(url: str) -> Optional[str]:
    match = REQUIREMENT_URL_PATTERN.search(url or "")
    return match.group(1) if match else None


def _upstream_output(error: UpstreamError) -> str:
    if error.upstream_status and error.upstream_status >= 400:
        return f"Failed: {error.upstream_status}"
    return "Unexpected response"


class ActionService:
    """Fetch, create and update requirements on behalf of an agent."""

    def __init__(
        self,
        requirement_client: Optional[RequirementClient] = None,
        lookup_service: Optional[LookupService] = None,
        config: Optional[AppConfig] = None,
        session_factory: Optional[Callable[[str], StoredUserSession]] = None,
    ):
        self.config = config or get_config()
        self.requirement_client = requirement_client or RequirementClient(
            config=self.config.requirement_api
        )
        self._lookup_service = lookup_service
        self.session_factory = session_factory or self._stored_session
        self.logger = get_logger()

    def _stored_session(self, account_id: str) -> StoredUserSession:
        return StoredUserSession(account_id, config=self.config.requirement_api)

    def client_for(self, account_id: Optional[str]) -> RequirementClient:
        """Client acting as ``account_id`` when known, else the client-credentials client."""
        if not account_id:
            return self.requirement_client
        return self.requirement_client.with_delegated_session(self.session_factory(account_id))

    @property
    def lookup_service(self) -> LookupService:
        if self._lookup_service is None:
            self._lookup_service = LookupService()
        return self._lookup_service

    def fetch_requirements_action(self, payload: Optional[Mapping[str, Any]]) -> ActionResult:
        jira_key = resolve_issue_key(payload)
        if not jira_key:
            return ActionResult(output="jiraKey is required")

        client = self.client_for(resolve_account_id(payload))
        try:
            record = client.fetch_requirement(jira_key=jira_key)
        except AuthenticationRequiredError as e:
            return ActionResult(output=e.message)
        except UpstreamError as e:
            return ActionResult(output=_upstream_output(e))

        if record is None:
            return ActionResult(output="No requirement found")

        if self.config.features.enable_issue_enrichment and not record.issue_url:
            record.issue_url = self.lookup_service.resolve_issue_browse_url(
                record.jira_key or jira_key
            )

        output = (
            f"Found requirement {record.requirement_number}"
            if record.requirement_number
            else "No requirement found"
        )
        return ActionResult(output=output, data=[record.to_response()])

    def create_requirement_action(self, payload: Optional[Mapping[str, Any]]) -> ActionResult:
        inputs = (payload or {}).get("inputs") or {}
        if not inputs.get("title"):
            return ActionResult(output="title is required")

        fields = {name: inputs[name] for name in UPDATABLE_FIELDS if inputs.get(name)}
        client = self.client_for(resolve_account_id(payload))
        try:
            created = client.create_requirement(fields)
        except AuthenticationRequiredError as e:
            return ActionResult(output=e.message)
        except UpstreamError as e:
            return ActionResult(output=_upstream_output(e))

        summary = created.summary() if created else "requirement"
        self.logger.info("Requirement created", extra={"summary": summary})
        return ActionResult(
            output=f"Created {summary}", data=[created.to_response()] if created else []
        )

    def update_requirement_action(self, payload: Optional[Mapping[str, Any]]) -> ActionResult:
        inputs = (payload or {}).get("inputs") or {}
        requirement_id = inputs.get("id")
        if not requirement_id:
            return ActionResult(output="id is required")

        updates = {name: inputs[name] for name in UPDATABLE_FIELDS if inputs.get(name)}
        if not updates:
            return ActionResult(output="No fields to update")

        client = self.client_for(resolve_account_id(payload))
        try:
            updated = client.update_requirement(str(requirement_id), updates)
        except AuthenticationRequiredError as e:
            return ActionResult(output=e.message)
        except UpstreamError as e:
            return ActionResult(output=_upstream_output(e))

        summary = updated.summary(default=str(requirement_id)) if updated else str(requirement_id)
        self.logger.info(
            "Requirement updated",
            extra={"requirement_id": requirement_id, "updated_fields": sorted(updates)},
        )
        return ActionResult(
            output=f"Updated {summary}", data=[updated.to_response()] if updated else []
        )

    def fetch_requirements_cc(self) -> RequirementListResult:
        """All requirements, fetched with the client-credentials token."""
        try:
            records = self.requirement_client.fetch_requirements()
        except AuthenticationRequiredError as e:
            return RequirementListResult(success=False, error=e.message)
        except UpstreamError as e:
            return RequirementListResult(
                success=False, error=e.message, status_code=e.upstream_status
            )

        return RequirementListResult(
            success=True,
            requirements=[record.to_response() for record in records],
            count=len(records),
        )

    def authorize_user(
        self, account_id: Optional[str], access_token: Optional[str]
    ) -> Dict[str, bool]:
        """Store or, with no token, forget the delegated token of ``account_id``."""
        if not account_id:
            raise MissingParameterError("accountId")
        session = self.session_factory(account_id)
        if access_token:
            session.authorize(access_token)
        else:
            session.revoke()
        self.logger.info(
            "Delegated session updated",
            extra={"account_id": account_id, "authorized": bool(access_token)},
        )
        return {"ok": True}

    def resolve_smart_links(
        self, urls: Optional[List[str]], account_id: Optional[str] = None
    ) -> Dict[str, List[Dict[str, Any]]]:
        """
        Resolve requirement URLs to graph entities for link unfurling.

        URLs without a requirement id resolve with access granted and no entity.
        """
        mapper = RequirementMapper(Permissions.workspace(), config=self.config.graph)
        client = self.client_for(account_id)
        entities = []
        for index, url in enumerate(urls or []):
            entry: Dict[str, Any] = {
                "identifier": {"url": url},
                "meta": {"access": "granted", "visibility": "restricted"},
            }
            requirement_id = parse_requirement_id(url)
            try:
                record = (
                    client.fetch_requirement(requirement_id=requirement_id)
                    if requirement_id
                    else None
                )
            except (AuthenticationRequiredError, UpstreamError) as e:
                self.logger.warning(
                    "Smart link could not be resolved",
                    extra={"url": url, "error": e.message},
                )
                entry["meta"]["access"] = "unauthorized"
                entities.append(entry)
                continue

            if record is not None:
                entry["entity"] = mapper.map(record, index).to_payload()
            entities.append(entry)

        return {"entities": entities}

"""
Point lookups against the graph store, plus issue browse URL enrichment.
"""

from typing import Optional
from urllib.parse import quote, urlparse

import requests

from ..config import IssueTrackerConfig, get_config
from ..exceptions import MissingParameterError, UpstreamError, ValidationError
from ..schemas.result_schemas import ObjectLookupResult, UserLookupResult
from ..utils.logger import get_logger
from .graph_client import GraphStore, GraphStoreClient


def _require(value: Optional[str], parameter: str) -> str:
    if value is None or not str(value).strip():
        raise MissingParameterError(parameter)
    return str(value).strip()


class IssueTrackerClient:
    """Resolves issue keys to browse URLs on the issue tracker site."""

    def __init__(
        self,
        config: Optional[IssueTrackerConfig] = None,
        http: Optional[requests.Session] = None,
    ):
        self.config = config or get_config().issue_tracker
        self.http = http or requests.Session()
        self.logger = get_logger()

    def resolve_issue_browse_url(self, issue_key: str) -> Optional[str]:
        """
        Browse URL of an issue, derived from the site in its ``self`` link.

        Enrichment only: every failure resolves to None.
        """
        if not issue_key or not self.config.enabled:
            return None

        auth = None
        if self.config.user and self.config.api_token:
            auth = (self.config.user, self.config.api_token)

        try:
            response = self.http.get(
                f"{self.config.site_url.rstrip('/')}/rest/api/3/issue/{quote(issue_key, safe='')}",
                params={"fields": "summary"},
                headers={"Accept": "application/json"},
                auth=auth,
                timeout=self.config.timeout,
            )
            if not response.ok:
                self.logger.info(
                    "Issue lookup failed",
                    extra={"issue_key": issue_key, "status_code": response.status_code},
                )
                return None
            self_link = response.json().get("self")
        except (requests.RequestException, ValueError, AttributeError) as e:
            self.logger.warning(
                "Could not resolve issue browse URL",
                extra={"issue_key": issue_key, "error": str(e)},
            )
            return None

        parsed = urlparse(self_link) if isinstance(self_link, str) else None
        if not parsed or not parsed.scheme or not parsed.netloc:
            self.logger.info("Issue has no usable self link", extra={"issue_key": issue_key})
            return None

        return f"{parsed.scheme}://{parsed.netloc}/browse/{issue_key}"


class LookupService:
    """
    Service for looking up synced objects and users by external id.

    Failures are returned as structured results rather than raised.
    """

    def __init__(
        self,
        graph: Optional[GraphStore] = None,
        issue_tracker: Optional[IssueTrackerClient] = None,
    ):
        self.graph = graph or GraphStoreClient()
        self.issue_tracker = issue_tracker or IssueTrackerClient()
        self.logger = get_logger()

    def get_object_by_external_id(
        self, object_type: Optional[str], external_id: Optional[str]
    ) -> ObjectLookupResult:
        try:
            object_type = _require(object_type, "objectType")
            external_id = _require(external_id, "externalId")
            found = self.graph.get_object(object_type, external_id)
        except ValidationError as e:
            return ObjectLookupResult(success=False, error=e.message)
        except UpstreamError as e:
            return ObjectLookupResult(
                success=False, error=e.message, status_code=e.upstream_status
            )

        self.logger.debug(
            "Object lookup",
            extra={"object_type": object_type, "external_id": external_id, "found": found is not None},
        )
        return ObjectLookupResult(success=True, object=found)

    def get_user_by_external_id(self, external_id: Optional[str]) -> UserLookupResult:
        try:
            external_id = _require(external_id, "externalId")
            found = self.graph.get_user(external_id)
        except ValidationError as e:
            return UserLookupResult(success=False, error=e.message)
        except UpstreamError as e:
            return UserLookupResult(success=False, error=e.message, status_code=e.upstream_status)

        self.logger.debug(
            "User lookup", extra={"external_id": external_id, "found": found is not None}
        )
        return UserLookupResult(success=True, user=found)

    def resolve_issue_browse_url(self, issue_key: str) -> Optional[str]:
        return self.issue_tracker.resolve_issue_browse_url(issue_key)

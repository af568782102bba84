"""
Synchronization engine.

An import run acquires a client-credentials token, fetches every requirement
record, maps the records to graph objects and writes them in one bulk upsert
tagged with the provenance property. Deletion removes everything carrying
that tag, one object category at a time, then the synced principal.

Update sequence numbers are ``run_base_ms + index``. Two runs starting in the
same millisecond produce colliding numbers; the store then keeps whichever
write it saw first.
"""

from datetime import UTC, datetime
from typing import Any, Callable, Dict, Mapping, Optional, Union

from ..config import AppConfig, get_config
from ..constants import ObjectCategory, Provenance
from ..context.operation_context import operation
from ..exceptions import MissingCredentialsError, UpstreamError
from ..schemas.graph_schemas import Permissions
from ..schemas.requirement_schemas import ImportScope
from ..schemas.result_schemas import (
    BulkWriteResults,
    CallOutcome,
    DeleteResult,
    ImportResult,
)
from ..utils.logger import get_logger
from .graph_client import GraphStore, GraphStoreClient
from .lookup_service import LookupService
from .mapping import RequirementMapper, build_principal_identity, build_principal_mapping
from .requirement_client import RequirementClient
from .token_service import TokenService


class SyncService:
    """
    Service for importing requirements into the graph store and removing them.
    """

    def __init__(
        self,
        token_service: Optional[TokenService] = None,
        requirement_client: Optional[RequirementClient] = None,
        graph: Optional[GraphStore] = None,
        lookup_service: Optional[LookupService] = None,
        config: Optional[AppConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.config = config or get_config()
        self.token_service = token_service or TokenService(config=self.config.oauth)
        self.requirement_client = requirement_client or RequirementClient(
            token_service=self.token_service, config=self.config.requirement_api
        )
        self.graph = graph or GraphStoreClient(config=self.config.graph)
        self.lookup_service = lookup_service or LookupService(graph=self.graph)
        self.clock = clock or (lambda: datetime.now(UTC))
        self.logger = get_logger()

    @property
    def provenance(self) -> Dict[str, str]:
        return {Provenance.PROPERTY: self.config.graph.provenance_source}

    def _outcome(self, call: Callable[[], Any]) -> CallOutcome:
        """Run one upstream call and report it without raising."""
        try:
            result = call()
        except UpstreamError as e:
            return CallOutcome.failed(e.message, status_code=e.upstream_status)
        return CallOutcome.ok(result if isinstance(result, BulkWriteResults) else None)

    @operation()
    def import_requirements(
        self, scope: Union[ImportScope, Mapping[str, Any], None] = None
    ) -> ImportResult:
        """
        Import all remote requirements into the graph store.

        Args:
            scope: ``{"workspace": True}`` for workspace-wide visibility (the
                default); ``{"workspace": False}`` restricts objects to the
                configured principal, which is ingested and mapped first

        Returns:
            ImportResult with the per-item accepted/rejected breakdown
        """
        if not isinstance(scope, ImportScope):
            scope = ImportScope.model_validate(dict(scope or {}))

        try:
            token = self.token_service.require_access_token()
        except MissingCredentialsError as e:
            return ImportResult(success=False, error=e.message, status_code=e.status_code)

        result = ImportResult(success=False)
        try:
            records = self.requirement_client.fetch_requirements_with_token(token)

            if scope.workspace:
                permissions = Permissions.workspace()
            else:
                identity = build_principal_identity(self.config.principal)
                permissions = Permissions.restricted_to(identity.external_id)

                result.user_results = self._outcome(
                    lambda: self.graph.bulk_upsert_users([identity], self.provenance)
                )
                result.user_mapping_results = self._outcome(
                    lambda: self.graph.map_users([build_principal_mapping(identity)])
                )
                mapping_results = result.user_mapping_results.results
                result.user_mapping_success = result.user_mapping_results.success and not (
                    mapping_results and mapping_results.rejected
                )

            resolver = None
            if self.config.features.enable_issue_enrichment:
                resolver = self.lookup_service.resolve_issue_browse_url

            mapper = RequirementMapper(
                permissions,
                config=self.config.graph,
                issue_url_resolver=resolver,
                now=self.clock(),
            )
            objects = [mapper.map(record, index) for index, record in enumerate(records)]
            result.objects = [obj.to_payload() for obj in objects]

            if objects:
                properties = {
                    **self.provenance,
                    Provenance.SYNCED_AT_PROPERTY: mapper.run_timestamp,
                }
                result.results = self.graph.bulk_upsert_objects(objects, properties)
            else:
                self.logger.info("No requirements to import")
        except UpstreamError as e:
            result.error = e.message
            result.status_code = e.upstream_status
            return result

        result.success = True
        self.logger.info(
            "Requirements imported",
            extra={
                "workspace": scope.workspace,
                "fetched": len(result.objects),
                "accepted": len(result.results.accepted),
                "rejected": len(result.results.rejected),
            },
        )
        for rejected in result.results.rejected:
            self.logger.warning(
                "Object rejected by graph store",
                extra={"key": rejected.key, "errors": rejected.errors},
            )
        return result

    @operation()
    def delete_by_properties(self) -> DeleteResult:
        """
        Delete every object and the principal written by earlier imports.

        Safe to repeat: deleting what is already gone succeeds.
        """
        properties = self.provenance
        work_item_delete = self._outcome(
            lambda: self.graph.delete_objects_by_properties(ObjectCategory.WORK_ITEM, properties)
        )
        document_delete = self._outcome(
            lambda: self.graph.delete_objects_by_properties(ObjectCategory.DOCUMENT, properties)
        )
        user_delete = self._outcome(
            lambda: self.graph.delete_user(self.config.principal.external_id)
        )

        result = DeleteResult(
            success=work_item_delete.success and document_delete.success,
            work_item_delete=work_item_delete,
            document_delete=document_delete,
            user_delete=user_delete,
        )
        self.logger.info(
            "Provenance-tagged data deleted",
            extra={
                "success": result.success,
                "user_delete_success": user_delete.success,
            },
        )
        return result

"""Tests for requirement-to-graph-object mapping."""

from datetime import UTC, datetime

from requirement_sync_core.constants import ObjectCategory
from requirement_sync_core.schemas.graph_schemas import Permissions
from requirement_sync_core.schemas.requirement_schemas import RequirementRecord
from requirement_sync_core.services.mapping import (
    RequirementMapper,
    build_principal_identity,
    build_principal_mapping,
    isoformat_utc,
    object_id,
)
from tests.fixtures.factories import DocumentRequirementDictFactory, RequirementDictFactory

RUN_AT = datetime(2026, 3, 1, 12, 0, 0, tzinfo=UTC)


def mapper(app_config, **kwargs):
    return RequirementMapper(Permissions.workspace(), config=app_config.graph, now=RUN_AT, **kwargs)


class TestObjectId:
    def test_precedence(self):
        assert object_id(RequirementRecord(id="1", requirementNumber="REQ-1"), 5) == "1"
        assert object_id(RequirementRecord(requirementNumber="REQ-1", jiraKey="P-1"), 5) == "REQ-1"
        assert object_id(RequirementRecord(jiraKey="P-1"), 5) == "P-1"
        assert object_id(RequirementRecord(), 5) == "5"


class TestRequirementMapper:
    def test_work_item(self, app_config):
        record = RequirementRecord.model_validate(RequirementDictFactory(jiraKey="PROJ-7"))

        obj = mapper(app_config).map(record, 0)
        payload = obj.to_payload()

        assert obj.category == ObjectCategory.WORK_ITEM
        assert payload["id"] == record.id
        assert payload["displayName"] == record.title
        assert payload["schemaVersion"] == "1.0"
        assert payload["createdAt"] == "2026-01-01T00:00:00.000Z"
        assert payload["lastUpdatedAt"] == "2026-01-02T00:00:00.000Z"
        assert payload["atlassian:work-item"] == {
            "subtype": "TASK",
            "status": "Draft",
            "dueDate": "2026-12-31",
        }
        assert payload["containerKey"] == {
            "type": "atlassian:issue",
            "value": {"issueKey": "PROJ-7"},
        }
        assert payload["permissions"] == {
            "accessControls": [{"principals": [{"type": "EVERYONE"}]}]
        }
        assert "atlassian:document" not in payload

    def test_document(self, app_config):
        record = RequirementRecord.model_validate(DocumentRequirementDictFactory())

        payload = mapper(app_config).map(record, 0).to_payload()

        assert payload["atlassian:document"] == {
            "type": {"category": "document"},
            "content": {"mimeType": "text/plain", "text": "Full requirement body text"},
        }
        assert "atlassian:work-item" not in payload

    def test_sequence_numbers_from_run_base(self, app_config):
        m = mapper(app_config)
        records = [RequirementRecord(id=str(i)) for i in range(3)]

        numbers = [m.map(record, index).update_sequence_number for index, record in enumerate(records)]

        base = int(RUN_AT.timestamp() * 1000)
        assert numbers == [base, base + 1, base + 2]

    def test_defaults_for_sparse_record(self, app_config):
        payload = mapper(app_config).map(RequirementRecord(), 3).to_payload()

        assert payload["displayName"] == "Requirement"
        assert payload["id"] == str(int(RUN_AT.timestamp() * 1000) + 3)
        assert payload["createdAt"] == "2026-03-01T12:00:00.000Z"
        assert payload["lastUpdatedAt"] == payload["createdAt"]
        assert payload["description"] == ""
        assert "url" not in payload
        assert "containerKey" not in payload

    def test_display_name_falls_back_to_requirement_number(self, app_config):
        obj = mapper(app_config).map(RequirementRecord(requirementNumber="REQ-3"), 0)
        assert obj.display_name == "REQ-3"

    def test_url_preference(self, app_config):
        record = RequirementRecord(url="https://a.test/1", web_url="https://web.test/1")
        assert mapper(app_config).map(record, 0).url == "https://web.test/1"

    def test_issue_browse_url_when_record_has_none(self, app_config):
        resolved = []

        def resolver(issue_key):
            resolved.append(issue_key)
            return f"https://site.test/browse/{issue_key}"

        m = mapper(app_config, issue_url_resolver=resolver)

        assert m.map(RequirementRecord(jiraKey="PROJ-1"), 0).url == "https://site.test/browse/PROJ-1"
        assert m.map(RequirementRecord(jiraKey="PROJ-2", url="https://own.test"), 1).url == (
            "https://own.test"
        )
        assert resolved == ["PROJ-1"]

    def test_restricted_permissions(self, app_config):
        m = RequirementMapper(
            Permissions.restricted_to("vitareq-user-1"), config=app_config.graph, now=RUN_AT
        )

        payload = m.map(RequirementRecord(id="1"), 0).to_payload()

        assert payload["permissions"] == {
            "accessControls": [{"principals": [{"type": "USER", "id": "vitareq-user-1"}]}]
        }

    def test_run_timestamp(self, app_config):
        assert mapper(app_config).run_timestamp == "2026-03-01T12:00:00.000Z"
        assert isoformat_utc(datetime(2026, 1, 1, tzinfo=UTC)) == "2026-01-01T00:00:00.000Z"


class TestPrincipal:
    def test_identity_from_config(self, app_config):
        identity = build_principal_identity(app_config.principal)

        assert identity.external_id == "vitareq-user-1"
        assert identity.primary_email == "owner@example.com"
        assert identity.to_payload()["name"] == {"givenName": "Vitareq", "familyName": "Owner"}

    def test_mapping(self, app_config):
        mapping = build_principal_mapping(build_principal_identity(app_config.principal))
        assert mapping.to_payload() == {"externalId": "vitareq-user-1", "email": "owner@example.com"}

"""Tests for the remote requirement client."""

from unittest.mock import Mock

import pytest
import requests

from requirement_sync_core.exceptions import AuthenticationRequiredError, UpstreamError
from requirement_sync_core.services.requirement_client import (
    DelegatedSession,
    RequirementClient,
    StoredUserSession,
)
from requirement_sync_core.services.token_service import TokenService
from tests.fixtures.http import make_response, mock_session

BASE = "https://vitareq.test/api/requirements"


class FakeDelegatedSession(DelegatedSession):
    def __init__(self, response, authorized=True):
        self.response = response
        self.authorized = authorized
        self.requests = []

    def is_authorized(self):
        return self.authorized

    def request(self, method, path, **kwargs):
        self.requests.append((method, path, kwargs))
        return self.response


@pytest.fixture
def token_service():
    service = Mock(spec=TokenService)
    service.get_access_token.return_value = "tok-1"
    return service


def make_client(app_config, token_service, *responses, delegated_session=None):
    return RequirementClient(
        token_service=token_service,
        delegated_session=delegated_session,
        config=app_config.requirement_api,
        http=mock_session(*responses),
    )


class TestFetchRequirements:
    def test_uses_bearer_token(self, app_config, token_service):
        client = make_client(
            app_config, token_service, make_response(200, [{"id": "1"}, {"id": "2"}])
        )

        records = client.fetch_requirements()

        assert [record.id for record in records] == ["1", "2"]
        method, url = client.http.request.call_args.args
        assert (method, url) == ("GET", BASE)
        assert client.http.request.call_args.kwargs["headers"]["Authorization"] == "Bearer tok-1"

    @pytest.mark.parametrize("envelope", ["requirements", "items", "data"])
    def test_envelopes_normalized(self, app_config, token_service, envelope):
        body = {envelope: [{"id": "1"}, {"id": "2"}]}
        client = make_client(app_config, token_service, make_response(200, body))

        assert len(client.fetch_requirements()) == 2

    def test_query_passed_as_params(self, app_config, token_service):
        client = make_client(app_config, token_service, make_response(200, []))

        client.fetch_requirements({"jiraKey": "PROJ-1"})

        assert client.http.request.call_args.kwargs["params"] == {"jiraKey": "PROJ-1"}

    def test_prefers_authorized_delegated_session(self, app_config, token_service):
        delegated = FakeDelegatedSession(make_response(200, [{"id": "1"}]))
        client = make_client(app_config, token_service, delegated_session=delegated)

        assert len(client.fetch_requirements()) == 1
        assert delegated.requests[0][:2] == ("GET", "/api/requirements")
        token_service.get_access_token.assert_not_called()
        client.http.request.assert_not_called()

    def test_unauthorized_session_falls_back_to_token(self, app_config, token_service):
        delegated = FakeDelegatedSession(make_response(500, {}), authorized=False)
        client = make_client(
            app_config, token_service, make_response(200, []), delegated_session=delegated
        )

        client.fetch_requirements()

        assert delegated.requests == []
        token_service.get_access_token.assert_called_once()

    def test_no_auth_path(self, app_config, token_service):
        token_service.get_access_token.return_value = None
        client = make_client(app_config, token_service, make_response(200, []))

        with pytest.raises(AuthenticationRequiredError) as exc_info:
            client.fetch_requirements()

        assert exc_info.value.message.startswith("Authentication required")
        client.http.request.assert_not_called()

    def test_error_status(self, app_config, token_service):
        client = make_client(app_config, token_service, make_response(503, {"error": "down"}))

        with pytest.raises(UpstreamError) as exc_info:
            client.fetch_requirements()

        assert exc_info.value.upstream_status == 503
        assert exc_info.value.message == "Error fetching requirements (503)"

    def test_non_json_body(self, app_config, token_service):
        client = make_client(
            app_config,
            token_service,
            make_response(200, text="<html></html>", content_type="text/html"),
        )

        with pytest.raises(UpstreamError) as exc_info:
            client.fetch_requirements()
        assert exc_info.value.message == "Unexpected non-JSON response"

    def test_unparseable_json_body(self, app_config, token_service):
        client = make_client(app_config, token_service, make_response(200, text="{not json"))

        with pytest.raises(UpstreamError) as exc_info:
            client.fetch_requirements()

        assert exc_info.value.message == "Unexpected non-JSON response"
        assert exc_info.value.upstream_status == 200

    def test_numeric_fields_coerced(self, app_config, token_service):
        body = [{"id": "a", "title": 7, "status": 2, "createdAt": 1700000000000}]
        client = make_client(app_config, token_service, make_response(200, body))

        (record,) = client.fetch_requirements()

        assert record.title == "7"
        assert record.status == "2"
        assert record.created_at == "2023-11-14T22:13:20.000Z"

    def test_malformed_record_skipped(self, app_config, token_service):
        body = [{"id": "a", "title": {"text": "nested"}}, {"id": "b", "title": "Kept"}]
        client = make_client(app_config, token_service, make_response(200, body))

        records = client.fetch_requirements()

        assert [record.id for record in records] == ["b"]

    def test_network_error(self, app_config, token_service):
        client = make_client(app_config, token_service, make_response(200, []))
        client.http.request.side_effect = requests.Timeout("slow")

        with pytest.raises(UpstreamError):
            client.fetch_requirements()

    def test_with_token_bypasses_delegated_session(self, app_config, token_service):
        delegated = FakeDelegatedSession(make_response(200, []))
        client = make_client(
            app_config, token_service, make_response(200, [{"id": "1"}]), delegated_session=delegated
        )

        records = client.fetch_requirements_with_token("given-token")

        assert len(records) == 1
        assert delegated.requests == []
        token_service.get_access_token.assert_not_called()
        headers = client.http.request.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer given-token"


class TestFetchRequirement:
    def test_by_issue_key(self, app_config, token_service):
        body = {"requirements": [{"id": "1", "requirementNumber": "REQ-1", "jiraKey": "PROJ-1"}]}
        client = make_client(app_config, token_service, make_response(200, body))

        record = client.fetch_requirement(jira_key="PROJ-1")

        assert record.requirement_number == "REQ-1"
        assert record.jira_key == "PROJ-1"
        assert client.http.request.call_args.kwargs["params"] == {"jiraKey": "PROJ-1"}

    def test_by_id_quotes_path(self, app_config, token_service):
        client = make_client(app_config, token_service, make_response(200, {"id": 42}))

        record = client.fetch_requirement(requirement_id="a/b")

        assert record.id == "42"
        assert client.http.request.call_args.args[1] == f"{BASE}/a%2Fb"

    def test_not_found(self, app_config, token_service):
        client = make_client(app_config, token_service, make_response(404, {"error": "nope"}))
        assert client.fetch_requirement(requirement_id="missing") is None

    def test_empty_response(self, app_config, token_service):
        client = make_client(app_config, token_service, make_response(200, []))
        assert client.fetch_requirement(jira_key="PROJ-1") is None

    def test_malformed_single_record(self, app_config, token_service):
        client = make_client(
            app_config, token_service, make_response(200, {"id": "1", "title": ["a", "b"]})
        )

        with pytest.raises(UpstreamError) as exc_info:
            client.fetch_requirement(requirement_id="1")
        assert exc_info.value.message == "Malformed requirement record"

    def test_unknown_fields_preserved(self, app_config, token_service):
        client = make_client(
            app_config, token_service, make_response(200, {"id": "1", "priority": "High"})
        )

        record = client.fetch_requirement(requirement_id="1")

        assert record.to_response()["priority"] == "High"


class TestWrites:
    def test_create(self, app_config, token_service):
        client = make_client(
            app_config,
            token_service,
            make_response(201, {"id": "9", "requirementNumber": "REQ-9", "title": "New"}),
        )

        record = client.create_requirement({"title": "New"})

        assert record.requirement_number == "REQ-9"
        method, url = client.http.request.call_args.args
        assert (method, url) == ("POST", BASE)
        assert client.http.request.call_args.kwargs["json"] == {"title": "New"}

    def test_update(self, app_config, token_service):
        client = make_client(
            app_config, token_service, make_response(200, {"id": "9", "status": "Approved"})
        )

        record = client.update_requirement("9", {"status": "Approved"})

        assert record.status == "Approved"
        method, url = client.http.request.call_args.args
        assert (method, url) == ("PUT", f"{BASE}/9")


class TestStoredUserSession:
    def test_authorization_follows_stored_token(self, app_config, secret_store):
        http = mock_session(make_response(200, []))
        session = StoredUserSession(
            "acct-1", secret_store=secret_store, config=app_config.requirement_api, http=http
        )

        assert not session.is_authorized()

        secret_store.set("user-token:acct-1", "user-token-value")
        assert session.is_authorized()

        session.request("GET", "/api/requirements", headers={"Accept": "application/json"})
        method, url = http.request.call_args.args
        assert url == BASE
        assert http.request.call_args.kwargs["headers"]["Authorization"] == "Bearer user-token-value"

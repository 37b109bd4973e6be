"""
Tests for the Microsoft Graph connector.

HTTP traffic is replaced by a mocked requests session.
"""

from unittest.mock import Mock

import pytest
import requests

from pim_engine.connectors import ENDPOINTS, GraphGovernanceConnector
from pim_engine.models import AssignmentScope

BASE_URL = "https://graph.microsoft.com/v1.0"


def make_response(status_code=200, body=None, text=""):
    response = Mock()
    response.status_code = status_code
    response.ok = 200 <= status_code < 300
    if body is None:
        response.json.side_effect = ValueError("no json")
    else:
        response.json.return_value = body
    response.text = text
    return response


class TestGraphGovernanceConnector:
    """Test cases for GraphGovernanceConnector."""

    @pytest.fixture
    def session(self):
        return Mock(spec=requests.Session)

    @pytest.fixture
    def connector(self, session):
        return GraphGovernanceConnector(
            {"graph_base_url": BASE_URL + "/", "request_timeout": 12},
            token_provider=lambda: "token-1",
            session=session,
        )

    def test_requires_token_provider(self):
        with pytest.raises(ValueError, match="token provider"):
            GraphGovernanceConnector({})

    def test_list_eligible_roles_filters_and_expands(self, connector, session):
        session.get.return_value = make_response(body={"value": [{"roleDefinitionId": "r-1"}]})

        result = connector.list_eligible(AssignmentScope.ROLE, "user-1")

        assert result.success
        assert result.data == [{"roleDefinitionId": "r-1"}]
        args, kwargs = session.get.call_args
        assert args[0] == BASE_URL + ENDPOINTS[AssignmentScope.ROLE]["eligible"]
        assert kwargs["params"] == {
            "$filter": "principalId eq 'user-1'",
            "$expand": "roleDefinition",
        }
        assert kwargs["headers"]["Authorization"] == "Bearer token-1"
        assert kwargs["timeout"] == 12

    def test_list_active_groups_expands_group(self, connector, session):
        session.get.return_value = make_response(body={"value": []})

        connector.list_active(AssignmentScope.GROUP, "user-1")

        args, kwargs = session.get.call_args
        assert args[0].endswith("/identityGovernance/privilegedAccess/group/assignmentScheduleInstances")
        assert kwargs["params"]["$expand"] == "group"

    def test_collection_follows_next_link(self, connector, session):
        next_link = BASE_URL + "/roleManagement/directory/roleEligibilitySchedules?$skiptoken=abc"
        session.get.side_effect = [
            make_response(body={"value": [{"id": "1"}], "@odata.nextLink": next_link}),
            make_response(body={"value": [{"id": "2"}]}),
        ]

        result = connector.list_eligible(AssignmentScope.ROLE, "user-1")

        assert [r["id"] for r in result.data] == ["1", "2"]
        second_args, second_kwargs = session.get.call_args_list[1]
        assert second_args[0] == next_link
        assert second_kwargs["params"] is None

    def test_api_error_message_extracted(self, connector, session):
        session.get.return_value = make_response(403, body={
            "error": {"code": "Forbidden", "message": "Insufficient privileges to complete the operation."}
        })

        result = connector.list_eligible(AssignmentScope.GROUP, "user-1")

        assert not result.success
        assert result.error == "Insufficient privileges to complete the operation."
        assert result.status_code == 403

    def test_transport_error_reported(self, connector, session):
        session.get.side_effect = requests.ConnectionError("connection reset")

        result = connector.list_active(AssignmentScope.ROLE, "user-1")

        assert not result.success
        assert "connection reset" in result.error

    def test_submit_posts_json(self, connector, session):
        session.post.return_value = make_response(201, body={"id": "req-1", "status": "Provisioned"})
        payload = {"action": "selfActivate", "principalId": "user-1"}

        result = connector.submit_request(AssignmentScope.ROLE, payload)

        assert result.success
        assert result.data["id"] == "req-1"
        args, kwargs = session.post.call_args
        assert args[0] == BASE_URL + "/roleManagement/directory/roleAssignmentScheduleRequests"
        assert kwargs["json"] == payload
        assert kwargs["headers"]["Content-Type"] == "application/json"
        assert session.post.call_count == 1

    def test_submit_rejection_keeps_message_verbatim(self, connector, session):
        message = "The role assignment already exists."
        session.post.return_value = make_response(400, body={
            "error": {"code": "RoleAssignmentExists", "message": message}
        })

        result = connector.submit_request(AssignmentScope.GROUP, {})

        assert not result.success
        assert result.error == message
        assert session.post.call_count == 1

    def test_submit_non_json_error_uses_body(self, connector, session):
        session.post.return_value = make_response(502, text="Bad Gateway")

        result = connector.submit_request(AssignmentScope.ROLE, {})

        assert result.error == "Bad Gateway"

    def test_current_principal(self, connector, session):
        session.get.return_value = make_response(body={"id": "user-1", "displayName": "Alice"})

        result = connector.get_current_principal()

        assert result.success
        assert result.data["id"] == "user-1"
        assert session.get.call_args.args[0] == BASE_URL + "/me"

    def test_current_principal_non_json_body(self, connector, session):
        session.get.return_value = make_response(body=None, text="<html>Sign in to the proxy</html>")

        result = connector.get_current_principal()

        assert not result.success
        assert "non-JSON" in result.error

    def test_collection_non_json_body(self, connector, session):
        session.get.return_value = make_response(body=None, text="<html></html>")

        result = connector.list_active(AssignmentScope.ROLE, "user-1")

        assert not result.success
        assert "non-JSON" in result.error

    def test_collection_null_value_is_empty(self, connector, session):
        session.get.return_value = make_response(body={"value": None})

        result = connector.list_eligible(AssignmentScope.ROLE, "user-1")

        assert result.success
        assert result.data == []

"""
Tests for the Session Manager.
"""

from unittest.mock import Mock, patch

import pytest
from azure.core.credentials import AccessToken
from azure.core.exceptions import ClientAuthenticationError, ServiceRequestError

from pim_engine.config import PIMConfig
from pim_engine.connectors import BaseGovernanceConnector, ConnectorResult
from pim_engine.engine.session_manager import AuthSession, SessionManager
from pim_engine.exceptions import AuthenticationError, ConfigurationError

NOW = 1_700_000_000.0


class TestSessionManager:
    """Test cases for SessionManager."""

    @pytest.fixture
    def config(self):
        return PIMConfig(tenant_id="tenant-1", client_id="client-1")

    @pytest.fixture
    def credential(self):
        credential = Mock()
        credential.get_token.return_value = AccessToken("token-1", int(NOW) + 3600)
        return credential

    def test_no_session_before_login(self, config, credential):
        manager = SessionManager(config, credential=credential, clock=lambda: NOW)
        assert manager.current_session() is None

    def test_login_uses_configured_scopes(self, config, credential):
        manager = SessionManager(config, credential=credential, clock=lambda: NOW)

        session = manager.ensure_session()

        assert session.token == "token-1"
        assert session.tenant_id == "tenant-1"
        credential.get_token.assert_called_once_with(*config.scopes)

    def test_live_session_is_reused(self, config, credential):
        manager = SessionManager(config, credential=credential, clock=lambda: NOW)

        first = manager.ensure_session()
        second = manager.ensure_session()

        assert first is second
        assert manager.current_session() is first
        assert credential.get_token.call_count == 1

    def test_expiring_session_is_renewed(self, config, credential):
        credential.get_token.side_effect = [
            AccessToken("token-1", int(NOW) + 30),
            AccessToken("token-2", int(NOW) + 3600),
        ]
        manager = SessionManager(config, credential=credential, clock=lambda: NOW)

        manager.ensure_session()
        session = manager.ensure_session()

        assert session.token == "token-2"
        assert credential.get_token.call_count == 2

    def test_login_failure_is_authentication_error(self, config, credential):
        credential.get_token.side_effect = ClientAuthenticationError("User cancelled the login")
        manager = SessionManager(config, credential=credential, clock=lambda: NOW)

        with pytest.raises(AuthenticationError, match="User cancelled the login"):
            manager.ensure_session()
        assert manager.current_session() is None

    def test_transport_failure_is_authentication_error(self, config, credential):
        credential.get_token.side_effect = ServiceRequestError("network unreachable")
        manager = SessionManager(config, credential=credential, clock=lambda: NOW)

        with pytest.raises(AuthenticationError, match="could not be completed"):
            manager.ensure_session()

    def test_mock_mode_needs_no_credential(self):
        manager = SessionManager(PIMConfig(), mock_mode=True, clock=lambda: NOW)

        session = manager.ensure_session()

        assert session.token.startswith("mock-")
        assert manager.access_token() == session.token

    def test_missing_identifiers_rejected_before_login(self):
        manager = SessionManager(PIMConfig(tenant_id="tenant-1"), clock=lambda: NOW)

        with pytest.raises(ConfigurationError, match="client_id"):
            manager.ensure_session()

    @patch("pim_engine.engine.session_manager.InteractiveBrowserCredential")
    def test_builds_interactive_credential(self, browser_credential, config):
        browser_credential.return_value.get_token.return_value = AccessToken("t", int(NOW) + 3600)
        manager = SessionManager(config, clock=lambda: NOW)

        manager.ensure_session()

        kwargs = browser_credential.call_args.kwargs
        assert kwargs["tenant_id"] == "tenant-1"
        assert kwargs["client_id"] == "client-1"
        assert "cache_persistence_options" in kwargs

    @patch("pim_engine.engine.session_manager.DeviceCodeCredential")
    def test_builds_device_code_credential(self, device_credential):
        device_credential.return_value.get_token.return_value = AccessToken("t", int(NOW) + 3600)
        config = PIMConfig(tenant_id="tenant-1", client_id="client-1",
                           login_mode="device_code", persist_token_cache=False)

        SessionManager(config, clock=lambda: NOW).ensure_session()

        kwargs = device_credential.call_args.kwargs
        assert "cache_persistence_options" not in kwargs

    def test_session_repr_hides_token(self):
        session = AuthSession("secret-token", int(NOW), "tenant-1")
        assert "secret-token" not in repr(session)


class TestCurrentPrincipal:
    """Test cases for principal resolution."""

    @pytest.fixture
    def manager(self):
        return SessionManager(PIMConfig(), mock_mode=True)

    def test_principal_resolved(self, manager):
        connector = Mock(spec=BaseGovernanceConnector)
        connector.get_current_principal.return_value = ConnectorResult(True, data={
            "id": "user-1", "displayName": "Alice", "userPrincipalName": "alice@example.com"
        })

        principal = manager.get_current_principal(connector)

        assert principal.id == "user-1"
        assert principal.user_principal_name == "alice@example.com"

    def test_lookup_failure(self, manager):
        connector = Mock(spec=BaseGovernanceConnector)
        connector.get_current_principal.return_value = ConnectorResult(
            False, "failed", error="Access token has expired"
        )

        with pytest.raises(AuthenticationError, match="Access token has expired"):
            manager.get_current_principal(connector)

    def test_response_without_id(self, manager):
        connector = Mock(spec=BaseGovernanceConnector)
        connector.get_current_principal.return_value = ConnectorResult(True, data={})

        with pytest.raises(AuthenticationError, match="no id"):
            manager.get_current_principal(connector)

"""
Session Manager for the PIM Engine.

Establishes, at most once per run, the delegated session used for every
governance call. An existing session is reused while its access token is
valid; otherwise an interactive login is performed with azure-identity.
"""

import logging
import time
import uuid
from typing import Callable, Optional

from azure.core.exceptions import AzureError, ClientAuthenticationError
from azure.identity import (
    DeviceCodeCredential,
    InteractiveBrowserCredential,
    TokenCachePersistenceOptions,
)

from ..config import PIMConfig
from ..connectors.base_connector import BaseGovernanceConnector
from ..exceptions import AuthenticationError
from ..models import Principal

logger = logging.getLogger(__name__)

# Tokens expiring within this many seconds are treated as expired.
EXPIRY_SKEW_SECONDS = 60


class AuthSession:
    """An authenticated delegated context."""

    def __init__(self, token: str, expires_on: int, tenant_id: Optional[str] = None):
        self.token = token
        self.expires_on = expires_on
        self.tenant_id = tenant_id

    def is_valid(self, now: float) -> bool:
        return self.expires_on - EXPIRY_SKEW_SECONDS > now

    def __repr__(self):
        return f"AuthSession(tenant_id={self.tenant_id!r}, expires_on={self.expires_on})"


class SessionManager:
    """Owns the process-lifetime session and the credential behind it."""

    def __init__(self, config: PIMConfig, credential=None, mock_mode: bool = False,
                 clock: Callable[[], float] = time.time):
        """
        Args:
            config: Tenant/application identity and scopes
            credential: azure-identity credential; built from config when omitted
            mock_mode: Create a synthetic session without network access
            clock: Source of epoch seconds
        """
        self.config = config
        self.mock_mode = mock_mode
        self.clock = clock
        self._credential = credential
        self._session: Optional[AuthSession] = None

    def _build_credential(self):
        self.config.validate_for_login()

        kwargs = {
            "tenant_id": self.config.tenant_id,
            "client_id": self.config.client_id,
        }
        if self.config.persist_token_cache:
            kwargs["cache_persistence_options"] = TokenCachePersistenceOptions(
                name=self.config.token_cache_name
            )

        if self.config.login_mode == "device_code":
            return DeviceCodeCredential(**kwargs)
        return InteractiveBrowserCredential(**kwargs)

    def current_session(self) -> Optional[AuthSession]:
        """Return the live session, or None when absent or expired."""
        if self._session and self._session.is_valid(self.clock()):
            return self._session
        return None

    def ensure_session(self) -> AuthSession:
        """
        Return a valid session, logging in interactively if needed.

        Idempotent: with a live session this is a no-op.

        Raises:
            AuthenticationError: if the login cannot be completed
        """
        session = self.current_session()
        if session:
            logger.debug("Reusing existing session")
            return session

        if self.mock_mode:
            self._session = AuthSession(
                token=f"mock-{uuid.uuid4()}",
                expires_on=int(self.clock()) + 3600,
                tenant_id=self.config.tenant_id or "mock-tenant",
            )
            logger.info("Created mock session")
            return self._session

        if self._credential is None:
            self._credential = self._build_credential()

        logger.info(f"Signing in to tenant {self.config.tenant_id} ({self.config.login_mode})")
        try:
            access_token = self._credential.get_token(*self.config.scopes)
        except ClientAuthenticationError as e:
            raise AuthenticationError(f"Login failed: {e.message or e}") from e
        except AzureError as e:
            raise AuthenticationError(f"Login could not be completed: {e}") from e

        self._session = AuthSession(access_token.token, access_token.expires_on,
                                    self.config.tenant_id)
        logger.info("Session established")
        return self._session

    def access_token(self) -> str:
        """Bearer token for the current session; used as a connector token provider."""
        return self.ensure_session().token

    def get_current_principal(self, connector: BaseGovernanceConnector) -> Principal:
        """
        Resolve the signed-in principal.

        Raises:
            AuthenticationError: if the identity cannot be resolved
        """
        result = connector.get_current_principal()
        if not result.success:
            raise AuthenticationError(
                f"Unable to resolve current principal: {result.error or result.message}"
            )

        data = result.data or {}
        if not data.get("id"):
            raise AuthenticationError("Unable to resolve current principal: response has no id")

        principal = Principal(
            id=data["id"],
            display_name=data.get("displayName"),
            user_principal_name=data.get("userPrincipalName"),
        )
        logger.info(f"Signed in as {principal.user_principal_name or principal.id}")
        return principal

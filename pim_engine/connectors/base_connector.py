"""
Base Connector Classes for the PIM Engine.

This module provides the foundation for governance service connectors,
with both a real Microsoft Graph implementation and an in-memory
simulated backend.
"""

import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from ..models import AssignmentScope

logger = logging.getLogger(__name__)


class ConnectorResult:
    """Result of a connector operation."""

    def __init__(self, success: bool, message: str = "", data: Optional[Any] = None,
                 error: Optional[str] = None, status_code: Optional[int] = None):
        self.success = success
        self.message = message
        self.data = data
        self.error = error
        self.status_code = status_code

    def __bool__(self):
        return self.success

    def __str__(self):
        return f"{'✓' if self.success else '✗'} {self.message}"


class BaseGovernanceConnector(ABC):
    """
    Abstract base class for governance service connectors.

    Each connector exposes the read and write operations the activation
    pipeline needs. Records are returned in the service's own JSON shape.
    Transport and API failures are reported through ConnectorResult,
    never raised.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, mock_mode: bool = False):
        """
        Initialize the connector.

        Args:
            config: Connector settings (endpoint, timeouts, seed data)
            mock_mode: If True, the connector is an in-memory simulation
        """
        self.config = config or {}
        self.mock_mode = mock_mode

        logger.info(f"Initialized {self.__class__.__name__} (mock_mode={mock_mode})")

    @abstractmethod
    def get_current_principal(self) -> ConnectorResult:
        """
        Get the signed-in principal.

        Returns:
            ConnectorResult with the principal record ({"id", "displayName", ...})
        """
        pass

    @abstractmethod
    def list_eligible(self, scope: AssignmentScope, principal_id: str) -> ConnectorResult:
        """
        List eligibility schedules for a principal.

        Args:
            scope: Role or Group
            principal_id: Principal to filter on

        Returns:
            ConnectorResult with a list of eligibility records, target expanded
        """
        pass

    @abstractmethod
    def submit_request(self, scope: AssignmentScope, payload: Dict[str, Any]) -> ConnectorResult:
        """
        Submit an activation schedule request.

        Args:
            scope: Role or Group
            payload: JSON body of the request

        Returns:
            ConnectorResult with the created request record
        """
        pass

    @abstractmethod
    def list_active(self, scope: AssignmentScope, principal_id: str) -> ConnectorResult:
        """
        List active assignment instances for a principal.

        Args:
            scope: Role or Group
            principal_id: Principal to filter on

        Returns:
            ConnectorResult with a list of instance records, target expanded
        """
        pass

    def is_mock_mode(self) -> bool:
        """Check if this connector is running in mock mode."""
        return self.mock_mode


class MockGovernanceConnector(BaseGovernanceConnector):
    """
    In-memory governance service for testing and development.

    Eligibilities are seeded from config["mock_data"]:

        principal: {id, displayName}
        roles: [{id, displayName, directoryScopeId?}]
        groups: [{id, displayName}]

    Submitted requests become active instances immediately.
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config, mock_mode=True)

        seed = self.config.get("mock_data") or {}
        principal = seed.get("principal") or {}
        self.principal: Dict[str, Any] = {
            "id": principal.get("id", "00000000-0000-0000-0000-000000000001"),
            "displayName": principal.get("displayName", "Mock User"),
            "userPrincipalName": principal.get("userPrincipalName", "mock.user@example.com"),
        }

        self.eligible: Dict[AssignmentScope, List[Dict[str, Any]]] = {
            AssignmentScope.ROLE: [self._role_eligibility(r) for r in seed.get("roles", [])],
            AssignmentScope.GROUP: [self._group_eligibility(g) for g in seed.get("groups", [])],
        }
        self.active: Dict[AssignmentScope, List[Dict[str, Any]]] = {
            AssignmentScope.ROLE: [],
            AssignmentScope.GROUP: [],
        }
        self.submitted: List[Dict[str, Any]] = []

    def _role_eligibility(self, role: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "id": str(uuid.uuid4()),
            "principalId": self.principal["id"],
            "roleDefinitionId": role["id"],
            "directoryScopeId": role.get("directoryScopeId", "/"),
            "roleDefinition": {"id": role["id"], "displayName": role["displayName"]},
        }

    def _group_eligibility(self, group: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "id": str(uuid.uuid4()),
            "principalId": self.principal["id"],
            "groupId": group["id"],
            "accessId": "member",
            "group": {"id": group["id"], "displayName": group["displayName"]},
        }

    def get_current_principal(self) -> ConnectorResult:
        """Mock principal lookup."""
        return ConnectorResult(True, f"Principal {self.principal['id']}", dict(self.principal))

    def list_eligible(self, scope: AssignmentScope, principal_id: str) -> ConnectorResult:
        """Mock eligibility listing."""
        records = [r for r in self.eligible[scope] if r["principalId"] == principal_id]
        return ConnectorResult(True, f"Found {len(records)} eligible {scope.noun}s", records)

    def submit_request(self, scope: AssignmentScope, payload: Dict[str, Any]) -> ConnectorResult:
        """Mock activation; the matching eligibility becomes active right away."""
        target_field = scope.target_field
        target_id = payload.get(target_field)

        match = next((r for r in self.eligible[scope]
                      if r["principalId"] == payload.get("principalId")
                      and r[target_field] == target_id), None)
        if match is None:
            error = f"No eligibility found for {target_field} {target_id}"
            return ConnectorResult(False, error, error=error, status_code=400)

        duration = payload["scheduleInfo"]["expiration"]["duration"]
        hours = int(duration[2:-1])
        end = datetime.now(timezone.utc) + timedelta(hours=hours)

        instance = {key: value for key, value in match.items() if key != "id"}
        instance["endDateTime"] = end.strftime("%Y-%m-%dT%H:%M:%SZ")
        self.active[scope].append(instance)

        request = dict(payload, id=str(uuid.uuid4()), status="Provisioned")
        self.submitted.append(request)

        logger.info(f"Mock activated {scope.noun} {target_id} for {payload.get('principalId')}")
        return ConnectorResult(True, f"Submitted {scope.noun} activation", request)

    def list_active(self, scope: AssignmentScope, principal_id: str) -> ConnectorResult:
        """Mock active instance listing."""
        records = [r for r in self.active[scope] if r["principalId"] == principal_id]
        return ConnectorResult(True, f"Found {len(records)} active {scope.noun}s", records)

    def get_mock_state(self) -> Dict[str, Any]:
        """Get current mock state for inspection."""
        return {
            "principal": self.principal,
            "eligible": {scope.value: records for scope, records in self.eligible.items()},
            "active": {scope.value: records for scope, records in self.active.items()},
            "submitted": self.submitted,
        }

"""
Microsoft Graph Connector for the PIM Engine.

Provides access to the Entra ID Privileged Identity Management APIs for
directory roles and PIM for Groups: eligibility schedules, schedule
requests and active assignment instances.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

import requests

from ..models import AssignmentScope
from .base_connector import BaseGovernanceConnector, ConnectorResult

logger = logging.getLogger(__name__)

ENDPOINTS = {
    AssignmentScope.ROLE: {
        "eligible": "/roleManagement/directory/roleEligibilitySchedules",
        "requests": "/roleManagement/directory/roleAssignmentScheduleRequests",
        "active": "/roleManagement/directory/roleAssignmentScheduleInstances",
    },
    AssignmentScope.GROUP: {
        "eligible": "/identityGovernance/privilegedAccess/group/eligibilitySchedules",
        "requests": "/identityGovernance/privilegedAccess/group/assignmentScheduleRequests",
        "active": "/identityGovernance/privilegedAccess/group/assignmentScheduleInstances",
    },
}


def extract_error_message(response: requests.Response) -> str:
    """Return the service's error message, falling back to the raw body."""
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"

    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return error["message"]
    return response.text or f"HTTP {response.status_code}"


class GraphGovernanceConnector(BaseGovernanceConnector):
    """Microsoft Graph connector for PIM roles and groups."""

    def __init__(self, config: Optional[Dict[str, Any]] = None,
                 token_provider: Optional[Callable[[], str]] = None,
                 session: Optional[requests.Session] = None):
        """
        Args:
            config: Needs graph_base_url; request_timeout is optional
            token_provider: Callable returning a bearer token for each request
            session: Pre-built requests session (tests inject one)
        """
        super().__init__(config, mock_mode=False)

        if token_provider is None:
            raise ValueError("Graph connector requires a token provider")

        self.base_url = self.config.get("graph_base_url", "https://graph.microsoft.com/v1.0").rstrip("/")
        self.timeout = self.config.get("request_timeout", 30.0)
        self.token_provider = token_provider
        self.session = session or requests.Session()

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.token_provider()}",
            "Accept": "application/json",
        }

    def _principal_filter(self, scope: AssignmentScope, principal_id: str) -> Dict[str, str]:
        return {
            "$filter": f"principalId eq '{principal_id}'",
            "$expand": scope.expand_property,
        }

    def _get_collection(self, path: str, params: Optional[Dict[str, str]] = None) -> ConnectorResult:
        """GET a collection, following @odata.nextLink pages."""
        url = f"{self.base_url}{path}"
        records: List[Dict[str, Any]] = []

        try:
            while url:
                response = self.session.get(url, headers=self._headers(), params=params,
                                            timeout=self.timeout)
                if not response.ok:
                    error = extract_error_message(response)
                    logger.error(f"GET {path} failed ({response.status_code}): {error}")
                    return ConnectorResult(False, f"GET {path} failed", error=error,
                                           status_code=response.status_code)

                try:
                    body = response.json()
                except ValueError:
                    logger.error(f"GET {path} returned a non-JSON body")
                    return ConnectorResult(False, f"GET {path} failed",
                                           error=f"Unexpected non-JSON response from {path}",
                                           status_code=response.status_code)

                records.extend(body.get("value") or [])
                url = body.get("@odata.nextLink")
                # nextLink already carries the query string
                params = None

        except requests.RequestException as e:
            logger.error(f"GET {path} failed: {e}")
            return ConnectorResult(False, f"GET {path} failed", error=str(e))

        logger.debug(f"GET {path} returned {len(records)} records")
        return ConnectorResult(True, f"Retrieved {len(records)} records", records)

    def get_current_principal(self) -> ConnectorResult:
        """Resolve the signed-in user via /me."""
        try:
            response = self.session.get(f"{self.base_url}/me", headers=self._headers(),
                                        params={"$select": "id,displayName,userPrincipalName"},
                                        timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"Failed to resolve current principal: {e}")
            return ConnectorResult(False, "Failed to resolve current principal", error=str(e))

        if not response.ok:
            error = extract_error_message(response)
            return ConnectorResult(False, "Failed to resolve current principal", error=error,
                                   status_code=response.status_code)

        try:
            data = response.json()
        except ValueError:
            logger.error("/me returned a non-JSON body")
            return ConnectorResult(False, "Failed to resolve current principal",
                                   error="Unexpected non-JSON response from /me",
                                   status_code=response.status_code)

        return ConnectorResult(True, "Resolved current principal", data)

    def list_eligible(self, scope: AssignmentScope, principal_id: str) -> ConnectorResult:
        """List eligibility schedules for the principal."""
        return self._get_collection(ENDPOINTS[scope]["eligible"],
                                    self._principal_filter(scope, principal_id))

    def submit_request(self, scope: AssignmentScope, payload: Dict[str, Any]) -> ConnectorResult:
        """POST a schedule request. Not retried."""
        path = ENDPOINTS[scope]["requests"]
        headers = self._headers()
        headers["Content-Type"] = "application/json"

        try:
            response = self.session.post(f"{self.base_url}{path}", headers=headers,
                                         json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            logger.error(f"POST {path} failed: {e}")
            return ConnectorResult(False, f"POST {path} failed", error=str(e))

        if not response.ok:
            error = extract_error_message(response)
            logger.error(f"POST {path} rejected ({response.status_code}): {error}")
            return ConnectorResult(False, f"POST {path} rejected", error=error,
                                   status_code=response.status_code)

        try:
            data = response.json()
        except ValueError:
            data = {}

        logger.info(f"Submitted {scope.noun} activation request {data.get('id')}")
        return ConnectorResult(True, f"Submitted {scope.noun} activation request", data,
                               status_code=response.status_code)

    def list_active(self, scope: AssignmentScope, principal_id: str) -> ConnectorResult:
        """List active assignment instances for the principal."""
        return self._get_collection(ENDPOINTS[scope]["active"],
                                    self._principal_filter(scope, principal_id))

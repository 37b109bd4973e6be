"""
Eligibility Fetcher for the PIM Engine.

Retrieves the role or group eligibilities the current principal may
activate, in the order the governance service returns them.
"""

import logging
from typing import Any, Dict, List, Optional

from ..connectors.base_connector import BaseGovernanceConnector
from ..exceptions import EmptyResult, FetchError
from ..models import AssignmentScope, EligibleAssignment, Principal

logger = logging.getLogger(__name__)


def _display_name(scope: AssignmentScope, record: Dict[str, Any]) -> Optional[str]:
    expanded = record.get(scope.expand_property) or {}
    return expanded.get("displayName")


def parse_eligibility(scope: AssignmentScope, record: Dict[str, Any]) -> EligibleAssignment:
    """
    Convert an eligibility schedule record into an EligibleAssignment.

    Args:
        scope: Role or Group
        record: Service record with the target expanded

    Returns:
        EligibleAssignment
    """
    target_id = record.get(scope.target_field)
    if not target_id:
        raise FetchError(f"Eligibility record {record.get('id')} has no {scope.target_field}")

    return EligibleAssignment(
        principal_id=record.get("principalId", ""),
        target_definition_id=target_id,
        directory_scope_id=record.get("directoryScopeId") if scope == AssignmentScope.ROLE else None,
        # Fall back to the id so a missing expansion never hides a candidate
        display_name=_display_name(scope, record) or target_id,
    )


class EligibilityFetcher:
    """Queries eligibility schedules for a scope."""

    def __init__(self, connector: BaseGovernanceConnector):
        self.connector = connector

    def fetch_eligible(self, scope: AssignmentScope, principal: Principal) -> List[EligibleAssignment]:
        """
        Fetch assignments the principal is eligible to activate.

        Args:
            scope: Role or Group
            principal: Current principal

        Returns:
            Eligible assignments in service order

        Raises:
            FetchError: on transport or API failure
            EmptyResult: when there is nothing to activate
        """
        result = self.connector.list_eligible(scope, principal.id)
        if not result.success:
            raise FetchError(f"Failed to fetch eligible {scope.noun}s: {result.error or result.message}")

        candidates = [parse_eligibility(scope, record) for record in result.data or []]
        if not candidates:
            raise EmptyResult(f"No eligible {scope.noun}s found for {principal.user_principal_name or principal.id}")

        # principalId is not always echoed back on expanded records
        candidates = [
            c if c.principal_id else c.model_copy(update={"principal_id": principal.id})
            for c in candidates
        ]

        logger.info(f"Found {len(candidates)} eligible {scope.noun}s")
        return candidates

"""
Activation Verifier for the PIM Engine.

Polls for active assignment instances after submission and reports each
one with its expiry. The governance backend is eventually consistent, so
polling uses a bounded, growing delay. Failure here never affects the
submitted activation.
"""

import logging
import time
from typing import Any, Callable, Dict, List, Optional

from pydantic import ValidationError

from ..config import ConfirmationPolicy
from ..connectors.base_connector import BaseGovernanceConnector
from ..exceptions import ConfirmationError, PIMError
from ..models import ActiveAssignmentInstance, AssignmentScope, ConfirmationReport, Principal

logger = logging.getLogger(__name__)


def parse_instance(scope: AssignmentScope, record: Dict[str, Any]) -> ActiveAssignmentInstance:
    expanded = record.get(scope.expand_property) or {}
    target_id = record.get(scope.target_field)
    return ActiveAssignmentInstance(
        display_name=expanded.get("displayName") or target_id or "Unknown",
        target_definition_id=target_id,
        end_date_time_utc=record.get("endDateTime"),
    )


class ActivationVerifier:
    """Confirms and reports active assignments."""

    def __init__(self, connector: BaseGovernanceConnector,
                 policy: Optional[ConfirmationPolicy] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.connector = connector
        self.policy = policy or ConfirmationPolicy()
        self.sleep = sleep

    def fetch_active(self, scope: AssignmentScope, principal: Principal) -> List[ActiveAssignmentInstance]:
        """
        Single query for the principal's active instances.

        Raises:
            ConfirmationError: if the query fails or returns malformed records
        """
        try:
            result = self.connector.list_active(scope, principal.id)
        except PIMError as e:
            # Token renewal can fail mid-poll; the submitted activation still stands
            raise ConfirmationError(f"Failed to query active {scope.noun}s: {e}") from e

        if not result.success:
            raise ConfirmationError(
                f"Failed to query active {scope.noun}s: {result.error or result.message}"
            )

        try:
            return [parse_instance(scope, record) for record in result.data or []]
        except ValidationError as e:
            raise ConfirmationError(f"Malformed active {scope.noun} record: {e}") from e

    def confirm(self, scope: AssignmentScope, principal: Principal,
                expected_target_id: Optional[str] = None) -> ConfirmationReport:
        """
        Poll until the expected target is active or attempts run out.

        Args:
            scope: Role or Group
            principal: Current principal
            expected_target_id: Target id of the submitted request, if known

        Returns:
            ConfirmationReport with one line per active instance

        Raises:
            ConfirmationError: if every attempt failed
        """
        instances: Optional[List[ActiveAssignmentInstance]] = None
        last_error: Optional[ConfirmationError] = None
        attempts = 0
        visible = False

        for delay in self.policy.delays():
            if delay:
                logger.debug(f"Waiting {delay:.1f}s before checking active {scope.noun}s")
                self.sleep(delay)
            attempts += 1

            try:
                instances = self.fetch_active(scope, principal)
            except ConfirmationError as e:
                logger.warning(f"Confirmation attempt {attempts} failed: {e}")
                last_error = e
                continue

            visible = expected_target_id is None or any(
                i.target_definition_id == expected_target_id for i in instances
            )
            if visible:
                break

            logger.info(f"Activation not yet visible after attempt {attempts}")

        if instances is None:
            raise ConfirmationError(
                f"Could not confirm activation after {attempts} attempts: {last_error}"
            )

        report = ConfirmationReport(
            lines=[instance.describe() for instance in instances],
            attempts=attempts,
            target_visible=visible,
        )
        logger.info(f"Found {len(instances)} active {scope.noun}s after {attempts} attempts")
        return report

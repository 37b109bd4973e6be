"""
Activation Submitter for the PIM Engine.

Posts the activation request to the governance service exactly once.
Schedule requests are not idempotent, so a failure is surfaced rather
than retried.
"""

import logging

from ..connectors.base_connector import BaseGovernanceConnector
from ..exceptions import ActivationError, ConfigurationError
from ..models import ActivationRequest, AssignmentScope, SubmissionReceipt

logger = logging.getLogger(__name__)


class ActivationSubmitter:
    """Submits activation requests."""

    def __init__(self, connector: BaseGovernanceConnector):
        self.connector = connector

    def submit(self, request: ActivationRequest, scope: AssignmentScope) -> SubmissionReceipt:
        """
        Submit the request to the scope's schedule request endpoint.

        The activation is pending, not yet active, once this returns.

        Raises:
            ActivationError: with the service's message verbatim
        """
        if request.scope != scope:
            raise ConfigurationError(
                f"Request built for {request.scope.value} cannot be submitted as {scope.value}"
            )

        result = self.connector.submit_request(scope, request.to_payload())
        if not result.success:
            raise ActivationError(result.error or result.message, status_code=result.status_code)

        data = result.data or {}
        receipt = SubmissionReceipt(request_id=data.get("id"), status=data.get("status"))
        logger.info(f"Activation request {receipt.request_id} accepted (status={receipt.status})")
        return receipt

"""
Activation Request Builder for the PIM Engine.

Constructs the scope-specific, schedule-bound activation request for a
selected eligibility. Building is pure apart from reading the clock.
"""

import logging
from datetime import datetime, timezone
from typing import Callable, Optional

from ..exceptions import ConfigurationError
from ..models import (
    DEFAULT_DIRECTORY_SCOPE,
    GROUP_ACCESS_ID,
    ActivationAction,
    ActivationRequest,
    ActivationSchedule,
    AssignmentScope,
    EligibleAssignment,
    TicketInfo,
)

logger = logging.getLogger(__name__)

START_TIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def validate_hours(hours) -> int:
    """
    Check that hours is a positive integer.

    Raises:
        ConfigurationError: for non-integer or non-positive values
    """
    if isinstance(hours, bool) or not isinstance(hours, int):
        raise ConfigurationError(f"hours must be a positive integer, got {hours!r}")
    if hours <= 0:
        raise ConfigurationError(f"hours must be a positive integer, got {hours}")
    return hours


def iso8601_duration(hours: int) -> str:
    return f"PT{validate_hours(hours)}H"


def default_justification(scope: AssignmentScope, display_name: str) -> str:
    return f"Activating {scope.noun}: {display_name}"


class ActivationRequestBuilder:
    """Builds ActivationRequest objects."""

    def __init__(self, clock: Callable[[], datetime] = utc_now):
        self.clock = clock

    def format_start(self) -> str:
        now = self.clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now.astimezone(timezone.utc).strftime(START_TIME_FORMAT)

    def build(self, scope: AssignmentScope, selected: EligibleAssignment,
              justification: Optional[str] = None, hours: int = 4) -> ActivationRequest:
        """
        Build the activation request for the selected assignment.

        Args:
            scope: Role or Group
            selected: The eligibility to activate
            justification: Reason supplied by the caller; synthesized when empty
            hours: Activation length, a positive integer

        Returns:
            Immutable ActivationRequest

        Raises:
            ConfigurationError: if hours is not a positive integer
        """
        duration = iso8601_duration(hours)
        schedule = ActivationSchedule(start_date_time_utc=self.format_start(),
                                      duration_iso8601=duration)

        if not justification or not justification.strip():
            justification = default_justification(scope, selected.display_name)

        if scope == AssignmentScope.ROLE:
            request = ActivationRequest(
                scope=scope,
                action=ActivationAction.SELF_ACTIVATE,
                principal_id=selected.principal_id,
                target_definition_id=selected.target_definition_id,
                directory_scope_id=selected.directory_scope_id or DEFAULT_DIRECTORY_SCOPE,
                justification=justification,
                schedule=schedule,
                ticket_info=TicketInfo(),
            )
        else:
            request = ActivationRequest(
                scope=scope,
                action=ActivationAction.ADMIN_ASSIGN,
                principal_id=selected.principal_id,
                target_definition_id=selected.target_definition_id,
                access_id=GROUP_ACCESS_ID,
                justification=justification,
                schedule=schedule,
                ticket_info=TicketInfo(),
            )

        logger.debug(f"Built {request.action.value} request for {selected.display_name} "
                     f"starting {schedule.start_date_time_utc} for {duration}")
        return request

"""
Core data models for the PIM Engine.

This module defines the Pydantic models used throughout the system
for eligible assignments, activation requests, active assignment
instances and pipeline results.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

# Group activations always request membership; owner access is not requested.
GROUP_ACCESS_ID = "member"

# Directory scope applied when an eligibility record carries none (tenant-wide).
DEFAULT_DIRECTORY_SCOPE = "/"

NO_EXPIRATION = "No Expiration"


class AssignmentScope(str, Enum):
    """Kind of privileged access being activated."""
    ROLE = "Role"
    GROUP = "Group"

    @property
    def target_field(self) -> str:
        """Name of the target id field in service records."""
        return "roleDefinitionId" if self is AssignmentScope.ROLE else "groupId"

    @property
    def expand_property(self) -> str:
        """Navigation property expanded to obtain the target display name."""
        return "roleDefinition" if self is AssignmentScope.ROLE else "group"

    @property
    def noun(self) -> str:
        return self.value.lower()


class ActivationAction(str, Enum):
    """
    Schedule request action keyword sent to the governance service.

    Member names are the SelfActivate/AdminAssign keywords; values are the
    camelCase spellings Microsoft Graph accepts on the wire.
    """
    SELF_ACTIVATE = "selfActivate"
    ADMIN_ASSIGN = "adminAssign"


class PipelineState(str, Enum):
    """States of a single activation run."""
    IDLE = "Idle"
    AUTHENTICATING = "Authenticating"
    FETCHING_ELIGIBILITY = "FetchingEligibility"
    AWAITING_SELECTION = "AwaitingSelection"
    BUILDING_REQUEST = "BuildingRequest"
    SUBMITTING = "Submitting"
    CONFIRMING = "Confirming"
    DONE = "Done"
    ABORTED = "Aborted"


class Principal(BaseModel):
    """The signed-in identity requesting or holding activations."""
    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Directory object id of the principal")
    display_name: Optional[str] = None
    user_principal_name: Optional[str] = None


class EligibleAssignment(BaseModel):
    """A standing grant the principal may activate."""
    model_config = ConfigDict(frozen=True)

    principal_id: str
    target_definition_id: str = Field(..., description="roleDefinitionId or groupId")
    directory_scope_id: Optional[str] = Field(None, description="Only set for role eligibilities")
    display_name: str


class ActivationSchedule(BaseModel):
    model_config = ConfigDict(frozen=True)

    start_date_time_utc: str
    duration_iso8601: str


class TicketInfo(BaseModel):
    """Ticket reference; required by the request schema even when unused."""
    model_config = ConfigDict(frozen=True)

    ticket_number: str = ""
    ticket_system: str = ""


class ActivationRequest(BaseModel):
    """Scope-specific, schedule-bound activation request."""
    model_config = ConfigDict(frozen=True)

    scope: AssignmentScope
    action: ActivationAction
    principal_id: str
    target_definition_id: str
    directory_scope_id: Optional[str] = None
    access_id: Optional[str] = None
    justification: str = Field(..., min_length=1)
    schedule: ActivationSchedule
    ticket_info: TicketInfo = Field(default_factory=TicketInfo)

    def to_payload(self) -> Dict[str, Any]:
        """Render the JSON body expected by the schedule request endpoint."""
        payload: Dict[str, Any] = {
            "action": self.action.value,
            "principalId": self.principal_id,
        }

        if self.scope == AssignmentScope.ROLE:
            payload["roleDefinitionId"] = self.target_definition_id
            payload["directoryScopeId"] = self.directory_scope_id or DEFAULT_DIRECTORY_SCOPE
        else:
            payload["groupId"] = self.target_definition_id
            payload["accessId"] = self.access_id or GROUP_ACCESS_ID

        payload["justification"] = self.justification
        payload["scheduleInfo"] = {
            "startDateTime": self.schedule.start_date_time_utc,
            "expiration": {
                "type": "afterDuration",
                "duration": self.schedule.duration_iso8601,
            },
        }
        payload["ticketInfo"] = {
            "ticketNumber": self.ticket_info.ticket_number,
            "ticketSystem": self.ticket_info.ticket_system,
        }
        return payload


class SubmissionReceipt(BaseModel):
    """Acknowledgment of a submitted (pending) activation request."""
    request_id: Optional[str] = None
    status: Optional[str] = None


class ActiveAssignmentInstance(BaseModel):
    """A currently active assignment, fetched for reporting only."""
    model_config = ConfigDict(frozen=True)

    display_name: str
    target_definition_id: Optional[str] = None
    end_date_time_utc: Optional[datetime] = None

    def expiration_label(self) -> str:
        """Human-readable expiry, or "No Expiration" for indefinite instances."""
        if self.end_date_time_utc is None:
            return NO_EXPIRATION

        end = self.end_date_time_utc
        if end.tzinfo is None:
            end = end.replace(tzinfo=timezone.utc)
        return end.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")

    def describe(self) -> str:
        return f"{self.display_name} (Expires: {self.expiration_label()})"


class ConfirmationReport(BaseModel):
    """Outcome of the post-activation confirmation poll."""
    lines: List[str] = Field(default_factory=list)
    attempts: int = 0
    target_visible: bool = False


class StageResult(BaseModel):
    """Result of a single pipeline stage."""
    state: PipelineState
    success: bool = False
    error_kind: Optional[str] = None
    message: str = ""
    started_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None


class PipelineResult(BaseModel):
    """Result of a complete activation run."""
    run_id: str
    scope: AssignmentScope
    state: PipelineState = PipelineState.IDLE
    aborted_reason: Optional[str] = None
    error_kind: Optional[str] = None
    severity: Optional[str] = None
    principal: Optional[Principal] = None
    selected: Optional[EligibleAssignment] = None
    request: Optional[ActivationRequest] = None
    receipt: Optional[SubmissionReceipt] = None
    confirmation: Optional[ConfirmationReport] = None
    warnings: List[str] = Field(default_factory=list)
    stages: List[StageResult] = Field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.state == PipelineState.DONE

    @property
    def submitted(self) -> bool:
        return self.receipt is not None

"""
Activation Workflow for the PIM Engine.

Runs the activation pipeline once, strictly in order:

    Idle -> Authenticating -> FetchingEligibility -> AwaitingSelection
         -> BuildingRequest -> Submitting -> Confirming -> Done

Any stage may end the run in Aborted. Every stage is executed through
_run_stage, which records a StageResult and converts the stage's typed
error into the run outcome so reporting happens in one place.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Tuple

from ..config import PIMConfig
from ..connectors import BaseGovernanceConnector, create_connector
from ..engine import (
    ActivationRequestBuilder,
    ActivationSubmitter,
    ActivationVerifier,
    AssignmentSelector,
    EligibilityFetcher,
    SelectionCapability,
    SessionManager,
)
from ..engine.request_builder import validate_hours
from ..exceptions import FATAL, PIMError
from ..models import AssignmentScope, PipelineResult, PipelineState, Principal, StageResult

logger = logging.getLogger(__name__)

STATE_ORDER = [
    PipelineState.IDLE,
    PipelineState.AUTHENTICATING,
    PipelineState.FETCHING_ELIGIBILITY,
    PipelineState.AWAITING_SELECTION,
    PipelineState.BUILDING_REQUEST,
    PipelineState.SUBMITTING,
    PipelineState.CONFIRMING,
    PipelineState.DONE,
]


class StageFailed(Exception):
    """Internal signal that a stage aborted the run."""


class ActivationWorkflow:
    """
    Orchestrates a single activation run.

    Components are built from the configuration unless injected, so tests
    and scripted callers can replace any of them.
    """

    def __init__(self, config: PIMConfig, selection: SelectionCapability,
                 mock_mode: bool = False,
                 session_manager: Optional[SessionManager] = None,
                 connector: Optional[BaseGovernanceConnector] = None,
                 builder: Optional[ActivationRequestBuilder] = None,
                 sleep: Optional[Callable[[float], None]] = None):
        """
        Initialize the workflow.

        Args:
            config: Runtime configuration
            selection: Capability resolving candidates to zero or one assignment
            mock_mode: Use the in-memory governance service and a synthetic session
            session_manager: Pre-built session manager
            connector: Pre-built governance connector
            builder: Pre-built request builder (tests inject a fixed clock)
            sleep: Replacement for time.sleep during confirmation polling
        """
        self.config = config
        self.mock_mode = mock_mode
        self.session_manager = session_manager or SessionManager(config, mock_mode=mock_mode)
        self.connector = connector or self._initialize_connector()

        self.fetcher = EligibilityFetcher(self.connector)
        self.selector = AssignmentSelector(selection)
        self.builder = builder or ActivationRequestBuilder()
        self.submitter = ActivationSubmitter(self.connector)
        verifier_kwargs = {"sleep": sleep} if sleep else {}
        self.verifier = ActivationVerifier(self.connector, config.confirmation, **verifier_kwargs)

        self.state = PipelineState.IDLE

    def _initialize_connector(self) -> BaseGovernanceConnector:
        """Build the governance connector for the configured mode."""
        return create_connector(self.config.model_dump(), self.session_manager.access_token,
                                mock=self.mock_mode)

    def _transition(self, result: PipelineResult, state: PipelineState):
        if STATE_ORDER.index(state) <= STATE_ORDER.index(self.state):
            raise RuntimeError(f"Invalid transition {self.state.value} -> {state.value}")
        self.state = state
        result.state = state

    def _abort(self, result: PipelineResult, stage: StageResult, error: PIMError):
        self.state = PipelineState.ABORTED
        result.state = PipelineState.ABORTED
        result.aborted_reason = str(error)
        result.error_kind = error.kind
        result.severity = error.severity

        if error.severity == FATAL:
            logger.error(f"{stage.state.value} failed: {error.kind}: {error}")
        else:
            logger.warning(f"{stage.state.value} stopped the run: {error}")

    def _run_stage(self, result: PipelineResult, state: PipelineState,
                   action: Callable[[], Any]) -> Tuple[bool, Any]:
        """
        Execute a single pipeline stage.

        Returns:
            (True, value) on success or on a non-aborting failure (value None);
            raises StageFailed when the run must stop.
        """
        self._transition(result, state)
        stage = StageResult(state=state)
        result.stages.append(stage)

        try:
            value = action()
        except PIMError as e:
            stage.completed_at = datetime.now(timezone.utc)
            stage.error_kind = e.kind
            stage.message = str(e)

            if not e.aborts:
                logger.warning(f"{state.value}: {e}")
                result.warnings.append(str(e))
                return False, None

            self._abort(result, stage, e)
            raise StageFailed(e.kind) from e

        stage.completed_at = datetime.now(timezone.utc)
        stage.success = True
        return True, value

    def _authenticate(self) -> Principal:
        self.session_manager.ensure_session()
        return self.session_manager.get_current_principal(self.connector)

    def execute(self, scope: AssignmentScope, justification: Optional[str] = None,
                hours: Optional[int] = None) -> PipelineResult:
        """
        Run the activation pipeline once.

        Args:
            scope: Role or Group
            justification: Reason for activation; synthesized when omitted
            hours: Activation length; defaults to config.default_hours

        Returns:
            PipelineResult ending in Done or Aborted
        """
        scope = AssignmentScope(scope)
        hours = self.config.default_hours if hours is None else hours
        result = PipelineResult(run_id=str(uuid.uuid4()), scope=scope)
        self.state = PipelineState.IDLE

        logger.info(f"Starting {scope.noun} activation run {result.run_id}")

        try:
            # Input is validated before any login is attempted
            self._validate_input(result, hours)

            _, principal = self._run_stage(result, PipelineState.AUTHENTICATING, self._authenticate)
            result.principal = principal

            _, candidates = self._run_stage(
                result, PipelineState.FETCHING_ELIGIBILITY,
                lambda: self.fetcher.fetch_eligible(scope, principal))

            _, selected = self._run_stage(
                result, PipelineState.AWAITING_SELECTION,
                lambda: self.selector.select(candidates))
            result.selected = selected

            _, request = self._run_stage(
                result, PipelineState.BUILDING_REQUEST,
                lambda: self.builder.build(scope, selected, justification, hours))
            result.request = request

            _, receipt = self._run_stage(
                result, PipelineState.SUBMITTING,
                lambda: self.submitter.submit(request, scope))
            result.receipt = receipt

            confirmed, report = self._run_stage(
                result, PipelineState.CONFIRMING,
                lambda: self.verifier.confirm(scope, principal, request.target_definition_id))
            if confirmed:
                result.confirmation = report

        except StageFailed:
            logger.info(f"Run {result.run_id} aborted: {result.error_kind}")
            return result

        self._transition(result, PipelineState.DONE)
        logger.info(f"Run {result.run_id} completed")
        return result

    def _validate_input(self, result: PipelineResult, hours):
        stage = StageResult(state=PipelineState.IDLE)
        try:
            validate_hours(hours)
        except PIMError as e:
            result.stages.append(stage)
            stage.error_kind = e.kind
            stage.message = str(e)
            stage.completed_at = datetime.now(timezone.utc)
            self._abort(result, stage, e)
            raise StageFailed(e.kind) from e

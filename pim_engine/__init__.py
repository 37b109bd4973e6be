"""
Privileged Identity Management Activation Engine (PIM Engine)

Just-in-time activation of Entra ID directory roles and PIM group
memberships for the signed-in user.

The engine reuses or establishes a delegated session, discovers the
user's eligibilities, lets the user pick one, submits a time-bound
activation request and confirms the resulting active assignments.
"""

__version__ = "1.0.0"
__author__ = "PIM Engine Team"
__email__ = "team@example.com"

from .config import PIMConfig, load_config
from .models import AssignmentScope, PipelineResult, PipelineState
from .workflows.activation_workflow import ActivationWorkflow

__all__ = [
    "PIMConfig",
    "load_config",
    "AssignmentScope",
    "PipelineResult",
    "PipelineState",
    "ActivationWorkflow",
]

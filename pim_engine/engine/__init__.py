"""
Engine Package for the PIM Engine.

This package provides the stages of the activation pipeline.
"""

from .eligibility import EligibilityFetcher
from .request_builder import ActivationRequestBuilder
from .selector import AssignmentSelector, PresetSelector, RichPromptSelector, SelectionCapability
from .session_manager import AuthSession, SessionManager
from .submitter import ActivationSubmitter
from .verifier import ActivationVerifier

__all__ = [
    "AuthSession",
    "SessionManager",
    "EligibilityFetcher",
    "AssignmentSelector",
    "SelectionCapability",
    "RichPromptSelector",
    "PresetSelector",
    "ActivationRequestBuilder",
    "ActivationSubmitter",
    "ActivationVerifier",
]

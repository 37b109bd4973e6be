"""
Error taxonomy for the PIM Engine.

Every stage of the activation pipeline signals failure by raising one of
these exceptions. Each kind carries a severity used by the orchestrator
to decide whether the run aborts and how the failure is reported.
"""

FATAL = "fatal"
WARNING = "warning"


class PIMError(Exception):
    """Base class for all activation pipeline failures."""

    kind = "PIMError"
    severity = FATAL
    # Whether the pipeline stops when this error is raised.
    aborts = True

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message

    def __str__(self):
        return self.message or self.kind


class AuthenticationError(PIMError):
    """Session could not be established or the principal could not be resolved."""
    kind = "AuthenticationError"


class FetchError(PIMError):
    """Eligibility query failed at the transport or API level."""
    kind = "FetchError"


class EmptyResult(PIMError):
    """Eligibility query returned no candidates."""
    kind = "EmptyResult"
    severity = WARNING


class NoSelection(PIMError):
    """User declined or cancelled the selection prompt."""
    kind = "NoSelection"
    severity = WARNING


class ConfigurationError(PIMError):
    """Invalid input or configuration, detected before any request is sent."""
    kind = "ConfigurationError"


class ActivationError(PIMError):
    """Governance service rejected the activation request."""
    kind = "ActivationError"

    def __init__(self, message: str = "", status_code=None):
        super().__init__(message)
        self.status_code = status_code


class ConfirmationError(PIMError):
    """Active-instance query failed after submission. Never rolls back."""
    kind = "ConfirmationError"
    severity = WARNING
    aborts = False

"""
Workflows Package for the PIM Engine.

This package provides the orchestration of the activation pipeline.
"""

from .activation_workflow import STATE_ORDER, ActivationWorkflow

__all__ = [
    "ActivationWorkflow",
    "STATE_ORDER",
]

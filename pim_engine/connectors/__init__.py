"""
Connectors Package for the PIM Engine.

This package provides access to the governance service, either through
Microsoft Graph or through an in-memory simulation.
"""

from typing import Any, Callable, Dict, Optional

from .base_connector import BaseGovernanceConnector, ConnectorResult, MockGovernanceConnector
from .graph_connector import ENDPOINTS, GraphGovernanceConnector


def create_connector(config: Dict[str, Any], token_provider: Optional[Callable[[], str]] = None,
                     mock: bool = False) -> BaseGovernanceConnector:
    """Build the governance connector for the requested mode."""
    if mock:
        return MockGovernanceConnector(config)
    return GraphGovernanceConnector(config, token_provider=token_provider)


__all__ = [
    "BaseGovernanceConnector",
    "ConnectorResult",
    "MockGovernanceConnector",
    "GraphGovernanceConnector",
    "ENDPOINTS",
    "create_connector",
]

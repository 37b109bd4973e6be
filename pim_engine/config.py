"""
Configuration for the PIM Engine.

Settings are read from an optional YAML file and can be overridden with
environment variables. The tenant and application identifiers used for
the interactive login live here rather than in code.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path.home() / ".pim_engine" / "config.yaml"

DEFAULT_SCOPES = [
    "https://graph.microsoft.com/RoleEligibilitySchedule.Read.Directory",
    "https://graph.microsoft.com/RoleAssignmentSchedule.ReadWrite.Directory",
    "https://graph.microsoft.com/PrivilegedEligibilitySchedule.Read.AzureADGroup",
    "https://graph.microsoft.com/PrivilegedAssignmentSchedule.ReadWrite.AzureADGroup",
    "https://graph.microsoft.com/User.Read",
]

ENV_OVERRIDES = {
    "PIM_TENANT_ID": "tenant_id",
    "PIM_CLIENT_ID": "client_id",
    "PIM_GRAPH_BASE_URL": "graph_base_url",
}


class ConfirmationPolicy(BaseModel):
    """Polling schedule for post-activation confirmation."""
    initial_delay: float = Field(5.0, ge=0, description="Seconds before the first query")
    backoff_factor: float = Field(2.0, ge=1.0)
    max_delay: float = Field(30.0, ge=0)
    max_attempts: int = Field(4, ge=1)

    def delays(self) -> List[float]:
        """Delay to wait before each attempt."""
        delays = []
        delay = self.initial_delay
        for _ in range(self.max_attempts):
            delays.append(min(delay, self.max_delay))
            delay = delay * self.backoff_factor if delay else self.backoff_factor
        return delays


class PIMConfig(BaseModel):
    """Runtime configuration supplied at startup."""
    tenant_id: Optional[str] = None
    client_id: Optional[str] = None
    login_mode: str = Field("interactive", description="interactive or device_code")
    persist_token_cache: bool = True
    token_cache_name: str = "pim_engine"
    graph_base_url: str = "https://graph.microsoft.com/v1.0"
    scopes: List[str] = Field(default_factory=lambda: list(DEFAULT_SCOPES))
    default_hours: int = Field(4, ge=1)
    request_timeout: float = Field(30.0, gt=0)
    confirmation: ConfirmationPolicy = Field(default_factory=ConfirmationPolicy)
    mock_data: Dict[str, Any] = Field(default_factory=dict, description="Seed data for mock mode")

    @field_validator("login_mode")
    @classmethod
    def _check_login_mode(cls, value: str) -> str:
        if value not in ("interactive", "device_code"):
            raise ValueError("login_mode must be 'interactive' or 'device_code'")
        return value

    @field_validator("graph_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    def validate_for_login(self):
        """Ensure the identifiers needed for a real delegated login are present."""
        missing = [name for name in ("tenant_id", "client_id") if not getattr(self, name)]
        if missing:
            raise ConfigurationError(
                f"Missing required configuration for login: {', '.join(missing)}"
            )


def load_config(path: Optional[Union[str, Path]] = None,
                environ: Optional[Dict[str, str]] = None) -> PIMConfig:
    """
    Load configuration from a YAML file and environment overrides.

    Args:
        path: Path to a YAML config file. Defaults to ~/.pim_engine/config.yaml
              when that file exists.
        environ: Environment mapping, defaults to os.environ

    Returns:
        Validated PIMConfig
    """
    environ = os.environ if environ is None else environ
    data: Dict[str, Any] = {}

    config_path = Path(path) if path else DEFAULT_CONFIG_PATH
    if config_path.exists():
        try:
            with open(config_path, encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigurationError(f"Error loading config {config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {config_path} must contain a mapping")
        logger.info(f"Loaded configuration from {config_path}")
    elif path:
        raise ConfigurationError(f"Config file not found: {config_path}")

    for env_name, field_name in ENV_OVERRIDES.items():
        if environ.get(env_name):
            data[field_name] = environ[env_name]
            logger.debug(f"Applied {env_name} override")

    try:
        return PIMConfig(**data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e

#!/usr/bin/env python3
"""
PIM Control CLI - Command Line Interface for the PIM Engine.

Provides commands for activating eligible directory roles and PIM group
memberships, and for listing eligible and active assignments.
"""

import logging
import sys
from typing import Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..config import load_config
from ..connectors import BaseGovernanceConnector, create_connector
from ..engine import ActivationVerifier, EligibilityFetcher, PresetSelector, RichPromptSelector, SessionManager
from ..exceptions import FATAL, PIMError
from ..models import AssignmentScope, PipelineResult, Principal
from ..workflows import ActivationWorkflow

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logger = logging.getLogger(__name__)

# Rich console for pretty output
console = Console()

SCOPE_CHOICE = click.Choice([scope.value for scope in AssignmentScope], case_sensitive=False)

# Seed data used by --mock when the config file provides none
DEFAULT_MOCK_DATA = {
    "principal": {
        "id": "00000000-0000-0000-0000-000000000001",
        "displayName": "Mock User",
        "userPrincipalName": "mock.user@example.com",
    },
    "roles": [
        {"id": "f2ef992c-3afb-46b9-b7cf-a126ee74c451", "displayName": "Global Reader"},
        {"id": "5d6b6bb7-de71-4623-b4af-96380a352509", "displayName": "Security Reader"},
    ],
    "groups": [
        {"id": "9a3f5c1e-2b7d-4e8a-9c0f-1d2e3f4a5b6c", "displayName": "Helpdesk Operators"},
    ],
}


def _parse_scope(value: str) -> AssignmentScope:
    return next(scope for scope in AssignmentScope if scope.value.lower() == value.lower())


class PIMController:
    """Builds the shared session and connector for CLI commands."""

    def __init__(self, config_path: Optional[str] = None, mock_mode: bool = False):
        self.mock_mode = mock_mode
        self.config = load_config(config_path)

        if mock_mode and not self.config.mock_data:
            self.config = self.config.model_copy(update={"mock_data": DEFAULT_MOCK_DATA})

        self.session_manager = SessionManager(self.config, mock_mode=mock_mode)
        self.connector = self._initialize_connector()

    def _initialize_connector(self) -> BaseGovernanceConnector:
        return create_connector(self.config.model_dump(), self.session_manager.access_token,
                                mock=self.mock_mode)

    def principal(self) -> Principal:
        self.session_manager.ensure_session()
        return self.session_manager.get_current_principal(self.connector)

    def workflow(self, selection) -> ActivationWorkflow:
        return ActivationWorkflow(
            self.config,
            selection,
            mock_mode=self.mock_mode,
            session_manager=self.session_manager,
            connector=self.connector,
        )


@click.group()
@click.option('--config', '-c', help='Path to configuration file')
@click.option('--mock/--real', default=False, help='Use the in-memory governance service')
@click.option('--verbose', '-v', is_flag=True, help='Enable informational logging')
@click.pass_context
def cli(ctx, config, mock, verbose):
    """PIM Control CLI - Just-in-time privileged access activation"""
    logging.basicConfig(level=logging.INFO if verbose else logging.WARNING, format=LOG_FORMAT)

    ctx.ensure_object(dict)
    try:
        ctx.obj['controller'] = PIMController(config, mock)
    except PIMError as e:
        console.print(f"[red]{e.kind}: {e}[/red]")
        ctx.exit(1)


@cli.command()
@click.option('--scope', '-s', type=SCOPE_CHOICE, required=True, help='Activate a Role or a Group')
@click.option('--justification', '-j', default=None, help='Reason for the activation')
@click.option('--hours', type=int, default=None, help='Activation length in hours (default 4)')
@click.option('--choice', default=None, help='Select by 1-based index or display name instead of prompting')
@click.pass_context
def activate(ctx, scope, justification, hours, choice):
    """Activate an eligible role or group membership."""
    controller = ctx.obj['controller']
    scope = _parse_scope(scope)

    if choice is not None:
        selection = PresetSelector(choice)
    else:
        selection = RichPromptSelector(console, title=f"Eligible {scope.value}s")

    result = controller.workflow(selection).execute(scope, justification, hours)
    display_activation_result(result)

    if result.severity == FATAL:
        ctx.exit(1)


@cli.command()
@click.option('--scope', '-s', type=SCOPE_CHOICE, required=True, help='Role or Group')
@click.pass_context
def eligible(ctx, scope):
    """List assignments you are eligible to activate."""
    controller = ctx.obj['controller']
    scope = _parse_scope(scope)

    try:
        principal = controller.principal()
        candidates = EligibilityFetcher(controller.connector).fetch_eligible(scope, principal)
    except PIMError as e:
        _print_error(e)
        if e.severity == FATAL:
            ctx.exit(1)
        return

    table = Table(title=f"Eligible {scope.value}s ({len(candidates)})")
    table.add_column("#", style="cyan", justify="right")
    table.add_column("Name", style="green")
    table.add_column("Id", style="blue")
    table.add_column("Directory Scope", style="yellow")

    for index, candidate in enumerate(candidates, start=1):
        table.add_row(str(index), candidate.display_name, candidate.target_definition_id,
                      candidate.directory_scope_id or "")

    console.print(table)


@cli.command()
@click.option('--scope', '-s', type=SCOPE_CHOICE, required=True, help='Role or Group')
@click.pass_context
def active(ctx, scope):
    """List your currently active assignments."""
    controller = ctx.obj['controller']
    scope = _parse_scope(scope)

    try:
        principal = controller.principal()
        instances = ActivationVerifier(controller.connector).fetch_active(scope, principal)
    except PIMError as e:
        _print_error(e)
        if e.severity == FATAL:
            ctx.exit(1)
        return

    if not instances:
        console.print(f"[yellow]No active {scope.noun}s[/yellow]")
        return

    table = Table(title=f"Active {scope.value}s ({len(instances)})")
    table.add_column("Name", style="green")
    table.add_column("Expires", style="magenta")

    for instance in instances:
        table.add_row(instance.display_name, instance.expiration_label())

    console.print(table)


def _print_error(error: PIMError):
    if error.severity == FATAL:
        console.print(f"[red]✗ {error.kind}: {error}[/red]")
    else:
        console.print(f"[yellow]! {error}[/yellow]")


def display_activation_result(result: PipelineResult):
    """Display activation run results."""
    if result.error_kind:
        if result.severity == FATAL:
            console.print(f"[red]✗ {result.error_kind}: {result.aborted_reason}[/red]")
        else:
            console.print(f"[yellow]! {result.aborted_reason}[/yellow]")
        return

    request = result.request
    console.print(Panel.fit(
        f"[bold blue]{result.selected.display_name}[/bold blue]\n"
        f"Start: {request.schedule.start_date_time_utc}\n"
        f"Duration: {request.schedule.duration_iso8601}\n"
        f"Justification: {request.justification}",
        title=f"{result.scope.value} activation submitted",
    ))

    for warning in result.warnings:
        console.print(f"[yellow]! {warning}[/yellow]")

    if result.confirmation:
        if not result.confirmation.target_visible:
            console.print("[yellow]Activation is pending; it is not yet listed as active[/yellow]")
        console.print(f"[bold]Active {result.scope.value}s[/bold]")
        for line in result.confirmation.lines:
            console.print(f"  {line}")


def main():
    cli(obj={})


if __name__ == "__main__":
    sys.exit(main())

"""
Assignment selection for the PIM Engine.

The pipeline asks an injected selection capability to resolve the list of
candidates to zero or one assignment. The interactive rich prompt is one
such capability; a preset choice serves headless and scripted runs.
"""

import logging
from typing import Optional, Protocol, Sequence, Union

from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from ..exceptions import NoSelection
from ..models import EligibleAssignment

logger = logging.getLogger(__name__)

CANCEL_CHOICE = "q"


class SelectionCapability(Protocol):
    def select_one(self, candidates: Sequence[EligibleAssignment]) -> Optional[EligibleAssignment]:
        ...


class RichPromptSelector:
    """Blocking console prompt listing candidates by display name."""

    def __init__(self, console: Optional[Console] = None, title: str = "Eligible Assignments"):
        self.console = console or Console()
        self.title = title

    def select_one(self, candidates: Sequence[EligibleAssignment]) -> Optional[EligibleAssignment]:
        table = Table(title=self.title)
        table.add_column("#", style="cyan", justify="right")
        table.add_column("Name", style="green")
        table.add_column("Scope", style="yellow")

        for index, candidate in enumerate(candidates, start=1):
            table.add_row(str(index), candidate.display_name, candidate.directory_scope_id or "")

        self.console.print(table)

        choices = [str(i) for i in range(1, len(candidates) + 1)] + [CANCEL_CHOICE]
        try:
            answer = Prompt.ask(
                f"Select an assignment to activate ([bold]{CANCEL_CHOICE}[/bold] to cancel)",
                choices=choices,
                show_choices=False,
                console=self.console,
            )
        except (EOFError, KeyboardInterrupt):
            self.console.print()
            return None

        if answer == CANCEL_CHOICE:
            return None
        return candidates[int(answer) - 1]


class PresetSelector:
    """Resolves a fixed choice: a 1-based index or an exact display name."""

    def __init__(self, choice: Union[int, str]):
        self.choice = choice

    def select_one(self, candidates: Sequence[EligibleAssignment]) -> Optional[EligibleAssignment]:
        choice = str(self.choice).strip()

        if choice.isdigit():
            index = int(choice)
            if 1 <= index <= len(candidates):
                return candidates[index - 1]

        for candidate in candidates:
            if candidate.display_name == choice:
                return candidate

        logger.warning(f"Preset choice {choice!r} matched no candidate")
        return None


class AssignmentSelector:
    """Pipeline stage wrapping a selection capability."""

    def __init__(self, capability: SelectionCapability):
        self.capability = capability

    def select(self, candidates: Sequence[EligibleAssignment]) -> EligibleAssignment:
        """
        Resolve the candidates to the one to activate.

        Raises:
            NoSelection: if the user declines or cancels
        """
        selected = self.capability.select_one(candidates)
        if selected is None:
            raise NoSelection("No assignment selected")

        logger.info(f"Selected {selected.display_name}")
        return selected

"""
Tests for assignment selection.
"""

import io
from unittest.mock import Mock, patch

import pytest
from rich.console import Console

from pim_engine.engine.selector import AssignmentSelector, PresetSelector, RichPromptSelector
from pim_engine.exceptions import NoSelection
from pim_engine.models import EligibleAssignment


@pytest.fixture
def candidates():
    return [
        EligibleAssignment(principal_id="u", target_definition_id="r-1", display_name="Global Reader"),
        EligibleAssignment(principal_id="u", target_definition_id="r-2", display_name="Security Reader"),
    ]


class TestPresetSelector:
    """Test cases for PresetSelector."""

    def test_select_by_index(self, candidates):
        assert PresetSelector(2).select_one(candidates).target_definition_id == "r-2"

    def test_select_by_index_string(self, candidates):
        assert PresetSelector("1").select_one(candidates).target_definition_id == "r-1"

    def test_select_by_name(self, candidates):
        assert PresetSelector("Security Reader").select_one(candidates).target_definition_id == "r-2"

    @pytest.mark.parametrize("choice", [0, 3, "Unknown Role"])
    def test_unmatched_choice_returns_none(self, candidates, choice):
        assert PresetSelector(choice).select_one(candidates) is None


class TestRichPromptSelector:
    """Test cases for RichPromptSelector."""

    @pytest.fixture
    def console(self):
        return Console(file=io.StringIO(), width=120)

    def test_lists_candidates_and_returns_choice(self, console, candidates):
        with patch("pim_engine.engine.selector.Prompt.ask", return_value="2") as ask:
            selected = RichPromptSelector(console).select_one(candidates)

        assert selected.display_name == "Security Reader"
        assert ask.call_args.kwargs["choices"] == ["1", "2", "q"]
        output = console.file.getvalue()
        assert "Global Reader" in output
        assert "Security Reader" in output

    def test_cancel_returns_none(self, console, candidates):
        with patch("pim_engine.engine.selector.Prompt.ask", return_value="q"):
            assert RichPromptSelector(console).select_one(candidates) is None

    def test_interrupt_returns_none(self, console, candidates):
        with patch("pim_engine.engine.selector.Prompt.ask", side_effect=KeyboardInterrupt):
            assert RichPromptSelector(console).select_one(candidates) is None


class TestAssignmentSelector:
    """Test cases for AssignmentSelector."""

    def test_returns_selected(self, candidates):
        capability = Mock()
        capability.select_one.return_value = candidates[0]

        assert AssignmentSelector(capability).select(candidates) is candidates[0]
        capability.select_one.assert_called_once_with(candidates)

    def test_no_selection(self, candidates):
        capability = Mock()
        capability.select_one.return_value = None

        with pytest.raises(NoSelection):
            AssignmentSelector(capability).select(candidates)

"""
Console Prompter Tests
======================
rich's Prompt is patched; the menu is rendered to an in-memory console.
"""
from unittest.mock import patch

from conftest import console_text
from kitpilot.ui.prompter import ConsolePrompter

SNAPSHOTS = [
    ("aaa1111", "aaa1111  AI: add a cap"),
    ("bbb2222", "bbb2222  Before AI: move file to [/etc] dir"),
]


def test_select_returns_value_of_picked_number(console):
    prompter = ConsolePrompter(console)

    with patch("kitpilot.ui.prompter.Prompt.ask", return_value="2") as ask:
        assert prompter.select("Revert to which snapshot?", SNAPSHOTS) == "bbb2222"

    assert ask.call_args.kwargs["choices"] == ["1", "2"]


def test_select_prints_bracketed_labels_literally(console):
    prompter = ConsolePrompter(console)

    with patch("kitpilot.ui.prompter.Prompt.ask", return_value="1"):
        prompter.select("Revert to which snapshot?", SNAPSHOTS)

    text = console_text(console)
    assert "Before AI: move file to [/etc] dir" in text
    assert "AI: add a cap" in text


def test_select_cancel_returns_none(console):
    prompter = ConsolePrompter(console)

    with patch("kitpilot.ui.prompter.Prompt.ask", side_effect=KeyboardInterrupt):
        assert prompter.select("Revert to which snapshot?", SNAPSHOTS) is None


def test_select_without_choices_does_not_prompt(console):
    prompter = ConsolePrompter(console)

    with patch("kitpilot.ui.prompter.Prompt.ask") as ask:
        assert prompter.select("Revert to which snapshot?", []) is None

    ask.assert_not_called()


def test_ask_cancel_returns_none(console):
    prompter = ConsolePrompter(console)

    with patch("kitpilot.ui.prompter.Prompt.ask", side_effect=EOFError):
        assert prompter.ask("You") is None

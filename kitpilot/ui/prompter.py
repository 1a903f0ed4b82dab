"""
Prompter
========
Interactive input capability injected into the session, the repair loop and
provider setup.

Every method returns None when the user cancels (Ctrl+C / Ctrl+D), so a cancel
aborts only the current step. Tests substitute any object with matching
``ask``, ``confirm`` and ``select`` methods.
"""
from typing import List, Optional, Protocol, Sequence, Tuple

from rich.console import Console
from rich.markup import escape
from rich.prompt import Confirm, Prompt

# (value, label) pairs offered by select()
Choice = Tuple[str, str]


class Prompter(Protocol):
    def ask(self, message: str, default: Optional[str] = None, password: bool = False) -> Optional[str]:
        ...

    def confirm(self, message: str, default: bool = True) -> Optional[bool]:
        ...

    def select(self, message: str, choices: Sequence[Choice]) -> Optional[str]:
        ...


class ConsolePrompter:
    """Prompter backed by ``rich.prompt``."""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def ask(self, message: str, default: Optional[str] = None, password: bool = False) -> Optional[str]:
        try:
            if default is None:
                return Prompt.ask(message, console=self.console, password=password)
            return Prompt.ask(message, console=self.console, default=default, password=password)
        except (KeyboardInterrupt, EOFError):
            self.console.print()
            return None

    def confirm(self, message: str, default: bool = True) -> Optional[bool]:
        try:
            return Confirm.ask(message, console=self.console, default=default)
        except (KeyboardInterrupt, EOFError):
            self.console.print()
            return None

    def select(self, message: str, choices: Sequence[Choice]) -> Optional[str]:
        if not choices:
            return None
        self.console.print(f"[bold]{message}[/bold]")
        for idx, (_, label) in enumerate(choices, start=1):
            self.console.print(f"  [cyan]{idx}[/cyan]. {escape(label)}")
        numbers: List[str] = [str(i) for i in range(1, len(choices) + 1)]
        try:
            picked = Prompt.ask("Choose", console=self.console, choices=numbers, default="1")
        except (KeyboardInterrupt, EOFError):
            self.console.print()
            return None
        return choices[int(picked) - 1][0]

"""vouch rules -- list the builtin validation rules."""

from __future__ import annotations

from rich import box
from rich.console import Console
from rich.table import Table

from vouch.validation.rules import BUILTIN_RULES, DEFAULT_RULE_NAMES

console = Console()


def rules() -> None:
    """List builtin rules and whether each runs by default."""
    table = Table(box=box.SIMPLE, padding=(0, 2))
    table.add_column("Rule", style="bold")
    table.add_column("Default")

    for name in BUILTIN_RULES:
        table.add_row(name, "yes" if name in DEFAULT_RULE_NAMES else "no")

    console.print(table)
    console.print(
        "[dim]Other rules can be added by dotted path, e.g. mypkg.rules:MyRule[/dim]"
    )

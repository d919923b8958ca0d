# tabchat/cli_theme.py
"""Rich styling shared by the tabchat commands.

Numbered section rules, key/value and borderless tables, one-line status
markers and a transient spinner, all in a teal and sand palette.
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from rich import box
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from rich.text import Text

BRAND = "T A B C H A T"

TEAL = "#2A9D8F"
SAND = "#C9B79C"
MUTED = "dim"

RULE = "─" * 40


def print_version(version: str, console: Console) -> None:
    console.print(Text.assemble((BRAND, f"bold {TEAL}"), (f"  v{version}", MUTED)))


def section(title: str, console: Console, number: str | None = None) -> None:
    """Blank line, ``NN · TITLE`` heading, then a sand rule."""
    prefix = (f"  {number}", f"bold {TEAL}") if number else ("  ", "")
    separator = (" · ", MUTED) if number else ("", "")
    console.print()
    console.print(Text.assemble(prefix, separator, (title.upper(), "bold")))
    console.print(f"  {RULE}", style=SAND)


def make_kv_table() -> Table:
    """Rounded two-column table for settings and source metadata."""
    table = Table(box=box.ROUNDED, border_style=SAND, show_header=False, padding=(0, 1))
    table.add_column("Key", style=f"bold {TEAL}", no_wrap=True)
    table.add_column("Value")
    return table


def make_clean_table(**kwargs: object) -> Table:
    return Table(box=None, show_edge=False, pad_edge=False, header_style=MUTED, padding=(0, 2), **kwargs)


# status markers, returned as rich markup for console.print

def info(msg: str) -> str:
    return f"  [{TEAL}]›[/{TEAL}] [{MUTED}]{msg}[/{MUTED}]"


def ok(msg: str) -> str:
    return f"  [bold green]✓[/bold green] {msg}"


def warn(msg: str) -> str:
    return f"  [bold yellow]![/bold yellow] [yellow]{msg}[/yellow]"


@contextmanager
def spinner(label: str, console: Console) -> Iterator[None]:
    """Transient spinner shown while the model is working."""
    progress = Progress(
        TextColumn(" "),
        SpinnerColumn("dots", style=TEAL),
        TextColumn(f"[{MUTED}]{label}[/{MUTED}]"),
        console=console,
        transient=True,
    )
    with progress:
        progress.add_task(label, total=None)
        yield

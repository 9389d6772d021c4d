"""Terminal output and prompts for the fsmstudio commands.

Rich renders validation reports, state and transition tables and file
previews; questionary drives the `fsmstudio new` wizard. Commands print
through these helpers so every screen shares one console and one style.
"""

from __future__ import annotations

import sys
from typing import Optional, Sequence

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

import questionary
from questionary import Style as QStyle

__all__ = [
    "console",
    "escape",
    "banner",
    "heading",
    "success",
    "error",
    "warning",
    "dim",
    "next_steps",
    "code_preview",
    "validation_report",
    "states_table",
    "transitions_table",
    "select",
    "checkbox",
    "confirm",
    "text",
    "is_interactive",
]

console = Console(
    theme=Theme({"state": "cyan", "event": "bold", "muted": "dim"}),
    highlight=False,
)

Q_STYLE = QStyle(
    [
        ("qmark", "fg:cyan bold"),
        ("question", "bold"),
        ("answer", "fg:cyan"),
        ("pointer", "fg:cyan bold"),
        ("highlighted", "fg:cyan bold"),
        ("selected", "fg:cyan"),
        ("instruction", "fg:gray"),
    ]
)

_MAX_WIDTH = 80
_PREVIEW_LINES = 40


def _panel_width() -> int:
    return min(console.width, _MAX_WIDTH)


# Messages


def banner(version: str) -> None:
    console.print()
    console.print(Text.assemble(("FSM Studio", "bold"), (f"  v{version}", "muted")))
    console.print("[muted]State machine definitions, as graphs and guards[/]")
    console.print()


def heading(text: str, step: Optional[int] = None, total: int = 3) -> None:
    """Wizard section title, `step/total` prefixed when a step is given."""
    console.print()
    if step is None:
        console.print(f"[bold]{text}[/]")
        return
    console.print(Text.assemble((f"  {step}/{total} ", "muted"), (text, "bold")))


def success(msg: str) -> None:
    console.print(f"  [green]\u2713[/] {msg}")


def error(msg: str, hint: Optional[str] = None) -> None:
    """Print a failure line; `hint` goes below it, dimmed."""
    console.print(f"  [red]\u2717[/] {msg}", style="bold red")
    if hint:
        console.print(f"    [muted]{hint}[/]")


def warning(msg: str) -> None:
    console.print(f"  [yellow]![/] {msg}")


def dim(msg: str) -> None:
    console.print(f"  [muted]{msg}[/]")


def next_steps(steps: Sequence[str]) -> None:
    console.print()
    console.print("[bold]Next steps:[/]")
    for i, step in enumerate(steps, 1):
        console.print(f"  {i}. {step}")
    console.print()


def code_preview(content: str, lexer: str = "yaml", title: str = "") -> None:
    """Show a written definition file, cut after the first lines."""
    lines = content.splitlines()
    preview = "\n".join(lines[:_PREVIEW_LINES])
    if len(lines) > _PREVIEW_LINES:
        preview += "\n# ... truncated" if lexer == "yaml" else "\n..."

    console.print()
    console.print(
        Panel(
            Syntax(preview, lexer, theme="ansi_dark", line_numbers=False),
            title=title or lexer.upper(),
            title_align="left",
            border_style="muted",
            width=_panel_width(),
            padding=(0, 1),
        )
    )


# Definition reports


def validation_report(
    path: str,
    states: Optional[int],
    transitions: Optional[int],
    errors: Sequence[str],
    warnings: Sequence[str],
    strict: bool = False,
) -> bool:
    """
    Print the result of `fsmstudio validate`.

    A summary panel is followed by one line per error and warning. Counts
    that could not be determined print as `-`. Returns whether the
    definition passes; with `strict`, warnings fail it too.
    """
    valid = not errors and not (strict and warnings)
    status = "[green]valid[/]" if valid else "[red]invalid[/]"
    rows = [
        ("File", escape(path)),
        ("States", "-" if states is None else str(states)),
        ("Transitions", "-" if transitions is None else str(transitions)),
        ("Status", status),
    ]

    console.print()
    console.print(
        Panel(
            "\n".join(f"[bold]{k}:[/] {v}" for k, v in rows),
            title="\u2713 Valid Definition" if valid else "\u2717 Invalid Definition",
            title_align="left",
            border_style="muted",
            width=_panel_width(),
            padding=(0, 1),
        )
    )
    for message in errors:
        error(message)
    for message in warnings:
        warning(message)
    return valid


def _table(title: str, columns: Sequence[str]) -> Table:
    table = Table(
        title=title,
        title_style="bold",
        header_style="bold dim",
        border_style="dim",
        width=_panel_width(),
        padding=(0, 1),
    )
    for col in columns:
        table.add_column(col)
    return table


def states_table(
    states: Sequence[str],
    initial: str,
    positions: Optional[dict] = None,
) -> None:
    """
    List states, flagging the initial one.

    With `positions` (state name -> Position) a Position column is added;
    states without a stored position show `-`.
    """
    columns = ["Name", "Type"] + (["Position"] if positions is not None else [])
    table = _table("States", columns)
    for state in states:
        row = [f"[state]{escape(state)}[/]", "[green]initial[/]" if state == initial else "-"]
        if positions is not None:
            pos = positions.get(state)
            row.append(f"{pos.x:g}, {pos.y:g}" if pos else "-")
        table.add_row(*row)
    console.print()
    console.print(table)


def transitions_table(rows: Sequence[tuple]) -> None:
    """List transitions given as (sources, event, target, guard markup or None)."""
    table = _table("Transitions", ["From", "Event", "To", "Guard"])
    for sources, event, target, guard in rows:
        table.add_row(
            ", ".join(escape(s) for s in sources),
            f"[event]{escape(event)}[/]",
            f"\u2192 {escape(target)}",
            guard or "-",
        )
    console.print()
    console.print(table)


# Prompts. Each one exits quietly when the user aborts with Ctrl-C.


def _answer(question: questionary.Question):
    result = question.ask()
    if result is None:
        raise SystemExit(0)
    return result


def select(message: str, choices: Sequence[str]) -> str:
    """Pick one state with the arrow keys."""
    return _answer(
        questionary.select(
            message,
            choices=list(choices),
            style=Q_STYLE,
            instruction="(arrow keys to move, enter to select)",
        )
    )


def checkbox(message: str, choices: Sequence[str]) -> list[str]:
    """Pick several states; the answer keeps the order of `choices`."""
    picked = _answer(
        questionary.checkbox(
            message,
            choices=list(choices),
            style=Q_STYLE,
            instruction="(space to toggle, enter to confirm)",
        )
    )
    return [c for c in choices if c in picked]


def confirm(message: str, default: bool = True) -> bool:
    return _answer(questionary.confirm(message, default=default, style=Q_STYLE))


def text(message: str, default: str = "") -> str:
    return _answer(questionary.text(message, default=default, style=Q_STYLE))


def is_interactive() -> bool:
    """True when stdin is a terminal the wizard can prompt on."""
    return hasattr(sys.stdin, "isatty") and sys.stdin.isatty()

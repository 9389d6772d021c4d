"""
FSM Studio new command - create a machine definition.

Default (no --states): Interactive wizard with arrow-key selection.
With --states: Non-interactive, states only, first (or --initial) state initial.
"""

import logging
from pathlib import Path
from typing import List, Optional

from fsmstudio import __version__
from fsmstudio.cli_ui import (
    banner,
    checkbox,
    code_preview,
    confirm,
    dim,
    error,
    heading,
    is_interactive,
    next_steps,
    select,
    success,
    text,
    warning,
)
from fsmstudio.config.settings import StudioSettings
from fsmstudio.guard.parser import ParseFailure, parse_guard
from fsmstudio.machine.parser import DefinitionParser
from fsmstudio.machine.schema import MachineDefinition
from fsmstudio.machine.session import MachineEditor

logger = logging.getLogger(__name__)


def split_states(raw: str) -> List[str]:
    """Split a comma separated state list, dropping blanks and repeats."""
    return list(dict.fromkeys(s.strip() for s in raw.split(",") if s.strip()))


def build_definition(
    states: List[str],
    initial: Optional[str] = None,
    settings: Optional[StudioSettings] = None,
) -> MachineEditor:
    """Start an editing session holding the given states and no transitions."""
    editor = MachineEditor(settings=settings)
    for name in states:
        editor.add_state(name)
    if initial:
        editor.set_initial_state(initial)
    return editor


def _prompt_transitions(editor: MachineEditor) -> None:
    states = [n.label for n in editor.nodes]

    while confirm("Add a transition?", default=len(editor.edges) == 0):
        sources = checkbox("From state(s)", states)
        if not sources:
            warning("Pick at least one source state")
            continue

        target = select("To state", states)
        event = text("Event name", default=editor.settings.editor.default_event).strip()
        if not event:
            warning("Event name is required")
            continue

        guard = text("Guard (blank for none)").strip()
        if guard:
            parsed = parse_guard(guard)
            if isinstance(parsed, ParseFailure):
                warning(f"Guard not understood: {parsed}")
                if not confirm("Keep it as raw text?", default=False):
                    guard = ""

        edge = editor.connect(sources[0], target, event, guard or None)
        if edge is None:
            warning("Could not add transition")
            continue
        for source in sources[1:]:
            editor.add_edge_source(edge.id, source)
        success(f"{', '.join(sources)} --{event}--> {target}")


def run_interactive_new(settings: StudioSettings) -> MachineEditor:
    """Run the interactive machine wizard."""
    banner(__version__)

    heading("States", step=1)
    states: List[str] = []
    while not states:
        states = split_states(text("State names (comma separated)"))
        if not states:
            warning("At least one state is required")

    heading("Initial state", step=2)
    initial = select("Initial state", states)

    editor = build_definition(states, initial, settings)

    heading("Transitions", step=3)
    _prompt_transitions(editor)
    return editor


def run_new(
    output: Path,
    states: Optional[str] = None,
    initial: Optional[str] = None,
    force: bool = False,
    auto_layout: bool = True,
    settings: Optional[StudioSettings] = None,
) -> MachineDefinition:
    """Create a definition file, interactively unless states are given."""
    settings = settings or StudioSettings()

    if output.exists() and not force:
        if not is_interactive() or not confirm(f"{output} exists. Overwrite?", default=False):
            error(f"{output} already exists", hint="Pass --force to overwrite")
            raise SystemExit(1)

    if states is not None:
        names = split_states(states)
        if not names:
            error("No state names given")
            raise SystemExit(1)
        if initial and initial not in names:
            error(f"Initial state '{initial}' is not one of: {', '.join(names)}")
            raise SystemExit(1)
        editor = build_definition(names, initial, settings)
    elif is_interactive():
        editor = run_interactive_new(settings)
    else:
        error("No terminal for the wizard", hint="Pass --states a,b,c to create non-interactively")
        raise SystemExit(1)

    if auto_layout:
        editor.auto_layout()

    for message in editor.validation.warnings:
        dim(message)

    definition = editor.definition
    try:
        DefinitionParser.dump_file(definition, output)
    except ValueError as e:
        error(str(e), hint="Use a .yaml, .yml or .json file name")
        raise SystemExit(1)

    success(f"Created {output}")
    code_preview(
        DefinitionParser.dump_string(
            definition, format="json" if output.suffix == ".json" else "yaml"
        ),
        lexer="json" if output.suffix == ".json" else "yaml",
        title=str(output),
    )
    next_steps(
        [
            f"Check it: fsmstudio validate {output}",
            f"Inspect the graph: fsmstudio graph {output}",
        ]
    )
    return definition

"""
FSM Studio CLI entry point.

Commands:
- fsmstudio new: Create a machine definition
- fsmstudio validate: Validate a definition file
- fsmstudio info: Show states and transitions
- fsmstudio graph: Print the editing graph as JSON
- fsmstudio layout: Auto-layout a definition and store the positions
- fsmstudio guard parse|format: Convert guards between text and trees
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click

from fsmstudio import __version__
from fsmstudio.cli_ui import (
    console,
    dim,
    error,
    escape,
    states_table,
    success,
    transitions_table,
    validation_report,
    warning,
)
from rich.text import Text


def setup_logging(debug: bool = False, settings=None) -> None:
    """Configure logging.

    `--debug` wins; otherwise `debug` and `log_level` from the settings
    decide, and without settings only warnings are shown.
    """
    if debug or (settings is not None and settings.debug):
        level = logging.DEBUG
    elif settings is not None:
        level = getattr(logging, settings.log_level)
    else:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    logging.getLogger("fsmstudio").setLevel(level)


def _load_settings(config: Optional[Path]):
    from fsmstudio.config.settings import StudioSettings

    return StudioSettings(_config_path=str(config) if config else None)


def _load_definition(path: Path):
    """Parse a definition file, reporting load errors and exiting on failure."""
    from pydantic import ValidationError

    from fsmstudio.machine.parser import DefinitionParser

    try:
        return DefinitionParser.parse_file(path)
    except FileNotFoundError:
        error(f"File not found: {path}")
        raise SystemExit(1)
    except ValidationError as e:
        error(f"Invalid definition: {e.error_count()} problem(s)")
        for err in e.errors():
            loc = ".".join(str(p) for p in err["loc"])
            console.print(f"    [dim]{loc}: {err['msg']}[/]")
        raise SystemExit(1)
    except ValueError as e:
        error(f"Invalid format: {escape(str(e))}")
        raise SystemExit(1)


config_option = click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, path_type=Path),
    default=None,
    help="Path to fsmstudio.yaml config file",
)
debug_option = click.option(
    "--debug/--no-debug",
    default=False,
    help="Enable debug logging",
)
direction_option = click.option(
    "--direction",
    "-d",
    type=click.Choice(["LR", "TB"]),
    default=None,
    help="Layout direction (default: from config, LR)",
)


@click.group()
@click.version_option(version=__version__, prog_name="fsmstudio")
def main() -> None:
    """FSM Studio - edit state machine definitions as graphs.

    Converts definitions to editing graphs and back, validates them, and
    compiles transition guards between text and condition trees.
    """
    pass


@main.command()
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=Path("machine.yaml"),
    help="Output file (.yaml, .yml or .json; default: machine.yaml)",
)
@click.option(
    "--states",
    "-s",
    type=str,
    default=None,
    help="Comma separated state names (skips the wizard)",
)
@click.option("--initial", "-i", type=str, default=None, help="Initial state")
@click.option("--force", "-f", is_flag=True, help="Overwrite an existing file")
@click.option(
    "--layout/--no-layout",
    default=True,
    help="Auto-layout the new machine (default: True)",
)
@config_option
@debug_option
def new(
    output: Path,
    states: Optional[str],
    initial: Optional[str],
    force: bool,
    layout: bool,
    config: Optional[Path],
    debug: bool,
) -> None:
    """Create a new machine definition.

    Examples:

        # Interactive wizard
        fsmstudio new -o order.yaml

        # Non-interactive
        fsmstudio new -o order.yaml --states pending,paid,shipped --initial pending
    """
    from fsmstudio.cli_new import run_new

    settings = _load_settings(config)
    setup_logging(debug, settings)

    run_new(
        output,
        states=states,
        initial=initial,
        force=force,
        auto_layout=layout,
        settings=settings,
    )


@main.command()
@click.argument(
    "definition_path",
    type=click.Path(exists=True, path_type=Path),
)
@click.option("--strict", is_flag=True, help="Treat warnings as errors")
@debug_option
def validate(definition_path: Path, strict: bool, debug: bool) -> None:
    """Validate a machine definition file.

    Checks the definition's shape, state references and guards, then
    validates the editing graph derived from it.

    Example:
        fsmstudio validate order.yaml
    """
    setup_logging(debug, _load_settings(None))
    from fsmstudio.machine.conversion import to_graph
    from fsmstudio.machine.parser import DefinitionParser
    from fsmstudio.machine.schema import MachineDefinition
    from fsmstudio.machine.validation import validate as validate_graph
    from fsmstudio.machine.validation import validate_definition

    try:
        data = DefinitionParser.load_file(definition_path)
    except FileNotFoundError:
        error(f"File not found: {definition_path}")
        raise SystemExit(1)
    except ValueError as e:
        error(f"Invalid format: {escape(str(e))}")
        raise SystemExit(1)

    report = validate_definition(data)
    errors = [
        escape(e.message) + (f" [dim]({escape(e.path)})[/]" if e.path else "")
        for e in report.errors
    ]
    warnings = [escape(w.message) for w in report.warnings]

    transitions = None
    if report.valid:
        definition = MachineDefinition.model_validate(data)
        graph = to_graph(definition)
        result = validate_graph(graph.nodes, graph.edges)
        errors.extend(m for m in map(escape, result.errors) if m not in errors)
        warnings.extend(m for m in map(escape, result.warnings) if m not in warnings)
        transitions = len(graph.edges)

    states = data.get("states")
    valid = validation_report(
        str(definition_path),
        states=len(states) if isinstance(states, list) else None,
        transitions=transitions,
        errors=errors,
        warnings=warnings,
        strict=strict,
    )
    if not valid:
        raise SystemExit(1)


@main.command()
@click.argument(
    "definition_path",
    type=click.Path(exists=True, path_type=Path),
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Show guard trees and stored positions",
)
def info(definition_path: Path, verbose: bool) -> None:
    """Show states and transitions of a definition.

    Example:
        fsmstudio info order.yaml --verbose
    """
    from fsmstudio.guard.parser import ParseFailure, parse_guard

    definition = _load_definition(definition_path)
    positions = definition.positions()

    console.print()
    console.print(
        Text.assemble(
            (definition_path.name, "bold"),
            (f"  {len(definition.states)} states", "dim"),
        )
    )
    extra_meta = [k for k in definition.meta if not k.startswith("_")]
    if extra_meta:
        dim(f"meta: {', '.join(extra_meta)}")

    states_table(definition.states, definition.initial, positions if verbose else None)

    if definition.transitions:
        rows = []
        for t in definition.transitions:
            guard = escape(t.guard) if t.guard else None
            if verbose and t.guard:
                parsed = parse_guard(t.guard)
                if isinstance(parsed, ParseFailure):
                    guard += " [red](unparsed)[/]"
                else:
                    count = len(list(parsed.iter_conditions()))
                    guard += f" [dim]({count} condition{'s' if count != 1 else ''})[/]"
            rows.append((t.sources, t.event, t.target, guard))
        transitions_table(rows)

    console.print()


@main.command()
@click.argument(
    "definition_path",
    type=click.Path(exists=True, path_type=Path),
)
@click.option(
    "--auto-layout",
    is_flag=True,
    help="Lay out states when the definition stores no positions",
)
@direction_option
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Write graph JSON to a file instead of stdout",
)
@config_option
def graph(
    definition_path: Path,
    auto_layout: bool,
    direction: Optional[str],
    output: Optional[Path],
    config: Optional[Path],
) -> None:
    """Print the editing graph of a definition as JSON.

    Example:
        fsmstudio graph order.yaml --auto-layout -d TB
    """
    from fsmstudio.machine.conversion import to_graph

    settings = _load_settings(config)
    setup_logging(settings=settings)
    definition = _load_definition(definition_path)
    result = to_graph(
        definition,
        auto_layout=auto_layout or settings.editor.auto_layout_on_load,
        direction=direction or settings.layout.direction,
        grid=settings.grid,
        layout=settings.layout,
        positions_key=settings.editor.positions_key,
    )
    content = json.dumps(result.to_dict(), indent=2)

    if output:
        output.write_text(content + "\n", encoding="utf-8")
        success(f"Wrote {len(result.nodes)} nodes, {len(result.edges)} edges to {output}")
    else:
        click.echo(content)


@main.command()
@click.argument(
    "definition_path",
    type=click.Path(exists=True, path_type=Path),
)
@direction_option
@click.option(
    "--output",
    "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Output file (default: overwrite the input)",
)
@config_option
def layout(
    definition_path: Path,
    direction: Optional[str],
    output: Optional[Path],
    config: Optional[Path],
) -> None:
    """Auto-layout a definition and store the positions in its meta.

    Example:
        fsmstudio layout order.yaml -d TB -o order.laid-out.yaml
    """
    from fsmstudio.machine.parser import DefinitionParser
    from fsmstudio.machine.session import MachineEditor

    settings = _load_settings(config)
    setup_logging(settings=settings)
    definition = _load_definition(definition_path)

    editor = MachineEditor(settings=settings)
    editor.load(definition)
    editor.auto_layout(direction or settings.layout.direction)

    target = output or definition_path
    try:
        DefinitionParser.dump_file(editor.definition, target)
    except ValueError as e:
        error(str(e))
        raise SystemExit(1)

    success(f"Laid out {len(editor.nodes)} states ({direction or settings.layout.direction})")
    dim(f"Positions stored in {target}")


@main.group()
def guard() -> None:
    """Convert guards between text and condition trees."""
    pass


@guard.command("parse")
@click.argument("expression", type=str)
def guard_parse(expression: str) -> None:
    """Parse guard text and print its condition tree as JSON.

    Example:
        fsmstudio guard parse 'ctx.amount > 100 && ctx.approved'
    """
    from fsmstudio.guard.parser import ParseFailure, parse_guard

    result = parse_guard(expression)
    if isinstance(result, ParseFailure):
        error(f"Cannot parse guard: {result}")
        raise SystemExit(1)
    click.echo(json.dumps(result.model_dump(mode="json"), indent=2))


@guard.command("format")
@click.argument("tree", type=str)
def guard_format(tree: str) -> None:
    """Serialize a condition tree (JSON text, or @file) to guard text.

    Example:
        fsmstudio guard format @guard.json
    """
    from pydantic import ValidationError

    from fsmstudio.guard.ast import load_tree
    from fsmstudio.guard.serializer import serialize_guard

    try:
        if tree.startswith("@"):
            tree = Path(tree[1:]).read_text(encoding="utf-8")
        parsed = load_tree(json.loads(tree))
    except OSError as e:
        error(f"Cannot read tree: {e}")
        raise SystemExit(1)
    except json.JSONDecodeError as e:
        error(f"Invalid JSON: {e}")
        raise SystemExit(1)
    except ValidationError as e:
        error(f"Invalid condition tree: {e.error_count()} problem(s)")
        raise SystemExit(1)

    expression = serialize_guard(parsed)
    if not expression:
        warning("Tree holds no complete condition; no guard")
        return
    click.echo(expression)


@main.command()
def version() -> None:
    """Show version information."""
    console.print(
        Text.assemble(
            ("FSM Studio", "bold"),
            (f" v{__version__}", "dim"),
        )
    )


if __name__ == "__main__":
    main()

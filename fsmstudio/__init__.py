"""
FSM Studio - editing core for declarative state machine definitions.

Keeps a machine definition and its node/edge editing graph in sync, and
compiles transition guards between text and condition trees.

Quick Start:
    ```python
    from fsmstudio import DefinitionParser, to_graph, to_definition, validate

    definition = DefinitionParser.parse_file("order.yaml")
    nodes, edges = to_graph(definition)

    result = validate(nodes, edges)
    if not result.valid:
        print(result.errors)

    updated = to_definition(nodes, edges, definition.meta)
    ```

Guards:
    ```python
    from fsmstudio import parse_guard, serialize_guard, ParseFailure

    tree = parse_guard("ctx.amount > 100 && ctx.approved")
    if not isinstance(tree, ParseFailure):
        assert serialize_guard(tree) == "ctx.amount > 100 && ctx.approved"
    ```
"""

__version__ = "0.1.0"

# Configuration
from fsmstudio.config.settings import StudioSettings

# Guard compiler
from fsmstudio.guard import (
    Operator,
    Logic,
    Condition,
    ConditionGroup,
    ParseFailure,
    parse_guard,
    serialize_guard,
    GuardEditor,
)

# Definition/graph synchronizer
from fsmstudio.machine import (
    MachineDefinition,
    TransitionSpec,
    Position,
    DefinitionParser,
    StateNode,
    TransitionEdge,
    MachineGraph,
    to_graph,
    to_definition,
    rename_state,
    validate,
    validate_definition,
    ValidationResult,
    layered_layout,
    MachineEditor,
)

__all__ = [
    # Version
    "__version__",
    # Configuration
    "StudioSettings",
    # Guards
    "Operator",
    "Logic",
    "Condition",
    "ConditionGroup",
    "ParseFailure",
    "parse_guard",
    "serialize_guard",
    "GuardEditor",
    # Machine
    "MachineDefinition",
    "TransitionSpec",
    "Position",
    "DefinitionParser",
    "StateNode",
    "TransitionEdge",
    "MachineGraph",
    "to_graph",
    "to_definition",
    "rename_state",
    "validate",
    "validate_definition",
    "ValidationResult",
    "layered_layout",
    "MachineEditor",
]

"""
Definition/graph synchronizer.

Contains:
- Schema: MachineDefinition, TransitionSpec, Position
- Parser: DefinitionParser for YAML/JSON loading and writing
- Graph: StateNode, TransitionEdge, MachineGraph
- Conversion: to_graph / to_definition
- Editing: pure graph edit transforms and the MachineEditor session
- Validation: validate (graph) and validate_definition (raw data)
- Layout: layered_layout
"""

from fsmstudio.machine.schema import (
    MachineDefinition,
    TransitionSpec,
    Position,
    PositionMap,
)
from fsmstudio.machine.parser import DefinitionParser
from fsmstudio.machine.graph import (
    StateNode,
    TransitionEdge,
    MachineGraph,
    edge_id,
    make_graph,
)
from fsmstudio.machine.layout import layered_layout
from fsmstudio.machine.conversion import (
    to_graph,
    to_definition,
    graph_to_definition,
    grid_positions,
)
from fsmstudio.machine.editing import (
    add_state,
    rename_state,
    delete_state,
    set_initial_state,
    move_state,
    connect,
    retarget_edge,
    delete_edge,
    update_transition_event,
    update_transition_guard,
    add_edge_source,
    remove_edge_source,
    apply_auto_layout,
)
from fsmstudio.machine.validation import (
    ValidationResult,
    DefinitionIssue,
    DefinitionReport,
    validate,
    validate_definition,
)
from fsmstudio.machine.session import MachineEditor, Snapshot

__all__ = [
    # Schema
    "MachineDefinition",
    "TransitionSpec",
    "Position",
    "PositionMap",
    # Parser
    "DefinitionParser",
    # Graph
    "StateNode",
    "TransitionEdge",
    "MachineGraph",
    "edge_id",
    "make_graph",
    # Layout
    "layered_layout",
    # Conversion
    "to_graph",
    "to_definition",
    "graph_to_definition",
    "grid_positions",
    # Editing
    "add_state",
    "rename_state",
    "delete_state",
    "set_initial_state",
    "move_state",
    "connect",
    "retarget_edge",
    "delete_edge",
    "update_transition_event",
    "update_transition_guard",
    "add_edge_source",
    "remove_edge_source",
    "apply_auto_layout",
    # Validation
    "ValidationResult",
    "DefinitionIssue",
    "DefinitionReport",
    "validate",
    "validate_definition",
    # Session
    "MachineEditor",
    "Snapshot",
]

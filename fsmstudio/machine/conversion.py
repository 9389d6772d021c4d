"""
Definition <-> graph conversion.

`to_graph` expands multi-source transitions and merges every source that
fires the same event into the same target into one edge. `to_definition`
groups edges back by (event, target), so converting a definition to a
graph and back yields the same machine up to the order of `from` lists.
"""

import logging
import math
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from fsmstudio.config.settings import (
    POSITIONS_META_KEY,
    GridConfig,
    LayoutConfig,
    LayoutDirection,
)
from fsmstudio.machine.graph import MachineGraph, StateNode, TransitionEdge
from fsmstudio.machine.layout import layered_layout
from fsmstudio.machine.schema import (
    MachineDefinition,
    Position,
    PositionMap,
    TransitionSpec,
)

logger = logging.getLogger(__name__)


def grid_positions(states: Sequence[str], grid: Optional[GridConfig] = None) -> PositionMap:
    """Place states on a roughly square grid, row by row."""
    grid = grid or GridConfig()
    positions: PositionMap = {}
    if not states:
        return positions

    cols = math.ceil(math.sqrt(len(states)))
    for index, state in enumerate(states):
        row, col = divmod(index, cols)
        positions.setdefault(
            state,
            Position(
                x=col * grid.spacing_x + grid.offset_x,
                y=row * grid.spacing_y + grid.offset_y,
            ),
        )
    return positions


def node_ids(states: Sequence[str]) -> List[str]:
    """
    One node id per state.

    A state's id is its name. Repeats of a name get `name#2`, `name#3`...
    so each copy can still be renamed or deleted on its own; edges refer to
    the first copy.
    """
    taken = set(states)
    seen: set = set()
    ids = []
    for state in states:
        if state not in seen:
            seen.add(state)
            ids.append(state)
            continue
        counter = 2
        while f"{state}#{counter}" in taken:
            counter += 1
        node_id = f"{state}#{counter}"
        taken.add(node_id)
        ids.append(node_id)
    return ids


def merge_transitions(
    transitions: Sequence[TransitionSpec],
) -> List[TransitionEdge]:
    """
    Merge transitions into one edge per (event, target).

    When merged transitions carry different guards the first guard is kept;
    `validate_definition` reports the conflict.
    """
    merged: Dict[Tuple[str, str], Dict[str, Any]] = {}

    for transition in transitions:
        key = (transition.event, transition.target)
        entry = merged.get(key)
        if entry is None:
            merged[key] = {
                "sources": list(dict.fromkeys(transition.sources)),
                "guard": transition.guard,
            }
            continue

        for source in transition.sources:
            if source not in entry["sources"]:
                entry["sources"].append(source)
        if transition.guard != entry["guard"]:
            logger.warning(
                f"Transitions on '{transition.event}' to '{transition.target}' "
                f"have different guards; keeping {entry['guard']!r}"
            )

    edges = []
    for (event, target), entry in merged.items():
        if not entry["sources"]:
            logger.debug(f"Skipping transition '{event}' to '{target}' with no sources")
            continue
        edges.append(
            TransitionEdge(
                target=target,
                event=event,
                guard=entry["guard"],
                source_states=tuple(entry["sources"]),
            )
        )
    return edges


def to_graph(
    definition: MachineDefinition,
    *,
    auto_layout: bool = False,
    direction: Optional[LayoutDirection] = None,
    grid: Optional[GridConfig] = None,
    layout: Optional[LayoutConfig] = None,
    positions_key: str = POSITIONS_META_KEY,
) -> MachineGraph:
    """
    Convert a definition to an editing graph.

    Positions come from the definition's stored positions, then from a grid
    placement. With `auto_layout`, a definition that stores no positions is
    laid out by the layered layout instead.
    """
    stored = definition.positions(positions_key)
    defaults = grid_positions(definition.states, grid)

    nodes = [
        StateNode(
            id=node_id,
            label=state,
            is_initial=node_id == definition.initial,
            position=stored.get(state) or defaults.get(state) or Position(),
        )
        for node_id, state in zip(node_ids(definition.states), definition.states)
    ]
    edges = merge_transitions(definition.transitions)

    if auto_layout and not definition.has_positions(positions_key):
        placed = layered_layout(nodes, edges, direction=direction, config=layout)
        nodes = [
            n.model_copy(update={"position": placed[n.id]}) if n.id in placed else n
            for n in nodes
        ]

    logger.debug(
        f"Converted definition to graph: {len(nodes)} nodes, {len(edges)} edges "
        f"from {len(definition.transitions)} transitions"
    )
    return MachineGraph(nodes=tuple(nodes), edges=tuple(edges))


def to_definition(
    nodes: Sequence[StateNode],
    edges: Sequence[TransitionEdge],
    prior_meta: Optional[Mapping[str, Any]] = None,
    *,
    positions_key: str = POSITIONS_META_KEY,
) -> MachineDefinition:
    """
    Convert an editing graph back to a definition.

    Structurally invalid graphs (no initial state, duplicate names) are
    converted as they are; `validate` reports the problems.

    Args:
        nodes: Graph nodes, in state order
        edges: Graph edges
        prior_meta: Meta of the definition being edited; every key is kept
            and the positions key is overwritten with the current layout
    """
    states = [node.label for node in nodes]
    labels = {node.id: node.label for node in nodes}

    initial_node = next((n for n in nodes if n.is_initial), None)
    if initial_node is not None:
        initial = initial_node.label
    else:
        initial = states[0] if states else ""

    grouped: Dict[Tuple[str, str], Dict[str, Any]] = {}
    for edge in edges:
        target = labels.get(edge.target)
        if target is None:
            logger.debug(f"Dropping edge {edge.id}: unknown target '{edge.target}'")
            continue
        sources = [labels[s] for s in edge.source_states if s in labels]
        if not sources:
            logger.debug(f"Dropping edge {edge.id}: no known source states")
            continue

        key = (edge.event, target)
        entry = grouped.get(key)
        if entry is None:
            grouped[key] = {"sources": [], "guard": edge.guard}
            entry = grouped[key]
        elif not entry["guard"] and edge.guard:
            entry["guard"] = edge.guard
        for source in sources:
            if source not in entry["sources"]:
                entry["sources"].append(source)

    transitions = []
    for (event, target), entry in grouped.items():
        sources = entry["sources"]
        transitions.append(
            TransitionSpec(
                source=sources[0] if len(sources) == 1 else sources,
                event=event,
                target=target,
                guard=entry["guard"] or None,
            )
        )

    meta: Dict[str, Any] = dict(prior_meta or {})
    meta[positions_key] = {node.label: node.position.model_dump() for node in nodes}

    return MachineDefinition(
        states=states,
        initial=initial,
        transitions=transitions,
        meta=meta,
    )


def graph_to_definition(
    graph: MachineGraph,
    prior_meta: Optional[Mapping[str, Any]] = None,
    *,
    positions_key: str = POSITIONS_META_KEY,
) -> MachineDefinition:
    return to_definition(graph.nodes, graph.edges, prior_meta, positions_key=positions_key)

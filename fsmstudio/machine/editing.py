"""
Pure edit transforms over the editing graph.

Every function takes the current MachineGraph and returns the next one;
the input is never modified. Edits that make no sense for the current graph
(unknown ids, renaming onto an existing name) return the graph unchanged.
Edges that end up sharing an (event, target) pair are merged so the graph
keeps one edge per transition.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from fsmstudio.config.settings import LayoutConfig, LayoutDirection
from fsmstudio.machine.graph import MachineGraph, StateNode, TransitionEdge
from fsmstudio.machine.layout import layered_layout
from fsmstudio.machine.schema import Position

logger = logging.getLogger(__name__)

DEFAULT_EVENT = "event"
DEFAULT_STATE_NAME = "new_state"
NEW_STATE_OFFSET_X = 180
FIRST_STATE_POSITION = Position(x=100, y=100)


def normalize_edges(edges: Iterable[TransitionEdge]) -> Tuple[TransitionEdge, ...]:
    """Merge edges sharing (event, target), keeping first-seen order and guard."""
    merged: Dict[Tuple[str, str], TransitionEdge] = {}
    for edge in edges:
        existing = merged.get(edge.key)
        if existing is None:
            merged[edge.key] = edge
            continue
        logger.debug(f"Merging edge {edge.id} into {existing.id}")
        merged[edge.key] = existing.model_copy(
            update={
                "source_states": tuple(
                    dict.fromkeys(existing.source_states + edge.source_states)
                ),
                "guard": existing.guard or edge.guard,
            }
        )
    return tuple(merged.values())


def _replace_edge(
    graph: MachineGraph, edge_id: str, **update
) -> MachineGraph:
    edge = graph.get_edge(edge_id)
    if edge is None:
        logger.debug(f"No edge {edge_id}; graph unchanged")
        return graph
    edges = [e.model_copy(update=update) if e.id == edge_id else e for e in graph.edges]
    return graph._replace(edges=normalize_edges(edges))


def unique_state_name(graph: MachineGraph, base: str = DEFAULT_STATE_NAME) -> str:
    existing = {n.label for n in graph.nodes}
    name = base
    counter = 1
    while name in existing:
        name = f"{base}_{counter}"
        counter += 1
    return name


def add_state(
    graph: MachineGraph,
    name: Optional[str] = None,
    position: Optional[Position] = None,
    *,
    default_name: str = DEFAULT_STATE_NAME,
    offset_x: float = NEW_STATE_OFFSET_X,
) -> MachineGraph:
    """
    Append a state.

    The name is made unique with a numeric suffix. Without a position the
    state is placed to the right of the last one. The first state of an
    empty graph becomes the initial state.
    """
    name = unique_state_name(graph, (name or "").strip() or default_name)

    if position is None:
        if graph.nodes:
            last = graph.nodes[-1].position
            position = Position(x=last.x + offset_x, y=last.y)
        else:
            position = FIRST_STATE_POSITION

    node = StateNode(id=name, label=name, is_initial=not graph.nodes, position=position)
    return graph._replace(nodes=graph.nodes + (node,))


def rename_state(graph: MachineGraph, node_id: str, new_name: str) -> MachineGraph:
    """
    Rename a state, updating every edge that references it.

    Blank names and names already used by another state are rejected.
    """
    new_name = new_name.strip()
    if graph.get_node(node_id) is None:
        logger.debug(f"No state {node_id}; graph unchanged")
        return graph
    if not new_name:
        logger.info(f"Rejected blank name for state '{node_id}'")
        return graph
    if any(n.label == new_name for n in graph.nodes if n.id != node_id):
        logger.info(f"Rejected rename of '{node_id}': '{new_name}' already exists")
        return graph

    nodes = tuple(
        n.model_copy(update={"id": new_name, "label": new_name}) if n.id == node_id else n
        for n in graph.nodes
    )

    def rename(s: str) -> str:
        return new_name if s == node_id else s

    edges = [
        e.model_copy(
            update={
                "target": rename(e.target),
                "source_states": tuple(dict.fromkeys(rename(s) for s in e.source_states)),
            }
        )
        for e in graph.edges
    ]
    return MachineGraph(nodes=nodes, edges=normalize_edges(edges))


def delete_state(graph: MachineGraph, node_id: str) -> MachineGraph:
    """
    Remove a state.

    Edges into it are removed; it is dropped from the sources of edges out of
    it, and edges left with no source are removed.
    """
    if graph.get_node(node_id) is None:
        return graph

    nodes = tuple(n for n in graph.nodes if n.id != node_id)
    edges: List[TransitionEdge] = []
    for edge in graph.edges:
        if edge.target == node_id:
            continue
        sources = tuple(s for s in edge.source_states if s != node_id)
        if not sources:
            continue
        if sources != edge.source_states:
            edge = edge.model_copy(update={"source_states": sources})
        edges.append(edge)
    return MachineGraph(nodes=nodes, edges=normalize_edges(edges))


def set_initial_state(graph: MachineGraph, node_id: str) -> MachineGraph:
    """Flag one state as initial and clear the flag everywhere else."""
    if graph.get_node(node_id) is None:
        return graph
    nodes = tuple(
        n.model_copy(update={"is_initial": n.id == node_id})
        if n.is_initial != (n.id == node_id)
        else n
        for n in graph.nodes
    )
    return graph._replace(nodes=nodes)


def move_state(graph: MachineGraph, node_id: str, position: Position) -> MachineGraph:
    if graph.get_node(node_id) is None:
        return graph
    nodes = tuple(
        n.model_copy(update={"position": position}) if n.id == node_id else n
        for n in graph.nodes
    )
    return graph._replace(nodes=nodes)


def connect(
    graph: MachineGraph,
    source: str,
    target: str,
    event: str = DEFAULT_EVENT,
    guard: Optional[str] = None,
) -> MachineGraph:
    """
    Draw a transition from `source` to `target`.

    If an edge for (event, target) exists, `source` joins its sources.
    """
    if graph.get_node(source) is None or graph.get_node(target) is None:
        logger.debug(f"Cannot connect {source} -> {target}: unknown state")
        return graph
    edge = TransitionEdge(target=target, event=event, guard=guard, source_states=(source,))
    return graph._replace(edges=normalize_edges(graph.edges + (edge,)))


def retarget_edge(graph: MachineGraph, edge_id: str, target: str) -> MachineGraph:
    if graph.get_node(target) is None:
        return graph
    return _replace_edge(graph, edge_id, target=target)


def delete_edge(graph: MachineGraph, edge_id: str) -> MachineGraph:
    return graph._replace(edges=tuple(e for e in graph.edges if e.id != edge_id))


def update_transition_event(graph: MachineGraph, edge_id: str, event: str) -> MachineGraph:
    """Change an edge's event; a blank event is kept so validation can flag it."""
    return _replace_edge(graph, edge_id, event=event.strip())


def update_transition_guard(
    graph: MachineGraph, edge_id: str, guard: Optional[str]
) -> MachineGraph:
    guard = guard.strip() if guard else None
    return _replace_edge(graph, edge_id, guard=guard or None)


def add_edge_source(graph: MachineGraph, edge_id: str, state: str) -> MachineGraph:
    """Let another state fire the same transition."""
    edge = graph.get_edge(edge_id)
    if edge is None or graph.get_node(state) is None or state in edge.source_states:
        return graph
    return _replace_edge(graph, edge_id, source_states=edge.source_states + (state,))


def remove_edge_source(graph: MachineGraph, edge_id: str, state: str) -> MachineGraph:
    """Drop one source state; the last source cannot be removed (delete the edge instead)."""
    edge = graph.get_edge(edge_id)
    if edge is None or state not in edge.source_states:
        return graph
    if len(edge.source_states) == 1:
        logger.info(f"Refusing to remove the only source of edge {edge_id}")
        return graph
    sources = tuple(s for s in edge.source_states if s != state)
    return _replace_edge(graph, edge_id, source_states=sources)


def apply_auto_layout(
    graph: MachineGraph,
    direction: Optional[LayoutDirection] = None,
    config: Optional[LayoutConfig] = None,
) -> MachineGraph:
    """Reposition every state with the layered layout."""
    placed = layered_layout(graph.nodes, graph.edges, direction=direction, config=config)
    nodes = tuple(
        n.model_copy(update={"position": placed[n.id]}) if n.id in placed else n
        for n in graph.nodes
    )
    return graph._replace(nodes=nodes)

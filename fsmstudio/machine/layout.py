"""
Layered auto-layout for the editing graph.

States are ranked along the layout direction by longest path from the
sources of the graph; states on a cycle share a rank. Within a rank, states
keep the order in which they appear in the graph, so the layout is
deterministic for a given graph and direction.
"""

import logging
from typing import Dict, Iterable, Optional, Sequence

import networkx as nx

from fsmstudio.config.settings import LayoutConfig, LayoutDirection
from fsmstudio.machine.graph import StateNode, TransitionEdge
from fsmstudio.machine.schema import Position, PositionMap

logger = logging.getLogger(__name__)


def build_digraph(
    nodes: Sequence[StateNode], edges: Iterable[TransitionEdge]
) -> nx.DiGraph:
    """State graph with one arc per (source state, target) pair."""
    graph = nx.DiGraph()
    for index, node in enumerate(nodes):
        graph.add_node(node.id, order=index)
    for edge in edges:
        if edge.target not in graph:
            continue
        for source in edge.source_states:
            if source in graph and source != edge.target:
                graph.add_edge(source, edge.target)
    return graph


def rank_states(graph: nx.DiGraph) -> Dict[str, int]:
    """Assign each state a layer index; a strongly connected component is one layer."""
    condensed = nx.condensation(graph)
    ranks: Dict[str, int] = {}
    for rank, generation in enumerate(nx.topological_generations(condensed)):
        for component in generation:
            for state in condensed.nodes[component]["members"]:
                ranks[state] = rank
    return ranks


def layered_layout(
    nodes: Sequence[StateNode],
    edges: Iterable[TransitionEdge],
    direction: Optional[LayoutDirection] = None,
    config: Optional[LayoutConfig] = None,
) -> PositionMap:
    """
    Compute top-left positions for every node.

    Args:
        nodes: Graph nodes, in display order
        edges: Graph edges
        direction: "LR" (layers left to right) or "TB" (top to bottom);
            defaults to the configured direction
        config: Node size, separations and margins

    Returns:
        Mapping of node id to Position
    """
    config = config or LayoutConfig()
    direction = direction or config.direction
    if direction not in ("LR", "TB"):
        raise ValueError(f"Unsupported layout direction: {direction}")

    if not nodes:
        return {}

    graph = build_digraph(nodes, edges)
    ranks = rank_states(graph)

    layers: Dict[int, list] = {}
    for node in nodes:
        layers.setdefault(ranks[node.id], []).append(node.id)

    rank_step_x = config.node_width + config.rank_sep
    rank_step_y = config.node_height + config.rank_sep
    slot_step_x = config.node_width + config.node_sep
    slot_step_y = config.node_height + config.node_sep

    positions: PositionMap = {}
    for rank, members in layers.items():
        for slot, node_id in enumerate(members):
            if direction == "LR":
                x = config.margin_x + rank * rank_step_x
                y = config.margin_y + slot * slot_step_y
            else:
                x = config.margin_x + slot * slot_step_x
                y = config.margin_y + rank * rank_step_y
            positions[node_id] = Position(x=x, y=y)

    logger.debug(
        f"Laid out {len(positions)} states in {len(layers)} layers ({direction})"
    )
    return positions

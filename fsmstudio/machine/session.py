"""
Machine editing session.

MachineEditor owns the graph being edited. Each edit applies one pure
transform from `fsmstudio.machine.editing` and, in the same call,
re-derives the definition and the validation result from the resulting
graph, so what is reported always matches the latest edit.
"""

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from fsmstudio.config.settings import LayoutDirection, StudioSettings
from fsmstudio.machine import editing
from fsmstudio.machine.conversion import to_definition, to_graph
from fsmstudio.machine.graph import MachineGraph, StateNode, TransitionEdge
from fsmstudio.machine.schema import MachineDefinition, Position
from fsmstudio.machine.validation import ValidationResult, validate

logger = logging.getLogger(__name__)

ChangeCallback = Callable[[MachineDefinition, ValidationResult], None]


@dataclass(frozen=True)
class Snapshot:
    """Graph, definition and validation result after one edit."""

    graph: MachineGraph
    definition: MachineDefinition
    validation: ValidationResult


class MachineEditor:
    """
    Single-writer editing session for one machine.

    Not thread-safe: one caller drives the session.

    Example:
        ```python
        editor = MachineEditor(definition, on_change=publish)
        editor.add_state("shipped")
        editor.connect("paid", "shipped", "ship")
        if editor.validation.valid:
            save(editor.definition)
        ```
    """

    def __init__(
        self,
        definition: Optional[MachineDefinition] = None,
        on_change: Optional[ChangeCallback] = None,
        settings: Optional[StudioSettings] = None,
    ):
        self.settings = settings or StudioSettings()
        self._on_change = on_change
        self._graph = MachineGraph()
        self._meta: Dict[str, Any] = {}
        self._snapshot = self._derive(self._graph)

        if definition is not None:
            self.load(definition, apply_layout=self.settings.editor.auto_layout_on_load)

    @property
    def graph(self) -> MachineGraph:
        return self._graph

    @property
    def nodes(self):
        return self._graph.nodes

    @property
    def edges(self):
        return self._graph.edges

    @property
    def definition(self) -> MachineDefinition:
        return self._snapshot.definition

    @property
    def validation(self) -> ValidationResult:
        return self._snapshot.validation

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    def _derive(self, graph: MachineGraph) -> Snapshot:
        definition = to_definition(
            graph.nodes,
            graph.edges,
            self._meta,
            positions_key=self.settings.editor.positions_key,
        )
        return Snapshot(graph=graph, definition=definition, validation=validate(graph.nodes, graph.edges))

    def load(self, definition: MachineDefinition, apply_layout: bool = False) -> Snapshot:
        """Replace the session contents. Does not notify `on_change`."""
        self._meta = {
            k: v for k, v in definition.meta.items() if k != self.settings.editor.positions_key
        }
        self._graph = to_graph(
            definition,
            auto_layout=apply_layout,
            direction=self.settings.layout.direction,
            grid=self.settings.grid,
            layout=self.settings.layout,
            positions_key=self.settings.editor.positions_key,
        )
        self._snapshot = self._derive(self._graph)
        logger.info(
            f"Loaded machine with {len(self._graph.nodes)} states, "
            f"{len(self._graph.edges)} transitions"
        )
        return self._snapshot

    def _commit(self, graph: MachineGraph) -> Snapshot:
        if graph is self._graph:
            return self._snapshot
        self._graph = graph
        self._snapshot = self._derive(graph)
        if self._on_change is not None:
            self._on_change(self._snapshot.definition, self._snapshot.validation)
        return self._snapshot

    def add_state(self, name: Optional[str] = None, position: Optional[Position] = None) -> StateNode:
        cfg = self.settings.editor
        self._commit(
            editing.add_state(
                self._graph,
                name,
                position,
                default_name=cfg.default_state_name,
                offset_x=cfg.new_state_offset_x,
            )
        )
        return self._graph.nodes[-1]

    def rename_state(self, node_id: str, new_name: str) -> Snapshot:
        return self._commit(editing.rename_state(self._graph, node_id, new_name))

    def delete_state(self, node_id: str) -> Snapshot:
        return self._commit(editing.delete_state(self._graph, node_id))

    def set_initial_state(self, node_id: str) -> Snapshot:
        return self._commit(editing.set_initial_state(self._graph, node_id))

    def move_state(self, node_id: str, position: Position) -> Snapshot:
        return self._commit(editing.move_state(self._graph, node_id, position))

    def connect(
        self,
        source: str,
        target: str,
        event: Optional[str] = None,
        guard: Optional[str] = None,
    ) -> Optional[TransitionEdge]:
        """Connect two states; returns the edge now carrying the transition."""
        event = event or self.settings.editor.default_event
        self._commit(editing.connect(self._graph, source, target, event, guard))
        return next(
            (e for e in self._graph.edges if e.key == (event, target) and source in e.source_states),
            None,
        )

    def retarget_edge(self, edge_id: str, target: str) -> Snapshot:
        return self._commit(editing.retarget_edge(self._graph, edge_id, target))

    def delete_edge(self, edge_id: str) -> Snapshot:
        return self._commit(editing.delete_edge(self._graph, edge_id))

    def update_transition_event(self, edge_id: str, event: str) -> Snapshot:
        return self._commit(editing.update_transition_event(self._graph, edge_id, event))

    def update_transition_guard(self, edge_id: str, guard: Optional[str]) -> Snapshot:
        return self._commit(editing.update_transition_guard(self._graph, edge_id, guard))

    def add_edge_source(self, edge_id: str, state: str) -> Snapshot:
        return self._commit(editing.add_edge_source(self._graph, edge_id, state))

    def remove_edge_source(self, edge_id: str, state: str) -> Snapshot:
        return self._commit(editing.remove_edge_source(self._graph, edge_id, state))

    def auto_layout(self, direction: Optional[LayoutDirection] = None) -> Snapshot:
        return self._commit(
            editing.apply_auto_layout(
                self._graph,
                direction=direction or self.settings.layout.direction,
                config=self.settings.layout,
            )
        )

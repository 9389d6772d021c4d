"""
Editing graph: one node per state, one edge per (event, target).

Nodes and edges are frozen; edits produce new values (see
`fsmstudio.machine.editing`). JSON uses the camelCase names of the
canvas (`isInitial`, `sourceStates`).
"""

from typing import Any, Dict, Iterable, NamedTuple, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from fsmstudio.machine.schema import Position


def _escape_id_part(part: str) -> str:
    return part.replace("\\", "\\\\").replace("-", "\\-")


def edge_id(source: str, event: str, target: str) -> str:
    """
    Stable edge identity from its first source, event and target.

    Parts are joined with `-`; a `-` or `\\` inside a name is backslash
    escaped, so `a-x --y--> b` and `a --x-y--> b` get different ids.
    """
    return "-".join(_escape_id_part(p) for p in (source, event, target))


class StateNode(BaseModel):
    """A state on the canvas. `id` is the state's name."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    label: str
    is_initial: bool = Field(default=False, alias="isInitial")
    position: Position = Field(default_factory=Position)


class TransitionEdge(BaseModel):
    """
    A transition on the canvas.

    `source_states` lists every state that fires `event` into `target`;
    the edge is drawn from the first of them.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    target: str
    event: str
    guard: Optional[str] = None
    source_states: Tuple[str, ...] = Field(..., min_length=1, alias="sourceStates")

    @field_validator("source_states")
    @classmethod
    def dedupe_sources(cls, v: Tuple[str, ...]) -> Tuple[str, ...]:
        return tuple(dict.fromkeys(v))

    @field_validator("guard")
    @classmethod
    def blank_guard_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @computed_field
    @property
    def source(self) -> str:
        return self.source_states[0]

    @computed_field
    @property
    def id(self) -> str:
        return edge_id(self.source, self.event, self.target)

    @property
    def key(self) -> Tuple[str, str]:
        """Merge key: edges sharing it describe the same transition."""
        return (self.event, self.target)

    def touches(self, node_id: str) -> bool:
        return node_id == self.target or node_id in self.source_states


class MachineGraph(NamedTuple):
    """Nodes and edges of one editing snapshot."""

    nodes: Tuple[StateNode, ...] = ()
    edges: Tuple[TransitionEdge, ...] = ()

    def get_node(self, node_id: str) -> Optional[StateNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def get_edge(self, edge_id: str) -> Optional[TransitionEdge]:
        for edge in self.edges:
            if edge.id == edge_id:
                return edge
        return None

    def node_ids(self) -> Tuple[str, ...]:
        return tuple(n.id for n in self.nodes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodes": [n.model_dump(mode="json", by_alias=True) for n in self.nodes],
            "edges": [e.model_dump(mode="json", by_alias=True) for e in self.edges],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MachineGraph":
        return cls(
            nodes=tuple(StateNode.model_validate(n) for n in data.get("nodes", [])),
            edges=tuple(TransitionEdge.model_validate(e) for e in data.get("edges", [])),
        )


def make_graph(
    nodes: Iterable[StateNode], edges: Iterable[TransitionEdge]
) -> MachineGraph:
    return MachineGraph(nodes=tuple(nodes), edges=tuple(edges))

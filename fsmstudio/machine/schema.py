"""
Machine definition schema using Pydantic models.

The definition is the document exchanged with the server; the graph view
is derived from it. Only the wire shape is enforced here. Semantic checks
(unknown states, duplicates, divergent guards) are reported by
`fsmstudio.machine.validation.validate_definition` rather than raised, so
a half-edited machine can still be loaded, shown and fixed.

Example YAML:
```yaml
states: [pending, review, approved, rejected]
initial: pending

transitions:
  - from: pending
    event: submit
    to: review

  - from: [pending, review]
    event: cancel
    to: rejected

  - from: review
    event: approve
    to: approved
    guard: ctx.score > 50 && ctx.reviewer

meta:
  owner: billing
  _builderPositions:
    pending: {x: 50, y: 50}
```
"""

import logging
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fsmstudio.config.settings import POSITIONS_META_KEY

logger = logging.getLogger(__name__)


class Position(BaseModel):
    """Top-left canvas coordinates of a state."""

    model_config = ConfigDict(frozen=True)

    x: float = 0
    y: float = 0


PositionMap = Dict[str, Position]


class TransitionSpec(BaseModel):
    """
    One transition as written in a definition.

    `from` may name a single state or several states that share the same
    event, target and guard.
    """

    model_config = ConfigDict(populate_by_name=True)

    source: Union[str, List[str]] = Field(..., alias="from")
    event: str
    target: str = Field(..., alias="to")
    guard: Optional[str] = None

    @field_validator("guard")
    @classmethod
    def blank_guard_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v

    @property
    def sources(self) -> List[str]:
        """Source states as a list, whatever form `from` was given in."""
        if isinstance(self.source, str):
            return [self.source]
        return list(self.source)

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class MachineDefinition(BaseModel):
    """
    Complete state machine definition.

    A definition holds:
    - States: unique names in declaration order
    - Initial: the state a new instance starts in
    - Transitions: event-triggered edges, possibly multi-source
    - Meta: open bag; the editor keeps node positions under a reserved key
    """

    states: List[str] = Field(default_factory=list)
    initial: str = ""
    transitions: List[TransitionSpec] = Field(default_factory=list)
    meta: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("meta", mode="before")
    @classmethod
    def none_meta_is_empty(cls, v: Any) -> Any:
        return {} if v is None else v

    def positions(self, key: str = POSITIONS_META_KEY) -> PositionMap:
        """
        Stored node positions, keyed by state name.

        Entries that are not `{x, y}` mappings are skipped.
        """
        raw = self.meta.get(key)
        if not isinstance(raw, dict):
            return {}

        result: PositionMap = {}
        for state, value in raw.items():
            if isinstance(value, Position):
                result[state] = value
                continue
            try:
                result[state] = Position.model_validate(value)
            except ValueError:
                logger.debug(f"Ignoring malformed stored position for '{state}': {value!r}")
        return result

    def has_positions(self, key: str = POSITIONS_META_KEY) -> bool:
        return key in self.meta

    def with_positions(
        self, positions: PositionMap, key: str = POSITIONS_META_KEY
    ) -> "MachineDefinition":
        """Copy of this definition with positions stored under the reserved key."""
        meta = dict(self.meta)
        meta[key] = {name: pos.model_dump() for name, pos in positions.items()}
        return self.model_copy(update={"meta": meta})

    def get_transitions_from(self, state_name: str) -> List[TransitionSpec]:
        """Get all transitions leaving a state."""
        return [t for t in self.transitions if state_name in t.sources]

    def get_transitions_to(self, state_name: str) -> List[TransitionSpec]:
        """Get all transitions entering a state."""
        return [t for t in self.transitions if t.target == state_name]

    def to_wire(self) -> Dict[str, Any]:
        """JSON-ready dict in the wire shape (`from`/`to`, meta only if set)."""
        data: Dict[str, Any] = {
            "states": list(self.states),
            "initial": self.initial,
            "transitions": [t.to_wire() for t in self.transitions],
        }
        if self.meta:
            data["meta"] = self.meta
        return data

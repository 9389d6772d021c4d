"""
Structural validation.

Two validators:
- validate: checks an editing graph, as run after every edit
- validate_definition: checks raw definition data (wire shape first, then
  semantics), as run before a definition is saved or loaded from a file

Neither raises on invalid input; problems are returned as data and the
caller decides whether to block a save.
"""

import logging
from collections import Counter
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple, Union

from pydantic import BaseModel, Field, computed_field

from fsmstudio.guard.parser import ParseFailure, parse_guard
from fsmstudio.machine.graph import StateNode, TransitionEdge
from fsmstudio.machine.schema import MachineDefinition

logger = logging.getLogger(__name__)


class ValidationResult(BaseModel):
    """Outcome of validating an editing graph. Errors block saving, warnings do not."""

    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @computed_field
    @property
    def valid(self) -> bool:
        return not self.errors


def validate(
    nodes: Sequence[StateNode], edges: Sequence[TransitionEdge]
) -> ValidationResult:
    """
    Validate an editing graph.

    All checks run independently, except that an empty graph only reports
    that a state is required.
    """
    errors: List[str] = []
    warnings: List[str] = []

    if not nodes:
        errors.append("State machine must have at least one state")
        return ValidationResult(errors=errors, warnings=warnings)

    initial_count = sum(1 for n in nodes if n.is_initial)
    if initial_count == 0:
        errors.append("State machine must have an initial state")
    if initial_count > 1:
        errors.append("State machine can only have one initial state")

    counts = Counter(n.label for n in nodes)
    duplicates = [name for name, count in counts.items() if count > 1]
    if duplicates:
        errors.append(f"Duplicate state names: {', '.join(duplicates)}")

    if any(not n.label.strip() for n in nodes):
        errors.append("All states must have a name")

    connected: Set[str] = set()
    for edge in edges:
        connected.add(edge.target)
        connected.update(edge.source_states)

    for node in nodes:
        if not node.is_initial and node.id not in connected:
            warnings.append(f'State "{node.label}" has no transitions')

    for edge in edges:
        if not edge.event.strip():
            sources = ", ".join(edge.source_states)
            errors.append(f'Transition from "{sources}" to "{edge.target}" has no event name')

    logger.debug(f"Graph validation: {len(errors)} errors, {len(warnings)} warnings")
    return ValidationResult(errors=errors, warnings=warnings)


class DefinitionIssue(BaseModel):
    """One problem found in a definition, with a JSON path when it has one."""

    code: str
    message: str
    path: Optional[str] = None


class DefinitionReport(BaseModel):
    errors: List[DefinitionIssue] = Field(default_factory=list)
    warnings: List[DefinitionIssue] = Field(default_factory=list)

    @computed_field
    @property
    def valid(self) -> bool:
        return not self.errors

    def error_messages(self) -> List[str]:
        return [e.message for e in self.errors]

    def warning_messages(self) -> List[str]:
        return [w.message for w in self.warnings]


def _check_schema(data: Any, errors: List[DefinitionIssue]) -> None:
    if not isinstance(data, dict):
        errors.append(
            DefinitionIssue(code="INVALID_TYPE", message="Definition must be an object", path="$")
        )
        return

    states = data.get("states")
    if states is None:
        errors.append(
            DefinitionIssue(
                code="MISSING_FIELD", message="Missing required field 'states'", path="$.states"
            )
        )
    elif not isinstance(states, list):
        errors.append(
            DefinitionIssue(code="INVALID_TYPE", message="'states' must be an array", path="$.states")
        )
    else:
        if not states:
            errors.append(
                DefinitionIssue(
                    code="EMPTY_ARRAY", message="'states' array cannot be empty", path="$.states"
                )
            )
        for i, state in enumerate(states):
            if not isinstance(state, str):
                errors.append(
                    DefinitionIssue(
                        code="INVALID_TYPE",
                        message=f"State at index {i} must be a string",
                        path=f"$.states[{i}]",
                    )
                )

    initial = data.get("initial")
    if initial is None:
        errors.append(
            DefinitionIssue(
                code="MISSING_FIELD", message="Missing required field 'initial'", path="$.initial"
            )
        )
    elif not isinstance(initial, str):
        errors.append(
            DefinitionIssue(code="INVALID_TYPE", message="'initial' must be a string", path="$.initial")
        )

    transitions = data.get("transitions")
    if transitions is None:
        errors.append(
            DefinitionIssue(
                code="MISSING_FIELD",
                message="Missing required field 'transitions'",
                path="$.transitions",
            )
        )
    elif not isinstance(transitions, list):
        errors.append(
            DefinitionIssue(
                code="INVALID_TYPE", message="'transitions' must be an array", path="$.transitions"
            )
        )
    else:
        for i, transition in enumerate(transitions):
            _check_transition_schema(transition, i, errors)

    meta = data.get("meta")
    if meta is not None and not isinstance(meta, dict):
        errors.append(
            DefinitionIssue(code="INVALID_TYPE", message="'meta' must be an object", path="$.meta")
        )


def _check_transition_schema(transition: Any, index: int, errors: List[DefinitionIssue]) -> None:
    prefix = f"$.transitions[{index}]"

    if not isinstance(transition, dict):
        errors.append(
            DefinitionIssue(
                code="INVALID_TYPE",
                message=f"Transition at index {index} must be an object",
                path=prefix,
            )
        )
        return

    source = transition.get("from")
    if source is None:
        errors.append(
            DefinitionIssue(
                code="MISSING_FIELD",
                message="Transition missing required field 'from'",
                path=f"{prefix}.from",
            )
        )
    elif not (
        isinstance(source, str)
        or (isinstance(source, list) and all(isinstance(s, str) for s in source))
    ):
        errors.append(
            DefinitionIssue(
                code="INVALID_TYPE",
                message="'from' must be a string or array of strings",
                path=f"{prefix}.from",
            )
        )

    for key in ("event", "to"):
        value = transition.get(key)
        if value is None:
            errors.append(
                DefinitionIssue(
                    code="MISSING_FIELD",
                    message=f"Transition missing required field '{key}'",
                    path=f"{prefix}.{key}",
                )
            )
        elif not isinstance(value, str):
            errors.append(
                DefinitionIssue(
                    code="INVALID_TYPE",
                    message=f"'{key}' must be a string",
                    path=f"{prefix}.{key}",
                )
            )

    guard = transition.get("guard")
    if guard is not None and not isinstance(guard, str):
        errors.append(
            DefinitionIssue(
                code="INVALID_TYPE", message="'guard' must be a string", path=f"{prefix}.guard"
            )
        )


def _check_semantics(
    data: Dict[str, Any],
    errors: List[DefinitionIssue],
    warnings: List[DefinitionIssue],
) -> None:
    declared: List[str] = data["states"]
    states = set(declared)
    initial: str = data["initial"]

    if initial not in states:
        errors.append(
            DefinitionIssue(
                code="INVALID_INITIAL_STATE",
                message=f"Initial state '{initial}' not in states list",
                path="$.initial",
            )
        )

    seen: Set[str] = set()
    for i, state in enumerate(declared):
        if state in seen:
            errors.append(
                DefinitionIssue(
                    code="DUPLICATE_STATE", message=f"Duplicate state '{state}'", path=f"$.states[{i}]"
                )
            )
        seen.add(state)

    incoming: Set[str] = set()
    outgoing: Set[str] = set()
    guards: Dict[Tuple[str, str], Tuple[int, Optional[str]]] = {}

    for i, transition in enumerate(data["transitions"]):
        source = transition["from"]
        sources = [source] if isinstance(source, str) else list(source)
        target = transition["to"]
        event = transition["event"]
        guard = transition.get("guard") or None

        for s in sources:
            if s not in states:
                errors.append(
                    DefinitionIssue(
                        code="INVALID_STATE",
                        message=f"Transition 'from' state '{s}' not in states list",
                        path=f"$.transitions[{i}].from",
                    )
                )
            outgoing.add(s)

        if target not in states:
            errors.append(
                DefinitionIssue(
                    code="INVALID_STATE",
                    message=f"Transition 'to' state '{target}' not in states list",
                    path=f"$.transitions[{i}].to",
                )
            )
        incoming.add(target)

        key = (event, target)
        if key in guards:
            first_index, first_guard = guards[key]
            if first_guard != guard:
                errors.append(
                    DefinitionIssue(
                        code="DIVERGENT_GUARD",
                        message=(
                            f"Transitions on '{event}' to '{target}' have different guards "
                            f"(transitions[{first_index}] and transitions[{i}]); "
                            "sources sharing an event and target must share one guard"
                        ),
                        path=f"$.transitions[{i}].guard",
                    )
                )
        else:
            guards[key] = (i, guard)

        if guard is not None:
            parsed = parse_guard(guard)
            if isinstance(parsed, ParseFailure):
                warnings.append(
                    DefinitionIssue(
                        code="UNPARSEABLE_GUARD",
                        message=f"Guard cannot be edited visually: {parsed}",
                        path=f"$.transitions[{i}].guard",
                    )
                )

    for state in dict.fromkeys(declared):
        if state != initial and state not in incoming:
            warnings.append(
                DefinitionIssue(
                    code="UNREACHABLE_STATE",
                    message=f"State '{state}' has no incoming transitions",
                )
            )

    for state in dict.fromkeys(declared):
        if state not in outgoing:
            warnings.append(
                DefinitionIssue(
                    code="DEAD_END_STATE",
                    message=f"State '{state}' has no outgoing transitions (terminal state)",
                )
            )


def validate_definition(data: Union[Dict[str, Any], MachineDefinition]) -> DefinitionReport:
    """
    Validate definition data in its wire shape.

    Shape problems are reported first; the semantic pass only runs on data
    whose shape is valid.
    """
    if isinstance(data, MachineDefinition):
        data = data.to_wire()

    errors: List[DefinitionIssue] = []
    warnings: List[DefinitionIssue] = []

    _check_schema(data, errors)
    if not errors:
        _check_semantics(data, errors, warnings)

    logger.debug(f"Definition validation: {len(errors)} errors, {len(warnings)} warnings")
    return DefinitionReport(errors=errors, warnings=warnings)

"""Tests for graph and definition validation."""

import pytest

from fsmstudio.machine.conversion import to_graph
from fsmstudio.machine.graph import StateNode, TransitionEdge
from fsmstudio.machine.validation import validate, validate_definition


def _node(name: str, initial: bool = False) -> StateNode:
    return StateNode(id=name, label=name, is_initial=initial)


def _edge(sources, event: str, target: str) -> TransitionEdge:
    return TransitionEdge(target=target, event=event, source_states=tuple(sources))


class TestValidateGraph:
    """Tests for validate(nodes, edges)."""

    def test_valid_graph(self, simple_graph):
        result = validate(simple_graph.nodes, simple_graph.edges)

        assert result.valid
        assert result.errors == []
        assert result.warnings == []

    def test_empty_graph_short_circuits(self):
        result = validate([], [])

        assert not result.valid
        assert result.errors == ["State machine must have at least one state"]
        assert result.warnings == []

    def test_no_initial_state(self):
        result = validate([_node("a"), _node("b")], [_edge(["a"], "go", "b")])
        assert "State machine must have an initial state" in result.errors

    def test_two_initial_states(self):
        result = validate([_node("a", True), _node("b", True)], [_edge(["a"], "go", "b")])

        assert not result.valid
        assert any("one initial state" in e for e in result.errors)

    def test_duplicate_names_are_listed(self):
        nodes = [_node("a", True), _node("b"), StateNode(id="b2", label="b")]
        result = validate(nodes, [])
        assert "Duplicate state names: b" in result.errors

    def test_blank_name(self):
        result = validate([_node("a", True), StateNode(id="x", label="  ")], [])
        assert "All states must have a name" in result.errors

    def test_isolated_state_is_warning(self):
        result = validate([_node("a", True), _node("lonely")], [])

        assert result.valid
        assert result.warnings == ['State "lonely" has no transitions']

    def test_isolated_initial_state_is_fine(self):
        result = validate([_node("a", True)], [])
        assert result.valid
        assert result.warnings == []

    def test_blank_event_names_endpoints(self):
        nodes = [_node("a", True), _node("b"), _node("c")]
        result = validate(nodes, [_edge(["a", "b"], "", "c")])

        assert not result.valid
        [message] = result.errors
        assert '"a, b"' in message
        assert '"c"' in message
        assert "no event name" in message

    def test_checks_accumulate(self):
        nodes = [_node("a"), _node("a")]
        result = validate(nodes, [_edge(["a"], " ", "a")])

        assert len(result.errors) == 3

    def test_result_serializes_valid_flag(self):
        data = validate([], []).model_dump()
        assert data == {
            "errors": ["State machine must have at least one state"],
            "warnings": [],
            "valid": False,
        }

    def test_does_not_mutate_inputs(self, simple_graph):
        nodes = list(simple_graph.nodes)
        edges = list(simple_graph.edges)
        validate(nodes, edges)
        assert tuple(nodes) == simple_graph.nodes
        assert tuple(edges) == simple_graph.edges


class TestValidateDefinition:
    """Tests for validate_definition(data)."""

    def test_valid_definition(self, simple_definition_dict):
        report = validate_definition(simple_definition_dict)

        assert report.valid
        assert report.errors == []

    def test_accepts_model(self, sample_definition):
        report = validate_definition(sample_definition)
        assert report.valid

    def test_sample_terminal_states_are_warned(self, sample_definition):
        report = validate_definition(sample_definition)

        codes = {(w.code, w.message.split("'")[1]) for w in report.warnings}
        assert ("DEAD_END_STATE", "shipped") in codes
        assert ("DEAD_END_STATE", "cancelled") in codes

    def test_not_a_mapping(self):
        report = validate_definition(["a"])

        assert [e.code for e in report.errors] == ["INVALID_TYPE"]
        assert report.errors[0].path == "$"

    def test_missing_fields(self):
        report = validate_definition({})

        assert {e.code for e in report.errors} == {"MISSING_FIELD"}
        assert {e.path for e in report.errors} == {"$.states", "$.initial", "$.transitions"}

    def test_empty_states(self):
        report = validate_definition({"states": [], "initial": "a", "transitions": []})

        assert [e.code for e in report.errors] == ["EMPTY_ARRAY"]

    def test_shape_errors_skip_semantics(self):
        report = validate_definition({"states": ["a", 1], "initial": "zzz", "transitions": []})

        assert [e.code for e in report.errors] == ["INVALID_TYPE"]
        assert report.errors[0].path == "$.states[1]"
        assert report.warnings == []

    @pytest.mark.parametrize(
        "transition,path",
        [
            ({"event": "go", "to": "a"}, "$.transitions[0].from"),
            ({"from": 3, "event": "go", "to": "a"}, "$.transitions[0].from"),
            ({"from": ["a", 2], "event": "go", "to": "a"}, "$.transitions[0].from"),
            ({"from": "a", "to": "a"}, "$.transitions[0].event"),
            ({"from": "a", "event": "go", "to": 5}, "$.transitions[0].to"),
            ({"from": "a", "event": "go", "to": "a", "guard": 1}, "$.transitions[0].guard"),
            ("a->a", "$.transitions[0]"),
        ],
    )
    def test_transition_shape(self, transition, path):
        report = validate_definition({"states": ["a"], "initial": "a", "transitions": [transition]})

        assert not report.valid
        assert report.errors[0].path == path

    def test_meta_must_be_object(self):
        report = validate_definition(
            {"states": ["a"], "initial": "a", "transitions": [], "meta": "x"}
        )
        assert report.errors[0].path == "$.meta"

    def test_invalid_initial_state(self):
        report = validate_definition({"states": ["a"], "initial": "b", "transitions": []})

        assert report.errors[0].code == "INVALID_INITIAL_STATE"
        assert "'b'" in report.errors[0].message

    def test_duplicate_state(self):
        report = validate_definition({"states": ["a", "a"], "initial": "a", "transitions": []})

        [issue] = report.errors
        assert issue.code == "DUPLICATE_STATE"
        assert issue.path == "$.states[1]"

    def test_unknown_states_in_transition(self):
        report = validate_definition(
            {
                "states": ["a"],
                "initial": "a",
                "transitions": [{"from": ["a", "x"], "event": "go", "to": "y"}],
            }
        )

        assert [e.code for e in report.errors] == ["INVALID_STATE", "INVALID_STATE"]
        assert [e.path for e in report.errors] == [
            "$.transitions[0].from",
            "$.transitions[0].to",
        ]

    def test_divergent_guard_is_error(self):
        report = validate_definition(
            {
                "states": ["a", "b", "c"],
                "initial": "a",
                "transitions": [
                    {"from": "a", "event": "go", "to": "c", "guard": "ctx.x"},
                    {"from": "b", "event": "go", "to": "c"},
                ],
            }
        )

        [issue] = report.errors
        assert issue.code == "DIVERGENT_GUARD"
        assert issue.path == "$.transitions[1].guard"

    def test_same_guard_on_merged_transitions_is_fine(self):
        report = validate_definition(
            {
                "states": ["a", "b", "c"],
                "initial": "a",
                "transitions": [
                    {"from": "a", "event": "go", "to": "c", "guard": "ctx.x"},
                    {"from": "b", "event": "go", "to": "c", "guard": "ctx.x"},
                ],
            }
        )
        assert report.valid

    def test_unparseable_guard_is_warning(self):
        report = validate_definition(
            {
                "states": ["a"],
                "initial": "a",
                "transitions": [
                    {"from": "a", "event": "go", "to": "a", "guard": "ctx.a && ctx.b || ctx.c"}
                ],
            }
        )

        assert report.valid
        [issue] = report.warnings
        assert issue.code == "UNPARSEABLE_GUARD"

    def test_unreachable_and_dead_end(self):
        report = validate_definition(
            {
                "states": ["a", "b", "orphan"],
                "initial": "a",
                "transitions": [{"from": "a", "event": "go", "to": "b"}],
            }
        )

        warnings = [(w.code, w.message) for w in report.warnings]
        assert ("UNREACHABLE_STATE", "State 'orphan' has no incoming transitions") in warnings
        assert (
            "DEAD_END_STATE",
            "State 'b' has no outgoing transitions (terminal state)",
        ) in warnings
        assert not any("'a'" in m for c, m in warnings if c == "UNREACHABLE_STATE")

    def test_messages_helpers(self):
        report = validate_definition({"states": ["a"], "initial": "b", "transitions": []})

        assert report.error_messages() == ["Initial state 'b' not in states list"]
        assert report.warning_messages() == [
            "State 'a' has no incoming transitions",
            "State 'a' has no outgoing transitions (terminal state)",
        ]

    def test_definition_and_graph_agree_on_sample(self, sample_definition):
        graph = to_graph(sample_definition)
        assert validate(graph.nodes, graph.edges).valid
        assert validate_definition(sample_definition).valid

"""Tests for guard text parsing."""

import pytest

from fsmstudio.guard.ast import Condition, ConditionGroup, Logic, Operator
from fsmstudio.guard.parser import ParseFailure, is_parse_failure, parse_guard, parse_value
from fsmstudio.guard.serializer import serialize_guard


class TestParseGuard:
    """Tests for well-formed guard expressions."""

    def test_and_of_comparison_and_exists(self):
        tree = parse_guard("ctx.amount > 100 && ctx.approved")

        assert isinstance(tree, ConditionGroup)
        assert tree.logic == Logic.AND
        assert not tree.negated
        assert len(tree.items) == 2

        first, second = tree.items
        assert first.field == "amount"
        assert first.operator == Operator.GT
        assert first.value == 100
        assert isinstance(first.value, int)
        assert second.field == "approved"
        assert second.operator == Operator.EXISTS
        assert second.value is None

    def test_or_of_string_comparisons(self):
        tree = parse_guard('ctx.x == "done" || ctx.y == "done"')

        assert tree.logic == Logic.OR
        assert [c.field for c in tree.items] == ["x", "y"]
        assert all(c.value == "done" for c in tree.items)

    def test_single_condition_is_wrapped_in_group(self):
        tree = parse_guard("ctx.ready")

        assert isinstance(tree, ConditionGroup)
        assert tree.logic == Logic.AND
        assert len(tree.items) == 1
        assert tree.items[0].operator == Operator.EXISTS

    def test_not_exists(self):
        tree = parse_guard("!ctx.hold")

        item = tree.items[0]
        assert item.field == "hold"
        assert item.operator == Operator.NOT_EXISTS
        assert not item.negated

    def test_dotted_field(self):
        tree = parse_guard('ctx.payment.status == "captured"')
        assert tree.items[0].field == "payment.status"

    @pytest.mark.parametrize(
        "op", ["==", "!=", ">", ">=", "<", "<="],
    )
    def test_every_comparison_operator(self, op):
        tree = parse_guard(f"ctx.n {op} 1")
        assert tree.items[0].operator == Operator(op)

    def test_whitespace_is_insignificant(self):
        tree = parse_guard("  ctx.a>=1&&ctx.b  ")
        assert len(tree.items) == 2
        assert tree.items[0].operator == Operator.GE

    def test_negated_single_condition(self):
        tree = parse_guard("!(ctx.amount > 1)")

        assert len(tree.items) == 1
        item = tree.items[0]
        assert isinstance(item, Condition)
        assert item.negated
        assert item.operator == Operator.GT

    def test_negated_group_at_root(self):
        tree = parse_guard("!(ctx.a || ctx.b)")

        assert tree.negated
        assert tree.logic == Logic.OR
        assert len(tree.items) == 2

    def test_negated_group_as_child(self):
        tree = parse_guard("ctx.a && !(ctx.b || ctx.c)")

        assert tree.logic == Logic.AND
        child = tree.items[1]
        assert isinstance(child, ConditionGroup)
        assert child.negated
        assert child.logic == Logic.OR

    def test_parenthesized_group_mixes_operators(self):
        tree = parse_guard("ctx.a && (ctx.b || ctx.c)")

        assert tree.logic == Logic.AND
        child = tree.items[1]
        assert isinstance(child, ConditionGroup)
        assert not child.negated
        assert child.logic == Logic.OR

    def test_parenthesized_single_item_is_unwrapped(self):
        tree = parse_guard("(ctx.a) && ctx.b")
        assert all(isinstance(item, Condition) for item in tree.items)

    def test_whole_expression_in_parens_is_root(self):
        tree = parse_guard("(ctx.a || ctx.b)")

        assert tree.logic == Logic.OR
        assert not tree.negated
        assert len(tree.items) == 2


class TestParseValues:
    """Tests for literal interpretation."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("null", None),
            ("true", True),
            ("false", False),
            ("42", 42),
            ("-3", -3),
            ("2.5", 2.5),
            ("1e3", 1000.0),
            ("pending", "pending"),
        ],
    )
    def test_parse_value(self, raw, expected):
        assert parse_value(raw) == expected

    def test_integer_stays_int(self):
        assert isinstance(parse_value("7"), int)
        assert isinstance(parse_value("7.0"), float)

    def test_bool_is_not_string(self):
        tree = parse_guard("ctx.flag == true")
        assert tree.items[0].value is True

    def test_null_literal(self):
        tree = parse_guard("ctx.owner != null")

        item = tree.items[0]
        assert item.operator == Operator.NE
        assert item.value is None

    def test_quoted_number_stays_string(self):
        tree = parse_guard('ctx.code == "42"')
        assert tree.items[0].value == "42"

    def test_single_quoted_string(self):
        tree = parse_guard("ctx.name == 'a b'")
        assert tree.items[0].value == "a b"

    def test_escaped_quote(self):
        tree = parse_guard(r'ctx.name == "say \"hi\""')
        assert tree.items[0].value == 'say "hi"'

    def test_bare_word_value(self):
        tree = parse_guard("ctx.status == approved")
        assert tree.items[0].value == "approved"


class TestParseFailures:
    """Malformed text returns ParseFailure instead of raising."""

    @pytest.mark.parametrize(
        "text",
        [
            "ctx.a && ctx.b || ctx.c",
            "ctx.a ||",
            "&& ctx.a",
            "ctx.a && && ctx.b",
            "(ctx.a && ctx.b",
            "ctx.a && ctx.b)",
            "()",
            "ctx.a >",
            "amount > 1",
            "ctx.a == \"open",
            "!",
            "ctx.a ctx.b",
        ],
    )
    def test_malformed(self, text):
        result = parse_guard(text)
        assert isinstance(result, ParseFailure)
        assert is_parse_failure(result)
        assert result.message

    @pytest.mark.parametrize("text", ["", "   ", None])
    def test_blank_text(self, text):
        result = parse_guard(text)
        assert isinstance(result, ParseFailure)
        assert result.message == "empty expression"

    def test_mixed_operators_message(self):
        result = parse_guard("ctx.a && ctx.b || ctx.c")
        assert "mix" in result.message
        assert result.position == 15

    def test_failure_str_includes_column(self):
        result = parse_guard("ctx.a && ctx.b || ctx.c")
        assert str(result).endswith("(at column 16)")

    def test_unmatched_open_paren(self):
        result = parse_guard("(ctx.a && ctx.b")
        assert "unmatched '('" in result.message
        assert result.position == 0


class TestRoundTrip:
    """Parsing canonical text and serializing it yields the same text."""

    @pytest.mark.parametrize(
        "text",
        [
            "ctx.amount > 100 && ctx.approved",
            'ctx.x == "done" || ctx.y == "done"',
            "!ctx.hold",
            "!(ctx.amount > 1)",
            "!(ctx.a || ctx.b)",
            "ctx.a && (ctx.b || ctx.c)",
            "ctx.a && !(ctx.b || !(ctx.c >= 2.5))",
            "ctx.owner == null && ctx.active == false",
            'ctx.payment.status == "captured"',
        ],
    )
    def test_canonical_text_is_preserved(self, text):
        assert serialize_guard(parse_guard(text)) == text

    @pytest.mark.parametrize(
        "text",
        [
            "ctx.a&&ctx.b",
            "(ctx.a) || (ctx.b)",
            "ctx.name == 'quoted'",
            "ctx.a && (ctx.b && ctx.c)",
        ],
    )
    def test_reparse_of_serialized_tree_is_equal(self, text):
        tree = parse_guard(text)
        again = parse_guard(serialize_guard(tree))
        assert again == tree

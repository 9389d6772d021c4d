"""
Guard expression compiler.

Contains:
- AST: Condition, ConditionGroup, Operator, Logic
- Parser: parse_guard (text -> tree, ParseFailure on bad input)
- Serializer: serialize_guard (tree -> canonical text)
- Editor: GuardEditor for visual/raw dual-mode editing
"""

from fsmstudio.guard.ast import (
    Operator,
    Logic,
    Condition,
    ConditionGroup,
    GuardItem,
    GuardValue,
    condition,
    group,
    empty_condition,
    empty_group,
    is_condition,
    load_tree,
)
from fsmstudio.guard.parser import ParseFailure, parse_guard, is_parse_failure
from fsmstudio.guard.serializer import serialize_guard, serialize_condition, format_value
from fsmstudio.guard.editor import EditMode, GuardEditor

__all__ = [
    # AST
    "Operator",
    "Logic",
    "Condition",
    "ConditionGroup",
    "GuardItem",
    "GuardValue",
    "condition",
    "group",
    "empty_condition",
    "empty_group",
    "is_condition",
    "load_tree",
    # Parser
    "ParseFailure",
    "parse_guard",
    "is_parse_failure",
    # Serializer
    "serialize_guard",
    "serialize_condition",
    "format_value",
    # Editor
    "EditMode",
    "GuardEditor",
]

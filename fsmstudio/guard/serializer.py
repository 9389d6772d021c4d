"""
Guard expression serializer.

Renders a ConditionGroup tree as canonical guard text. Draft conditions
(blank field) and groups left without any real condition are skipped, so a
half-built tree from the visual builder still yields a usable preview.
"""

import math
from typing import Optional, Union

from fsmstudio.guard.ast import Condition, ConditionGroup, GuardValue, Operator


def format_value(value: GuardValue) -> str:
    """Render a literal the way the parser reads it back."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isfinite(value) and value.is_integer() and abs(value) < 1e16:
            return str(int(value))
        return repr(value)
    escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def serialize_condition(c: Condition) -> str:
    field = f"ctx.{c.field}"

    if c.operator is Operator.EXISTS:
        expr = field
    elif c.operator is Operator.NOT_EXISTS:
        expr = f"!{field}"
    else:
        expr = f"{field} {c.operator.value} {format_value(c.value)}"

    if c.negated:
        return f"!({expr})"
    return expr


def _serialize_item(item: Union[Condition, ConditionGroup], nested: bool) -> str:
    if isinstance(item, Condition):
        return "" if item.is_blank else serialize_condition(item)
    return _serialize_group(item, nested)


def _serialize_group(g: ConditionGroup, nested: bool) -> str:
    parts = [_serialize_item(item, nested=True) for item in g.items]
    parts = [p for p in parts if p]

    if not parts:
        return ""

    expr = g.logic.joiner.join(parts)

    if g.negated:
        return f"!({expr})"
    if nested and len(parts) > 1:
        return f"({expr})"
    return expr


def serialize_guard(tree: Optional[ConditionGroup]) -> str:
    """
    Serialize a guard tree to text.

    Returns an empty string when the tree holds no complete condition; the
    caller treats that as "no guard".
    """
    if tree is None:
        return ""
    return _serialize_group(tree, nested=False)

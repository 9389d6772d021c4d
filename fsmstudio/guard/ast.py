"""
Guard expression tree.

A guard is a tree of ConditionGroup nodes (AND/OR with optional negation)
whose leaves are Condition predicates over dot-path context fields:

    ConditionGroup(logic=and)
    ├── Condition(amount > 100)
    └── ConditionGroup(logic=or, negated)
        ├── Condition(status == "closed")
        └── Condition(archived exists)

The `type` field discriminates the two node kinds so trees round-trip
through JSON unambiguously.
"""

from enum import Enum
from typing import Annotated, Any, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator, model_serializer, model_validator

GuardValue = Union[bool, int, float, str, None]


class Operator(str, Enum):
    """Condition operators.

    EXISTS and NOT_EXISTS are unary; the rest compare against a value.
    """

    EXISTS = "exists"
    NOT_EXISTS = "not_exists"
    EQ = "=="
    NE = "!="
    GT = ">"
    GE = ">="
    LT = "<"
    LE = "<="

    @property
    def needs_value(self) -> bool:
        return self not in (Operator.EXISTS, Operator.NOT_EXISTS)

    @classmethod
    def comparisons(cls) -> List["Operator"]:
        return [op for op in cls if op.needs_value]


class Logic(str, Enum):
    """How a group combines its items."""

    AND = "and"
    OR = "or"

    @property
    def joiner(self) -> str:
        return " && " if self is Logic.AND else " || "


class Condition(BaseModel):
    """
    Leaf predicate: `ctx.<field> <operator> <value>`.

    `field` is stored without the `ctx.` prefix. A blank field marks a draft
    row that is not yet part of the expression.
    """

    type: Literal["condition"] = "condition"
    field: str = ""
    operator: Operator = Operator.EXISTS
    value: GuardValue = None
    negated: bool = False

    @field_validator("field")
    @classmethod
    def strip_ctx_prefix(cls, v: str) -> str:
        v = v.strip()
        if v.startswith("ctx."):
            v = v[len("ctx."):]
        return v

    @model_validator(mode="after")
    def drop_value_for_unary(self):
        """Unary operators never carry a value."""
        if not self.operator.needs_value:
            self.value = None
        return self

    @model_serializer(mode="wrap")
    def omit_unary_value(self, handler: Any) -> dict:
        data = handler(self)
        if not self.operator.needs_value:
            data.pop("value", None)
        return data

    @property
    def is_blank(self) -> bool:
        return not self.field.strip()


class ConditionGroup(BaseModel):
    """Internal node combining its items with a single logic operator."""

    type: Literal["group"] = "group"
    logic: Logic = Logic.AND
    items: List["GuardItem"] = Field(..., min_length=1)
    negated: bool = False

    def has_valid_conditions(self) -> bool:
        """True if any leaf under this group has a non-blank field."""
        for item in self.items:
            if isinstance(item, Condition):
                if not item.is_blank:
                    return True
            elif item.has_valid_conditions():
                return True
        return False

    def iter_conditions(self):
        """Yield every leaf condition depth-first."""
        for item in self.items:
            if isinstance(item, Condition):
                yield item
            else:
                yield from item.iter_conditions()


GuardItem = Annotated[Union[Condition, ConditionGroup], Field(discriminator="type")]

ConditionGroup.model_rebuild()


def is_condition(item: Union[Condition, ConditionGroup]) -> bool:
    return isinstance(item, Condition)


def empty_condition() -> Condition:
    """A draft condition row with no field yet."""
    return Condition()


def empty_group(logic: Logic = Logic.AND) -> ConditionGroup:
    """A group holding one draft condition, as the visual builder starts with."""
    return ConditionGroup(logic=logic, items=[empty_condition()])


def condition(
    field: str,
    operator: Union[Operator, str] = Operator.EXISTS,
    value: GuardValue = None,
    negated: bool = False,
) -> Condition:
    """Shorthand constructor used by callers building trees by hand."""
    return Condition(field=field, operator=Operator(operator), value=value, negated=negated)


def group(
    *items: Union[Condition, ConditionGroup],
    logic: Union[Logic, str] = Logic.AND,
    negated: bool = False,
) -> ConditionGroup:
    return ConditionGroup(logic=Logic(logic), items=list(items), negated=negated)


def load_tree(data: Any) -> Optional[ConditionGroup]:
    """Validate a JSON-like tree, as exchanged with the visual builder."""
    if data is None:
        return None
    return ConditionGroup.model_validate(data)

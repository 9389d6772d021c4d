"""
Dual-mode guard editing.

A guard can be edited as a condition tree (visual mode) or as raw text
(raw mode). Switching from raw to visual re-parses the text; text outside
the grammar leaves the previous tree in effect instead of losing it.
"""

import logging
from enum import Enum
from typing import Callable, Optional

from fsmstudio.guard.ast import ConditionGroup, empty_group
from fsmstudio.guard.parser import ParseFailure, parse_guard
from fsmstudio.guard.serializer import serialize_guard

logger = logging.getLogger(__name__)


class EditMode(str, Enum):
    VISUAL = "visual"
    RAW = "raw"


class GuardEditor:
    """
    Edit one transition guard.

    The `on_change` callback receives the new guard text, or None when the
    guard was cleared or its tree holds no complete condition.

    Example:
        ```python
        editor = GuardEditor("ctx.amount > 100", on_change=save_guard)
        editor.switch_mode(EditMode.RAW)
        editor.set_raw("ctx.amount > 100 && ctx.approved")
        editor.commit_raw()  # on_change("ctx.amount > 100 && ctx.approved")
        ```
    """

    def __init__(
        self,
        value: Optional[str] = None,
        on_change: Optional[Callable[[Optional[str]], None]] = None,
    ):
        self.mode = EditMode.VISUAL
        self.raw_value = value or ""
        self.last_failure: Optional[ParseFailure] = None
        self._on_change = on_change

        parsed = parse_guard(value) if value else None
        if isinstance(parsed, ParseFailure):
            logger.debug(f"Initial guard not representable as a tree: {parsed}")
            self.last_failure = parsed
            parsed = None
        self.tree: ConditionGroup = parsed or empty_group()

    @property
    def expression(self) -> str:
        """Text currently shown as the expression preview."""
        if self.mode is EditMode.VISUAL:
            return serialize_guard(self.tree)
        return self.raw_value

    def switch_mode(self, mode: EditMode) -> bool:
        """
        Change editing mode.

        Returns False if switching to visual mode could not parse the raw
        text; the mode still changes but the previous tree is kept.
        """
        mode = EditMode(mode)
        ok = True
        if mode is EditMode.VISUAL and self.mode is EditMode.RAW and self.raw_value.strip():
            parsed = parse_guard(self.raw_value)
            if isinstance(parsed, ParseFailure):
                logger.info(f"Keeping previous guard tree: {parsed}")
                self.last_failure = parsed
                ok = False
            else:
                self.tree = parsed
                self.last_failure = None
        elif mode is EditMode.RAW and self.mode is EditMode.VISUAL:
            self.raw_value = serialize_guard(self.tree)
        self.mode = mode
        return ok

    def update_tree(self, tree: ConditionGroup) -> Optional[str]:
        """Replace the tree (visual edit) and notify with its serialization."""
        self.tree = tree
        expr = serialize_guard(tree) or None
        self._notify(expr)
        return expr

    def set_raw(self, text: str) -> None:
        """Track raw text as it is typed; nothing is committed yet."""
        self.raw_value = text

    def commit_raw(self) -> Optional[str]:
        """Commit raw text (blur). Raw text is passed through unvalidated."""
        expr = self.raw_value.strip() or None
        self._notify(expr)
        return expr

    def clear(self) -> None:
        self.tree = empty_group()
        self.raw_value = ""
        self.last_failure = None
        self._notify(None)

    def _notify(self, expr: Optional[str]) -> None:
        if self._on_change is not None:
            self._on_change(expr)

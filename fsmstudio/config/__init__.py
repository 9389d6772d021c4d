"""Configuration management for FSM Studio."""

from fsmstudio.config.settings import (
    POSITIONS_META_KEY,
    LayoutDirection,
    StudioSettings,
    LayoutConfig,
    GridConfig,
    EditorConfig,
)

__all__ = [
    "POSITIONS_META_KEY",
    "LayoutDirection",
    "StudioSettings",
    "LayoutConfig",
    "GridConfig",
    "EditorConfig",
]

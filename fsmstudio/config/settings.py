"""
FSM Studio configuration management using Pydantic Settings.

Configuration can be provided via:
1. fsmstudio.yaml config file (primary)
2. FSMSTUDIO_* env vars (nested sections use double underscore)
3. .env file
4. Direct instantiation

Priority (highest wins): init kwargs > fsmstudio.yaml > env vars > defaults

Example fsmstudio.yaml:
    debug: false
    log_level: INFO          # default WARNING; --debug overrides
    layout:
      direction: TB
      rank_sep: 100
    grid:
      spacing_x: 200
    editor:
      default_event: next
      auto_layout_on_load: true
"""

import logging
import os
from pathlib import Path
from typing import Optional, Literal, Dict, Any, Tuple, Type

from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    SettingsConfigDict,
    PydanticBaseSettingsSource,
)

logger = logging.getLogger(__name__)

LayoutDirection = Literal["LR", "TB"]

# Meta key under which the editor stores per-state positions
POSITIONS_META_KEY = "_builderPositions"


class LayoutConfig(BaseModel):
    """Layered auto-layout configuration.

    Node size is used to turn layer/slot indices into top-left coordinates.
    """

    direction: LayoutDirection = "LR"
    node_width: float = Field(default=120, gt=0)
    node_height: float = Field(default=48, gt=0)
    # Gap between nodes in the same layer
    node_sep: float = Field(default=60, ge=0)
    # Gap between consecutive layers
    rank_sep: float = Field(default=80, ge=0)
    margin_x: float = Field(default=50, ge=0)
    margin_y: float = Field(default=50, ge=0)


class GridConfig(BaseModel):
    """Fallback grid placement for states without stored positions."""

    spacing_x: float = Field(default=180, gt=0)
    spacing_y: float = Field(default=100, gt=0)
    offset_x: float = 50
    offset_y: float = 50


class EditorConfig(BaseModel):
    """Editing session defaults."""

    positions_key: str = Field(default=POSITIONS_META_KEY, min_length=1)
    default_event: str = Field(default="event", min_length=1)
    default_state_name: str = Field(default="new_state", min_length=1)
    # Horizontal offset of a new state relative to the last one
    new_state_offset_x: float = 180
    # Auto-layout definitions that carry no stored positions when loaded
    auto_layout_on_load: bool = False


class YamlConfigSource(PydanticBaseSettingsSource):
    """Custom settings source that reads from a fsmstudio.yaml config file.

    Discovers config at:
    1. Explicit path passed via _config_path init kwarg
    2. $FSMSTUDIO_CONFIG env var
    3. ./fsmstudio.yaml
    4. ./fsmstudio.yml
    """

    _SECTIONS = frozenset({"layout", "grid", "editor"})
    _TOPLEVEL_KEYS = frozenset({"debug", "log_level"})

    def __init__(
        self, settings_cls: Type[BaseSettings], config_path: Optional[str] = None
    ):
        super().__init__(settings_cls)
        self._config_path = config_path
        self._yaml_data: Optional[Dict[str, Any]] = None
        self._load()

    def _discover_config_file(self) -> Optional[Path]:
        """Find the config file to load."""
        if self._config_path:
            p = Path(self._config_path)
            return p if p.is_file() else None

        env_path = os.environ.get("FSMSTUDIO_CONFIG")
        if env_path:
            p = Path(env_path)
            return p if p.is_file() else None

        for name in ("fsmstudio.yaml", "fsmstudio.yml"):
            p = Path(name)
            if p.is_file():
                return p

        return None

    def _load(self) -> None:
        """Load and parse the YAML config file."""
        path = self._discover_config_file()
        if path is None:
            self._yaml_data = {}
            return

        try:
            import yaml

            with open(path) as f:
                data = yaml.safe_load(f)
            self._yaml_data = data if isinstance(data, dict) else {}
            logger.debug(f"Loaded config from {path}")
        except Exception as e:
            logger.warning(f"Failed to load config from {path}: {e}")
            self._yaml_data = {}

    def _map_to_settings(self) -> Dict[str, Any]:
        """Keep known keys; a bare `direction` is shorthand for layout.direction."""
        if not self._yaml_data:
            return {}

        data = self._yaml_data
        result: Dict[str, Any] = {}

        for key in self._TOPLEVEL_KEYS:
            if key in data:
                result[key] = data[key]

        for section in self._SECTIONS:
            value = data.get(section)
            if isinstance(value, dict) and value:
                result[section] = dict(value)
            elif value is not None and not isinstance(value, dict):
                logger.warning(f"Ignoring non-mapping '{section}' section in config")

        if "direction" in data:
            result.setdefault("layout", {}).setdefault("direction", data["direction"])

        return result

    def get_field_value(self, field: Any, field_name: str) -> Tuple[Any, str, bool]:
        mapped = self._map_to_settings()
        value = mapped.get(field_name)
        return value, field_name, value is not None

    def __call__(self) -> Dict[str, Any]:
        return self._map_to_settings()


class StudioSettings(BaseSettings):
    """
    Main FSM Studio configuration.

    All settings can be overridden via environment variables with FSMSTUDIO_ prefix.
    Nested settings use double underscore: FSMSTUDIO_LAYOUT__DIRECTION=TB

    A fsmstudio.yaml config file is also supported (config takes priority).
    Pass _config_path to override the config file location.
    """

    model_config = SettingsConfigDict(
        env_prefix="FSMSTUDIO_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Path to fsmstudio.yaml (set via _config_path kwarg, not a real setting field)
    _config_path: Optional[str] = None

    debug: bool = False
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "WARNING"

    layout: LayoutConfig = Field(default_factory=LayoutConfig)
    grid: GridConfig = Field(default_factory=GridConfig)
    editor: EditorConfig = Field(default_factory=EditorConfig)

    def __init__(self, _config_path: Optional[str] = None, **kwargs: Any):
        self.__class__._config_path = _config_path
        super().__init__(**kwargs)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        """Insert YAML config source before env vars.

        Priority (highest first): init > yaml > env > dotenv > file_secret
        """
        yaml_source = YamlConfigSource(settings_cls, config_path=cls._config_path)
        return (
            init_settings,
            yaml_source,
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )

"""
Machine definition parser.

Loads definitions from YAML or JSON files and writes them back.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from fsmstudio.machine.schema import MachineDefinition

logger = logging.getLogger(__name__)


class DefinitionParser:
    """
    Parse machine definitions.

    Supports:
    - YAML files (.yaml, .yml)
    - JSON files (.json)
    - Direct string parsing

    Only the wire shape is checked here. Run
    `validate_definition` for semantic problems.

    Example:
        ```python
        # From file
        definition = DefinitionParser.parse_file("order.yaml")

        # From string
        definition = DefinitionParser.parse_string('''
        states: [idle, running]
        initial: idle
        transitions:
          - {from: idle, event: start, to: running}
        ''')
        ```
    """

    @staticmethod
    def load_file(path: Union[str, Path]) -> Dict[str, Any]:
        """
        Read a definition file into plain data without model validation.

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If the format is unsupported, the file is empty
                or its YAML/JSON is malformed
        """
        path = Path(path)

        if not path.exists():
            raise FileNotFoundError(f"Definition file not found: {path}")

        content = path.read_text(encoding="utf-8")

        if path.suffix in (".yaml", ".yml"):
            return DefinitionParser.load_string(content, format="yaml")
        elif path.suffix == ".json":
            return DefinitionParser.load_string(content, format="json")
        else:
            raise ValueError(f"Unsupported file format: {path.suffix}")

    @staticmethod
    def load_string(content: str, format: str = "yaml") -> Dict[str, Any]:
        """
        Load YAML or JSON text into plain data.

        Raises:
            ValueError: On syntax errors, unknown formats or a non-mapping document
        """
        if format == "yaml":
            try:
                data = yaml.safe_load(content)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML: {e}") from e
        elif format == "json":
            try:
                data = json.loads(content)
            except json.JSONDecodeError as e:
                raise ValueError(f"Invalid JSON: {e}") from e
        else:
            raise ValueError(f"Unsupported format: {format}")

        if data is None:
            raise ValueError("Empty machine definition")
        if not isinstance(data, dict):
            raise ValueError("Machine definition must be a mapping")

        return data

    @staticmethod
    def parse_file(path: Union[str, Path]) -> MachineDefinition:
        """
        Parse a definition from file.

        Args:
            path: Path to definition file (YAML or JSON)

        Returns:
            MachineDefinition

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If file format is unsupported
            ValidationError: If the wire shape is wrong
        """
        return MachineDefinition.model_validate(DefinitionParser.load_file(path))

    @staticmethod
    def parse_string(content: str, format: str = "yaml") -> MachineDefinition:
        """
        Parse a definition from string content.

        Args:
            content: YAML or JSON string
            format: "yaml" or "json"
        """
        return MachineDefinition.model_validate(
            DefinitionParser.load_string(content, format=format)
        )

    @staticmethod
    def parse_dict(data: dict) -> MachineDefinition:
        """Parse a definition from a dictionary."""
        return MachineDefinition.model_validate(data)

    @staticmethod
    def dump_string(definition: MachineDefinition, format: str = "yaml") -> str:
        """Render a definition in its wire shape."""
        data = definition.to_wire()
        if format == "yaml":
            return yaml.safe_dump(data, sort_keys=False, default_flow_style=None)
        elif format == "json":
            return json.dumps(data, indent=2) + "\n"
        raise ValueError(f"Unsupported format: {format}")

    @staticmethod
    def dump_file(definition: MachineDefinition, path: Union[str, Path]) -> Path:
        """Write a definition, picking YAML or JSON from the file suffix."""
        path = Path(path)
        if path.suffix in (".yaml", ".yml"):
            content = DefinitionParser.dump_string(definition, format="yaml")
        elif path.suffix == ".json":
            content = DefinitionParser.dump_string(definition, format="json")
        else:
            raise ValueError(f"Unsupported file format: {path.suffix}")

        path.write_text(content, encoding="utf-8")
        logger.info(f"Wrote definition with {len(definition.states)} states to {path}")
        return path

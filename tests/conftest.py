"""Pytest fixtures for FSM Studio tests."""

import logging
import os
from pathlib import Path

import pytest


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch, tmp_path):
    """Keep a developer's fsmstudio.yaml or FSMSTUDIO_* env out of the tests."""
    for key in list(os.environ):
        if key.startswith("FSMSTUDIO_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture(autouse=True)
def reset_package_logger():
    """CLI commands set the fsmstudio logger level; undo it after each test."""
    yield
    logging.getLogger("fsmstudio").setLevel(logging.NOTSET)


@pytest.fixture
def examples_dir() -> Path:
    """Get path to examples directory."""
    return Path(__file__).parent.parent / "examples"


@pytest.fixture
def sample_definition_path(examples_dir: Path) -> Path:
    """Get path to the sample order workflow."""
    return examples_dir / "order_workflow" / "order.yaml"


@pytest.fixture
def sample_definition(sample_definition_path: Path):
    """Load the sample order workflow."""
    from fsmstudio.machine.parser import DefinitionParser

    return DefinitionParser.parse_file(sample_definition_path)


@pytest.fixture
def simple_definition_dict():
    """Minimal definition with a multi-source transition and a guard."""
    return {
        "states": ["idle", "running", "paused", "done"],
        "initial": "idle",
        "transitions": [
            {"from": "idle", "event": "start", "to": "running"},
            {"from": "running", "event": "pause", "to": "paused"},
            {"from": "paused", "event": "resume", "to": "running"},
            {
                "from": ["running", "paused"],
                "event": "finish",
                "to": "done",
                "guard": "ctx.progress >= 100",
            },
        ],
        "meta": {"owner": "ops"},
    }


@pytest.fixture
def simple_definition(simple_definition_dict):
    """Create a simple definition from dict."""
    from fsmstudio.machine.schema import MachineDefinition

    return MachineDefinition.model_validate(simple_definition_dict)


@pytest.fixture
def simple_graph(simple_definition):
    """Editing graph of the simple definition."""
    from fsmstudio.machine.conversion import to_graph

    return to_graph(simple_definition)

"""Tests for fsmstudio.cli_ui and the new-machine wizard."""

from io import StringIO
from unittest.mock import patch

import pytest

from fsmstudio.cli_ui import (
    _panel_width,
    banner,
    code_preview,
    console,
    error,
    heading,
    next_steps,
    states_table,
    success,
    transitions_table,
    validation_report,
    warning,
)
from fsmstudio.machine.schema import Position


def _capture_output(fn, *args, **kwargs):
    """Capture Rich console output by temporarily redirecting."""
    buf = StringIO()
    saved_file = console.file
    console.file = buf
    try:
        fn(*args, **kwargs)
    finally:
        console.file = saved_file
    return buf.getvalue()


class TestOutputHelpers:
    def test_banner_contains_version(self):
        output = _capture_output(banner, "1.2.3")
        assert "FSM Studio" in output
        assert "1.2.3" in output

    def test_heading_with_step(self):
        output = _capture_output(heading, "States", step=1)
        assert "1/3" in output
        assert "States" in output

    def test_success_and_error_marks(self):
        assert "\u2713" in _capture_output(success, "Saved")
        output = _capture_output(error, "Failed", hint="Pass --force")
        assert "\u2717" in output
        assert "Pass --force" in output

    def test_warning_message(self):
        output = _capture_output(warning, "State \"x\" has no transitions")
        assert "!" in output
        assert "has no transitions" in output

    def test_next_steps(self):
        output = _capture_output(next_steps, ["validate", "graph"])
        assert "Next steps" in output
        assert "2. graph" in output

    def test_code_preview_truncates_long_content(self):
        content = "\n".join(f"- state_{i}" for i in range(60))
        output = _capture_output(code_preview, content, title="machine.yaml")
        assert "machine.yaml" in output
        assert "truncated" in output

    def test_json_preview(self):
        output = _capture_output(code_preview, '{"states": ["a"]}', lexer="json")
        assert "JSON" in output
        assert "states" in output

    def test_panel_width_capped(self):
        assert 0 < _panel_width() <= 80


class TestValidationReport:
    def test_valid_with_warnings(self):
        output = _capture_output(
            validation_report, "m.yaml", 3, 2, [], ["State 'c' has no outgoing transitions"]
        )
        assert "Valid Definition" in output
        assert "valid" in output
        assert "has no outgoing transitions" in output

    def test_strict_fails_on_warnings(self):
        valid = validation_report("m.yaml", 1, 0, [], ["w"], strict=True)
        assert valid is False

    def test_errors_fail(self):
        output = _capture_output(
            validation_report, "m.yaml", None, None, ["Missing initial state"], []
        )
        assert "Invalid Definition" in output
        assert "Missing initial state" in output
        assert "States: -" in output

    def test_returns_validity(self):
        assert validation_report("m.yaml", 1, 0, [], []) is True


class TestTables:
    def test_states_table_flags_initial(self):
        output = _capture_output(states_table, ["idle", "done"], "idle")
        assert "idle" in output
        assert "initial" in output
        assert "Position" not in output

    def test_states_table_with_positions(self):
        output = _capture_output(
            states_table, ["idle", "done"], "idle", {"idle": Position(x=50, y=60)}
        )
        assert "Position" in output
        assert "50, 60" in output

    def test_state_names_are_not_markup(self):
        output = _capture_output(states_table, ["[bold]x"], "")
        assert "[bold]x" in output

    def test_transitions_table(self):
        output = _capture_output(
            transitions_table,
            [(["a", "b"], "go", "c", None), (["c"], "back", "a", "ctx.ok")],
        )
        assert "a, b" in output
        assert "\u2192 c" in output
        assert "ctx.ok" in output


class TestInputHelpers:
    """Input wrappers exit cleanly when the prompt is aborted (Ctrl-C)."""

    @patch("fsmstudio.cli_ui.questionary")
    def test_select_exits_on_none(self, mock_q):
        from fsmstudio.cli_ui import select

        mock_q.select.return_value.ask.return_value = None
        with pytest.raises(SystemExit):
            select("Pick one", ["a"])

    @patch("fsmstudio.cli_ui.questionary")
    def test_select_returns_answer(self, mock_q):
        from fsmstudio.cli_ui import select

        mock_q.select.return_value.ask.return_value = "b"
        assert select("Pick one", ["a", "b"]) == "b"
        assert mock_q.select.call_args.kwargs["choices"] == ["a", "b"]

    @patch("fsmstudio.cli_ui.questionary")
    def test_checkbox_keeps_choice_order(self, mock_q):
        from fsmstudio.cli_ui import checkbox

        mock_q.checkbox.return_value.ask.return_value = ["c", "a"]
        assert checkbox("From", ["a", "b", "c"]) == ["a", "c"]

    @patch("fsmstudio.cli_ui.questionary")
    def test_text_exits_on_none(self, mock_q):
        from fsmstudio.cli_ui import text

        mock_q.text.return_value.ask.return_value = None
        with pytest.raises(SystemExit):
            text("Name")


class TestNewWizard:
    """Interactive `fsmstudio new` with prompts answered by mocks."""

    def test_wizard_builds_machine(self, tmp_path):
        from fsmstudio.cli_new import run_new

        out = tmp_path / "wizard.yaml"
        with patch("fsmstudio.cli_new.is_interactive", return_value=True), patch(
            "fsmstudio.cli_new.text", side_effect=["a, b, c", "go", "ctx.ok"]
        ), patch("fsmstudio.cli_new.select", side_effect=["a", "c"]), patch(
            "fsmstudio.cli_new.checkbox", return_value=["a", "b"]
        ), patch(
            "fsmstudio.cli_new.confirm", side_effect=[True, False]
        ):
            _capture_output(run_new, out)

        from fsmstudio.machine.parser import DefinitionParser

        definition = DefinitionParser.parse_file(out)
        assert definition.states == ["a", "b", "c"]
        assert definition.initial == "a"
        assert [t.to_wire() for t in definition.transitions] == [
            {"from": ["a", "b"], "event": "go", "to": "c", "guard": "ctx.ok"}
        ]

    def test_wizard_drops_rejected_guard(self, tmp_path):
        from fsmstudio.cli_new import run_new

        out = tmp_path / "wizard.yaml"
        with patch("fsmstudio.cli_new.is_interactive", return_value=True), patch(
            "fsmstudio.cli_new.text", side_effect=["a,b", "go", "ctx.a && ctx.b || ctx.c"]
        ), patch("fsmstudio.cli_new.select", side_effect=["a", "b"]), patch(
            "fsmstudio.cli_new.checkbox", return_value=["a"]
        ), patch(
            # add transition, keep raw guard?, add another
            "fsmstudio.cli_new.confirm", side_effect=[True, False, False]
        ):
            _capture_output(run_new, out)

        from fsmstudio.machine.parser import DefinitionParser

        [transition] = DefinitionParser.parse_file(out).transitions
        assert transition.guard is None

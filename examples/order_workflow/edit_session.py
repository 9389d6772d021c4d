"""
FSM Studio - Editing an order workflow

Loads order.yaml, applies a few edits through a MachineEditor session and
prints what the editor would send to the server after each one.

Edits:
  1. Add a `refunded` state and an event from `paid` into it.
  2. Let `shipped` fire the same `cancel` transition as the other states.
  3. Guard the refund, first through the visual builder, then as raw text.

Run:
  cd examples/order_workflow
  python edit_session.py
"""

from pathlib import Path

from fsmstudio import GuardEditor, MachineEditor, DefinitionParser
from fsmstudio.guard import EditMode, condition, group


def report(definition, result) -> None:
    status = "valid" if result.valid else "INVALID"
    print(f"  -> {len(definition.states)} states, {len(definition.transitions)} transitions ({status})")
    for message in result.errors:
        print(f"     error: {message}")
    for message in result.warnings:
        print(f"     warning: {message}")


def main() -> None:
    definition = DefinitionParser.parse_file(Path(__file__).parent / "order.yaml")
    editor = MachineEditor(definition, on_change=report)

    print("Add state 'refunded'")
    refunded = editor.add_state("refunded")

    print("Connect paid --refund--> refunded")
    edge = editor.connect("paid", refunded.id, "refund")

    print("Let 'shipped' be cancelled too")
    cancel = next(e for e in editor.edges if e.event == "cancel")
    editor.add_edge_source(cancel.id, "shipped")

    print("Guard the refund (visual)")
    guard_editor = GuardEditor(on_change=lambda text: editor.update_transition_guard(edge.id, text))
    guard_editor.update_tree(
        group(
            condition("refund.requested"),
            condition("amount", "<=", 500),
        )
    )

    print("Guard the refund (raw, mixed operators are rejected)")
    guard_editor.switch_mode(EditMode.RAW)
    guard_editor.set_raw("ctx.a && ctx.b || ctx.c")
    if not guard_editor.switch_mode(EditMode.VISUAL):
        print(f"  kept previous guard: {guard_editor.expression} ({guard_editor.last_failure})")

    print()
    print(DefinitionParser.dump_string(editor.definition))


if __name__ == "__main__":
    main()

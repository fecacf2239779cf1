"""
Textual TUI stepper for the factorial machine.

Steps forward and rewinds through the recorded history of one run, showing
registers, stack memory and instruction memory at every instruction
boundary.

Usage:
    python -m stepper.debugger
    python -m stepper.debugger --input 3
    python -m stepper.debugger --index 40 --reverse-stack
"""

from __future__ import annotations

import argparse
import sys

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import ScrollableContainer
from textual.widgets import Static, RichLog, Footer, Input
from rich.markup import escape

from stepper.chips import MachineError
from stepper.history import History
from stepper.machine import initial_snapshot
from stepper.program import DEFAULT_INPUT, MAX_INPUT
from stepper.render import (
    register_lines, stack_lines, instruction_lines, changes_summary,
)


# ---------------------------------------------------------------------------
# CSS
# ---------------------------------------------------------------------------

STEPPER_CSS = """
Screen {
    layout: grid;
    grid-size: 2 3;
    grid-columns: 1fr 1fr;
    grid-rows: 3 1fr 8;
}

.panel {
    border: solid $accent;
    border-title-align: left;
    overflow-y: auto;
    height: 100%;
}

#status-panel { column-span: 2; }
#output-panel { column-span: 2; }

#goto-input { display: none; }

Footer {
    column-span: 2;
}
"""


# ---------------------------------------------------------------------------
# Panel widgets
# ---------------------------------------------------------------------------

class StatusPanel(ScrollableContainer):
    """Position in the history."""
    BORDER_TITLE = "Position"

    def compose(self) -> ComposeResult:
        yield Static("", id="status-content")


class StackPanel(ScrollableContainer):
    """Stack memory, STACK_TOP first."""
    BORDER_TITLE = "Stack Memory"

    def compose(self) -> ComposeResult:
        yield Static("", id="stack-content")


class MachinePanel(ScrollableContainer):
    """Registers above instruction memory."""
    BORDER_TITLE = "Registers / Instruction Memory"

    def compose(self) -> ComposeResult:
        yield Static("", id="registers-content")
        yield Static("", id="instructions-content")


class OutputPanel(ScrollableContainer):
    """Status and error messages, plus the go-to-index box."""
    BORDER_TITLE = "Output"

    def compose(self) -> ComposeResult:
        yield Input(id="goto-input", type="integer",
                    placeholder="history index, enter to jump, escape to cancel")
        yield RichLog(id="output-log", markup=True, wrap=True)


# ---------------------------------------------------------------------------
# Main app
# ---------------------------------------------------------------------------

class FactorialStepper(App):
    """Textual TUI for stepping through the factorial run."""

    CSS = STEPPER_CSS
    TITLE = "Factorial Stepper"

    BINDINGS = [
        Binding("s", "step", "Step", priority=True),
        Binding("right", "step", "Step", show=False, priority=True),
        Binding("space", "step", "Step", show=False, priority=True),
        Binding("b", "rewind", "Rewind", priority=True),
        Binding("left", "rewind", "Rewind", show=False, priority=True),
        Binding("n", "forward_10", "+10", priority=True),
        Binding("p", "back_10", "-10", priority=True),
        Binding("home", "first", "First", priority=True),
        Binding("end", "last", "Last", priority=True),
        Binding("v", "flip_stack", "Flip stack", priority=True),
        Binding("g", "goto", "Go to", priority=True),
        Binding("escape", "cancel_goto", "Cancel", show=False, priority=True),
        Binding("q", "quit", "Quit"),
    ]

    def __init__(self, history: History, index: int = 0,
                 reverse_stack: bool = False):
        super().__init__()
        self.history = history
        self.position = 0
        self.reverse_stack = reverse_stack
        self._pending_index = index

    def compose(self) -> ComposeResult:
        yield StatusPanel(id="status-panel", classes="panel")
        yield StackPanel(id="stack-panel", classes="panel")
        yield MachinePanel(id="machine-panel", classes="panel")
        yield OutputPanel(id="output-panel", classes="panel")
        yield Footer()

    def on_mount(self) -> None:
        self.seek(self._pending_index)

    # -------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------

    @property
    def at_end(self) -> bool:
        return self.history.is_terminal(self.position)

    def seek(self, index: int) -> None:
        """Show the snapshot at index, clamped to the recorded run."""
        try:
            target = self.history.clamp(index)
        except MachineError as e:
            self._report_error(e)
            return
        self.position = target
        self.refresh_panels()

    def action_step(self) -> None:
        if self.at_end:
            self._log("[dim]already at the final retq[/dim]")
            return
        self.seek(self.position + 1)

    def action_rewind(self) -> None:
        if self.position == 0:
            return
        self.seek(self.position - 1)

    def action_forward_10(self) -> None:
        self.seek(self.position + 10)

    def action_back_10(self) -> None:
        self.seek(self.position - 10)

    def action_first(self) -> None:
        self.seek(0)

    def action_last(self) -> None:
        try:
            last = self.history.last_index
        except MachineError as e:
            self._report_error(e)
            return
        self.seek(last)

    def action_flip_stack(self) -> None:
        self.reverse_stack = not self.reverse_stack
        self._refresh_stack()

    def action_goto(self) -> None:
        box = self.query_one("#goto-input", Input)
        box.value = ""
        box.display = True
        box.focus()

    def action_cancel_goto(self) -> None:
        self._close_goto()

    def _close_goto(self) -> None:
        box = self.query_one("#goto-input", Input)
        box.display = False
        self.set_focus(None)

    def on_input_submitted(self, event: Input.Submitted) -> None:
        if event.input.id != "goto-input":
            return
        self._close_goto()
        try:
            index = int(event.value)
        except ValueError:
            self._log(f"[red]not an index:[/red] {escape(repr(event.value))}")
            return
        if index < 0:
            self._log(f"[red]index must be non-negative:[/red] {index}")
            return
        self.seek(index)
        self._log(f"jumped to {self.position}")

    # -------------------------------------------------------------------
    # Panel refresh
    # -------------------------------------------------------------------

    def refresh_panels(self) -> None:
        self._refresh_status()
        self._refresh_stack()
        self._refresh_machine()

    def status_text(self) -> str:
        """Position readout; the denominator is the terminal index of the run."""
        snapshot = self.history.get(self.position)
        state = "[bold green]done[/bold green]" if self.at_end else "running"
        return (
            f"[bold]Step:[/bold] {self.position}/{self.history.last_index}  "
            f"[bold]State:[/bold] {state}  "
            f"[bold]Changed:[/bold] {changes_summary(snapshot)}"
        )

    def _refresh_status(self) -> None:
        try:
            text = self.status_text()
        except MachineError as e:
            self._report_error(e)
            return
        self.query_one("#status-content", Static).update(text)

    def _refresh_stack(self) -> None:
        snapshot = self.history.get(self.position)
        lines = stack_lines(snapshot, reverse=self.reverse_stack)
        self.query_one("#stack-content", Static).update("\n".join(lines))

    def _refresh_machine(self) -> None:
        snapshot = self.history.get(self.position)
        self.query_one("#registers-content", Static).update(
            "\n".join(register_lines(snapshot)) + "\n")
        self.query_one("#instructions-content", Static).update(
            "\n".join(instruction_lines(snapshot)))

    def _log(self, message: str) -> None:
        self.query_one("#output-log", RichLog).write(message)

    def _report_error(self, err: Exception) -> None:
        """Show an error in the output panel; the view stays where it was."""
        self._log(f"[bold red]ERROR[/bold red] {type(err).__name__}: {err}")


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Step through a recursive factorial on a register/stack machine",
        prog="python -m stepper.debugger",
    )
    parser.add_argument("--input", type=int, default=DEFAULT_INPUT,
                        help=f"Value passed in %%rdi (0..{MAX_INPUT}, default {DEFAULT_INPUT})")
    parser.add_argument("--index", type=int, default=0,
                        help="History index to open at")
    parser.add_argument("--reverse-stack", action="store_true",
                        help="Show the stack lowest address first")
    return parser


def main(argv: list[str] | None = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.index < 0:
        parser.error("--index must be non-negative")

    try:
        history = History(initial_snapshot(args.input))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    app = FactorialStepper(history, index=args.index,
                           reverse_stack=args.reverse_stack)
    app.run()


if __name__ == "__main__":
    main()

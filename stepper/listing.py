"""
Run listing: print the full history of a run as a table.

Usage:
    python -m stepper.listing
    python -m stepper.listing --input 2 --limit 20
"""

from __future__ import annotations

import argparse
import sys

from rich.console import Console
from rich.table import Table

from stepper.history import History
from stepper.machine import initial_snapshot
from stepper.program import INSTRUCTION_TEXT, DEFAULT_INPUT, MAX_INPUT, REGISTER_NAMES
from stepper.render import format_word, register_label, changes_summary


def trace_table(history: History, limit: int | None = None) -> Table:
    """One row per snapshot. Changed registers are bold."""
    table = Table(title="_factorial trace", show_lines=False)
    table.add_column("#", justify="right")
    table.add_column("next instruction")
    for name in REGISTER_NAMES:
        table.add_column(register_label(name), justify="right")
    table.add_column("changed")

    for i, snapshot in enumerate(history):
        if limit is not None and i >= limit:
            break
        instr = snapshot.instruction
        text = INSTRUCTION_TEXT[instr] if instr is not None else "?"
        cells = []
        for name in REGISTER_NAMES:
            value = format_word(snapshot.reg(name))
            if name in snapshot.changed_regs:
                value = f"[bold]{value}[/bold]"
            cells.append(value)
        table.add_row(str(i), f"0x{snapshot.rip:x}  {text}", *cells,
                      changes_summary(snapshot))
    return table


def summary(history: History) -> str:
    final = history.get(history.last_index)
    return (
        f"Steps: {history.last_index}\n"
        f"Input: {history.get(0).rdi}\n"
        f"Result (%rax): {final.rax}\n"
        f"Final %rsp: 0x{final.rsp:x}"
    )


def main(argv: list[str] | None = None):
    parser = argparse.ArgumentParser(
        description="Print every snapshot of the factorial run",
        prog="python -m stepper.listing",
    )
    parser.add_argument("--input", type=int, default=DEFAULT_INPUT,
                        help=f"Value passed in %%rdi (0..{MAX_INPUT}, default {DEFAULT_INPUT})")
    parser.add_argument("--limit", type=int, default=None,
                        help="Print at most this many rows")
    args = parser.parse_args(argv)

    if args.limit is not None and args.limit < 0:
        parser.error("--limit must be non-negative")

    try:
        history = History(initial_snapshot(args.input))
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(f"Tracing _factorial({args.input})...", file=sys.stderr, flush=True)
    console = Console()
    console.print(trace_table(history, args.limit))
    console.print(summary(history), markup=False)


if __name__ == "__main__":
    main()

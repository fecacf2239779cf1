"""
Text rendering of snapshots, shared by the TUI and the trace printer.

Every function returns Rich markup strings. Cells changed by the previous
instruction are bold; dead stack slots (below %rsp) are dimmed.
"""

from __future__ import annotations

from .machine import Snapshot
from .program import (
    Instruction, INSTRUCTION_TEXT, FUNCTION_LABEL, MIN_ADDRESS,
    STACK_TOP, WORD_SIZE, NUM_STACK_WORDS, REGISTER_NAMES, REGISTER_TITLES,
)

RSP_MARKER = "◀ %rsp"


def format_word(value: int) -> str:
    """Addresses as hex, small integers as decimal."""
    if value >= MIN_ADDRESS:
        return f"0x{value:x}"
    return str(value)


def register_label(name: str) -> str:
    return name if name == "zf" else f"%{name}"


def _styled(text: str, styles: list[str]) -> str:
    if not styles:
        return text
    return f"[{' '.join(styles)}]{text}[/]"


def register_lines(snapshot: Snapshot) -> list[str]:
    lines = []
    for name in REGISTER_NAMES:
        value = format_word(snapshot.reg(name))
        styles = ["bold"] if name in snapshot.changed_regs else []
        lines.append(f"{register_label(name):<5} {_styled(f'{value:>8}', styles)}"
                     f"  [dim]{REGISTER_TITLES[name]}[/dim]")
    return lines


def stack_lines(snapshot: Snapshot, reverse: bool = False) -> list[str]:
    """One row per address from STACK_TOP downward.

    Row 0 is the caller's return address slot, which the program never
    reads; row i shows the word stored at stack index i - 1.
    """
    rows = []
    for i in range(NUM_STACK_WORDS):
        address = STACK_TOP - WORD_SIZE * i
        if i == 0:
            display = "(return address)"
        else:
            display = format_word(snapshot.stack.words[i - 1])
        styles = []
        if address < snapshot.rsp:
            styles.append("dim")
        if address == snapshot.changed_stack:
            styles.append("bold")
        marker = f"  {RSP_MARKER}" if address == snapshot.rsp else ""
        rows.append(f"0x{address:x}  {_styled(f'{display:>16}', styles)}{marker}")
    if reverse:
        rows.reverse()
    return rows


def instruction_lines(snapshot: Snapshot) -> list[str]:
    lines = [f"         {FUNCTION_LABEL}:"]
    for instr in Instruction:
        line = f"0x{int(instr):x}  {INSTRUCTION_TEXT[instr]}"
        if instr == snapshot.rip:
            lines.append(f"▸ [bold reverse]{line}[/bold reverse]")
        else:
            lines.append(f"  {line}")
    return lines


def changes_summary(snapshot: Snapshot) -> str:
    """What the previous instruction wrote, e.g. '%rsp zf [0xff88]'."""
    parts = [register_label(name) for name in REGISTER_NAMES
             if name in snapshot.changed_regs]
    if snapshot.changed_stack is not None:
        parts.append(f"\\[0x{snapshot.changed_stack:x}]")
    return " ".join(parts) if parts else "-"

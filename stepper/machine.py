"""
Factorial stepper machine: snapshot model and one-instruction transitions.

A Snapshot is the full machine state between two instructions: six
registers, the 20-word stack, and what the previous instruction changed.
step() never mutates its argument; it copies, then applies the transition
selected by %rip.
"""

from __future__ import annotations

from typing import Callable

from .chips import MachineError, Register, StackMemory
from .program import (
    Instruction, RETURN_ADDRESS, STACK_TOP, WORD_SIZE, WORD_BITS,
    NUM_STACK_WORDS, FRAME_SIZE, REGISTER_NAMES, REGISTER_WIDTHS,
    DEFAULT_INPUT, MAX_INPUT, ENTRY,
)


class InvalidInstructionPointer(MachineError):
    """%rip holds an address with no transition in the program."""


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------

class Snapshot:
    """Machine state at one instruction boundary.

    Treated as immutable once it has been handed out by step() or History.
    The set_* helpers are for transitions working on a fresh copy.
    """

    def __init__(self, regs: dict[str, Register] | None = None,
                 stack: StackMemory | None = None):
        if regs is None:
            regs = {name: Register(REGISTER_WIDTHS[name]) for name in REGISTER_NAMES}
        if stack is None:
            stack = StackMemory(STACK_TOP, NUM_STACK_WORDS, WORD_SIZE, WORD_BITS)
        self.regs = regs
        self.stack = stack
        self.changed_regs: set[str] = set()
        self.changed_stack: int | None = None

    # --- read access ---

    def reg(self, name: str) -> int:
        return self.regs[name].value

    @property
    def rip(self) -> int:
        return self.regs["rip"].value

    @property
    def rsp(self) -> int:
        return self.regs["rsp"].value

    @property
    def rdi(self) -> int:
        return self.regs["rdi"].value

    @property
    def rax(self) -> int:
        return self.regs["rax"].value

    @property
    def rcx(self) -> int:
        return self.regs["rcx"].value

    @property
    def zf(self) -> int:
        return self.regs["zf"].value

    @property
    def instruction(self) -> Instruction | None:
        """The instruction %rip points at, or None past the final return."""
        try:
            return Instruction(self.rip)
        except ValueError:
            return None

    def stack_word(self, address: int) -> int:
        return self.stack.read(address)

    @property
    def stack_words(self) -> tuple[int, ...]:
        return tuple(self.stack.words)

    def registers(self) -> dict[str, int]:
        return {name: reg.value for name, reg in self.regs.items()}

    # --- mutation (fresh copies only) ---

    def set_reg(self, name: str, val: int):
        self.regs[name].load(val)
        self.changed_regs.add(name)

    def set_stack_word(self, address: int, val: int):
        self.stack.write(address, val)
        self.changed_stack = address

    def jump(self, address: int):
        # %rip is rewritten by every instruction, so it is never marked changed
        self.regs["rip"].load(address)

    def clear_changes(self):
        self.changed_regs = set()
        self.changed_stack = None

    def copy(self) -> Snapshot:
        """Deep copy; shares no mutable storage with self."""
        s = Snapshot({name: reg.copy() for name, reg in self.regs.items()},
                     self.stack.copy())
        s.changed_regs = set(self.changed_regs)
        s.changed_stack = self.changed_stack
        return s

    def __eq__(self, other) -> bool:
        if not isinstance(other, Snapshot):
            return NotImplemented
        return (self.regs == other.regs and
                self.stack == other.stack and
                self.changed_regs == other.changed_regs and
                self.changed_stack == other.changed_stack)

    def __repr__(self) -> str:
        regs = " ".join(f"{name}=0x{value:x}" for name, value in self.registers().items())
        return f"Snapshot({regs})"


def initial_snapshot(input_value: int = DEFAULT_INPUT) -> Snapshot:
    """State before the first instruction: %rip at entry, %rdi = input."""
    if not 0 <= input_value <= MAX_INPUT:
        raise ValueError(f"input must be in 0..{MAX_INPUT}, got {input_value}")
    s = Snapshot()
    s.regs["rip"].load(ENTRY)
    s.regs["rsp"].load(STACK_TOP)
    s.regs["rdi"].load(input_value)
    return s


# ---------------------------------------------------------------------------
# Transition table
# ---------------------------------------------------------------------------

Transition = Callable[[Snapshot], None]

TRANSITIONS: dict[Instruction, Transition] = {}


def _transition(instr: Instruction):
    def register(fn: Transition) -> Transition:
        if instr in TRANSITIONS:
            raise MachineError(f"duplicate transition for {instr.name}")
        TRANSITIONS[instr] = fn
        return fn
    return register


def _zero(value: int) -> int:
    return 1 if value == 0 else 0


@_transition(Instruction.ALLOC_FRAME)
def _alloc_frame(m: Snapshot):
    m.set_reg("rsp", m.rsp - FRAME_SIZE)
    m.set_reg("zf", _zero(m.rsp))
    m.jump(Instruction.STORE_ARG)


@_transition(Instruction.STORE_ARG)
def _store_arg(m: Snapshot):
    m.set_stack_word(m.rsp + 0x8, m.rdi)
    m.jump(Instruction.CMP_ARG)


@_transition(Instruction.CMP_ARG)
def _cmp_arg(m: Snapshot):
    m.set_reg("zf", _zero(m.stack_word(m.rsp + 0x8)))
    m.jump(Instruction.JNE_RECURSE)


@_transition(Instruction.JNE_RECURSE)
def _jne_recurse(m: Snapshot):
    if m.zf == 0:
        m.jump(Instruction.LOAD_RAX)
    else:
        m.jump(Instruction.STORE_ONE)


@_transition(Instruction.STORE_ONE)
def _store_one(m: Snapshot):
    m.set_stack_word(m.rsp + 0x10, 0x1)
    m.jump(Instruction.JMP_EPILOGUE)


@_transition(Instruction.JMP_EPILOGUE)
def _jmp_epilogue(m: Snapshot):
    m.jump(Instruction.LOAD_RESULT)


@_transition(Instruction.LOAD_RAX)
def _load_rax(m: Snapshot):
    m.set_reg("rax", m.stack_word(m.rsp + 0x8))
    m.jump(Instruction.LOAD_RCX)


@_transition(Instruction.LOAD_RCX)
def _load_rcx(m: Snapshot):
    m.set_reg("rcx", m.stack_word(m.rsp + 0x8))
    m.jump(Instruction.DEC_RCX)


@_transition(Instruction.DEC_RCX)
def _dec_rcx(m: Snapshot):
    m.set_reg("rcx", m.rcx - 0x1)
    m.set_reg("zf", _zero(m.rcx))
    m.jump(Instruction.SET_ARG)


@_transition(Instruction.SET_ARG)
def _set_arg(m: Snapshot):
    m.set_reg("rdi", m.rcx)
    m.jump(Instruction.SAVE_RAX)


@_transition(Instruction.SAVE_RAX)
def _save_rax(m: Snapshot):
    m.set_stack_word(m.rsp, m.rax)
    m.jump(Instruction.CALL)


@_transition(Instruction.CALL)
def _call(m: Snapshot):
    # Push return address, enter at the top of _factorial
    m.set_reg("rsp", m.rsp - WORD_SIZE)
    m.set_stack_word(m.rsp, RETURN_ADDRESS)
    m.jump(Instruction.ALLOC_FRAME)


@_transition(Instruction.RESTORE_RCX)
def _restore_rcx(m: Snapshot):
    m.set_reg("rcx", m.stack_word(m.rsp))
    m.jump(Instruction.IMUL)


@_transition(Instruction.IMUL)
def _imul(m: Snapshot):
    m.set_reg("rcx", m.rcx * m.rax)
    m.jump(Instruction.STORE_PRODUCT)


@_transition(Instruction.STORE_PRODUCT)
def _store_product(m: Snapshot):
    m.set_stack_word(m.rsp + 0x10, m.rcx)
    m.jump(Instruction.LOAD_RESULT)


@_transition(Instruction.LOAD_RESULT)
def _load_result(m: Snapshot):
    m.set_reg("rax", m.stack_word(m.rsp + 0x10))
    m.jump(Instruction.FREE_FRAME)


@_transition(Instruction.FREE_FRAME)
def _free_frame(m: Snapshot):
    m.set_reg("rsp", m.rsp + FRAME_SIZE)
    m.set_reg("zf", _zero(m.rsp))
    m.jump(Instruction.RET)


@_transition(Instruction.RET)
def _ret(m: Snapshot):
    m.jump(m.stack_word(m.rsp))
    m.set_reg("rsp", m.rsp + WORD_SIZE)


_missing = [instr.name for instr in Instruction if instr not in TRANSITIONS]
if _missing:
    raise MachineError(f"no transition for: {', '.join(_missing)}")


# ---------------------------------------------------------------------------
# Step
# ---------------------------------------------------------------------------

def step(snapshot: Snapshot) -> Snapshot:
    """Execute the instruction at %rip. Returns a new snapshot."""
    instr = snapshot.instruction
    if instr is None:
        raise InvalidInstructionPointer(f"unexpected %rip: 0x{snapshot.rip:x}")
    m = snapshot.copy()
    m.clear_changes()
    TRANSITIONS[instr](m)
    return m

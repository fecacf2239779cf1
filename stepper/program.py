"""
Program tables for the factorial stepper.

The compiled `_factorial` subroutine as fixed constants: the 18 instruction
addresses (a closed enum, one member per transition), their assembly text,
the synthetic return address, stack geometry and register names.
"""

from __future__ import annotations

from enum import IntEnum


# ---------------------------------------------------------------------------
# Instruction addresses
# ---------------------------------------------------------------------------

class Instruction(IntEnum):
    """Address of each instruction in `_factorial`, in program order."""
    ALLOC_FRAME   = 0x1000  # A0, entry
    STORE_ARG     = 0x1004  # A1
    CMP_ARG       = 0x1009  # A2
    JNE_RECURSE   = 0x100f  # A3
    STORE_ONE     = 0x1015  # A4, base case
    JMP_EPILOGUE  = 0x101e  # A5
    LOAD_RAX      = 0x1023  # A6
    LOAD_RCX      = 0x1028  # A7
    DEC_RCX       = 0x102d  # A8
    SET_ARG       = 0x1034  # A9
    SAVE_RAX      = 0x1037  # A10
    CALL          = 0x103b  # A11
    RESTORE_RCX   = 0x1040  # A12, call return site
    IMUL          = 0x1044  # A13
    STORE_PRODUCT = 0x1048  # A14
    LOAD_RESULT   = 0x104d  # A15
    FREE_FRAME    = 0x1052  # A16
    RET           = 0x1056  # A17


OFFSETS: list[int] = [int(i) for i in Instruction]
NUM_INSTRUCTIONS = len(OFFSETS)  # 18

ENTRY = Instruction.ALLOC_FRAME
FINAL = Instruction.RET

# Pushed by CALL; the caller resumes at RESTORE_RCX
RETURN_ADDRESS = int(Instruction.RESTORE_RCX)

FUNCTION_LABEL = "_factorial"

INSTRUCTION_TEXT: dict[Instruction, str] = {
    Instruction.ALLOC_FRAME:   "subq  $0x18, %rsp",
    Instruction.STORE_ARG:     "movq  %rdi, 0x8(%rsp)",
    Instruction.CMP_ARG:       "cmpq  $0x0, 0x8(%rsp)",
    Instruction.JNE_RECURSE:   "jne   0x1023",
    Instruction.STORE_ONE:     "movq  $0x1, 0x10(%rsp)",
    Instruction.JMP_EPILOGUE:  "jmp   0x104d",
    Instruction.LOAD_RAX:      "movq  0x8(%rsp), %rax",
    Instruction.LOAD_RCX:      "movq  0x8(%rsp), %rcx",
    Instruction.DEC_RCX:       "subq  $0x1, %rcx",
    Instruction.SET_ARG:       "movq  %rcx, %rdi",
    Instruction.SAVE_RAX:      "movq  %rax, (%rsp)",
    Instruction.CALL:          "callq  _factorial",
    Instruction.RESTORE_RCX:   "movq  (%rsp), %rcx",
    Instruction.IMUL:          "imulq rax, %rcx",
    Instruction.STORE_PRODUCT: "movq  %rcx, 0x10(%rsp)",
    Instruction.LOAD_RESULT:   "movq  0x10(%rsp), %rax",
    Instruction.FREE_FRAME:    "addq  $0x18, %rsp",
    Instruction.RET:           "retq",
}


# ---------------------------------------------------------------------------
# Stack geometry
# ---------------------------------------------------------------------------

STACK_TOP = 0xff98
WORD_SIZE = 8
WORD_BITS = 64
NUM_STACK_WORDS = 20
FRAME_SIZE = 0x18

# Values at or above this print as hex addresses
MIN_ADDRESS = OFFSETS[0]


# ---------------------------------------------------------------------------
# Registers
# ---------------------------------------------------------------------------

# Display order matches the register table
REGISTER_NAMES: tuple[str, ...] = ("rip", "rsp", "rdi", "rax", "rcx", "zf")

REGISTER_WIDTHS: dict[str, int] = {
    "rip": WORD_BITS,
    "rsp": WORD_BITS,
    "rdi": WORD_BITS,
    "rax": WORD_BITS,
    "rcx": WORD_BITS,
    "zf":  1,
}

REGISTER_TITLES: dict[str, str] = {
    "rip": "instruction pointer",
    "rsp": "stack pointer",
    "rdi": "1st argument",
    "rax": "return value",
    "rcx": "general purpose register",
    "zf":  "zero flag (part of %rflags)",
}

DEFAULT_INPUT = 4
# Each recursion level uses a 4-word frame; input 4 reaches stack index 17
MAX_INPUT = 4

"""
Chip primitives for the factorial stepper.

Models the two storage components of the machine: a width-masked Register
and the word-addressed StackMemory that grows downward from a top address.
"""

from __future__ import annotations


class MachineError(RuntimeError):
    """A machine invariant was violated. Not recoverable by the caller."""


class StackAddressError(MachineError):
    """Stack access outside the fixed stack window, or not word aligned."""


class Register:
    """N-bit register."""

    def __init__(self, width: int, value: int = 0):
        self.width = width
        self._mask = (1 << width) - 1
        self.value = value & self._mask

    def load(self, val: int):
        self.value = val & self._mask

    def copy(self) -> Register:
        return Register(self.width, self.value)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Register):
            return NotImplemented
        return self.width == other.width and self.value == other.value

    def __repr__(self) -> str:
        return f"Register({self.width}, 0x{self.value:x})"


class StackMemory:
    """
    Fixed-capacity stack of machine words.

    Words are addressed by byte address, not index. The slot at index i holds
    the word at address `top - (i + 1) * word_size`, so the address `top`
    itself is never backed by a slot.
    """

    def __init__(self, top: int, num_words: int, word_size: int = 8,
                 word_bits: int = 64, words: list[int] | None = None):
        self.top = top
        self.num_words = num_words
        self.word_size = word_size
        self.word_bits = word_bits
        self._mask = (1 << word_bits) - 1
        if words is None:
            self.words = [0] * num_words
        else:
            if len(words) != num_words:
                raise ValueError(f"expected {num_words} words, got {len(words)}")
            self.words = list(words)

    def index_of(self, address: int) -> int:
        offset = self.top - address
        if offset % self.word_size != 0:
            raise StackAddressError(f"misaligned stack address 0x{address:x}")
        index = offset // self.word_size - 1
        if not 0 <= index < self.num_words:
            raise StackAddressError(
                f"stack address 0x{address:x} maps to index {index}, "
                f"outside [0, {self.num_words})")
        return index

    def address_of(self, index: int) -> int:
        if not 0 <= index < self.num_words:
            raise StackAddressError(f"stack index {index} outside [0, {self.num_words})")
        return self.top - (index + 1) * self.word_size

    def read(self, address: int) -> int:
        return self.words[self.index_of(address)]

    def write(self, address: int, val: int):
        self.words[self.index_of(address)] = val & self._mask

    def copy(self) -> StackMemory:
        return StackMemory(self.top, self.num_words, self.word_size,
                           self.word_bits, self.words)

    def __len__(self) -> int:
        return self.num_words

    def __eq__(self, other) -> bool:
        if not isinstance(other, StackMemory):
            return NotImplemented
        return (self.top, self.word_size, self.words) == \
               (other.top, other.word_size, other.words)

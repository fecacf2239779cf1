"""
History: the replayable sequence of snapshots for one run.

Snapshot 0 is the initial state; snapshot i+1 is step(snapshot i). The
sequence is extended lazily and stops at the terminal snapshot, so any
index can be looked up and rewinding is just a smaller index.
"""

from __future__ import annotations

from typing import Iterator

from .machine import Snapshot, initial_snapshot, step
from .program import FINAL, STACK_TOP, DEFAULT_INPUT


def is_done(snapshot: Snapshot) -> bool:
    """True once the outermost call is back at its final retq.

    %rip reaches retq on every return; only the outermost one also has the
    stack fully unwound.
    """
    return snapshot.rip == FINAL and snapshot.rsp == STACK_TOP


class History:
    """Cached snapshots of one run, indexed from 0.

    Start from either an explicit initial snapshot or an input value
    (default DEFAULT_INPUT), not both.
    """

    def __init__(self, initial: Snapshot | None = None,
                 input_value: int | None = None):
        if initial is not None and input_value is not None:
            raise ValueError("pass either an initial snapshot or an input value, not both")
        if initial is None:
            if input_value is None:
                input_value = DEFAULT_INPUT
            initial = initial_snapshot(input_value)
        self._snapshots: list[Snapshot] = [initial.copy()]

    # -------------------------------------------------------------------
    # Extension
    # -------------------------------------------------------------------

    @property
    def complete(self) -> bool:
        return is_done(self._snapshots[-1])

    def ensure_length(self, n: int) -> int:
        """Step until there are n snapshots or the run is done.

        Returns the resulting length.
        """
        while len(self._snapshots) < n and not self.complete:
            self._snapshots.append(step(self._snapshots[-1]))
        return len(self._snapshots)

    def ensure_complete(self) -> int:
        while not self.complete:
            self._snapshots.append(step(self._snapshots[-1]))
        return len(self._snapshots)

    # -------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------

    def get(self, index: int) -> Snapshot:
        """Snapshot at index. Indices past the end give the terminal snapshot."""
        if index < 0:
            raise IndexError(f"history index must be non-negative, got {index}")
        self.ensure_length(index + 1)
        if index >= len(self._snapshots):
            return self._snapshots[-1]
        return self._snapshots[index]

    __getitem__ = get

    def length(self) -> int:
        return len(self._snapshots)

    __len__ = length

    def is_terminal(self, index: int) -> bool:
        return is_done(self.get(index))

    @property
    def last_index(self) -> int:
        """Index of the terminal snapshot. Computes the whole run."""
        return self.ensure_complete() - 1

    def clamp(self, index: int) -> int:
        """Nearest valid index to index."""
        if index <= 0:
            return 0
        self.ensure_length(index + 1)
        return min(index, len(self._snapshots) - 1)

    def __iter__(self) -> Iterator[Snapshot]:
        self.ensure_complete()
        return iter(list(self._snapshots))

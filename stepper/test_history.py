"""
Verification suite for History: lazy extension, random access, replay
equivalence and the terminal condition.
"""

from __future__ import annotations

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from stepper.history import History, is_done
from stepper.machine import initial_snapshot, step
from stepper.program import Instruction, STACK_TOP

# 72 steps for _factorial(4): 4 calls down, the base case, 4 returns up
LAST_INDEX = 72


def test_starts_with_initial_snapshot():
    h = History()
    assert h.length() == 1
    assert len(h) == 1
    assert h.get(0) == initial_snapshot()
    assert not h.complete


def test_get_extends_on_demand():
    h = History()
    s = h.get(5)
    assert h.length() == 6
    assert s is h[5]
    assert h.ensure_length(10) == 10
    assert h.length() == 10
    # Already long enough: nothing to do
    assert h.ensure_length(3) == 10


def test_replay_equivalence():
    h = History()
    h.ensure_complete()
    s = initial_snapshot()
    errors = 0
    for i in range(h.length()):
        if h.get(i) != s:
            print(f"  FAIL: history[{i}] differs from {i} direct steps")
            errors += 1
        if i < LAST_INDEX:
            s = step(s)
    assert errors == 0


def test_random_access_order_does_not_matter():
    a = History()
    b = History()
    b.get(50)
    b.get(3)
    b.get(LAST_INDEX)
    for i in (LAST_INDEX, 17, 0, 50, 49):
        assert a.get(i) == b.get(i)


def test_terminal_index():
    h = History()
    assert h.last_index == LAST_INDEX
    assert h.length() == LAST_INDEX + 1
    assert h.complete
    assert h.is_terminal(LAST_INDEX)
    assert not h.is_terminal(LAST_INDEX - 1)
    assert not h.is_terminal(0)


def test_terminal_idempotence():
    h = History()
    final = h.get(LAST_INDEX)
    before = final.copy()
    assert h.get(LAST_INDEX + 1) is final
    assert h.get(10_000) is final
    assert h.length() == LAST_INDEX + 1
    assert h.ensure_length(500) == LAST_INDEX + 1
    assert h.is_terminal(10_000)
    assert final == before


def test_never_steps_a_terminal_snapshot():
    # Stepping the terminal snapshot would read outside the stack window
    final = History().get(LAST_INDEX)
    h = History(final)
    assert h.ensure_complete() == 1
    assert h.get(3) == final
    assert h.last_index == 0


def test_inner_returns_are_not_terminal():
    h = History()
    inner_rets = [i for i in range(LAST_INDEX)
                  if h[i].rip == Instruction.RET]
    assert len(inner_rets) == 4
    for i in inner_rets:
        assert h[i].rsp != STACK_TOP
        assert not h.is_terminal(i)
        assert not is_done(h[i])


def test_snapshots_share_no_storage():
    h = History()
    h.ensure_complete()
    for i in range(1, h.length()):
        a, b = h[i - 1], h[i]
        assert a.stack is not b.stack
        assert a.stack.words is not b.stack.words
        assert a.changed_regs is not b.changed_regs
        for name in a.regs:
            assert a.regs[name] is not b.regs[name]


def test_seeking_back_and_forth_leaves_history_unchanged():
    h = History()
    h.ensure_complete()
    frozen = [s.copy() for s in h]
    for i in (40, 2, LAST_INDEX, 0, 41, 40):
        h.get(i)
    assert list(h) == frozen


def test_initial_snapshot_is_copied():
    s = initial_snapshot(3)
    h = History(s)
    s.regs["rdi"].load(1)
    assert h[0].rdi == 3


def test_independent_histories():
    a = History(input_value=4)
    b = History(input_value=2)
    assert a.get(a.last_index).rax == 24
    assert b.get(b.last_index).rax == 2
    assert a.last_index == LAST_INDEX
    assert b.last_index == 40


def test_initial_and_input_value_are_exclusive():
    with pytest.raises(ValueError):
        History(initial_snapshot(3), input_value=2)
    assert History(input_value=None)[0].rdi == 4
    with pytest.raises(ValueError):
        History(input_value=5)


def test_negative_index():
    h = History()
    with pytest.raises(IndexError):
        h.get(-1)


def test_clamp():
    h = History()
    assert h.clamp(-5) == 0
    assert h.clamp(0) == 0
    assert h.clamp(30) == 30
    assert h.clamp(10_000) == LAST_INDEX


def test_end_to_end_scenario():
    h = History()
    s0 = h[0]
    assert (s0.rip, s0.rsp, s0.rdi, s0.rax, s0.rcx, s0.zf) == (0x1000, 0xff98, 4, 0, 0, 0)
    assert s0.stack_words == (0,) * 20
    h.ensure_complete()
    final = h[h.length() - 1]
    assert final.rax == 24
    assert final.rsp == 0xff98


# ---------------------------------------------------------------------------
# Main
# ---------------------------------------------------------------------------

def main():
    print("=" * 60)
    print("History - Verification Suite")
    print("=" * 60)
    tests = [v for k, v in sorted(globals().items()) if k.startswith("test_")]
    for test in tests:
        test()
        print(f"  ok  {test.__name__}")
    print(f"\nALL {len(tests)} TESTS PASSED")


if __name__ == "__main__":
    main()

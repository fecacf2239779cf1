"""
Tests for the Textual stepper, driven through Textual's test pilot.
"""

from __future__ import annotations

import sys
import os
import asyncio

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest

from textual.widgets import Input

from stepper.debugger import FactorialStepper, build_parser, main
from stepper.history import History

LAST_INDEX = 72


def _drive(app: FactorialStepper, scenario):
    async def run():
        async with app.run_test() as pilot:
            await scenario(app, pilot)
    asyncio.run(run())


def test_step_and_rewind():
    async def scenario(app, pilot):
        assert app.position == 0
        await pilot.press("s")
        assert app.position == 1
        await pilot.press("space", "right")
        assert app.position == 3
        await pilot.press("b")
        assert app.position == 2
        await pilot.press("left", "left", "left")
        assert app.position == 0

    _drive(FactorialStepper(History()), scenario)


def test_jumps_and_bounds():
    async def scenario(app, pilot):
        await pilot.press("n")
        assert app.position == 10
        await pilot.press("p", "p")
        assert app.position == 0
        await pilot.press("end")
        assert app.position == LAST_INDEX
        assert app.at_end
        # Step is a no-op at the final retq
        await pilot.press("s")
        assert app.position == LAST_INDEX
        await pilot.press("home")
        assert app.position == 0
        assert not app.at_end

    _drive(FactorialStepper(History()), scenario)


def test_opens_at_index_and_clamps():
    async def scenario(app, pilot):
        assert app.position == LAST_INDEX
        assert app.history.get(app.position).rax == 24

    _drive(FactorialStepper(History(), index=500), scenario)


def test_seek_matches_history():
    history = History()

    async def scenario(app, pilot):
        app.seek(37)
        await pilot.pause()
        assert app.position == 37
        assert app.history.get(app.position) is history.get(37)

    _drive(FactorialStepper(history), scenario)


def test_flip_stack():
    async def scenario(app, pilot):
        assert not app.reverse_stack
        await pilot.press("v")
        assert app.reverse_stack
        await pilot.press("v")
        assert not app.reverse_stack

    _drive(FactorialStepper(History()), scenario)


def test_status_shows_run_length_from_the_start():
    async def scenario(app, pilot):
        assert "0/72" in app.status_text()
        await pilot.press("s")
        assert "1/72" in app.status_text()
        await pilot.press("end")
        assert "72/72" in app.status_text()

    _drive(FactorialStepper(History()), scenario)


def test_status_for_smaller_input():
    async def scenario(app, pilot):
        assert "0/40" in app.status_text()

    _drive(FactorialStepper(History(input_value=2)), scenario)


def test_goto_index():
    async def scenario(app, pilot):
        box = app.query_one("#goto-input", Input)
        assert not box.display
        await pilot.press("g")
        await pilot.pause()
        assert box.display
        await pilot.press("3", "7", "enter")
        await pilot.pause()
        assert app.position == 37
        assert not box.display

        # Targets past the end land on the final retq
        await pilot.press("g")
        await pilot.pause()
        await pilot.press("9", "9", "9", "enter")
        await pilot.pause()
        assert app.position == LAST_INDEX

    _drive(FactorialStepper(History()), scenario)


def test_goto_cancel_and_bad_values():
    async def scenario(app, pilot):
        box = app.query_one("#goto-input", Input)
        await pilot.press("n")
        await pilot.press("g")
        await pilot.pause()
        await pilot.press("5", "escape")
        await pilot.pause()
        assert not box.display
        assert app.position == 10

        await pilot.press("g")
        await pilot.pause()
        await pilot.press("enter")
        await pilot.pause()
        assert app.position == 10

        await pilot.press("g")
        await pilot.pause()
        await pilot.press("-", "4", "enter")
        await pilot.pause()
        assert app.position == 10

    _drive(FactorialStepper(History()), scenario)


def test_main_rejects_bad_input(capsys):
    with pytest.raises(SystemExit) as exc:
        main(["--input", "9"])
    assert exc.value.code == 1
    assert "Error: input must be in 0..4" in capsys.readouterr().err


def test_main_rejects_negative_index(capsys):
    with pytest.raises(SystemExit) as exc:
        main(["--index", "-1"])
    assert exc.value.code == 2
    assert "--index must be non-negative" in capsys.readouterr().err


def test_parser_defaults():
    args = build_parser().parse_args([])
    assert args.input == 4
    assert args.index == 0
    assert not args.reverse_stack
    args = build_parser().parse_args(["--input", "2", "--index", "7", "--reverse-stack"])
    assert (args.input, args.index, args.reverse_stack) == (2, 7, True)


def test_parser_rejects_non_integer_input():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["--input", "four"])

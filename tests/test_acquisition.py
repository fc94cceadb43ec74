"""Tests for the selection acquisition chain."""

from __future__ import annotations

import pytest

from textswitch.core.acquisition import (
    AcquisitionStrategy, ClipboardCopyStrategy, DirectSelectionStrategy,
    SelectionAcquisitionChain, ValueRangeStrategy,
)
from textswitch.core.results import Deferred, Failed, Found
from textswitch.errors import AcquisitionFailed, TimeoutExceeded
from textswitch.platform.accessibility import FocusedValue


class Recorder(AcquisitionStrategy):
    def __init__(self, name, result, log):
        self.name = name
        self.result = result
        self.log = log

    def acquire(self):
        self.log.append(self.name)
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class TestChain:

    def test_first_found_wins_in_order(self):
        log = []
        chain = SelectionAcquisitionChain([
            Recorder("a", Deferred("no"), log),
            Recorder("b", Found("text"), log),
            Recorder("c", Found("other"), log),
        ])
        assert chain.acquire() == "text"
        assert log == ["a", "b"]

    def test_empty_found_does_not_win(self):
        log = []
        chain = SelectionAcquisitionChain([
            Recorder("a", Found(""), log),
            Recorder("b", Found("x"), log),
        ])
        assert chain.acquire() == "x"

    def test_exhaustion_collects_reasons(self):
        log = []
        chain = SelectionAcquisitionChain([
            Recorder("a", Deferred("nothing selected"), log),
            Recorder("b", Failed("broken"), log),
            Recorder("c", RuntimeError("kaboom"), log),
        ])
        with pytest.raises(AcquisitionFailed) as exc_info:
            chain.acquire()
        reasons = exc_info.value.reasons
        assert len(reasons) == 3
        assert "nothing selected" in reasons[0]
        assert "kaboom" in reasons[2]
        assert log == ["a", "b", "c"]

    def test_default_order(self, accessibility, clipboard, keyboard):
        chain = SelectionAcquisitionChain.default(accessibility, clipboard, keyboard)
        assert [type(s) for s in chain.strategies] == [
            DirectSelectionStrategy, ValueRangeStrategy, ClipboardCopyStrategy,
        ]

    def test_direct_selection_short_circuits_clipboard(self, accessibility, clipboard, keyboard):
        accessibility.selection = "ghbdtn"
        chain = SelectionAcquisitionChain.default(accessibility, clipboard, keyboard)
        assert chain.acquire() == "ghbdtn"
        assert keyboard.calls == []


class TestValueRange:

    def test_slices_range(self, accessibility):
        accessibility.value = FocusedValue("hello ghbdtn world", 6, 12)
        assert ValueRangeStrategy(accessibility).acquire() == Found("ghbdtn")

    def test_empty_range_defers(self, accessibility):
        accessibility.value = FocusedValue("hello", 2, 2)
        assert isinstance(ValueRangeStrategy(accessibility).acquire(), Deferred)

    def test_no_value_defers(self, accessibility):
        assert isinstance(ValueRangeStrategy(accessibility).acquire(), Deferred)

    def test_range_is_clamped(self):
        assert FocusedValue("abc", 1, 99).selected_text == "bc"
        assert FocusedValue("abc", None, 2).selected_text == ""


class TestClipboardCopy:

    def test_copy_reads_and_restores(self, clipboard, keyboard):
        before = clipboard.snapshot()
        keyboard.on_shortcut["copy"] = lambda: clipboard.set_text("ghbdtn")
        result = ClipboardCopyStrategy(clipboard, keyboard, timeout=0.5).acquire()
        assert result == Found("ghbdtn")
        assert keyboard.shortcuts == ["copy"]
        assert clipboard.snapshot() == before
        assert len(clipboard.restores[-1].items[0].representations) == 2

    def test_timeout_is_failed(self, clipboard, keyboard):
        before_count = clipboard.change_count()
        result = ClipboardCopyStrategy(clipboard, keyboard, timeout=0.02).acquire()
        assert isinstance(result, Failed)
        assert isinstance(result.error, TimeoutExceeded)
        # nothing changed, so nothing was restored
        assert clipboard.restores == []
        assert clipboard.change_count() == before_count

    def test_copy_of_empty_text_defers(self, clipboard, keyboard):
        keyboard.on_shortcut["copy"] = lambda: clipboard.set_text("")
        result = ClipboardCopyStrategy(clipboard, keyboard, timeout=0.5).acquire()
        assert isinstance(result, Deferred)
        assert clipboard.read_text() == "previous clipboard"

    def test_custom_shortcut(self, clipboard, keyboard):
        keyboard.on_shortcut["terminal_copy"] = lambda: clipboard.set_text("x")
        ClipboardCopyStrategy(clipboard, keyboard, timeout=0.5, shortcut="terminal_copy").acquire()
        assert keyboard.shortcuts == ["terminal_copy"]

    def test_chain_falls_through_to_clipboard(self, accessibility, clipboard, keyboard):
        keyboard.on_shortcut["copy"] = lambda: clipboard.set_text("vbh")
        chain = SelectionAcquisitionChain.default(accessibility, clipboard, keyboard, timeout=0.5)
        assert chain.acquire() == "vbh"

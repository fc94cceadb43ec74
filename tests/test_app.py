"""Tests for TextSwitchApp wiring with injected mock adapters."""

from __future__ import annotations

import json

import pytest

from textswitch.app import TextSwitchApp
from textswitch.core.states import Outcome


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.json"
    path.write_text(json.dumps({
        "profiles_path": str(tmp_path / "profiles.json"),
        "clipboard_restore_delay": 0,
        "clipboard_timeout": 0.05,
        "backspace_padding": 1,
    }), encoding="utf-8")
    return str(path)


@pytest.fixture
def app(config_path, window, accessibility, clipboard, keyboard, layout, monkeypatch):
    monkeypatch.setattr("textswitch.core.replacement.ERASE_SETTLE_DELAY", 0)
    monkeypatch.setattr("textswitch.core.replacement.CLIPBOARD_SETTLE_DELAY", 0)
    a = TextSwitchApp(config_path=config_path)
    a.window = window
    a.accessibility = accessibility
    a.clipboard = clipboard
    a.keyboard = keyboard
    a.layout = layout
    yield a
    a.close()


class TestTextSwitchApp:

    def test_store_uses_configured_path(self, app, tmp_path):
        assert app.store.path == str(tmp_path / "profiles.json")
        assert (tmp_path / "profiles.json").exists()

    def test_trigger_standard(self, app, accessibility, clipboard):
        accessibility.selection = "ghbdtn"
        ctx = app.trigger()
        assert ctx.outcome is Outcome.CONVERTED
        assert clipboard.transient_writes == ["привет"]
        assert clipboard.read_text() == "previous clipboard"

    def test_trigger_terminal_uses_configured_padding(self, app, window, accessibility, keyboard):
        window.app_id = "kitty"
        accessibility.value = "$ ls"
        app.trigger()
        taps = [c for c in keyboard.calls if c[0] == "tap"]
        assert taps[0][2] == len("ls") + 1

    def test_press_hotkey(self, app, accessibility, keyboard, layout):
        accessibility.selection = "vbh"
        app.press_hotkey()
        assert keyboard.shortcuts == ["paste"]
        assert layout.switches == 1

    def test_profile_switch_seen_by_pipeline(self, app, accessibility, clipboard):
        custom = app.store.create_profile("Upper")
        custom.mapping = {"a": "A"}
        app.store.update_profile(custom)
        app.store.set_active_profile(custom.id)
        accessibility.selection = "abc"
        app.trigger()
        assert clipboard.transient_writes == ["Abc"]

    def test_debug_flag_sets_config(self, config_path):
        a = TextSwitchApp(config_path=config_path, debug=True)
        assert a.config.get('debug') is True

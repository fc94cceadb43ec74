"""Shared fixtures and in-memory platform adapters for TextSwitch tests."""

import os
import signal
import sys

import pytest

from textswitch.input.virtual_keyboard import IKeyboard, SHORTCUTS
from textswitch.platform.accessibility import FocusedValue, IAccessibilityAdapter
from textswitch.platform.clipboard import (
    TEXT_TYPE, ClipboardItem, ClipboardSnapshot, IClipboard,
)
from textswitch.platform.system_adapter import CommandResult, ISystemAdapter
from textswitch.platform.window import IWindowAdapter
from textswitch.platform.xkb_adapter import ILayoutSwitcher
from textswitch.profiles.store import ProfileStore


def pytest_addoption(parser):
    parser.addoption(
        "--keyboard-watchdog",
        action="store",
        default="10",
        help="Timeout in seconds after which watchdog aborts a test that may hold a virtual keyboard"
    )


@pytest.fixture(autouse=True)
def mock_uinput(monkeypatch):
    """Replace real evdev.UInput with a test Dummy to avoid grabbing /dev/uinput in tests.

    This fixture is autouse so tests that forgot to mock UInput won't hang the CI or the developer machine.
    """

    class DummyUInput:
        def __init__(self, *args, **kwargs):
            self.events = []
            self.closed = False

        def write(self, etype, code, value):
            self.events.append((etype, code, value))

        def syn(self):
            pass

        def close(self):
            self.closed = True

    monkeypatch.setattr('evdev.UInput', DummyUInput)
    yield DummyUInput


@pytest.fixture(autouse=True)
def keyboard_watchdog(request):
    timeout = int(request.config.getoption('--keyboard-watchdog') or 10)

    def handler(signum, frame):
        print("⚠️ Keyboard watchdog triggered; aborting test to free input devices.", file=sys.stderr)
        # use _exit to avoid cleanup deadlocks
        os._exit(70)

    old_handler = signal.signal(signal.SIGALRM, handler)
    signal.alarm(timeout)
    try:
        yield
    finally:
        signal.alarm(0)
        signal.signal(signal.SIGALRM, old_handler)


# ---------------------------------------------------------------------------
# Mock adapters
# ---------------------------------------------------------------------------

class MockClipboard(IClipboard):
    """In-memory clipboard holding items with several representations."""

    def __init__(self, items=()):
        self.items = tuple(items)
        self.count = 0
        self.restores = []
        self.transient_writes = []

    def set_text(self, text, *extra):
        """Replace contents with *text* plus optional extra (type, bytes) pairs."""
        reps = ((TEXT_TYPE, text.encode("utf-8")),) + tuple(extra)
        self.items = (ClipboardItem(reps),)
        self.count += 1

    def snapshot(self):
        return ClipboardSnapshot(tuple(self.items))

    def restore(self, snapshot):
        self.items = snapshot.items
        self.count += 1
        self.restores.append(snapshot)

    def change_count(self):
        return self.count

    def read_text(self):
        for item in self.items:
            data = item.data(TEXT_TYPE)
            if data is not None:
                return data.decode("utf-8")
        return ""

    def write_transient(self, text):
        self.transient_writes.append(text)
        self.set_text(text)


class MockAccessibility(IAccessibilityAdapter):
    def __init__(self, selection=None, value=None, accept_set=False):
        self.selection = selection
        self.value = value
        self.accept_set = accept_set
        self.set_calls = []
        self.consumed = 0

    def read_focused_selection(self):
        return self.selection

    def read_focused_value(self):
        if isinstance(self.value, str):
            return FocusedValue(self.value, 0, len(self.value))
        return self.value

    def set_focused_selection(self, text):
        self.set_calls.append(text)
        return self.accept_set

    def mark_consumed(self):
        self.consumed += 1


class MockKeyboard(IKeyboard):
    """Records every call; ``on_shortcut[name]`` runs a side effect (e.g. a copy)."""

    def __init__(self):
        self.calls = []
        self.on_shortcut = {}

    def tap_key(self, keycode, n_times=1, modifiers=()):
        self.calls.append(("tap", keycode, n_times, tuple(modifiers)))

    def send_shortcut(self, name):
        if name not in SHORTCUTS:
            raise ValueError(f"Unknown shortcut: {name!r}")
        self.calls.append(("shortcut", name))
        action = self.on_shortcut.get(name)
        if action is not None:
            action()

    def release_modifiers(self):
        self.calls.append(("release",))

    @property
    def shortcuts(self):
        return [c[1] for c in self.calls if c[0] == "shortcut"]


class MockWindow(IWindowAdapter):
    def __init__(self, app_id="firefox"):
        self.app_id = app_id

    def frontmost_application_id(self):
        return self.app_id


class MockLayout(ILayoutSwitcher):
    def __init__(self, result="us"):
        self.result = result
        self.switches = 0

    def switch_to_next_layout(self):
        self.switches += 1
        return self.result


class RecordingSystem(ISystemAdapter):
    """ISystemAdapter returning canned results keyed by the command tuple."""

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.calls = []

    def run_command(self, args, timeout=1.0, input=None, capture=True):
        self.calls.append({"args": list(args), "input": input, "capture": capture})
        result = self.responses.get(tuple(args))
        if result is None:
            return CommandResult(stdout=b"", stderr="not mocked", returncode=1)
        if isinstance(result, (bytes, str)):
            data = result.encode("utf-8") if isinstance(result, str) else result
            return CommandResult(stdout=data, stderr="", returncode=0)
        return result


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def clipboard():
    cb = MockClipboard()
    cb.set_text("previous clipboard", ("text/html", b"<b>previous clipboard</b>"))
    return cb


@pytest.fixture
def accessibility():
    return MockAccessibility()


@pytest.fixture
def keyboard():
    return MockKeyboard()


@pytest.fixture
def window():
    return MockWindow()


@pytest.fixture
def layout():
    return MockLayout()


@pytest.fixture
def profiles_path(tmp_path):
    return str(tmp_path / "profiles.json")


@pytest.fixture
def store(profiles_path):
    return ProfileStore.open(profiles_path)


@pytest.fixture
def memory_store():
    return ProfileStore.open(None)


@pytest.fixture
def system():
    return RecordingSystem()

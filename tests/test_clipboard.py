"""Tests for clipboard polling, delayed restore and the xclip backend."""

from __future__ import annotations

import threading

import pytest

from textswitch.platform.clipboard import (
    MAX_REPRESENTATIONS, ClipboardItem, ClipboardRestorer, ClipboardSnapshot,
    RestoreHandle, X11Clipboard, wait_for_change,
)
from textswitch.platform.system_adapter import CommandResult


class FakeClock:
    def __init__(self):
        self.now = 0.0
        self.sleeps = []

    def clock(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


class TestWaitForChange:

    def test_immediate_change(self, clipboard):
        assert wait_for_change(clipboard, clipboard.change_count() - 1) is True

    def test_backoff_schedule_and_timeout(self, clipboard):
        fake = FakeClock()
        ok = wait_for_change(clipboard, clipboard.change_count(), timeout=0.3,
                             sleep=fake.sleep, clock=fake.clock)
        assert ok is False
        assert fake.sleeps[:6] == pytest.approx([0.001, 0.002, 0.004, 0.008, 0.016, 0.02])
        assert max(fake.sleeps) == pytest.approx(0.02)
        assert fake.now >= 0.3

    def test_change_during_polling(self, clipboard):
        fake = FakeClock()
        original = clipboard.change_count()

        def sleep(seconds):
            fake.sleep(seconds)
            if len(fake.sleeps) == 3:
                clipboard.set_text("copied")

        assert wait_for_change(clipboard, original, sleep=sleep, clock=fake.clock) is True
        assert len(fake.sleeps) == 3


class TestRestore:

    def test_handle_fires_once(self, clipboard):
        snap = clipboard.snapshot()
        handle = RestoreHandle(clipboard, snap)
        assert handle.fire() is True
        assert handle.fire() is False
        assert handle.fired
        assert clipboard.restores == [snap]

    def test_handle_survives_restore_error(self, clipboard, monkeypatch):
        def boom(snapshot):
            raise RuntimeError("clipboard gone")
        monkeypatch.setattr(clipboard, "restore", boom)
        handle = RestoreHandle(clipboard, ClipboardSnapshot())
        assert handle.fire() is True
        assert handle.wait(0) is True

    def test_restorer_zero_delay_is_synchronous(self, clipboard):
        snap = clipboard.snapshot()
        clipboard.set_text("transient")
        handle = ClipboardRestorer(clipboard, delay=0).schedule(snap)
        assert handle.fired
        assert clipboard.read_text() == "previous clipboard"

    def test_restorer_delayed_non_daemon_timer(self, clipboard):
        snap = clipboard.snapshot()
        clipboard.set_text("transient")
        handle = ClipboardRestorer(clipboard, delay=0.01).schedule(snap)
        timers = [t for t in threading.enumerate() if t.name == "clipboard-restore"]
        assert all(not t.daemon for t in timers)
        assert handle.wait(2.0) is True
        assert clipboard.snapshot() == snap

    def test_concurrent_fire_restores_once(self, clipboard):
        handle = RestoreHandle(clipboard, clipboard.snapshot())
        threads = [threading.Thread(target=handle.fire) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(clipboard.restores) == 1


class TestSnapshotModel:

    def test_item_types_and_data(self):
        item = ClipboardItem((("UTF8_STRING", b"hi"), ("text/html", b"<i>hi</i>")))
        assert item.types == ["UTF8_STRING", "text/html"]
        assert item.data("text/html") == b"<i>hi</i>"
        assert item.data("image/png") is None

    def test_empty(self):
        assert ClipboardSnapshot().is_empty
        assert ClipboardSnapshot((ClipboardItem(),)).is_empty
        assert not ClipboardSnapshot((ClipboardItem((("STRING", b""),)),)).is_empty


def _xclip_out(target=None):
    args = ("xclip", "-o", "-selection", "clipboard")
    return args + ("-t", target) if target else args


class TestX11Clipboard:

    def test_snapshot_reads_every_target(self, system):
        system.responses[_xclip_out("TARGETS")] = "TARGETS\nTIMESTAMP\nUTF8_STRING\ntext/html\n"
        system.responses[_xclip_out("UTF8_STRING")] = "hello"
        system.responses[_xclip_out("text/html")] = "<b>hello</b>"
        snap = X11Clipboard(system, owner_fn=lambda: 1).snapshot()
        assert len(snap.items) == 1
        assert snap.items[0].representations == (
            ("UTF8_STRING", b"hello"), ("text/html", b"<b>hello</b>"),
        )

    def test_snapshot_of_empty_clipboard(self, system):
        assert X11Clipboard(system, owner_fn=lambda: 0).snapshot().is_empty

    def test_targets_capped(self, system):
        names = "\n".join(f"type/{i}" for i in range(40))
        system.responses[_xclip_out("TARGETS")] = names
        assert len(X11Clipboard(system).targets()) == MAX_REPRESENTATIONS

    def test_restore_prefers_text_target(self, system):
        cb = X11Clipboard(system, owner_fn=lambda: 1)
        snap = ClipboardSnapshot((ClipboardItem((
            ("text/html", b"<b>x</b>"), ("UTF8_STRING", b"x"),
        )),))
        cb.restore(snap)
        call = system.calls[-1]
        assert call["args"] == ["xclip", "-i", "-selection", "clipboard", "-t", "UTF8_STRING"]
        assert call["input"] == b"x"
        assert call["capture"] is False

    def test_restore_non_text(self, system):
        cb = X11Clipboard(system)
        cb.restore(ClipboardSnapshot((ClipboardItem((("image/png", b"\x89PNG"),)),)))
        assert system.calls[-1]["args"][-1] == "image/png"

    def test_restore_empty_clears(self, system):
        X11Clipboard(system).restore(ClipboardSnapshot())
        assert system.calls[-1]["input"] == b""

    def test_change_count_tracks_content_and_owner(self, system):
        owner = {"id": 1}
        cb = X11Clipboard(system, owner_fn=lambda: owner["id"])
        system.responses[_xclip_out()] = "one"
        first = cb.change_count()
        assert cb.change_count() == first
        system.responses[_xclip_out()] = "two"
        assert cb.change_count() == first + 1
        owner["id"] = 2
        assert cb.change_count() == first + 2

    def test_change_count_tracks_timestamp(self, system):
        cb = X11Clipboard(system, owner_fn=lambda: 1)
        system.responses[_xclip_out()] = "same"
        system.responses[_xclip_out("TIMESTAMP")] = b"\x10\x00\x00\x00"
        first = cb.change_count()
        assert cb.change_count() == first
        # the same window copies the same text again
        system.responses[_xclip_out("TIMESTAMP")] = b"\x20\x00\x00\x00"
        assert cb.change_count() == first + 1

    def test_read_text(self, system):
        system.responses[_xclip_out()] = CommandResult("ёлка".encode("utf-8"), "", 0)
        assert X11Clipboard(system).read_text() == "ёлка"
        system.responses[_xclip_out()] = CommandResult(b"", "Error: target STRING not available", 1)
        assert X11Clipboard(system).read_text() == ""

    def test_write_transient(self, system):
        X11Clipboard(system).write_transient("привет")
        call = system.calls[-1]
        assert call["input"] == "привет".encode("utf-8")
        assert call["args"][-1] == "UTF8_STRING"

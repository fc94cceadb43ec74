"""Clipboard snapshots, change polling, delayed restore and the X11 backend.

A :class:`ClipboardSnapshot` is a structural copy of everything on the
clipboard: every item with every representation (``UTF8_STRING``,
``text/html``, ``image/png`` …), not just the plain string.
"""

from __future__ import annotations

import hashlib
import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable

import textswitch.log  # registers TRACE level and logger.trace()
from textswitch.platform.system_adapter import ISystemAdapter

logger = logging.getLogger(__name__)

# Polling schedule for clipboard change detection
POLL_INITIAL_DELAY = 0.001
POLL_MAX_DELAY = 0.02
POLL_TIMEOUT = 0.3

TEXT_TYPE = "text/plain;charset=utf-8"


@dataclass(frozen=True)
class ClipboardItem:
    """One logical clipboard item with all of its representations."""

    representations: tuple[tuple[str, bytes], ...] = ()

    @property
    def types(self) -> list[str]:
        return [t for t, _ in self.representations]

    def data(self, type_: str) -> bytes | None:
        for t, payload in self.representations:
            if t == type_:
                return payload
        return None


@dataclass(frozen=True)
class ClipboardSnapshot:
    items: tuple[ClipboardItem, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not any(item.representations for item in self.items)


class IClipboard(ABC):
    @abstractmethod
    def snapshot(self) -> ClipboardSnapshot:
        """Deep copy of every item currently on the clipboard."""

    @abstractmethod
    def restore(self, snapshot: ClipboardSnapshot) -> None:
        """Put *snapshot* back on the clipboard."""

    @abstractmethod
    def change_count(self) -> int:
        """Monotonic counter that changes whenever the clipboard content changes."""

    @abstractmethod
    def read_text(self) -> str:
        """Plain-text content of the clipboard ('' if none)."""

    @abstractmethod
    def write_transient(self, text: str) -> None:
        """Write *text* marked so that clipboard-history tools ignore it."""


# ---------------------------------------------------------------------------
# Polling and restore
# ---------------------------------------------------------------------------

def wait_for_change(
    clipboard: IClipboard,
    original_count: int,
    timeout: float = POLL_TIMEOUT,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> bool:
    """Poll ``change_count()`` until it differs from *original_count*.

    Sleeps 1 ms, doubling up to 20 ms between polls, for at most *timeout*
    seconds.  Returns False on timeout.
    """
    start = clock()
    delay = POLL_INITIAL_DELAY
    polls = 0
    while clock() - start < timeout:
        polls += 1
        if clipboard.change_count() != original_count:
            logger.trace("Clipboard changed after %d polls", polls)  # type: ignore[attr-defined]
            return True
        sleep(delay)
        if delay < POLL_MAX_DELAY:
            delay = min(delay * 2, POLL_MAX_DELAY)
    logger.trace("Clipboard unchanged after %d polls (%.3fs)", polls, timeout)  # type: ignore[attr-defined]
    return False


class RestoreHandle:
    """A pending clipboard restore that runs exactly once."""

    def __init__(self, clipboard: IClipboard, snapshot: ClipboardSnapshot):
        self._clipboard = clipboard
        self._snapshot = snapshot
        self._lock = threading.Lock()
        self._fired = False
        self._done = threading.Event()

    @property
    def fired(self) -> bool:
        return self._fired

    def fire(self) -> bool:
        """Restore now; later calls are no-ops. Returns True on the first call."""
        with self._lock:
            if self._fired:
                return False
            self._fired = True
        try:
            self._clipboard.restore(self._snapshot)
            logger.trace("Clipboard restored (%d items)", len(self._snapshot.items))  # type: ignore[attr-defined]
        except Exception:
            logger.exception("Clipboard restore failed")
        finally:
            self._done.set()
        return True

    def wait(self, timeout: float | None = None) -> bool:
        """Block until the restore has run. Returns False on timeout."""
        return self._done.wait(timeout)


class ClipboardRestorer:
    """Schedules delayed restores on a non-daemon timer.

    The timer is not a daemon, so a restore still runs when the invoking
    code (or a one-shot CLI process) has otherwise finished.
    """

    def __init__(self, clipboard: IClipboard, delay: float = 0.25):
        self.clipboard = clipboard
        self.delay = delay

    def schedule(self, snapshot: ClipboardSnapshot, delay: float | None = None) -> RestoreHandle:
        handle = RestoreHandle(self.clipboard, snapshot)
        delay = self.delay if delay is None else delay
        if delay <= 0:
            handle.fire()
            return handle
        timer = threading.Timer(delay, handle.fire)
        timer.name = "clipboard-restore"
        timer.daemon = False
        timer.start()
        return handle


# ---------------------------------------------------------------------------
# X11 backend (xclip)
# ---------------------------------------------------------------------------

# Targets that describe the selection rather than carry data
_META_TARGETS = {
    "TARGETS", "TIMESTAMP", "MULTIPLE", "SAVE_TARGETS", "DELETE",
    "INSERT_PROPERTY", "INSERT_SELECTION", "LENGTH", "CLIENT_WINDOW",
}
# Preferred target when only one representation can be served back
_TEXT_TARGETS = ("UTF8_STRING", TEXT_TYPE, "text/plain", "STRING", "TEXT")
MAX_REPRESENTATIONS = 16
MAX_REPRESENTATION_BYTES = 8 * 1024 * 1024


def _clipboard_owner_id() -> int:
    """Return window ID of the CLIPBOARD owner via Xlib, or 0."""
    try:
        from Xlib import X, display as xdisplay
        d = xdisplay.Display()
        try:
            owner = d.get_selection_owner(d.intern_atom("CLIPBOARD"))
            return owner.id if owner and owner != X.NONE else 0
        finally:
            d.close()
    except Exception as exc:
        logger.trace("Cannot query CLIPBOARD owner: %s", exc)  # type: ignore[attr-defined]
        return 0


class X11Clipboard(IClipboard):
    """CLIPBOARD selection through ``xclip``.

    X11 has no change counter: one is derived from the selection owner, its
    ``TIMESTAMP`` and a digest of the text content, incremented whenever any
    of them changes.
    ``xclip`` serves a single target per owner, so a restore puts back the
    best text representation (or the first one when there is no text).
    """

    SELECTION = "clipboard"

    def __init__(self, system: ISystemAdapter, owner_fn: Callable[[], int] = _clipboard_owner_id):
        self._system = system
        self._owner_fn = owner_fn
        self._lock = threading.Lock()
        self._count = 0
        self._fingerprint: tuple[int, bytes, str] | None = None

    def _read(self, target: str | None = None, timeout: float = 0.3) -> bytes | None:
        args = ["xclip", "-o", "-selection", self.SELECTION]
        if target:
            args += ["-t", target]
        r = self._system.run_command(args, timeout=timeout)
        return r.stdout if r.ok else None

    def _write(self, data: bytes, target: str) -> None:
        r = self._system.run_command(
            ["xclip", "-i", "-selection", self.SELECTION, "-t", target],
            timeout=1.0, input=data, capture=False,
        )
        if not r.ok:
            logger.debug("xclip write (%s) failed: %s", target, r.stderr)

    def targets(self) -> list[str]:
        raw = self._read("TARGETS")
        if not raw:
            return []
        seen: list[str] = []
        for line in raw.decode("utf-8", errors="replace").splitlines():
            t = line.strip()
            if t and t not in _META_TARGETS and t not in seen:
                seen.append(t)
        return seen[:MAX_REPRESENTATIONS]

    def snapshot(self) -> ClipboardSnapshot:
        reps: list[tuple[str, bytes]] = []
        for target in self.targets():
            data = self._read(target, timeout=0.5)
            if data is None or len(data) > MAX_REPRESENTATION_BYTES:
                continue
            reps.append((target, data))
        if not reps:
            return ClipboardSnapshot()
        return ClipboardSnapshot((ClipboardItem(tuple(reps)),))

    def restore(self, snapshot: ClipboardSnapshot) -> None:
        if snapshot.is_empty:
            self._write(b"", "UTF8_STRING")
            return
        item = snapshot.items[0]
        for target in _TEXT_TARGETS:
            data = item.data(target)
            if data is not None:
                self._write(data, target)
                return
        target, data = item.representations[0]
        self._write(data, target)

    def change_count(self) -> int:
        text = self._read() or b""
        # TIMESTAMP changes on every new ownership, even by the same window
        # with the same text; owners that do not serve it read as empty.
        stamp = self._read("TIMESTAMP") or b""
        fingerprint = (self._owner_fn(), stamp, hashlib.sha1(text).hexdigest())
        with self._lock:
            if fingerprint != self._fingerprint:
                if self._fingerprint is not None:
                    self._count += 1
                self._fingerprint = fingerprint
            return self._count

    def read_text(self) -> str:
        data = self._read()
        return data.decode("utf-8", errors="replace") if data else ""

    def write_transient(self, text: str) -> None:
        # xclip can advertise only one target, so the KDE password-manager
        # hint cannot be offered next to the text; the entry is replaced by
        # the scheduled restore shortly after the paste.
        self._write(text.encode("utf-8"), "UTF8_STRING")

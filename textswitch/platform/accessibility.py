"""IAccessibilityAdapter interface, FocusedValue and the X11 implementation."""

from __future__ import annotations

import hashlib
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable

import textswitch.log  # registers TRACE level and logger.trace()
from textswitch.platform.system_adapter import ISystemAdapter
from textswitch.profiles.persistence import load_json, save_json

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FocusedValue:
    """Full text of the focused control plus its selection bounds (if known)."""

    text: str
    selection_start: int | None = None
    selection_end: int | None = None

    @property
    def selected_text(self) -> str:
        if self.selection_start is None or self.selection_end is None:
            return ""
        start = max(0, min(self.selection_start, len(self.text)))
        end = max(start, min(self.selection_end, len(self.text)))
        return self.text[start:end]


class IAccessibilityAdapter(ABC):
    @abstractmethod
    def read_focused_selection(self) -> str | None:
        """Selected text of the focused element, or None if unavailable."""

    @abstractmethod
    def read_focused_value(self) -> FocusedValue | None:
        """Whole value of the focused element with selection range, or None."""

    @abstractmethod
    def set_focused_selection(self, text: str) -> bool:
        """Replace the focused element's selection. True on success."""

    def mark_consumed(self) -> None:
        """Called once per trigger after the selection has been used."""


def _primary_owner_id() -> int:
    """Return window ID of the PRIMARY selection owner via Xlib, or 0."""
    try:
        from Xlib import X, Xatom, display as xdisplay
        d = xdisplay.Display()
        try:
            owner = d.get_selection_owner(Xatom.PRIMARY)
            return owner.id if owner and owner != X.NONE else 0
        finally:
            d.close()
    except Exception as exc:
        logger.trace("Cannot query PRIMARY owner: %s", exc)  # type: ignore[attr-defined]
        return 0


class X11AccessibilityAdapter(IAccessibilityAdapter):
    """X11 stand-in for an accessibility tree, built on the PRIMARY selection.

    On X11 whatever the user highlights becomes the PRIMARY selection, so it
    is the focused selection.  The focused value is the same text with a
    full-range selection: in terminals a triple-click selects the whole
    prompt line, which the terminal parser then cleans.  X11 offers no way to
    write into another client's selection, so :meth:`set_focused_selection`
    always defers to the clipboard paste.

    PRIMARY outlives the highlight that created it, so a selection is only
    offered while it is *fresh*: its fingerprint (owner window, selection
    ``TIMESTAMP`` and text) must differ from the one consumed by the previous
    trigger.  The consumed fingerprint is kept in *state_path* because every
    ``textswitch trigger`` runs in a new process.
    """

    STATE_KEY = "primary_fingerprint"

    def __init__(
        self,
        system: ISystemAdapter,
        owner_fn: Callable[[], int] = _primary_owner_id,
        timeout: float = 0.3,
        state_path: str | None = None,
    ) -> None:
        self._system = system
        self._owner_fn = owner_fn
        self._timeout = timeout
        self._state_path = state_path
        self._consumed: str | None = self._load_state()
        self._current: str | None = None

    def _load_state(self) -> str | None:
        if not self._state_path:
            return None
        try:
            state = load_json(self._state_path)
        except FileNotFoundError:
            return None
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring selection state %s: %s", self._state_path, exc)
            return None
        value = state.get(self.STATE_KEY) if isinstance(state, dict) else None
        return value if isinstance(value, str) else None

    def _fingerprint(self, owner_id: int, text: bytes) -> str:
        r = self._system.run_command(
            ["xclip", "-o", "-selection", "primary", "-t", "TIMESTAMP"], timeout=self._timeout,
        )
        stamp = r.stdout if r.ok else b""
        digest = hashlib.sha1(text)
        digest.update(b"\0" + stamp)
        return f"{owner_id:x}:{digest.hexdigest()}"

    def _primary(self) -> str | None:
        owner_id = self._owner_fn()
        if not owner_id:
            logger.trace("PRIMARY has no owner")  # type: ignore[attr-defined]
            return None
        r = self._system.run_command(["xclip", "-o", "-selection", "primary"], timeout=self._timeout)
        if not r.ok or not r.stdout:
            return None
        fingerprint = self._fingerprint(owner_id, r.stdout)
        if fingerprint == self._consumed:
            logger.debug("PRIMARY unchanged since the last conversion; ignoring it")
            return None
        self._current = fingerprint
        return r.text

    def read_focused_selection(self) -> str | None:
        return self._primary()

    def read_focused_value(self) -> FocusedValue | None:
        text = self._primary()
        if text is None:
            return None
        return FocusedValue(text, 0, len(text))

    def set_focused_selection(self, text: str) -> bool:
        return False

    def mark_consumed(self) -> None:
        """Remember the PRIMARY read by this trigger so the next one skips it."""
        if self._current is None or self._current == self._consumed:
            return
        self._consumed, self._current = self._current, None
        if not self._state_path:
            return
        try:
            save_json(self._state_path, {self.STATE_KEY: self._consumed})
        except OSError as exc:
            logger.warning("Cannot save selection state to %s: %s", self._state_path, exc)

"""VirtualKeyboard — wraps evdev.UInput for keystroke and shortcut injection."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Sequence

logger = logging.getLogger(__name__)

# evdev keycodes (layout independent: ctrl+C stays ctrl+C under any layout)
KEY_BACKSPACE = 14
KEY_LEFTCTRL = 29
KEY_LEFTSHIFT = 42
KEY_C = 46
KEY_V = 47
KEY_RIGHTSHIFT = 54
KEY_LEFTALT = 56
KEY_RIGHTCTRL = 97
KEY_RIGHTALT = 100
KEY_END = 107
KEY_LEFTMETA = 125
KEY_RIGHTMETA = 126

MODIFIER_KEYS = (
    KEY_LEFTCTRL, KEY_RIGHTCTRL, KEY_LEFTSHIFT, KEY_RIGHTSHIFT,
    KEY_LEFTALT, KEY_RIGHTALT, KEY_LEFTMETA, KEY_RIGHTMETA,
)

# Named host shortcuts: (modifiers, key)
SHORTCUTS: dict[str, tuple[tuple[int, ...], int]] = {
    "copy": ((KEY_LEFTCTRL,), KEY_C),
    "paste": ((KEY_LEFTCTRL,), KEY_V),
    "terminal_copy": ((KEY_LEFTCTRL, KEY_LEFTSHIFT), KEY_C),
    "terminal_paste": ((KEY_LEFTCTRL, KEY_LEFTSHIFT), KEY_V),
    "end_of_line": ((), KEY_END),
}


class IKeyboard(ABC):
    @abstractmethod
    def tap_key(self, keycode: int, n_times: int = 1, modifiers: Sequence[int] = ()) -> None:
        """Press and release *keycode* n times, holding *modifiers* around each tap."""

    @abstractmethod
    def send_shortcut(self, name: str) -> None:
        """Emit a named shortcut from :data:`SHORTCUTS`."""

    @abstractmethod
    def release_modifiers(self) -> None:
        """Release every modifier so injected keys carry no inherited flags."""


class VirtualKeyboard(IKeyboard):
    """Creates and manages a UInput virtual keyboard device."""

    DEVICE_NAME = "TextSwitch Virtual Keyboard"

    # Delay between press and release, and between successive key taps.
    # Without a pause many applications (GTK, Qt, X terminals) drop events
    # when they arrive faster than the input processing loop runs.
    KEY_PRESS_DELAY = 0.001    # 1 ms between press and release
    KEY_REPEAT_DELAY = 0.001   # 1 ms between successive key taps

    # X / libinput ignore events from a freshly created uinput device until
    # it has been registered; the first write waits this long after creation.
    DEVICE_SETTLE_DELAY = 0.15

    def __init__(self, debug: bool = False):
        self.debug = debug
        self._uinput: Any = None
        self._opened_at: float | None = None
        self._open()

    def _open(self) -> None:
        try:
            import evdev
            self._uinput = evdev.UInput(name=self.DEVICE_NAME)
            self._opened_at = time.monotonic()
        except Exception as e:
            logger.warning("Cannot create UInput device: %s", e)

    @property
    def available(self) -> bool:
        return self._uinput is not None

    def tap_key(self, keycode: int, n_times: int = 1, modifiers: Sequence[int] = ()) -> None:
        for i in range(n_times):
            for mod in modifiers:
                self._write(mod, 1)
            self._write(keycode, 1)
            time.sleep(self.KEY_PRESS_DELAY)
            self._write(keycode, 0)
            for mod in reversed(modifiers):
                self._write(mod, 0)
            if i < n_times - 1:
                time.sleep(self.KEY_REPEAT_DELAY)

    def send_shortcut(self, name: str) -> None:
        try:
            modifiers, key = SHORTCUTS[name]
        except KeyError:
            raise ValueError(f"Unknown shortcut: {name!r}") from None
        if self.debug:
            logger.debug("Shortcut %s", name)
        self.tap_key(key, modifiers=modifiers)
        time.sleep(self.KEY_REPEAT_DELAY)

    def release_modifiers(self) -> None:
        for mod in MODIFIER_KEYS:
            self._write(mod, 0)
        time.sleep(self.KEY_PRESS_DELAY)

    def _settle(self) -> None:
        """Block until the device is old enough for its events to be delivered."""
        if self._opened_at is None:
            return
        remaining = self.DEVICE_SETTLE_DELAY - (time.monotonic() - self._opened_at)
        self._opened_at = None
        if remaining > 0:
            logger.debug("Waiting %.3fs for the virtual keyboard to register", remaining)
            time.sleep(remaining)

    def _write(self, code: int, value: int) -> None:
        if self._uinput is None:
            return
        self._settle()
        try:
            from evdev import ecodes
            self._uinput.write(ecodes.EV_KEY, code, value)
            self._uinput.syn()
        except Exception as e:
            logger.debug("VirtualKeyboard write error: %s", e)

    def close(self) -> None:
        if self._uinput is not None:
            try:
                self._uinput.close()
            except OSError:
                pass
            self._uinput = None

"""ILayoutSwitcher interface and X11XKBAdapter implementation."""

from __future__ import annotations

import ctypes
import ctypes.util
import logging
from abc import ABC, abstractmethod

from textswitch.platform.system_adapter import ISystemAdapter

logger = logging.getLogger(__name__)


class ILayoutSwitcher(ABC):
    @abstractmethod
    def switch_to_next_layout(self) -> str | None:
        """Activate the next keyboard layout; return its name (None on failure)."""


class XkbStateRec(ctypes.Structure):
    """Minimal XkbStateRec — only the fields we need."""
    _fields_ = [
        ("group", ctypes.c_ubyte),
        ("locked_group", ctypes.c_ubyte),
        ("base_group", ctypes.c_ushort),
        ("latched_group", ctypes.c_ushort),
        ("mods", ctypes.c_ubyte),
        ("base_mods", ctypes.c_ubyte),
        ("latched_mods", ctypes.c_ubyte),
        ("locked_mods", ctypes.c_ubyte),
        ("compat_state", ctypes.c_ubyte),
        ("grab_mods", ctypes.c_ubyte),
        ("compat_grab_mods", ctypes.c_ubyte),
        ("lookup_mods", ctypes.c_ubyte),
        ("compat_lookup_mods", ctypes.c_ubyte),
        ("ptr_buttons", ctypes.c_ushort),
    ]


def parse_setxkbmap_layouts(output: str) -> list[str]:
    """``layout:     us,ru`` line of ``setxkbmap -query`` → ['us', 'ru']."""
    for line in output.splitlines():
        if line.startswith("layout:"):
            raw = line.split(":", 1)[1].strip()
            return [part.strip() for part in raw.split(",") if part.strip()]
    return []


class X11XKBAdapter(ILayoutSwitcher):
    """Cycles XKB groups through libX11 (``XkbGetState`` / ``XkbLockGroup``)."""

    XKB_USE_CORE_KBD = 0x0100

    def __init__(self, system: ISystemAdapter, debug: bool = False) -> None:
        self._system = system
        self._debug = debug
        self._libX11 = self._load_libx11()

    @staticmethod
    def _load_libx11():
        path = ctypes.util.find_library("X11")
        if not path:
            return None
        try:
            lib = ctypes.cdll.LoadLibrary(path)
        except OSError:
            return None
        lib.XOpenDisplay.argtypes = [ctypes.c_char_p]
        lib.XOpenDisplay.restype = ctypes.c_void_p
        lib.XCloseDisplay.argtypes = [ctypes.c_void_p]
        lib.XCloseDisplay.restype = ctypes.c_int
        lib.XkbGetState.argtypes = [ctypes.c_void_p, ctypes.c_uint, ctypes.POINTER(XkbStateRec)]
        lib.XkbGetState.restype = ctypes.c_int
        lib.XkbLockGroup.argtypes = [ctypes.c_void_p, ctypes.c_uint, ctypes.c_uint]
        lib.XkbLockGroup.restype = ctypes.c_int
        lib.XSync.argtypes = [ctypes.c_void_p, ctypes.c_int]
        lib.XSync.restype = ctypes.c_int
        return lib

    def layouts(self) -> list[str]:
        r = self._system.run_command(["setxkbmap", "-query"], timeout=2.0)
        return parse_setxkbmap_layouts(r.text) if r.ok else []

    def switch_to_next_layout(self) -> str | None:
        layouts = self.layouts()
        if len(layouts) < 2:
            logger.debug("Fewer than two layouts configured (%s); not switching", layouts)
            return None
        if self._libX11 is None:
            logger.warning("libX11 not found; cannot switch layout")
            return None

        dpy = self._libX11.XOpenDisplay(None)
        if not dpy:
            logger.warning("Cannot open X display; cannot switch layout")
            return None
        try:
            state = XkbStateRec()
            current = 0
            if self._libX11.XkbGetState(dpy, self.XKB_USE_CORE_KBD, ctypes.byref(state)) == 0:
                current = int(state.group)
            new_index = (current + 1) % len(layouts)
            self._libX11.XkbLockGroup(dpy, self.XKB_USE_CORE_KBD, new_index)
            self._libX11.XSync(dpy, 0)
        finally:
            self._libX11.XCloseDisplay(dpy)

        logger.debug("Switched layout %s → %s", layouts[current % len(layouts)], layouts[new_index])
        return layouts[new_index]

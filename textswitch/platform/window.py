"""IWindowAdapter — identifies the application that owns keyboard focus.

The identifier is the X11 ``WM_CLASS`` class name (``Gnome-terminal``,
``kitty``, ``firefox``), the closest thing X11 has to an application
bundle id.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod

import textswitch.log  # registers TRACE level and logger.trace()
from textswitch.platform.system_adapter import ISystemAdapter

logger = logging.getLogger(__name__)


class IWindowAdapter(ABC):
    @abstractmethod
    def frontmost_application_id(self) -> str:
        """Identifier of the focused application, '' if unknown."""


def parse_xprop_wm_class(output: str) -> str:
    """``WM_CLASS(STRING) = "gnome-terminal-server", "Gnome-terminal"`` → class."""
    if "WM_CLASS" not in output or '"' not in output:
        return ""
    parts = [p.strip().strip('"') for p in output.split("=", 1)[-1].split(",")]
    parts = [p for p in parts if p]
    return parts[-1] if parts else ""


class XlibWindowAdapter(IWindowAdapter):
    """Reads ``_NET_ACTIVE_WINDOW`` and its ``WM_CLASS`` via python-xlib.

    Falls back to ``xdotool getwindowfocus`` + ``xprop`` when the window
    manager does not publish ``_NET_ACTIVE_WINDOW``.
    """

    def __init__(self, system: ISystemAdapter | None = None) -> None:
        self._system = system

    def _from_xlib(self) -> str:
        try:
            from Xlib import X, display as xdisplay
            d = xdisplay.Display()
        except Exception as exc:
            logger.trace("Xlib display unavailable: %s", exc)  # type: ignore[attr-defined]
            return ""
        try:
            root = d.screen().root
            prop = root.get_full_property(d.intern_atom("_NET_ACTIVE_WINDOW"), X.AnyPropertyType)
            if not prop or not prop.value or not prop.value[0]:
                return ""
            window = d.create_resource_object("window", int(prop.value[0]))
            wm_class = window.get_wm_class()
            if not wm_class:
                return ""
            instance, klass = wm_class
            return klass or instance or ""
        except Exception as exc:
            logger.trace("Xlib WM_CLASS lookup failed: %s", exc)  # type: ignore[attr-defined]
            return ""
        finally:
            d.close()

    def _from_xprop(self) -> str:
        if self._system is None:
            return ""
        wid = self._system.run_command(["xdotool", "getwindowfocus"], timeout=0.3).text.strip()
        if not wid:
            return ""
        res = self._system.run_command(["xprop", "-id", wid, "WM_CLASS"], timeout=0.5)
        return parse_xprop_wm_class(res.text)

    def frontmost_application_id(self) -> str:
        app_id = self._from_xlib() or self._from_xprop()
        logger.debug("Frontmost application: %r", app_id)
        return app_id

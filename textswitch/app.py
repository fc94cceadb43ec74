"""TextSwitchApp — composition root wiring store, platform adapters and pipeline."""

from __future__ import annotations

import logging

import textswitch.log  # registers TRACE level and logger.trace()
from textswitch.config import ConfigManager
from textswitch.core.acquisition import SelectionAcquisitionChain
from textswitch.core.event_bus import EventBus
from textswitch.core.events import EventType
from textswitch.core.pipeline import Pipeline
from textswitch.core.replacement import ReplacementChain
from textswitch.core.states import TriggerContext
from textswitch.core.transformer import Transformer
from textswitch.platform.clipboard import ClipboardRestorer
from textswitch.profiles.store import ProfileStore

logger = logging.getLogger(__name__)


class TextSwitchApp:
    """Owns the single ProfileStore and builds the pipeline around it.

    ``_init_platform()`` is separated from ``__init__`` so that tests
    can inject mocks without touching real X11 / evdev resources.
    """

    def __init__(self, config_path: str | None = None, debug: bool = False):
        self.debug = debug
        self.config = ConfigManager(config_path=config_path, debug=debug)
        if debug:
            self.config.set('debug', True)

        self.store = ProfileStore.open(self.config.profiles_path)
        self.transformer = Transformer(self.store)
        self.event_bus = EventBus()

        # Platform adapters, created by _init_platform()
        self.system = None
        self.window = None
        self.accessibility = None
        self.clipboard = None
        self.keyboard = None
        self.layout = None
        self.pipeline: Pipeline | None = None

    def _init_platform(self) -> None:
        """Create the X11 / evdev adapters."""
        from textswitch.input.virtual_keyboard import VirtualKeyboard
        from textswitch.platform.accessibility import X11AccessibilityAdapter
        from textswitch.platform.clipboard import X11Clipboard
        from textswitch.platform.subprocess_impl import SubprocessSystemAdapter
        from textswitch.platform.window import XlibWindowAdapter
        from textswitch.platform.xkb_adapter import X11XKBAdapter

        self.system = SubprocessSystemAdapter(debug=self.debug)
        self.window = XlibWindowAdapter(self.system)
        self.accessibility = X11AccessibilityAdapter(self.system, state_path=self.config.state_path)
        self.clipboard = X11Clipboard(self.system)
        self.keyboard = VirtualKeyboard(debug=self.debug)
        self.layout = X11XKBAdapter(self.system, debug=self.debug)

    def build_pipeline(self) -> Pipeline:
        """Assemble chains and pipeline from the current adapters and config."""
        if self.window is None:
            self._init_platform()
        cfg = self.config
        restorer = ClipboardRestorer(self.clipboard, delay=cfg.get('clipboard_restore_delay'))
        acquisition = SelectionAcquisitionChain.default(
            self.accessibility, self.clipboard, self.keyboard,
            timeout=cfg.get('clipboard_timeout'),
        )
        replacement = ReplacementChain.default(
            self.accessibility, self.clipboard, self.keyboard, restorer,
            backspace_ceiling=cfg.get('backspace_ceiling'),
            backspace_padding=cfg.get('backspace_padding'),
        )
        self.pipeline = Pipeline(
            self.transformer,
            self.window,
            self.accessibility,
            acquisition,
            replacement,
            layout=self.layout,
            terminal_apps=cfg.get('terminal_apps'),
            switch_layout_after_convert=cfg.get('switch_layout_after_convert'),
        )
        self.pipeline.attach(self.event_bus)
        return self.pipeline

    def trigger(self) -> TriggerContext:
        """Run one pipeline invocation and return its context."""
        if self.pipeline is None:
            self.build_pipeline()
        return self.pipeline.handle_trigger()

    def press_hotkey(self) -> None:
        """Publish ``HOTKEY_PRESSED`` the way an external hotkey source would."""
        if self.pipeline is None:
            self.build_pipeline()
        self.event_bus.emit(EventType.HOTKEY_PRESSED)

    def close(self) -> None:
        if self.keyboard is not None and hasattr(self.keyboard, 'close'):
            self.keyboard.close()

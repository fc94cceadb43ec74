"""Replacement chain — writes converted text back into the focused application.

Standard path: :class:`AccessibilitySetStrategy`, then
:class:`ClipboardPasteStrategy`.

Terminal path: terminals will not let a paste overwrite the prompt, so the
old command is physically erased first (:class:`TerminalEraseStrategy`:
End, then BackSpace once per character) and the new text is pasted with
the terminal paste shortcut.

Every strategy that touches the clipboard schedules exactly one restore of
the full snapshot it took, whether or not the paste worked.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Sequence

import textswitch.log  # registers TRACE level and logger.trace()
from textswitch.core.results import Deferred, Failed, Found, StrategyResult, describe
from textswitch.errors import ReplacementFailed
from textswitch.input.virtual_keyboard import KEY_BACKSPACE
from textswitch.platform.clipboard import ClipboardRestorer

if TYPE_CHECKING:
    from textswitch.input.virtual_keyboard import IKeyboard
    from textswitch.platform.accessibility import IAccessibilityAdapter
    from textswitch.platform.clipboard import IClipboard

logger = logging.getLogger(__name__)

DEFAULT_BACKSPACE_CEILING = 300
DEFAULT_BACKSPACE_PADDING = 2

# Pause after erasing so the terminal has consumed every BackSpace before
# the paste arrives.
ERASE_SETTLE_DELAY = 0.03
# Pause between writing the clipboard and sending the paste shortcut.
CLIPBOARD_SETTLE_DELAY = 0.02


class ReplacementStrategy(ABC):
    name: str = "strategy"

    @abstractmethod
    def replace(self, text: str) -> StrategyResult:
        """``Found`` when *text* was written, ``Deferred``/``Failed`` otherwise."""


class AccessibilitySetStrategy(ReplacementStrategy):
    name = "accessibility-set"

    def __init__(self, accessibility: "IAccessibilityAdapter"):
        self.accessibility = accessibility

    def replace(self, text: str) -> StrategyResult:
        if self.accessibility.set_focused_selection(text):
            return Found(text)
        return Deferred("focused element rejected direct set")


class ClipboardPasteStrategy(ReplacementStrategy):
    """Snapshot clipboard, write transient text, paste, restore later."""

    name = "clipboard-paste"

    def __init__(
        self,
        clipboard: "IClipboard",
        keyboard: "IKeyboard",
        restorer: ClipboardRestorer,
        shortcut: str = "paste",
    ):
        self.clipboard = clipboard
        self.keyboard = keyboard
        self.restorer = restorer
        self.shortcut = shortcut

    def replace(self, text: str) -> StrategyResult:
        snapshot = self.clipboard.snapshot()
        try:
            self.clipboard.write_transient(text)
            time.sleep(CLIPBOARD_SETTLE_DELAY)
            self.keyboard.send_shortcut(self.shortcut)
        finally:
            # Slow hosts read the clipboard some time after the shortcut
            handle = self.restorer.schedule(snapshot)
        return Found(text, restore=handle)


class TerminalEraseStrategy:
    """Erase the current command line: End, then BackSpace × length.

    The count is ``len(command) + padding`` capped at *ceiling*, so a
    miscomputed length cannot turn into runaway input.  Modifiers still
    held from the hotkey are released first so each BackSpace is bare.
    """

    name = "terminal-erase"

    def __init__(
        self,
        keyboard: "IKeyboard",
        ceiling: int = DEFAULT_BACKSPACE_CEILING,
        padding: int = DEFAULT_BACKSPACE_PADDING,
    ):
        self.keyboard = keyboard
        self.ceiling = ceiling
        self.padding = padding

    def backspace_count(self, command: str) -> int:
        return max(0, min(len(command) + self.padding, self.ceiling))

    def erase(self, command: str) -> StrategyResult:
        count = self.backspace_count(command)
        self.keyboard.release_modifiers()
        self.keyboard.send_shortcut("end_of_line")
        self.keyboard.tap_key(KEY_BACKSPACE, count, modifiers=())
        time.sleep(ERASE_SETTLE_DELAY)
        logger.debug("Erased terminal line with %d backspaces", count)
        return Found("")


class ReplacementChain:
    def __init__(
        self,
        strategies: Sequence[ReplacementStrategy],
        terminal_erase: TerminalEraseStrategy | None = None,
        terminal_insert: ReplacementStrategy | None = None,
    ):
        self.strategies = list(strategies)
        self.terminal_erase = terminal_erase
        self.terminal_insert = terminal_insert

    @classmethod
    def default(
        cls,
        accessibility: "IAccessibilityAdapter",
        clipboard: "IClipboard",
        keyboard: "IKeyboard",
        restorer: ClipboardRestorer,
        backspace_ceiling: int = DEFAULT_BACKSPACE_CEILING,
        backspace_padding: int = DEFAULT_BACKSPACE_PADDING,
    ) -> "ReplacementChain":
        return cls(
            [
                AccessibilitySetStrategy(accessibility),
                ClipboardPasteStrategy(clipboard, keyboard, restorer),
            ],
            terminal_erase=TerminalEraseStrategy(keyboard, backspace_ceiling, backspace_padding),
            terminal_insert=ClipboardPasteStrategy(clipboard, keyboard, restorer, shortcut="terminal_paste"),
        )

    @staticmethod
    def _attempt(strategy: ReplacementStrategy, text: str) -> StrategyResult:
        try:
            return strategy.replace(text)
        except Exception as exc:
            logger.debug("Replacement strategy %s raised", strategy.name, exc_info=True)
            return Failed(f"{type(exc).__name__}: {exc}", exc)

    def _run(self, strategies: Sequence[ReplacementStrategy], text: str) -> str:
        reasons: list[str] = []
        for strategy in strategies:
            result = self._attempt(strategy, text)
            line = describe(strategy.name, result)
            logger.trace(line)  # type: ignore[attr-defined]
            if isinstance(result, Found):
                logger.debug("Replaced text via %s", strategy.name)
                return strategy.name
            reasons.append(line)
        raise ReplacementFailed(reasons)

    def replace(self, text: str) -> str:
        """Standard path. Returns the name of the strategy that succeeded."""
        return self._run(self.strategies, text)

    def replace_in_terminal(self, command: str, text: str) -> str:
        """Erase *command* from the prompt line, then paste *text*."""
        if self.terminal_erase is None or self.terminal_insert is None:
            raise ReplacementFailed(["terminal replacement not configured"])
        try:
            self.terminal_erase.erase(command)
        except Exception as exc:
            logger.debug("Terminal erase raised", exc_info=True)
            raise ReplacementFailed([f"{self.terminal_erase.name}: failed ({exc})"]) from exc
        return self._run([self.terminal_insert], text)

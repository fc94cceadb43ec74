"""Selection acquisition chain — obtains the text the user wants converted.

Strategies, in order:

1. :class:`DirectSelectionStrategy` — the focused element's selected text.
2. :class:`ValueRangeStrategy` — the focused element's value sliced by its
   selection range, for controls that expose value but not selection.
3. :class:`ClipboardCopyStrategy` — simulate copy and read the clipboard.
   Last, because it disturbs the clipboard and its latency depends on the
   host application.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Sequence

import textswitch.log  # registers TRACE level and logger.trace()
from textswitch.core.results import Deferred, Failed, Found, StrategyResult, describe
from textswitch.errors import AcquisitionFailed, TimeoutExceeded
from textswitch.platform.clipboard import POLL_TIMEOUT, wait_for_change

if TYPE_CHECKING:
    from textswitch.input.virtual_keyboard import IKeyboard
    from textswitch.platform.accessibility import IAccessibilityAdapter
    from textswitch.platform.clipboard import IClipboard

logger = logging.getLogger(__name__)


class AcquisitionStrategy(ABC):
    name: str = "strategy"

    @abstractmethod
    def acquire(self) -> StrategyResult:
        """Return ``Found(text)``, ``Deferred`` or ``Failed``."""


class DirectSelectionStrategy(AcquisitionStrategy):
    name = "direct-selection"

    def __init__(self, accessibility: "IAccessibilityAdapter"):
        self.accessibility = accessibility

    def acquire(self) -> StrategyResult:
        text = self.accessibility.read_focused_selection()
        if text:
            return Found(text)
        return Deferred("no selected text exposed")


class ValueRangeStrategy(AcquisitionStrategy):
    name = "value-range"

    def __init__(self, accessibility: "IAccessibilityAdapter"):
        self.accessibility = accessibility

    def acquire(self) -> StrategyResult:
        value = self.accessibility.read_focused_value()
        if value is None:
            return Deferred("no value exposed")
        selected = value.selected_text
        if selected:
            return Found(selected)
        return Deferred("value has no selection range")


class ClipboardCopyStrategy(AcquisitionStrategy):
    """Copy via the host shortcut, then read the clipboard.

    The clipboard is snapshotted first and restored after reading, so a
    failed or successful acquisition leaves it as it was found.
    """

    name = "clipboard-copy"

    def __init__(
        self,
        clipboard: "IClipboard",
        keyboard: "IKeyboard",
        timeout: float = POLL_TIMEOUT,
        shortcut: str = "copy",
    ):
        self.clipboard = clipboard
        self.keyboard = keyboard
        self.timeout = timeout
        self.shortcut = shortcut

    def acquire(self) -> StrategyResult:
        snapshot = self.clipboard.snapshot()
        original_count = self.clipboard.change_count()
        try:
            self.keyboard.send_shortcut(self.shortcut)
            if not wait_for_change(self.clipboard, original_count, timeout=self.timeout):
                err = TimeoutExceeded("clipboard change after copy", self.timeout)
                return Failed(str(err), err)
            text = self.clipboard.read_text()
        finally:
            if self.clipboard.change_count() != original_count:
                self.clipboard.restore(snapshot)
        if text:
            return Found(text)
        return Deferred("clipboard holds no text")


class SelectionAcquisitionChain:
    """Tries each strategy in order; the first non-empty ``Found`` wins."""

    def __init__(self, strategies: Sequence[AcquisitionStrategy]):
        self.strategies = list(strategies)

    @classmethod
    def default(
        cls,
        accessibility: "IAccessibilityAdapter",
        clipboard: "IClipboard",
        keyboard: "IKeyboard",
        timeout: float = POLL_TIMEOUT,
    ) -> "SelectionAcquisitionChain":
        return cls([
            DirectSelectionStrategy(accessibility),
            ValueRangeStrategy(accessibility),
            ClipboardCopyStrategy(clipboard, keyboard, timeout=timeout),
        ])

    def acquire(self) -> str:
        """Return the acquired text or raise :class:`AcquisitionFailed`."""
        reasons: list[str] = []
        for strategy in self.strategies:
            try:
                result = strategy.acquire()
            except Exception as exc:
                logger.debug("Acquisition strategy %s raised", strategy.name, exc_info=True)
                result = Failed(f"{type(exc).__name__}: {exc}", exc)
            line = describe(strategy.name, result)
            logger.trace(line)  # type: ignore[attr-defined]
            if isinstance(result, Found) and result.text:
                logger.debug("Acquired %d chars via %s", len(result.text), strategy.name)
                return result.text
            reasons.append(line)
        raise AcquisitionFailed(reasons)

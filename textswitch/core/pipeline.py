"""Pipeline — the orchestrator run once per trigger.

``IDLE → DISPATCHING → {TERMINAL_PATH | STANDARD_PATH} → DONE → IDLE``

Terminal path: read the focused value, extract the typed command, convert,
erase the line and paste.  Standard path: acquisition chain, prompt
cleanup, convert, replacement chain.  Identical output short-circuits before
anything is replaced.  Pipeline failures are expected against uncooperative
applications: they are logged and swallowed, never raised to the trigger.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Iterable

import textswitch.log  # registers TRACE level and logger.trace()
from textswitch.config import DEFAULT_TERMINAL_APPS
from textswitch.core.events import ConversionEventData, Event, EventType
from textswitch.core.states import Outcome, PipelineState, TriggerContext
from textswitch.core.terminal import clean_selection, extract_command, is_terminal_app
from textswitch.errors import AcquisitionFailed, PipelineError, ReplacementFailed

if TYPE_CHECKING:
    from textswitch.core.acquisition import SelectionAcquisitionChain
    from textswitch.core.event_bus import EventBus
    from textswitch.core.replacement import ReplacementChain
    from textswitch.core.transformer import Transformer
    from textswitch.platform.accessibility import IAccessibilityAdapter
    from textswitch.platform.window import IWindowAdapter
    from textswitch.platform.xkb_adapter import ILayoutSwitcher

logger = logging.getLogger(__name__)


def _clip(text: str, limit: int = 50) -> str:
    return text if len(text) <= limit else text[:limit] + "…"


class Pipeline:
    def __init__(
        self,
        transformer: "Transformer",
        window: "IWindowAdapter",
        accessibility: "IAccessibilityAdapter",
        acquisition: "SelectionAcquisitionChain",
        replacement: "ReplacementChain",
        layout: "ILayoutSwitcher | None" = None,
        event_bus: "EventBus | None" = None,
        terminal_apps: Iterable[str] = DEFAULT_TERMINAL_APPS,
        switch_layout_after_convert: bool = True,
    ):
        self.transformer = transformer
        self.window = window
        self.accessibility = accessibility
        self.acquisition = acquisition
        self.replacement = replacement
        self.layout = layout
        self.event_bus = event_bus
        self.terminal_apps = frozenset(a.lower() for a in terminal_apps)
        self.switch_layout_after_convert = switch_layout_after_convert

    def attach(self, event_bus: "EventBus") -> None:
        """Run :meth:`handle_trigger` on every ``HOTKEY_PRESSED`` event."""
        self.event_bus = event_bus
        event_bus.subscribe(EventType.HOTKEY_PRESSED, self._on_hotkey)

    def _on_hotkey(self, event: Event) -> None:
        self.handle_trigger()

    # ------------------------------------------------------------------

    def handle_trigger(self) -> TriggerContext:
        """Run one conversion. Always returns; the context reports what happened."""
        ctx = TriggerContext()
        ctx.transition(PipelineState.DISPATCHING)
        try:
            ctx.app_id = self.window.frontmost_application_id()
            if is_terminal_app(ctx.app_id, self.terminal_apps):
                ctx.transition(PipelineState.TERMINAL_PATH)
                self._run_terminal(ctx)
            else:
                ctx.transition(PipelineState.STANDARD_PATH)
                self._run_standard(ctx)
        except AcquisitionFailed as exc:
            ctx.outcome, ctx.error = Outcome.NO_TEXT, exc
            logger.debug("Nothing to convert in %r: %s", ctx.app_id, exc)
        except ReplacementFailed as exc:
            ctx.outcome, ctx.error = Outcome.NOT_REPLACED, exc
            logger.debug("Could not replace text in %r: %s", ctx.app_id, exc)
        except PipelineError as exc:
            ctx.outcome, ctx.error = Outcome.NO_TEXT, exc
            logger.debug("Pipeline gave up in %r: %s", ctx.app_id, exc)
        except Exception as exc:
            ctx.outcome, ctx.error = Outcome.ERROR, exc
            logger.exception("Unexpected error while converting in %r", ctx.app_id)
        finally:
            ctx.transition(PipelineState.DONE)
            self.accessibility.mark_consumed()
            self._finish(ctx)
            ctx.transition(PipelineState.IDLE)
        return ctx

    def _run_terminal(self, ctx: TriggerContext) -> None:
        value = self.accessibility.read_focused_value()
        if value is None or not value.text.strip():
            raise AcquisitionFailed(["terminal: focused value is empty"])
        command = extract_command(value.text)
        logger.debug("Terminal command: %r", _clip(command))
        if not self._convert(ctx, command):
            return
        ctx.strategy = self.replacement.replace_in_terminal(command, ctx.converted)
        ctx.outcome = Outcome.CONVERTED

    def _run_standard(self, ctx: TriggerContext) -> None:
        text = clean_selection(self.acquisition.acquire())
        if not self._convert(ctx, text):
            return
        ctx.strategy = self.replacement.replace(ctx.converted)
        ctx.outcome = Outcome.CONVERTED

    def _convert(self, ctx: TriggerContext, text: str) -> bool:
        ctx.original = text
        ctx.converted = self.transformer.transform(text)
        if ctx.converted == text:
            ctx.outcome = Outcome.UNCHANGED
            logger.debug("Transform left %r unchanged; nothing to replace", _clip(text))
            return False
        return True

    def _finish(self, ctx: TriggerContext) -> None:
        if not ctx.converted_ok:
            self._emit(EventType.CONVERSION_CANCELLED, ctx.outcome)
            return
        path = "terminal" if PipelineState.TERMINAL_PATH in ctx.history else "standard"
        logger.info(
            "Converted %r → %r in %r (%s, via %s)",
            _clip(ctx.original), _clip(ctx.converted), ctx.app_id, path, ctx.strategy,
        )
        if self.switch_layout_after_convert and self.layout is not None:
            try:
                new_layout = self.layout.switch_to_next_layout()
            except Exception:
                logger.exception("Layout switch failed")
            else:
                if new_layout:
                    self._emit(EventType.LAYOUT_CHANGED, new_layout)
        self._emit(
            EventType.CONVERSION_COMPLETE,
            ConversionEventData(ctx.original, ctx.converted, path, ctx.app_id),
        )

    def _emit(self, event_type: EventType, data) -> None:
        if self.event_bus is not None:
            self.event_bus.emit(event_type, data)

"""Pipeline states and the per-trigger TriggerContext."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto

import textswitch.log  # registers TRACE level and logger.trace()

logger = logging.getLogger(__name__)


class PipelineState(Enum):
    IDLE = auto()
    DISPATCHING = auto()
    TERMINAL_PATH = auto()
    STANDARD_PATH = auto()
    DONE = auto()


class Outcome(Enum):
    PENDING = auto()
    CONVERTED = auto()      # text replaced
    UNCHANGED = auto()      # transform produced identical text
    NO_TEXT = auto()        # acquisition failed
    NOT_REPLACED = auto()   # replacement failed
    ERROR = auto()          # unexpected exception, swallowed


# Allowed transitions of the orchestrator state machine
TRANSITIONS: dict[PipelineState, set[PipelineState]] = {
    PipelineState.IDLE: {PipelineState.DISPATCHING},
    PipelineState.DISPATCHING: {PipelineState.TERMINAL_PATH, PipelineState.STANDARD_PATH, PipelineState.DONE},
    PipelineState.TERMINAL_PATH: {PipelineState.DONE},
    PipelineState.STANDARD_PATH: {PipelineState.DONE},
    PipelineState.DONE: {PipelineState.IDLE},
}


@dataclass
class TriggerContext:
    """Everything one trigger touches; never shared between invocations."""

    state: PipelineState = PipelineState.IDLE
    history: list[PipelineState] = field(default_factory=lambda: [PipelineState.IDLE])
    outcome: Outcome = Outcome.PENDING
    app_id: str = ""
    original: str = ""
    converted: str = ""
    strategy: str = ""
    error: Exception | None = None

    def transition(self, new_state: PipelineState) -> None:
        if new_state not in TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal pipeline transition {self.state.name} → {new_state.name}")
        logger.trace("Pipeline: %s → %s", self.state.name, new_state.name)  # type: ignore[attr-defined]
        self.state = new_state
        self.history.append(new_state)

    @property
    def converted_ok(self) -> bool:
        return self.outcome is Outcome.CONVERTED

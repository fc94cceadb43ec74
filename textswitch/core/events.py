"""Typed event definitions (dataclasses)."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any


class EventType(Enum):
    # Trigger
    HOTKEY_PRESSED = auto()
    # Conversion lifecycle
    CONVERSION_COMPLETE = auto()
    CONVERSION_CANCELLED = auto()
    # Layout
    LAYOUT_CHANGED = auto()


@dataclass
class Event:
    type: EventType
    data: Any
    timestamp: float


@dataclass
class ConversionEventData:
    original: str
    converted: str
    path: str            # "terminal" | "standard"
    app_id: str = ""

"""Tagged results returned by acquisition and replacement strategies.

A strategy either produced what was asked (``Found``), has nothing to say
for this host and lets the next strategy try (``Deferred``), or tried and
broke (``Failed``).  Chains iterate until ``Found`` or exhaustion.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from textswitch.platform.clipboard import RestoreHandle


@dataclass(frozen=True)
class Found:
    text: str = ""
    # pending clipboard restore scheduled by the strategy, if any
    restore: RestoreHandle | None = None


@dataclass(frozen=True)
class Deferred:
    reason: str = ""


@dataclass(frozen=True)
class Failed:
    reason: str
    error: Exception | None = None


StrategyResult = Union[Found, Deferred, Failed]


def describe(name: str, result: StrategyResult) -> str:
    """Short human-readable line for logs and error reasons."""
    if isinstance(result, Found):
        return f"{name}: found {len(result.text)} chars"
    if isinstance(result, Deferred):
        return f"{name}: deferred ({result.reason or 'nothing to do'})"
    return f"{name}: failed ({result.reason})"

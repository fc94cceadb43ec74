"""Transformer — converts text against the store's active profile."""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from textswitch.utils.text import iter_clusters

if TYPE_CHECKING:
    from textswitch.profiles.store import ProfileStore


class DominantSide(Enum):
    FORWARD = "forward"   # text is mostly on the source side of the profile
    REVERSE = "reverse"   # text is mostly on the target side
    TIE = "tie"


class Transformer:
    """Stateless view over :class:`ProfileStore`.

    Every call reads the store's current tables, so switching the active
    profile is visible on the very next call.
    """

    def __init__(self, store: "ProfileStore"):
        self.store = store

    def transform(self, text: str) -> str:
        """Map every character through the forward table, then the inverse one.

        Forward hits take precedence: a character present in both tables with
        different targets always resolves through the forward entry.
        Unmapped characters pass through unchanged.
        """
        forward, inverse = self.store.active_tables()
        out = []
        for ch in iter_clusters(text):
            mapped = forward.get(ch)
            if mapped is None:
                mapped = inverse.get(ch, ch)
            out.append(mapped)
        return "".join(out)

    def detect_dominant_side(self, text: str) -> DominantSide:
        """Classify *text* by how many distinct characters hit each table.

        A character-membership heuristic: short or mixed strings may
        misclassify.  Callers treat ``TIE`` like ``REVERSE``.
        """
        forward, inverse = self.store.active_tables()
        chars = set(iter_clusters(text.lower()))
        forward_hits = len(chars.intersection(forward.keys()))
        reverse_hits = len(chars.intersection(inverse.keys()))
        if forward_hits > reverse_hits:
            return DominantSide.FORWARD
        if reverse_hits > forward_hits:
            return DominantSide.REVERSE
        return DominantSide.TIE

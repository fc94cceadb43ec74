"""Character-cluster helpers shared by the transformer and profile validation."""

from __future__ import annotations

import unicodedata
from typing import Iterator

_ZWJ = "\u200d"


def _extends_cluster(ch: str) -> bool:
    """True for code points that attach to the preceding character."""
    if ch == _ZWJ:
        return True
    # Variation selectors (VS1–VS16)
    if "\ufe00" <= ch <= "\ufe0f":
        return True
    return unicodedata.combining(ch) != 0 or unicodedata.category(ch) == "Me"


def iter_clusters(text: str) -> Iterator[str]:
    """Yield user-perceived characters: a base code point plus combining marks.

    ``"й"`` written as ``"и" + U+0306`` yields one cluster, so a mapping keyed
    on the decomposed form still matches.  A ZWJ glues the following code
    point onto the current cluster.
    """
    cluster = ""
    glue = False
    for ch in text:
        if cluster and (glue or _extends_cluster(ch)):
            cluster += ch
            glue = ch == _ZWJ
            continue
        if cluster:
            yield cluster
        cluster = ch
        glue = False
    if cluster:
        yield cluster


def is_single_cluster(value: str) -> bool:
    """Return True if *value* is exactly one user-perceived character."""
    if not value:
        return False
    it = iter_clusters(value)
    next(it)
    return next(it, None) is None

"""Built-in keyboard layout mapping tables.

Each table maps a character typed on the national layout to the character
on the same physical key of the US QWERTY layout.  Only keys whose source
side is unambiguous are listed: punctuation that exists on both layouts
(``.``, ``,``, ``;``, ``"``) is reachable through the inverse table instead,
otherwise a forward hit would shadow the letter it should produce.
"""

from __future__ import annotations

RUSSIAN_PROFILE_ID = "builtin-russian"
UKRAINIAN_PROFILE_ID = "builtin-ukrainian"

# Well-known profile activated when nothing else is persisted.
DEFAULT_PROFILE_ID = RUSSIAN_PROFILE_ID


def _with_upper(lower: dict[str, str], shifted: dict[str, str]) -> dict[str, str]:
    """Return *lower* plus upper-case letters; *shifted* covers non-letter targets."""
    table = dict(lower)
    for src, dst in lower.items():
        upper_src = src.upper()
        if upper_src == src:
            continue
        table[upper_src] = shifted.get(dst, dst.upper())
    return table


# Targets on the shifted level of the US layout for non-letter keys.
_US_SHIFTED: dict[str, str] = {
    "[": "{", "]": "}", ";": ":", "'": '"',
    ",": "<", ".": ">", "`": "~", "\\": "|",
}

# ЙЦУКЕН → QWERTY
RU_TO_EN: dict[str, str] = _with_upper(
    {
        "й": "q", "ц": "w", "у": "e", "к": "r", "е": "t", "н": "y", "г": "u",
        "ш": "i", "щ": "o", "з": "p", "х": "[", "ъ": "]",
        "ф": "a", "ы": "s", "в": "d", "а": "f", "п": "g", "р": "h",
        "о": "j", "л": "k", "д": "l", "ж": ";", "э": "'",
        "я": "z", "ч": "x", "с": "c", "м": "v", "и": "b", "т": "n",
        "ь": "m", "б": ",", "ю": ".", "ё": "`",
    },
    _US_SHIFTED,
)
RU_TO_EN["№"] = "#"

# Ukrainian ЙЦУКЕН → QWERTY
UA_TO_EN: dict[str, str] = _with_upper(
    {
        "й": "q", "ц": "w", "у": "e", "к": "r", "е": "t", "н": "y", "г": "u",
        "ш": "i", "щ": "o", "з": "p", "х": "[", "ї": "]",
        "ф": "a", "і": "s", "в": "d", "а": "f", "п": "g", "р": "h",
        "о": "j", "л": "k", "д": "l", "ж": ";", "є": "'",
        "я": "z", "ч": "x", "с": "c", "м": "v", "и": "b", "т": "n",
        "ь": "m", "б": ",", "ю": ".", "ґ": "\\",
    },
    _US_SHIFTED,
)
UA_TO_EN["№"] = "#"

# (id, display name, mapping) in display order.
BUILTIN_TABLES: list[tuple[str, str, dict[str, str]]] = [
    (RUSSIAN_PROFILE_ID, "Russian", RU_TO_EN),
    (UKRAINIAN_PROFILE_ID, "Ukrainian", UA_TO_EN),
]

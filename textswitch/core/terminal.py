"""Prompt-aware command extraction for terminal emulators (pure functions).

Terminals expose their whole scrollback (or a whole selected line) rather
than the command being typed, so the command is recovered heuristically:
take the last non-blank line, cut the left prompt at a prompt-terminator
token, cut right-prompt decorations (``[main]``, ``12:03:11``, ``✓``).

Token order matters: the first token in :data:`LEFT_PROMPT_TOKENS` that
occurs in the line wins, and the line is cut after that token's right-most
occurrence.  Space-terminated forms come before the bare characters.
"""

from __future__ import annotations

import re
from typing import Iterable, Sequence

LEFT_PROMPT_TOKENS: tuple[str, ...] = (
    "$ ", "% ", "> ", "# ", "ζ ", "❯ ", "➜ ", "→ ", "λ ", "» ",
    "$", "%", ">", "#", "ζ", "❯", "➜", "→", "λ", "»",
)

SPACED_PROMPT_TOKENS: tuple[str, ...] = tuple(t for t in LEFT_PROMPT_TOKENS if t.endswith(" "))

PROMPT_CHARS = frozenset(t.strip() for t in LEFT_PROMPT_TOKENS)

PROMPT_PREFIX_MARKERS = frozenset("@/~:\\()[]")

RIGHT_PROMPT_RE = re.compile(
    r"\s{2,}"
    r"(?:\[[^\]]*\]"              # [main]
    r"|\([^)]*\)"                 # (venv)
    r"|<[^>]*>"                   # <tag>
    r"|\d{1,2}:\d{2}(?::\d{2})?"  # 12:03 / 12:03:11
    r"|[✓✔✗✘×])"                  # exit-status glyphs
    r".*?$"
)


def is_terminal_app(app_id: str, terminal_apps: Iterable[str]) -> bool:
    """Case-insensitive membership of *app_id* in the terminal allow-list."""
    if not app_id:
        return False
    return app_id.strip().lower() in {a.lower() for a in terminal_apps}


def last_nonblank_line(text: str) -> str:
    for line in reversed(text.splitlines()):
        if line.strip():
            return line
    return ""


def strip_left_prompt(line: str, tokens: Sequence[str] = LEFT_PROMPT_TOKENS) -> str:
    """Return what follows the prompt token, or *line* unchanged if none occurs."""
    for token in tokens:
        idx = line.rfind(token)
        if idx != -1:
            return line[idx + len(token):]
    return line


def strip_right_prompt(line: str) -> str:
    m = RIGHT_PROMPT_RE.search(line)
    return line[:m.start()] if m else line


def extract_command(text: str) -> str:
    """Recover the command being typed from terminal text.

    Never returns an empty string when a non-blank line exists: if the
    prompt patterns consume everything, the trimmed line is returned.
    """
    line = last_nonblank_line(text)
    if not line:
        return ""
    command = strip_right_prompt(strip_left_prompt(line)).strip()
    return command or line.strip()


def looks_like_prompt_prefix(prefix: str) -> bool:
    """True if *prefix* (text left of a prompt token) reads as a shell prompt.

    An empty prefix qualifies, as does one carrying a user@host, path, drive
    or virtualenv marker.  ``50`` in ``50% off`` does not.
    """
    prefix = prefix.strip()
    return not prefix or any(ch in PROMPT_PREFIX_MARKERS for ch in prefix)


def clean_selection(text: str) -> str:
    """Prompt cleanup for text from the standard acquisition chain.

    Only single-line selections longer than two characters that contain a
    prompt character are touched, only space-terminated prompt tokens are
    honoured, and the text before the token must look like a prompt.
    Returns *text* unchanged when nothing was stripped.
    """
    stripped = text.strip()
    if len(stripped) <= 2 or "\n" in stripped:
        return text
    if not any(ch in PROMPT_CHARS for ch in stripped):
        return text
    body = stripped
    for token in SPACED_PROMPT_TOKENS:
        idx = stripped.rfind(token)
        if idx != -1:
            if looks_like_prompt_prefix(stripped[:idx]):
                body = stripped[idx + len(token):]
            break
    cleaned = strip_right_prompt(body).strip()
    if not cleaned or cleaned == stripped:
        return text
    return cleaned

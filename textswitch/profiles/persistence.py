"""JSON persistence for the profile store and config.

Reads tolerate ``#``/``//`` line comments and trailing commas so that
hand-edited files still load; writes are atomic.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile

logger = logging.getLogger(__name__)


def sanitize_json_text(s: str) -> str:
    """Remove ``#``/``//`` comments and trailing commas from JSON-like text."""
    # Hash-style line comments
    s = re.sub(r"^[ \t]*#.*$", "", s, flags=re.MULTILINE)
    # C++-style line comments
    s = re.sub(r"^[ \t]*//.*$", "", s, flags=re.MULTILINE)
    # Trailing commas before } or ]
    s = re.sub(r",[ \t\r\n]*(\}|\])", r"\1", s)
    return s


def load_json(path: str):
    """Parse the JSON document at *path*.

    Strict JSON is tried first, then the sanitized text.  Raises
    ``FileNotFoundError`` when the file is missing, ``ValueError`` when it
    cannot be decoded or parsed and ``OSError`` when it cannot be read.
    """
    with open(path, encoding="utf-8") as f:
        raw = f.read()
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return json.loads(sanitize_json_text(raw))


def save_json(path: str, data) -> None:
    """Atomically write *data* to *path* via a temp file in the same directory."""
    dir_path = os.path.dirname(os.path.abspath(path))
    os.makedirs(dir_path, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=dir_path, prefix=".textswitch-", suffix=".json.tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2, sort_keys=False)
            f.write("\n")
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise


def move_aside(path: str, suffix: str = ".bak") -> str | None:
    """Rename *path* to ``path + suffix``, replacing an older backup.

    Returns the backup path, or ``None`` if *path* did not exist.
    """
    backup = path + suffix
    try:
        os.replace(path, backup)
    except FileNotFoundError:
        return None
    return backup

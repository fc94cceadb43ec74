"""Configuration loader and validator for TextSwitch.

Provides ``load_config(path)`` which reads a JSON config (with
comment and trailing-comma tolerant sanitizer) and merges user
overrides from ``~/.config/textswitch/config.json``.

Also provides ``validate_config(conf)`` which normalizes and
validates config keys, raising ``ValueError`` on invalid values.
"""

from __future__ import annotations

import logging
import os

from textswitch.profiles.persistence import load_json

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.path.expanduser('~/.config/textswitch/config.json')
DEFAULT_PROFILES_PATH = os.path.expanduser('~/.config/textswitch/profiles.json')
STATE_FILE_NAME = 'state.json'

# Terminal emulators whose focused "value" is scrollback, matched against
# WM_CLASS instance or class (case-insensitive).
DEFAULT_TERMINAL_APPS: list[str] = [
    'gnome-terminal-server',
    'gnome-terminal',
    'konsole',
    'xfce4-terminal',
    'xterm',
    'uxterm',
    'urxvt',
    'alacritty',
    'kitty',
    'tilix',
    'terminator',
    'wezterm',
    'org.wezfurlong.wezterm',
    'st-256color',
    'foot',
    'guake',
    'yakuake',
    'terminology',
    'lxterminal',
    'mate-terminal',
    'qterminal',
    'sakura',
    'tabby',
    'hyper',
]

# Single source of truth for default configuration
DEFAULT_CONFIG: dict = {
    'debug': False,
    'switch_layout_after_convert': True,
    'terminal_apps': list(DEFAULT_TERMINAL_APPS),
    'backspace_ceiling': 300,
    'backspace_padding': 2,
    'clipboard_timeout': 0.3,
    'clipboard_restore_delay': 0.25,
    'profiles_path': None,
}


# ------------------------------------------------------------------
# Helpers
# ------------------------------------------------------------------

def _as_bool(conf: dict, key: str, default: bool) -> bool:
    value = conf.get(key, default)
    if not isinstance(value, bool):
        raise ValueError(f"Invalid '{key}': must be boolean")
    return value


def _as_float(conf: dict, key: str, default: float, low: float, high: float) -> float:
    raw = conf.get(key, default)
    if isinstance(raw, bool):
        raise ValueError(f"Invalid '{key}': {raw}")
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid '{key}': {raw}")
    if not (low <= value <= high):
        raise ValueError(f"Invalid '{key}': {raw} (must be between {low} and {high})")
    return value


def _as_int(conf: dict, key: str, default: int, low: int, high: int) -> int:
    raw = conf.get(key, default)
    if isinstance(raw, bool):
        raise ValueError(f"Invalid '{key}': {raw}")
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ValueError(f"Invalid '{key}': {raw}")
    if not (low <= value <= high):
        raise ValueError(f"Invalid '{key}': {raw} (must be between {low} and {high})")
    return value


# ------------------------------------------------------------------
# Validation
# ------------------------------------------------------------------

def validate_config(conf: dict | None) -> dict:
    """Validate and normalize configuration dictionary.

    Returns a normalized dict with all expected keys.
    Raises ``ValueError`` on invalid values.
    """
    if conf is None:
        conf = {}

    defaults = dict(DEFAULT_CONFIG)
    out = dict(defaults)

    out['debug'] = _as_bool(conf, 'debug', defaults['debug'])
    out['switch_layout_after_convert'] = _as_bool(
        conf, 'switch_layout_after_convert', defaults['switch_layout_after_convert'])

    # terminal_apps: list of non-empty strings, stored lower-case
    apps = conf.get('terminal_apps', defaults['terminal_apps'])
    if not isinstance(apps, list) or not all(isinstance(a, str) and a.strip() for a in apps):
        raise ValueError("Invalid 'terminal_apps': must be a list of non-empty strings")
    out['terminal_apps'] = [a.strip().lower() for a in apps]

    out['backspace_ceiling'] = _as_int(conf, 'backspace_ceiling', defaults['backspace_ceiling'], 1, 10000)
    out['backspace_padding'] = _as_int(conf, 'backspace_padding', defaults['backspace_padding'], 0, 100)

    out['clipboard_timeout'] = _as_float(conf, 'clipboard_timeout', defaults['clipboard_timeout'], 0.01, 5.0)
    out['clipboard_restore_delay'] = _as_float(
        conf, 'clipboard_restore_delay', defaults['clipboard_restore_delay'], 0.0, 5.0)

    # profiles_path: None or non-empty string
    pp = conf.get('profiles_path', defaults['profiles_path'])
    if pp is not None and (not isinstance(pp, str) or not pp):
        raise ValueError("Invalid 'profiles_path': must be a non-empty string or null")
    out['profiles_path'] = os.path.expanduser(pp) if pp else None

    return out


def _read_and_merge(path: str, target_config: dict, debug: bool = False) -> bool:
    """Read a JSON file, validate, and merge into *target_config*.

    Returns True on success, False on any error.
    """
    try:
        cfg = load_json(path)
    except ValueError as exc:
        logger.warning("JSON parse error in %s: %s", path, exc)
        return False
    except OSError as exc:
        logger.debug("Cannot read config %s: %s", path, exc)
        return False

    if not isinstance(cfg, dict):
        logger.warning("Invalid config %s: top level must be an object", path)
        return False

    try:
        validated = validate_config(cfg)
    except ValueError as verr:
        logger.warning("Invalid config %s: %s", path, verr)
        return False

    # Only override keys explicitly present in source
    for k in cfg:
        if k in validated:
            target_config[k] = validated[k]
    if debug:
        logger.debug("Config merged from %s: %s", path, sorted(cfg))
    return True


# ------------------------------------------------------------------
# Top-level loader
# ------------------------------------------------------------------

def load_config(config_path: str | None = None, debug: bool = False) -> dict:
    """Load and merge configuration.

    If *config_path* is given, uses only that file (returns defaults if
    the file does not exist).  Otherwise falls back to
    ``~/.config/textswitch/config.json``.

    Returns the effective configuration dict (always has all default keys).
    """
    config = validate_config(None)
    path = config_path if config_path is not None else DEFAULT_CONFIG_PATH
    if os.path.exists(path):
        _read_and_merge(path, config, debug=debug)
    return config


# ------------------------------------------------------------------
# ConfigManager
# ------------------------------------------------------------------

class ConfigManager:
    """Effective configuration for one process, loaded once at start-up."""

    def __init__(self, config_path: str | None = None, debug: bool = False):
        self._config_path = config_path or DEFAULT_CONFIG_PATH
        self._config: dict = load_config(self._config_path, debug=debug)

    def get(self, key: str, default=None):
        return self._config.get(key, default)

    def set(self, key: str, value) -> None:
        self._config[key] = value

    @property
    def config_path(self) -> str:
        return self._config_path

    @property
    def profiles_path(self) -> str:
        """Location of the profile store (``profiles_path`` or the default)."""
        return self._config.get('profiles_path') or DEFAULT_PROFILES_PATH

    @property
    def state_path(self) -> str:
        """Runtime state kept between triggers, next to the profile store."""
        return os.path.join(os.path.dirname(self.profiles_path), STATE_FILE_NAME)
